"""
获取结果模型
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from aiofiles.threadpool.binary import AsyncBufferedReader
from loguru import logger


@dataclass
class FetchResult:
    """
    一次 fetch 调用的结果

    content_stream 为已打开的异步只读文件。ephemeral 为 True 时文件位于系统临时目录，
    关闭结果时一并删除。
    """

    cache_file_path: Path
    content_stream: Optional[AsyncBufferedReader] = None
    from_cache: bool = False
    ephemeral: bool = False
    elapsed: float = 0.0

    async def read(self) -> bytes:
        """读取剩余的全部内容"""
        if self.content_stream is None:
            raise ValueError("FetchResult 没有可读的内容流")
        return await self.content_stream.read()

    async def iter_chunks(self, chunk_size: int = 8192) -> AsyncIterator[bytes]:
        if self.content_stream is None:
            raise ValueError("FetchResult 没有可读的内容流")
        while True:
            chunk = await self.content_stream.read(chunk_size)
            if not chunk:
                break
            yield chunk

    async def close(self) -> None:
        """关闭内容流，临时结果同时删除文件"""
        if self.content_stream is not None:
            await self.content_stream.close()
            self.content_stream = None
        if self.ephemeral and self.cache_file_path.exists():
            os.remove(self.cache_file_path)
            logger.debug(f"[清理] 删除临时文件 {self.cache_file_path}")

    async def __aenter__(self) -> "FetchResult":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
