"""
包内容访问器

ContentAccessor 每次 open() 都返回一个独立的、从头开始读取的二进制流。
只能消费一次的流先缓冲到私有临时文件，再分发给多次读取。
"""

import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

import aiofiles

CHUNK_SIZE = 8192


@runtime_checkable
class ContentAccessor(Protocol):
    """可重复打开的包内容"""

    def open(self) -> BinaryIO: ...


class FileContentAccessor:
    """磁盘文件"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def open(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self) -> str:
        return f"FileContentAccessor({str(self.path)!r})"


class BytesContentAccessor:
    """内存中的字节"""

    def __init__(self, data: bytes):
        self.data = bytes(data)

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)


class SpooledContentAccessor(FileContentAccessor):
    """
    把一次性流缓冲到临时文件

    作为上下文管理器使用，退出时删除临时文件。
    """

    @staticmethod
    def _new_temp(directory: Optional[Path]) -> Path:
        fd, name = tempfile.mkstemp(prefix="pkgfetch-", suffix=".spool", dir=directory)
        os.close(fd)
        return Path(name)

    @classmethod
    def from_stream(
        cls, stream: BinaryIO, directory: Optional[Path] = None
    ) -> "SpooledContentAccessor":
        path = cls._new_temp(directory)
        try:
            with open(path, "wb") as f:
                shutil.copyfileobj(stream, f, CHUNK_SIZE)
        except BaseException:
            os.remove(path)
            raise
        return cls(path)

    @classmethod
    async def from_async_stream(
        cls, stream, directory: Optional[Path] = None, chunk_size: int = CHUNK_SIZE
    ) -> "SpooledContentAccessor":
        """从异步可读对象（如 aiofiles 文件）缓冲"""
        path = cls._new_temp(directory)
        try:
            async with aiofiles.open(path, "wb") as f:
                while True:
                    chunk = await stream.read(chunk_size)
                    if not chunk:
                        break
                    await f.write(chunk)
        except BaseException:
            os.remove(path)
            raise
        return cls(path)

    def cleanup(self) -> None:
        if self.path.exists():
            os.remove(self.path)

    def __enter__(self) -> "SpooledContentAccessor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
