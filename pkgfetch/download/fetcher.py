"""
HTTP 包源

带磁盘缓存的远程内容获取。缓存文件按新鲜度窗口判断是否可用，下载内容先写入
同目录下的临时文件，写完并刷新后才原子替换目标文件，失败不会破坏已有缓存。
"""

import asyncio
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional

import aiofiles
import aiohttp
from loguru import logger

from pkgfetch.cache import derive_cache_path, default_cache_root
from pkgfetch.exceptions import FilesystemError, TransportError
from pkgfetch.models import FetchResult, SourceConfig
from pkgfetch.report import LoguruReporter, Reporter

CHUNK_SIZE = 8192


def _remove_quietly(path: Path) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


class HttpSource:
    """远程包源"""

    def __init__(
        self,
        config: SourceConfig,
        reporter: Optional[Reporter] = None,
        cache_root: Optional[Path] = None,
        session: Optional[aiohttp.ClientSession] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.config = config
        self.reporter = reporter or LoguruReporter()
        self.cache_root = Path(cache_root) if cache_root else default_cache_root()
        self.chunk_size = chunk_size
        self._session = session
        self._owned_session = session is None

    @property
    def base_address(self) -> str:
        return self.config.base_address

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owned_session = True
        return self._session

    def cache_path(self, cache_key: str) -> Path:
        return derive_cache_path(self.base_address, cache_key, self.cache_root)

    def _request_kwargs(self) -> Dict[str, Any]:
        """认证头与代理参数"""
        kwargs: Dict[str, Any] = {}
        credentials = self.config.credentials
        if credentials is not None:
            auth = aiohttp.BasicAuth(credentials.username, credentials.password)
            kwargs["headers"] = {aiohttp.hdrs.AUTHORIZATION: auth.encode()}

        proxy = self.config.proxy
        if proxy is not None:
            kwargs["proxy"] = proxy.address
            if proxy.credentials is not None:
                kwargs["proxy_auth"] = aiohttp.BasicAuth(
                    proxy.credentials.username, proxy.credentials.password
                )
        return kwargs

    async def fetch(
        self, uri: str, cache_key: str, age_limit: timedelta
    ) -> FetchResult:
        """
        获取远程资源

        Args:
            uri: 下载地址
            cache_key: 缓存键
            age_limit: 缓存新鲜度窗口，为 0 时总是下载且不写入共享缓存

        Returns:
            带已打开内容流的 FetchResult

        Raises:
            TransportError: 连接失败或响应状态码非 2xx
            FilesystemError: 目录创建、文件写入或重命名失败
        """
        started = time.perf_counter()

        result = await self._try_cache(cache_key, age_limit)
        if result.content_stream is not None:
            self.reporter.write_line(f"  CACHE {uri}")
            return result

        self.reporter.write_line(f"  GET {uri}")
        ephemeral = age_limit <= timedelta(0)

        try:
            async with self.session.get(uri, **self._request_kwargs()) as response:
                if not 200 <= response.status < 300:
                    raise TransportError(
                        f"HTTP {response.status}: {uri}",
                        context={"uri": uri},
                        response=response,
                    )

                if ephemeral:
                    # 不信任缓存时写入系统临时目录，不落入共享缓存
                    directory = Path(tempfile.gettempdir())
                    result.cache_file_path = self._make_temp_file(
                        directory, "pkgfetch-", ".dat"
                    )
                    result.ephemeral = True
                else:
                    directory = result.cache_file_path.parent

                try:
                    temp_path = await self._download_to_temp(
                        response, directory, result.cache_file_path.name
                    )
                except BaseException:
                    if ephemeral:
                        _remove_quietly(result.cache_file_path)
                    raise
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"请求失败: {uri}: {e}", context={"uri": uri, "error": str(e)}
            ) from e

        try:
            self._replace(temp_path, result.cache_file_path)
        except FilesystemError:
            if ephemeral:
                _remove_quietly(result.cache_file_path)
            raise

        try:
            result.content_stream = await aiofiles.open(result.cache_file_path, "rb")
        except OSError as e:
            raise FilesystemError(
                f"无法打开缓存文件: {result.cache_file_path}",
                context={"path": str(result.cache_file_path), "error": str(e)},
            ) from e

        result.elapsed = time.perf_counter() - started
        self.reporter.write_line(f"  {status} {uri} {result.elapsed * 1000:.0f}ms")
        return result

    async def _try_cache(self, cache_key: str, age_limit: timedelta) -> FetchResult:
        """检查缓存，命中时返回带内容流的结果"""
        cache_file = self.cache_path(cache_key)
        result = FetchResult(cache_file_path=cache_file)

        if age_limit <= timedelta(0):
            return result

        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"无法创建缓存目录: {cache_file.parent}",
                context={"path": str(cache_file.parent), "error": str(e)},
            ) from e

        try:
            mtime = cache_file.stat().st_mtime
        except FileNotFoundError:
            return result

        age = time.time() - mtime
        if age < age_limit.total_seconds():
            logger.debug(f"[缓存] 命中 {cache_file} (age={age:.1f}s)")
            result.content_stream = await aiofiles.open(cache_file, "rb")
            result.from_cache = True
        else:
            logger.debug(f"[缓存] 已过期 {cache_file} (age={age:.1f}s)")
        return result

    @staticmethod
    def _make_temp_file(directory: Path, prefix: str, suffix: str) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
        except OSError as e:
            raise FilesystemError(
                f"无法创建临时文件: {directory}",
                context={"path": str(directory), "error": str(e)},
            ) from e
        os.close(fd)
        return Path(name)

    async def _download_to_temp(
        self, response: aiohttp.ClientResponse, directory: Path, name: str
    ) -> Path:
        """
        把响应体写入唯一命名的临时文件，失败时删除临时文件

        只有文件操作的 OSError 包装为 FilesystemError，读取响应体的错误
        （连接中断、超时）原样抛出，由 fetch 归为传输错误。
        """
        temp_path = self._make_temp_file(directory, name + ".", ".new")
        try:
            f = await self._guard(aiofiles.open(temp_path, "wb"), temp_path)
            try:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await self._guard(f.write(chunk), temp_path)
                await self._guard(f.flush(), temp_path)
            finally:
                await self._guard(f.close(), temp_path)
        except BaseException:
            _remove_quietly(temp_path)
            raise
        return temp_path

    @staticmethod
    async def _guard(operation: Awaitable[Any], path: Path) -> Any:
        try:
            return await operation
        except OSError as e:
            raise FilesystemError(
                f"写入临时文件失败: {path}",
                context={"path": str(path), "error": str(e)},
            ) from e

    @staticmethod
    def _replace(temp_path: Path, destination: Path) -> None:
        """
        用临时文件替换目标文件

        临时文件与目标位于同一目录，os.replace 在同一文件系统上是原子的。
        """
        try:
            os.replace(temp_path, destination)
        except OSError as e:
            _remove_quietly(temp_path)
            raise FilesystemError(
                f"无法替换缓存文件: {destination}",
                context={"path": str(destination), "error": str(e)},
            ) from e
        logger.debug(f"[缓存] 已写入 {destination}")

    async def close(self):
        """关闭 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
