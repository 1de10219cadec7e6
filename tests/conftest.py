"""
测试公共夹具
"""

import asyncio
import io
import zipfile
from typing import Dict, List, Optional, Set

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from pkgfetch.report import MemoryReporter


def build_package(files: Dict[str, bytes]) -> bytes:
    """构造一个内存中的 zip 包"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in files.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class PackageFeed:
    """记录请求的测试包源"""

    def __init__(self):
        self.payloads: Dict[str, bytes] = {}
        self.status: Dict[str, int] = {}
        self.delays: Dict[str, float] = {}
        self.stalled: Set[str] = set()
        self.requests: List[web.Request] = []
        self.base_url: Optional[str] = None

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def hits(self, path: str) -> int:
        return sum(1 for r in self.requests if r.path == "/" + path)

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append(request)
        path = request.match_info["tail"]
        if path in self.delays:
            await asyncio.sleep(self.delays[path])
        if path in self.stalled:
            return await self._stall(request, self.payloads[path])
        status = self.status.get(path)
        if status is not None:
            return web.Response(status=status, text="error")
        if path not in self.payloads:
            return web.Response(status=404, text="not found")
        return web.Response(body=self.payloads[path])

    @staticmethod
    async def _stall(request: web.Request, body: bytes) -> web.StreamResponse:
        """先发送一部分响应体，然后停止发送"""
        response = web.StreamResponse()
        response.content_length = len(body)
        await response.prepare(request)
        await response.write(body[:100])
        await asyncio.sleep(2)
        return response


@pytest.fixture
def reporter():
    return MemoryReporter()


@pytest.fixture
def foo_package() -> bytes:
    return build_package(
        {
            "Foo.nuspec": b"<package><metadata><id>Foo</id></metadata></package>",
            "lib/net45/Foo.dll": b"\x4d\x5a" + b"\x00" * 64,
            "content/readme.txt": b"hello",
        }
    )


@pytest_asyncio.fixture
async def feed():
    package_feed = PackageFeed()
    app = web.Application()
    app.router.add_get("/{tail:.*}", package_feed.handle)
    server = TestServer(app)
    await server.start_server()
    package_feed.base_url = str(server.make_url("/"))
    try:
        yield package_feed
    finally:
        await server.close()
