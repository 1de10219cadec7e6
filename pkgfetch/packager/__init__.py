"""
PkgFetch 落地层

包含内容访问器、文件操作和包落地器。
"""

from pkgfetch.packager.accessor import (
    ContentAccessor,
    FileContentAccessor,
    BytesContentAccessor,
    SpooledContentAccessor,
)
from pkgfetch.packager.operations import FileOperations
from pkgfetch.packager.materializer import PackageMaterializer

__all__ = [
    "ContentAccessor",
    "FileContentAccessor",
    "BytesContentAccessor",
    "SpooledContentAccessor",
    "FileOperations",
    "PackageMaterializer",
]
