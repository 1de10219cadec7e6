"""
PkgFetch 下载层

包含带缓存的 HTTP 包源与文件校验。
"""

from pkgfetch.download.fetcher import HttpSource
from pkgfetch.download.verifier import FileVerifier, SIDECAR_SUFFIX

__all__ = [
    "HttpSource",
    "FileVerifier",
    "SIDECAR_SUFFIX",
]
