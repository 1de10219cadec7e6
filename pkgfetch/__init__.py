"""
PkgFetch - 包获取与落地

带磁盘缓存的远程包获取，以及带完整性记录的包解压落地。
"""

__version__ = "0.1.0"

from pkgfetch.cache import derive_cache_path
from pkgfetch.download import HttpSource, FileVerifier
from pkgfetch.models import (
    PackageIdentity,
    SourceConfig,
    Credentials,
    ProxyConfig,
    FetchResult,
    MaterializeResult,
    MaterializeStatus,
)
from pkgfetch.packager import PackageMaterializer

__all__ = [
    "__version__",
    "derive_cache_path",
    "HttpSource",
    "FileVerifier",
    "PackageIdentity",
    "SourceConfig",
    "Credentials",
    "ProxyConfig",
    "FetchResult",
    "MaterializeResult",
    "MaterializeStatus",
    "PackageMaterializer",
]
