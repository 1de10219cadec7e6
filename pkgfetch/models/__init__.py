"""
PkgFetch 数据模型包

包含配置模型、包模型和获取结果模型。
"""

from pkgfetch.models.config import (
    Credentials,
    ProxyConfig,
    SourceConfig,
    CacheConfig,
    OutputConfig,
    PackageEntry,
    RestoreConfig,
    DEFAULT_AGE_LIMIT,
    DEFAULT_ARCHIVE_EXTENSION,
)
from pkgfetch.models.package import (
    PackageIdentity,
    ArchiveRecord,
    MaterializeStatus,
    MaterializeResult,
)
from pkgfetch.models.fetch import FetchResult

__all__ = [
    # 配置模型
    "Credentials",
    "ProxyConfig",
    "SourceConfig",
    "CacheConfig",
    "OutputConfig",
    "PackageEntry",
    "RestoreConfig",
    "DEFAULT_AGE_LIMIT",
    "DEFAULT_ARCHIVE_EXTENSION",
    # 包模型
    "PackageIdentity",
    "ArchiveRecord",
    "MaterializeStatus",
    "MaterializeResult",
    # 获取结果
    "FetchResult",
]
