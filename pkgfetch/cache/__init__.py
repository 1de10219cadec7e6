"""
PkgFetch 缓存层
"""

from pkgfetch.cache.paths import (
    CACHE_FILE_EXTENSION,
    derive_cache_path,
    default_cache_root,
    sanitize_file_name,
    compute_origin_hash,
)

__all__ = [
    "CACHE_FILE_EXTENSION",
    "derive_cache_path",
    "default_cache_root",
    "sanitize_file_name",
    "compute_origin_hash",
]
