"""
缓存路径推导

把 (源地址, 缓存键) 映射为确定的缓存文件路径：
<cache_root>/<hash(源地址)>/<缓存键>.dat
"""

import hashlib
import os
import re
from pathlib import Path
from typing import Optional

import platformdirs

CACHE_FILE_EXTENSION = ".dat"
CACHE_DIR_ENV = "PKGFETCH_CACHE_DIR"
TRAILING_LENGTH = 32

# 取 Windows 的非法文件名字符集合，保证路径在所有平台上都合法
_INVALID_CHARS = frozenset('<>:"/\\|?*' + "".join(chr(i) for i in range(32)))
_UNDERSCORE_RUN = re.compile(r"_{2,}")


def sanitize_file_name(value: str) -> str:
    """替换非法文件名字符为下划线，并合并连续的下划线"""
    replaced = "".join("_" if ch in _INVALID_CHARS else ch for ch in value)
    return _UNDERSCORE_RUN.sub("_", replaced)


def compute_origin_hash(source_origin: str) -> str:
    """
    计算源地址的目录名

    SHA-1 十六进制摘要后接 "$" 和源地址末尾最多 32 个字符，便于人工辨认。
    """
    trailing = source_origin[-TRAILING_LENGTH:]
    digest = hashlib.sha1(source_origin.encode("utf-8")).hexdigest()
    return f"{digest}${trailing}"


def default_cache_root() -> Path:
    """默认缓存根目录，可用 PKGFETCH_CACHE_DIR 覆盖"""
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    return Path(platformdirs.user_data_dir("pkgfetch")) / "cache"


def derive_cache_path(
    source_origin: str, cache_key: str, cache_root: Optional[Path] = None
) -> Path:
    """
    推导缓存文件路径

    Args:
        source_origin: 源地址，用于区分不同源的缓存
        cache_key: 调用方提供的缓存键
        cache_root: 缓存根目录，默认为 default_cache_root()

    Returns:
        缓存文件的完整路径
    """
    root = Path(cache_root) if cache_root is not None else default_cache_root()
    folder = sanitize_file_name(compute_origin_hash(source_origin))
    file_name = sanitize_file_name(cache_key) + CACHE_FILE_EXTENSION
    return root / folder / file_name
