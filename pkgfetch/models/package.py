"""
包相关数据模型
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PackageIdentity:
    """包标识（名称 + 版本）"""

    name: str
    version: str

    @property
    def target_name(self) -> str:
        return f"{self.name}.{self.version}"

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True)
class ArchiveRecord:
    """
    落地后的包记录。

    sha512 为 raw_copy_path 处字节的 base64 摘要，与 hash_sidecar_path 内容一致。
    """

    target_directory: Path
    raw_copy_path: Path
    hash_sidecar_path: Path
    sha512: str


class MaterializeStatus(Enum):
    """落地结果状态"""

    MATERIALIZED = "materialized"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MaterializeResult:
    """落地结果"""

    identity: PackageIdentity
    target_path: Path
    status: MaterializeStatus
    record: Optional[ArchiveRecord] = None

    @property
    def skipped(self) -> bool:
        return self.status is MaterializeStatus.SKIPPED
