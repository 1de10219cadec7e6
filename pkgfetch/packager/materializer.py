"""
包落地

把包的归档内容解压到 <target_root>/<name>.<version>/，并保存原始副本与 SHA-512
sidecar，供后续完整性检查使用。
"""

from pathlib import Path
from typing import Optional, Union

from loguru import logger

from pkgfetch.download.verifier import FileVerifier
from pkgfetch.exceptions import IntegrityError
from pkgfetch.models import (
    ArchiveRecord,
    MaterializeResult,
    MaterializeStatus,
    PackageIdentity,
    DEFAULT_ARCHIVE_EXTENSION,
)
from pkgfetch.packager.accessor import ContentAccessor
from pkgfetch.packager.operations import FileOperations
from pkgfetch.report import LoguruReporter, Reporter


class PackageMaterializer:
    """包落地器"""

    def __init__(
        self,
        operations: Optional[FileOperations] = None,
        reporter: Optional[Reporter] = None,
        archive_extension: str = DEFAULT_ARCHIVE_EXTENSION,
    ):
        self.operations = operations or FileOperations()
        self.reporter = reporter or LoguruReporter()
        self.archive_extension = archive_extension

    def materialize(
        self,
        identity: PackageIdentity,
        accessor: ContentAccessor,
        target_root: Union[str, Path],
        overwrite: bool = False,
        expected_sha512: Optional[str] = None,
    ) -> MaterializeResult:
        """
        落地单个包

        Args:
            identity: 包标识
            accessor: 包内容访问器，会被打开两次
            target_root: 包存储根目录
            overwrite: 目标已存在时是否删除重建
            expected_sha512: 可选的预期摘要（base64 或十六进制），不提供时只记录不校验

        Returns:
            MaterializeResult，目标已存在且不允许覆盖时状态为 SKIPPED

        Raises:
            IntegrityError: 提供了 expected_sha512 且不匹配
        """
        target_name = identity.target_name
        target_path = Path(target_root) / target_name

        self.reporter.write_line(f"Materializing {identity}")

        if target_path.exists():
            if overwrite:
                self.operations.delete(target_path)
            else:
                self.reporter.write_line(f"  {target_path} already exists.")
                return MaterializeResult(
                    identity=identity,
                    target_path=target_path,
                    status=MaterializeStatus.SKIPPED,
                )

        self.reporter.write_line(f"  Target {target_path}")

        try:
            raw_copy_path, size, digest = self._emit(accessor, target_name, target_path)
        except BaseException:
            # 不留下缺少原始副本或 sidecar 的半成品目录
            if target_path.exists():
                self.operations.delete(target_path)
            raise

        if not FileVerifier.digest_matches(digest, expected_sha512):
            self.operations.delete(target_path)
            raise IntegrityError(
                f"SHA-512 校验失败: {identity}",
                context={
                    "package": target_name,
                    "expected": expected_sha512,
                    "actual": FileVerifier.encode_digest(digest),
                },
            )

        sidecar_path = FileVerifier.write_sidecar(raw_copy_path, digest)
        logger.debug(f"[落地] {target_name}: {size} 字节")

        return MaterializeResult(
            identity=identity,
            target_path=target_path,
            status=MaterializeStatus.MATERIALIZED,
            record=ArchiveRecord(
                target_directory=target_path,
                raw_copy_path=raw_copy_path,
                hash_sidecar_path=sidecar_path,
                sha512=FileVerifier.encode_digest(digest),
            ),
        )

    def _emit(self, accessor: ContentAccessor, target_name: str, target_path: Path):
        """解压归档，再写原始副本并计算摘要（同一次读取）"""
        with accessor.open() as source:
            self.operations.extract_archive(source, target_path)

        raw_copy_path = target_path / (target_name + self.archive_extension)
        with accessor.open() as source, open(raw_copy_path, "wb") as target:
            size, digest = FileVerifier.copy_and_hash(source, target)
        return raw_copy_path, size, digest
