"""
文件操作

归档解压与递归删除，落地过程通过 FileOperations 调用。
"""

import shutil
import zipfile
from pathlib import Path
from typing import BinaryIO, Union

from loguru import logger

from pkgfetch.exceptions import ArchiveError, FilesystemError


class FileOperations:
    """默认的解压与删除实现"""

    def extract_archive(self, stream: BinaryIO, destination: Union[str, Path]) -> None:
        """
        把 zip 归档解压到目标目录

        Raises:
            ArchiveError: 归档损坏或条目路径越出目标目录
        """
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()

        try:
            with zipfile.ZipFile(stream) as archive:
                for info in archive.infolist():
                    target = (root / info.filename).resolve()
                    if target != root and root not in target.parents:
                        raise ArchiveError(
                            f"归档条目越出目标目录: {info.filename}",
                            context={"entry": info.filename, "destination": str(root)},
                        )
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.open(info) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
        except zipfile.BadZipFile as e:
            raise ArchiveError(
                f"无效的归档: {e}", context={"destination": str(destination)}
            ) from e

        logger.debug(f"[解压] {destination}")

    def delete(self, path: Union[str, Path]) -> None:
        """递归删除目录"""
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise FilesystemError(
                f"无法删除目录: {path}", context={"path": str(path), "error": str(e)}
            ) from e
        logger.debug(f"[删除] {path}")
