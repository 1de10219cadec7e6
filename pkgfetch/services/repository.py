"""
本地包仓库

按 (名称, 版本) 查找 <root>/<name>.<version><ext> 形式的包文件。
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

from pkgfetch.exceptions import PackageNotFoundError
from pkgfetch.models import PackageIdentity, DEFAULT_ARCHIVE_EXTENSION
from pkgfetch.packager.accessor import ContentAccessor, FileContentAccessor


@dataclass(frozen=True)
class PackageContent:
    """解析得到的包：规范标识 + 内容访问器"""

    identity: PackageIdentity
    accessor: ContentAccessor


class LocalPackageRepository:
    """目录形式的包仓库"""

    def __init__(
        self,
        root: Union[str, Path],
        archive_extension: str = DEFAULT_ARCHIVE_EXTENSION,
    ):
        self.root = Path(root)
        self.archive_extension = archive_extension

    def _candidates(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return
        for path in sorted(self.root.iterdir()):
            if path.is_file() and path.name.lower().endswith(
                self.archive_extension.lower()
            ):
                yield path

    def find_candidate(self, name: str, version: str) -> PackageContent:
        """
        查找包

        名称比较不区分大小写，返回的标识使用文件名中的规范大小写。

        Raises:
            PackageNotFoundError: 仓库中没有该包
        """
        wanted = f"{name}.{version}{self.archive_extension}".lower()
        for path in self._candidates():
            if path.name.lower() == wanted:
                stem = path.name[: -len(self.archive_extension)]
                canonical_name = stem[: len(name)]
                return PackageContent(
                    identity=PackageIdentity(canonical_name, version),
                    accessor=FileContentAccessor(path),
                )
        raise PackageNotFoundError(
            f"找不到包 {name} {version}",
            context={"name": name, "version": version, "root": str(self.root)},
        )
