"""
PkgFetch 服务层
"""

from pkgfetch.services.repository import LocalPackageRepository, PackageContent

__all__ = [
    "LocalPackageRepository",
    "PackageContent",
]
