"""
LocalPackageRepository 测试
"""

import pytest

from pkgfetch.exceptions import PackageNotFoundError
from pkgfetch.services import LocalPackageRepository


class TestLocalPackageRepository:
    def test_find_candidate(self, tmp_path, foo_package):
        (tmp_path / "Foo.1.0.0.nupkg").write_bytes(foo_package)
        package = LocalPackageRepository(tmp_path).find_candidate("foo", "1.0.0")

        assert package.identity.name == "Foo"
        assert package.identity.version == "1.0.0"
        with package.accessor.open() as first, package.accessor.open() as second:
            assert first.read() == second.read() == foo_package

    def test_missing_package(self, tmp_path):
        with pytest.raises(PackageNotFoundError) as excinfo:
            LocalPackageRepository(tmp_path).find_candidate("Foo", "1.0.0")
        assert excinfo.value.code == "E404"

    def test_missing_root(self, tmp_path):
        with pytest.raises(PackageNotFoundError):
            LocalPackageRepository(tmp_path / "nope").find_candidate("Foo", "1.0.0")
