"""
RestoreOrchestrator 测试
"""

import hashlib
import time
from datetime import timedelta

import pytest

from pkgfetch.exceptions import ConfigError, TransportError
from pkgfetch.download import FileVerifier, HttpSource
from pkgfetch.models import (
    CacheConfig,
    OutputConfig,
    PackageEntry,
    RestoreConfig,
    SourceConfig,
)
from pkgfetch.orchestrator import RestoreOrchestrator
from pkgfetch.packager import FileOperations, PackageMaterializer
from tests.conftest import build_package


def make_config(feed, tmp_path, packages, age=timedelta(minutes=30), overwrite=False):
    return RestoreConfig(
        source=SourceConfig(feed.base_url + "api/v2"),
        cache=CacheConfig(root=tmp_path / "cache", age_limit=age),
        output=OutputConfig(packages_path=tmp_path / "packages", overwrite=overwrite),
        packages=packages,
        max_concurrent=2,
    )


@pytest.fixture
def published(feed, foo_package):
    feed.payloads["api/v2/package/Foo/1.0.0"] = foo_package
    feed.payloads["api/v2/package/Bar/2.0.0"] = build_package({"bar.txt": b"bar"})
    return [PackageEntry("Foo", "1.0.0"), PackageEntry("Bar", "2.0.0")]


class TestRestoreOrchestrator:
    @pytest.mark.asyncio
    async def test_restore_and_rerun(self, feed, tmp_path, reporter, published):
        config = make_config(feed, tmp_path, published)

        first = RestoreOrchestrator(config, reporter=reporter)
        results = await first.run()

        assert [r.identity.name for r in results] == ["Foo", "Bar"]
        assert first.get_stats().materialized == 2
        assert first.get_stats().downloaded == 2
        for name in ("Foo.1.0.0", "Bar.2.0.0"):
            raw = tmp_path / "packages" / name / f"{name}.nupkg"
            assert FileVerifier.verify_sidecar(raw)

        second = RestoreOrchestrator(config, reporter=reporter)
        await second.run()

        stats = second.get_stats()
        assert stats.skipped == 2
        assert stats.cache_hits == 2
        assert feed.hits("api/v2/package/Foo/1.0.0") == 1

    @pytest.mark.asyncio
    async def test_zero_age_with_overwrite(self, feed, tmp_path, reporter, published):
        config = make_config(feed, tmp_path, published, age=timedelta(0), overwrite=True)

        await RestoreOrchestrator(config, reporter=reporter).run()
        orchestrator = RestoreOrchestrator(config, reporter=reporter)
        await orchestrator.run()

        assert orchestrator.get_stats().materialized == 2
        assert orchestrator.get_stats().cache_hits == 0
        assert feed.hits("api/v2/package/Bar/2.0.0") == 2
        assert not (tmp_path / "cache").exists()

    @pytest.mark.asyncio
    async def test_failure_propagates(self, feed, tmp_path, reporter, published):
        packages = published + [PackageEntry("Missing", "9.9.9")]
        config = make_config(feed, tmp_path, packages)

        with pytest.raises(TransportError):
            await RestoreOrchestrator(config, reporter=reporter).run()

    @pytest.mark.asyncio
    async def test_failure_waits_for_running_materialize(
        self, feed, tmp_path, reporter, published
    ):
        class SlowOperations(FileOperations):
            def extract_archive(self, stream, destination):
                super().extract_archive(stream, destination)
                time.sleep(0.6)

        feed.delays["api/v2/package/Missing/9.9.9"] = 0.3
        packages = [published[0], PackageEntry("Missing", "9.9.9")]
        config = make_config(feed, tmp_path, packages)
        materializer = PackageMaterializer(operations=SlowOperations(), reporter=reporter)

        with pytest.raises(TransportError):
            await RestoreOrchestrator(
                config, reporter=reporter, materializer=materializer
            ).run()

        raw = tmp_path / "packages" / "Foo.1.0.0" / "Foo.1.0.0.nupkg"
        assert FileVerifier.verify_sidecar(raw)

        rerun = RestoreOrchestrator(
            make_config(feed, tmp_path, [published[0]]), reporter=reporter
        )
        results = await rerun.run()
        assert results[0].skipped
        assert FileVerifier.verify_sidecar(raw)

    @pytest.mark.asyncio
    async def test_injected_source_is_not_closed(
        self, feed, tmp_path, reporter, published
    ):
        class TrackingSource(HttpSource):
            close_calls = 0

            async def close(self):
                self.close_calls += 1
                await super().close()

        config = make_config(feed, tmp_path, published)
        source = TrackingSource(
            config.source, reporter=reporter, cache_root=config.cache.root
        )
        async with source:
            await RestoreOrchestrator(config, reporter=reporter, source=source).run()
            assert source.close_calls == 0

            result = await source.fetch(
                feed.url("api/v2/package/Foo/1.0.0"), "extra", timedelta(minutes=30)
            )
            await result.close()

        assert source.close_calls == 1

    @pytest.mark.asyncio
    async def test_checksum_from_config(self, feed, tmp_path, reporter, foo_package):
        feed.payloads["api/v2/package/Foo/1.0.0"] = foo_package
        good = PackageEntry("Foo", "1.0.0", sha512=hashlib.sha512(foo_package).hexdigest())
        config = make_config(feed, tmp_path, [good])

        results = await RestoreOrchestrator(config, reporter=reporter).run()
        assert results[0].record is not None

    @pytest.mark.asyncio
    async def test_requires_packages(self, feed, tmp_path, reporter):
        config = make_config(feed, tmp_path, [])
        with pytest.raises(ConfigError):
            await RestoreOrchestrator(config, reporter=reporter).run()
