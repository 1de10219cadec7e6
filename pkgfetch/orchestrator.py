"""
主协调器

对配置中的每个包执行 获取 → 缓冲 → 落地。
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from loguru import logger

from pkgfetch.download import HttpSource
from pkgfetch.exceptions import ConfigError
from pkgfetch.models import (
    MaterializeResult,
    PackageEntry,
    PackageIdentity,
    RestoreConfig,
)
from pkgfetch.packager import PackageMaterializer, SpooledContentAccessor
from pkgfetch.report import LoguruReporter, Reporter


@dataclass
class RestoreStats:
    """还原统计"""

    total: int = 0
    cache_hits: int = 0
    downloaded: int = 0
    materialized: int = 0
    skipped: int = 0


class RestoreOrchestrator:
    """还原主协调器"""

    def __init__(
        self,
        config: RestoreConfig,
        reporter: Optional[Reporter] = None,
        source: Optional[HttpSource] = None,
        materializer: Optional[PackageMaterializer] = None,
    ):
        self.config = config
        self.reporter = reporter or LoguruReporter()
        self._owned_source = source is None
        self.source = source or HttpSource(
            config.source, reporter=self.reporter, cache_root=config.cache.root
        )
        self.materializer = materializer or PackageMaterializer(
            reporter=self.reporter,
            archive_extension=config.output.archive_extension,
        )
        self.stats = RestoreStats()
        self._inflight: Set[asyncio.Future] = set()
        self._semaphore: Optional[asyncio.Semaphore] = None

    def _validate_config(self):
        if not self.config.packages:
            raise ConfigError("请配置至少一个包")

    async def run(self) -> List[MaterializeResult]:
        """
        运行完整的还原流程，任一包失败时取消其余任务并抛出异常

        已在工作线程中运行的落地无法中断，抛出异常前会等待它们结束，
        保证返回时输出目录中没有正在写入的包。
        """
        self._validate_config()
        logger.info(f"开始还原 {len(self.config.packages)} 个包...")
        self.stats.total = len(self.config.packages)
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)

        tasks = [
            asyncio.create_task(self._restore(entry), name=f"restore-{entry.name}")
            for entry in self.config.packages
        ]
        try:
            results = list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if self._inflight:
                logger.debug(f"[落地] 等待 {len(self._inflight)} 个进行中的落地结束")
                await asyncio.gather(*list(self._inflight), return_exceptions=True)
            raise
        finally:
            if self._owned_source:
                await self.source.close()

        logger.success(
            f"还原完成: {self.stats.materialized} 落地, {self.stats.skipped} 跳过, "
            f"{self.stats.cache_hits} 命中缓存"
        )
        return results

    async def _restore(self, entry: PackageEntry) -> MaterializeResult:
        identity = PackageIdentity(entry.name, entry.version)
        uri = entry.resolve_url(self.source.base_address)

        async with self._semaphore:
            result = await self.source.fetch(
                uri, entry.resolve_cache_key(), self.config.cache.age_limit
            )
            async with result:
                if result.from_cache:
                    self.stats.cache_hits += 1
                else:
                    self.stats.downloaded += 1
                # 缓存文件可能被其他进程替换，先缓冲成私有副本
                accessor = await SpooledContentAccessor.from_async_stream(
                    result.content_stream
                )

        # 缓冲文件由工作线程负责释放，任务被取消时线程仍可读取
        work = asyncio.ensure_future(
            asyncio.to_thread(self._materialize_spooled, identity, accessor, entry)
        )
        self._inflight.add(work)
        work.add_done_callback(self._inflight.discard)
        outcome = await asyncio.shield(work)

        if outcome.skipped:
            self.stats.skipped += 1
        else:
            self.stats.materialized += 1
        return outcome

    def _materialize_spooled(
        self,
        identity: PackageIdentity,
        accessor: SpooledContentAccessor,
        entry: PackageEntry,
    ) -> MaterializeResult:
        with accessor:
            return self.materializer.materialize(
                identity,
                accessor,
                Path(self.config.output.packages_path),
                self.config.output.overwrite,
                entry.sha512,
            )

    def get_stats(self) -> RestoreStats:
        return self.stats
