"""
CLI 模块

命令行接口实现。
"""

import asyncio
import json
import shutil
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Optional

import click
import toml
import yaml
from loguru import logger

from pkgfetch import __version__
from pkgfetch.cache import default_cache_root
from pkgfetch.download import FileVerifier, HttpSource
from pkgfetch.exceptions import ConfigParseError, PkgFetchError
from pkgfetch.logger import setup_logger
from pkgfetch.models import (
    Credentials,
    ProxyConfig,
    RestoreConfig,
    SourceConfig,
    DEFAULT_ARCHIVE_EXTENSION,
)
from pkgfetch.orchestrator import RestoreOrchestrator
from pkgfetch.packager import PackageMaterializer
from pkgfetch.services import LocalPackageRepository


def load_config(config_path: str) -> dict:
    """加载配置文件"""
    path = Path(config_path)

    if not path.exists():
        raise click.ClickException(f"配置文件不存在: {config_path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            return toml.load(config_path)
        elif suffix == ".json":
            return json.loads(path.read_text(encoding="utf-8"))
        elif suffix in (".yaml", ".yml"):
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(
            f"配置文件解析失败: {e}", context={"path": config_path}
        ) from e
    raise click.ClickException(f"不支持的配置文件格式: {suffix}")


async def fetch_async(
    uri: str,
    source: SourceConfig,
    cache_key: str,
    age_limit: timedelta,
    output: Optional[str],
    cache_root: Optional[str],
    stdout: Optional[BinaryIO] = None,
):
    """
    获取资源并写到 output

    没有 output 时输出缓存文件路径；临时结果在关闭时即被删除，
    因此改为把内容写到标准输出。
    """
    async with HttpSource(
        source, cache_root=Path(cache_root) if cache_root else None
    ) as http:
        result = await http.fetch(uri, cache_key, age_limit)
        async with result:
            if output:
                with open(output, "wb") as f:
                    async for chunk in result.iter_chunks():
                        f.write(chunk)
                logger.success(f"已保存到 {output}")
            elif result.ephemeral:
                stream = stdout or click.get_binary_stream("stdout")
                async for chunk in result.iter_chunks():
                    stream.write(chunk)
                stream.flush()
            else:
                click.echo(str(result.cache_file_path))


@click.group()
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
def main(debug: bool):
    """PkgFetch - 包获取与落地工具"""
    setup_logger(level="DEBUG" if debug else None)


@main.command()
@click.argument("uri")
@click.option("--source", "base_address", required=True, help="包源地址")
@click.option("--cache-key", required=True, help="缓存键")
@click.option(
    "--age-limit",
    type=float,
    default=1800,
    show_default=True,
    help="缓存有效期（秒），0 表示不使用缓存",
)
@click.option("--username", help="源用户名")
@click.option("--password", help="源密码")
@click.option("--cache-root", type=click.Path(file_okay=False), help="缓存根目录")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="输出文件")
def fetch(
    uri: str,
    base_address: str,
    cache_key: str,
    age_limit: float,
    username: Optional[str],
    password: Optional[str],
    cache_root: Optional[str],
    output: Optional[str],
):
    """获取单个远程资源"""
    source = SourceConfig(
        base_address=base_address,
        credentials=Credentials(username, password or "") if username else None,
        proxy=ProxyConfig.from_env(),
    )
    try:
        asyncio.run(
            fetch_async(
                uri, source, cache_key, timedelta(seconds=age_limit), output, cache_root
            )
        )
    except PkgFetchError as e:
        logger.error(f"获取失败: {e}")
        raise click.ClickException(str(e))


@main.command()
@click.argument("config", type=click.Path(exists=True), default="packages.toml")
@click.option("--overwrite", is_flag=True, help="覆盖已存在的包目录")
@click.option("--dry-run", is_flag=True, help="干运行模式（只验证配置）")
def restore(config: str, overwrite: bool, dry_run: bool):
    """按配置文件获取并落地所有包"""
    try:
        restore_config = RestoreConfig.from_dict(load_config(config))
        if overwrite:
            restore_config = replace(
                restore_config,
                output=replace(restore_config.output, overwrite=True),
            )

        if dry_run:
            logger.info("[干运行模式] 配置验证通过")
            logger.info(f"  包源: {restore_config.source.base_address}")
            logger.info(f"  包数量: {len(restore_config.packages)}")
            logger.info(f"  输出目录: {restore_config.output.packages_path}")
            return

        orchestrator = RestoreOrchestrator(restore_config)
        asyncio.run(orchestrator.run())

        stats = orchestrator.get_stats()
        logger.success(f"完成! 处理了 {stats.total} 个包")
        if stats.skipped:
            logger.warning(f"跳过了 {stats.skipped} 个已存在的包")

    except PkgFetchError as e:
        logger.error(f"还原失败: {e}")
        raise click.ClickException(str(e))


@main.command()
@click.argument("name")
@click.argument("version")
@click.option(
    "--repository",
    type=click.Path(exists=True, file_okay=False),
    required=True,
    help="本地包目录",
)
@click.option(
    "--target",
    type=click.Path(file_okay=False),
    default="packages",
    show_default=True,
    help="包存储根目录",
)
@click.option("--overwrite", is_flag=True, help="覆盖已存在的包目录")
@click.option("--extension", default=DEFAULT_ARCHIVE_EXTENSION, show_default=True)
def install(
    name: str, version: str, repository: str, target: str, overwrite: bool, extension: str
):
    """从本地包目录落地单个包"""
    try:
        package = LocalPackageRepository(repository, extension).find_candidate(
            name, version
        )
        result = PackageMaterializer(archive_extension=extension).materialize(
            package.identity, package.accessor, target, overwrite
        )
    except PkgFetchError as e:
        logger.error(f"落地失败: {e}")
        raise click.ClickException(str(e))

    if result.skipped:
        logger.warning(f"{result.target_path} 已存在，跳过")
    else:
        click.echo(str(result.target_path))


@main.command()
@click.argument("raw_path", type=click.Path(exists=True, dir_okay=False))
def verify(raw_path: str):
    """校验原始副本与其 .sha512 文件"""
    if FileVerifier.verify_sidecar(raw_path):
        logger.success(f"[校验] {raw_path} 通过")
    else:
        raise click.ClickException(f"{raw_path} 校验失败")


@main.command("cache-dir")
def cache_dir():
    """显示默认缓存目录"""
    click.echo(str(default_cache_root()))


@main.command("clear-cache")
@click.option("--cache-root", type=click.Path(file_okay=False))
@click.confirmation_option(prompt="确认清空缓存目录?")
def clear_cache(cache_root: Optional[str]):
    """清空缓存目录"""
    root = Path(cache_root) if cache_root else default_cache_root()
    if root.exists():
        shutil.rmtree(root)
    logger.success(f"已清空 {root}")


if __name__ == "__main__":
    main()
