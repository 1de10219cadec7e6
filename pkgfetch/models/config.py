"""
配置数据模型

源地址、凭据、代理以及还原任务配置，均为不可变数据类。
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, List, Mapping, Optional

from yarl import URL

from pkgfetch.exceptions import ConfigValidationError

DEFAULT_ARCHIVE_EXTENSION = ".nupkg"
DEFAULT_AGE_LIMIT = timedelta(minutes=30)
PROXY_ENV_VARS = ("http_proxy", "HTTP_PROXY")


@dataclass(frozen=True)
class Credentials:
    """用户名/密码凭据"""

    username: str
    password: str = ""

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class ProxyConfig:
    """代理配置，地址中不包含凭据"""

    address: str
    credentials: Optional[Credentials] = None

    @classmethod
    def from_url(cls, proxy: str) -> "ProxyConfig":
        """
        解析 scheme://[user:password@]host:port 形式的代理地址

        地址中携带的用户名/密码会被剥离并作为代理凭据。
        """
        url = URL(proxy)
        credentials = None
        if url.user:
            credentials = Credentials(url.user, url.password or "")
        return cls(address=str(url.with_user(None)), credentials=credentials)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> Optional["ProxyConfig"]:
        """从环境变量读取代理配置，未设置时返回 None"""
        environ = os.environ if environ is None else environ
        for name in PROXY_ENV_VARS:
            value = environ.get(name)
            if value:
                return cls.from_url(value)
        return None


@dataclass(frozen=True)
class SourceConfig:
    """远程包源配置"""

    base_address: str
    credentials: Optional[Credentials] = None
    proxy: Optional[ProxyConfig] = None

    def __post_init__(self):
        if not self.base_address:
            raise ConfigValidationError("源地址不能为空")
        if not self.base_address.endswith("/"):
            object.__setattr__(self, "base_address", self.base_address + "/")

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
    ) -> "SourceConfig":
        base_address = data.get("base_address") or data.get("url")
        if not base_address:
            raise ConfigValidationError("source 缺少 base_address")

        credentials = None
        if data.get("username") is not None:
            credentials = Credentials(
                str(data["username"]), str(data.get("password") or "")
            )

        if data.get("proxy"):
            proxy = ProxyConfig.from_url(str(data["proxy"]))
        else:
            proxy = ProxyConfig.from_env(environ)

        return cls(
            base_address=str(base_address), credentials=credentials, proxy=proxy
        )


@dataclass(frozen=True)
class CacheConfig:
    """缓存配置"""

    root: Optional[Path] = None
    age_limit: timedelta = DEFAULT_AGE_LIMIT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheConfig":
        root = data.get("root")
        age = data.get("age_limit", DEFAULT_AGE_LIMIT.total_seconds())
        try:
            seconds = float(age)
        except (TypeError, ValueError):
            raise ConfigValidationError(
                f"age_limit 必须为秒数: {age!r}", context={"age_limit": age}
            )
        if seconds < 0:
            raise ConfigValidationError("age_limit 不能为负数")
        return cls(
            root=Path(root) if root else None, age_limit=timedelta(seconds=seconds)
        )


@dataclass(frozen=True)
class OutputConfig:
    """输出配置"""

    packages_path: Path = Path("packages")
    overwrite: bool = False
    archive_extension: str = DEFAULT_ARCHIVE_EXTENSION

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OutputConfig":
        extension = str(data.get("archive_extension", DEFAULT_ARCHIVE_EXTENSION))
        if not extension.startswith("."):
            extension = "." + extension
        return cls(
            packages_path=Path(data.get("packages_path", "packages")),
            overwrite=bool(data.get("overwrite", False)),
            archive_extension=extension,
        )


@dataclass(frozen=True)
class PackageEntry:
    """待还原的包条目"""

    name: str
    version: str
    url: Optional[str] = None
    cache_key: Optional[str] = None
    sha512: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PackageEntry":
        # 支持 "Name@1.0.0" 简写
        if isinstance(data, str):
            name, sep, version = data.partition("@")
            if not sep or not name or not version:
                raise ConfigValidationError(f"无效的包条目: {data!r}")
            return cls(name=name, version=version)

        if not isinstance(data, Mapping):
            raise ConfigValidationError(f"无效的包条目: {data!r}")
        if not data.get("name") or not data.get("version"):
            raise ConfigValidationError(
                "包条目必须包含 name 和 version", context={"entry": dict(data)}
            )
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            url=data.get("url"),
            cache_key=data.get("cache_key"),
            sha512=data.get("sha512"),
        )

    def resolve_url(self, base_address: str) -> str:
        return self.url or f"{base_address}package/{self.name}/{self.version}"

    def resolve_cache_key(self) -> str:
        return self.cache_key or f"nupkg_{self.name}.{self.version}"


@dataclass(frozen=True)
class RestoreConfig:
    """还原任务的完整配置"""

    source: SourceConfig
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    packages: List[PackageEntry] = field(default_factory=list)
    max_concurrent: int = 5

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
    ) -> "RestoreConfig":
        if "source" not in data:
            raise ConfigValidationError("配置缺少 [source] 段")

        max_concurrent = data.get("max_concurrent", 5)
        if not isinstance(max_concurrent, int) or max_concurrent <= 0:
            raise ConfigValidationError(
                "max_concurrent 必须为正整数",
                context={"max_concurrent": max_concurrent},
            )

        return cls(
            source=SourceConfig.from_dict(data["source"], environ),
            cache=CacheConfig.from_dict(data.get("cache", {})),
            output=OutputConfig.from_dict(data.get("output", {})),
            packages=[PackageEntry.from_dict(p) for p in data.get("packages", [])],
            max_concurrent=max_concurrent,
        )
