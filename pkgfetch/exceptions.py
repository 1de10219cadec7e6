"""
PkgFetch 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class PkgFetchError(Exception):
    """PkgFetch 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(PkgFetchError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class FetchError(PkgFetchError):
    """获取远程内容相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class TransportError(FetchError):
    """网络传输错误（连接失败或非成功状态码）"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E301"


class IntegrityError(FetchError):
    """内容摘要与预期值不一致"""

    def _get_default_code(self) -> str:
        return "E302"


class FilesystemError(PkgFetchError):
    """文件系统操作错误（创建目录、写入、重命名、删除）"""

    def _get_default_code(self) -> str:
        return "E303"


class MaterializeError(PkgFetchError):
    """包落地相关错误"""

    def _get_default_code(self) -> str:
        return "E400"


class ArchiveError(MaterializeError):
    """归档解压错误"""

    def _get_default_code(self) -> str:
        return "E401"


class PackageNotFoundError(PkgFetchError):
    """找不到指定的包"""

    def _get_default_code(self) -> str:
        return "E404"


__all__ = [
    "PkgFetchError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # 获取异常
    "FetchError",
    "TransportError",
    "IntegrityError",
    "FilesystemError",
    # 落地异常
    "MaterializeError",
    "ArchiveError",
    "PackageNotFoundError",
]
