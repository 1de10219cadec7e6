"""
状态输出

Reporter 是注入式的状态输出接口，fetch 与落地过程通过它输出进度行。
"""

from typing import List, Protocol, runtime_checkable

from loguru import logger


@runtime_checkable
class Reporter(Protocol):
    """状态输出接口"""

    def write_line(self, message: str) -> None: ...


class LoguruReporter:
    """通过 loguru 输出状态行"""

    def __init__(self, level: str = "INFO"):
        self.level = level

    def write_line(self, message: str) -> None:
        logger.log(self.level, message)


class MemoryReporter:
    """把状态行记录在内存中"""

    def __init__(self):
        self.lines: List[str] = []

    def write_line(self, message: str) -> None:
        self.lines.append(message)

    def contains(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)


__all__ = ["Reporter", "LoguruReporter", "MemoryReporter"]
