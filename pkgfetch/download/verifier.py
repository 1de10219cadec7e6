"""
文件校验器

实现 SHA-512 计算、摘要编码以及 sidecar 文件校验。
"""

import base64
import binascii
import hashlib
import os
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

SIDECAR_SUFFIX = ".sha512"
CHUNK_SIZE = 8192


class FileVerifier:
    """文件校验器"""

    @staticmethod
    def encode_digest(digest: bytes) -> str:
        """摘要以 base64 文本形式保存"""
        return base64.b64encode(digest).decode("ascii")

    @staticmethod
    def decode_digest(value: str) -> bytes:
        """
        解码摘要文本

        同时接受 base64 和十六进制两种写法。
        """
        value = value.strip()
        if len(value) == hashlib.sha512().digest_size * 2:
            try:
                return bytes.fromhex(value)
            except ValueError:
                pass
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError(f"无法解码摘要: {value!r}") from e

    @staticmethod
    def copy_and_hash(source: BinaryIO, target: BinaryIO) -> Tuple[int, bytes]:
        """
        单次读取 source，同时写入 target 并计算 SHA-512

        Returns:
            (写入字节数, 摘要)
        """
        sha512 = hashlib.sha512()
        total = 0
        while True:
            data = source.read(CHUNK_SIZE)
            if not data:
                break
            target.write(data)
            sha512.update(data)
            total += len(data)
        return total, sha512.digest()

    @staticmethod
    def calc_sha512(file_path: Union[str, Path]) -> Optional[bytes]:
        """
        计算文件的 SHA-512

        Returns:
            摘要或 None（如果文件不存在）
        """
        if not os.path.exists(file_path):
            return None

        sha512 = hashlib.sha512()
        with open(file_path, "rb") as f:
            for data in iter(lambda: f.read(CHUNK_SIZE), b""):
                sha512.update(data)
        return sha512.digest()

    @staticmethod
    def digest_matches(digest: bytes, expected: Optional[str]) -> bool:
        """没有预期值时视为匹配"""
        if not expected:
            return True
        try:
            return FileVerifier.decode_digest(expected) == digest
        except ValueError:
            return False

    @staticmethod
    def sidecar_path(raw_path: Union[str, Path]) -> Path:
        raw_path = Path(raw_path)
        return raw_path.with_name(raw_path.name + SIDECAR_SUFFIX)

    @staticmethod
    def write_sidecar(raw_path: Union[str, Path], digest: bytes) -> Path:
        """写入 sidecar 文件并返回其路径"""
        path = FileVerifier.sidecar_path(raw_path)
        path.write_text(FileVerifier.encode_digest(digest), encoding="ascii")
        return path

    @staticmethod
    def verify_sidecar(raw_path: Union[str, Path]) -> bool:
        """
        校验原始副本与其 sidecar 是否一致

        Returns:
            两个文件都存在且摘要一致时为 True
        """
        sidecar = FileVerifier.sidecar_path(raw_path)
        if not sidecar.exists():
            return False
        current = FileVerifier.calc_sha512(raw_path)
        if current is None:
            return False
        try:
            expected = sidecar.read_text(encoding="ascii")
        except UnicodeDecodeError:
            return False
        return FileVerifier.digest_matches(current, expected)
