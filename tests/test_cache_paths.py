"""
缓存路径推导测试
"""

import hashlib
from pathlib import Path

import pytest

from pkgfetch.cache import (
    CACHE_FILE_EXTENSION,
    compute_origin_hash,
    default_cache_root,
    derive_cache_path,
    sanitize_file_name,
)

INVALID = '<>:"/\\|?*'


class TestSanitizeFileName:
    def test_replaces_invalid_characters(self):
        assert sanitize_file_name("a<b>c") == "a_b_c"
        assert sanitize_file_name("tab\there") == "tab_here"

    def test_collapses_runs(self):
        assert sanitize_file_name("a://b") == "a_b"
        assert sanitize_file_name("x" + INVALID + "y") == "x_y"
        assert sanitize_file_name("a___b") == "a_b"

    @pytest.mark.parametrize(
        "value",
        ["https://api.example.org/v2/", "nupkg_Foo|1.0", '"quoted"?*', "\x00\x01x"],
    )
    def test_output_has_no_invalid_characters(self, value):
        result = sanitize_file_name(value)
        assert not any(ch in result for ch in INVALID)
        assert not any(ord(ch) < 32 for ch in result)
        assert "__" not in result


class TestDeriveCachePath:
    def test_deterministic(self, tmp_path):
        first = derive_cache_path("https://feed.example/api/v2/", "nupkg_Foo.1.0.0", tmp_path)
        second = derive_cache_path("https://feed.example/api/v2/", "nupkg_Foo.1.0.0", tmp_path)
        assert first == second

    def test_layout(self, tmp_path):
        origin = "https://feed.example/api/v2/"
        path = derive_cache_path(origin, "list:Foo", tmp_path)

        assert path.parent.parent == tmp_path
        assert path.name == "list_Foo" + CACHE_FILE_EXTENSION
        digest = hashlib.sha1(origin.encode("utf-8")).hexdigest()
        assert path.parent.name.startswith(digest + "$")

    def test_origin_hash_keeps_readable_tail(self):
        origin = "https://www.example.org/some/very/long/feed/path/api/v2/"
        folder = compute_origin_hash(origin)
        assert folder.endswith("$" + origin[-32:])

    def test_short_origin_tail(self):
        assert compute_origin_hash("abc").endswith("$abc")

    def test_different_origins_differ(self, tmp_path):
        a = derive_cache_path("https://a.example/", "key", tmp_path)
        b = derive_cache_path("https://b.example/", "key", tmp_path)
        assert a.parent != b.parent
        assert a.name == b.name

    def test_components_are_valid_names(self, tmp_path):
        path = derive_cache_path("https://x.example:8080/a?b=c", 'k<e>y"|*', tmp_path)
        for part in (path.parent.name, path.name):
            assert not any(ch in part for ch in INVALID)
            assert "__" not in part

    def test_default_root_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PKGFETCH_CACHE_DIR", str(tmp_path))
        assert default_cache_root() == tmp_path
        path = derive_cache_path("https://feed.example/", "key")
        assert Path(path).parent.parent == tmp_path
