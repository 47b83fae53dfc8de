#!/usr/bin/env python3
"""
Tests for asset validation and storage on disk.
"""

import pytest

from webai.errors import ValidationFailed
from webai.uploads import AssetStore


@pytest.fixture
def store(tmp_path):
    return AssetStore(str(tmp_path / "uploads"), 1024, ["image/png", "image/webp"])


class TestValidate:
    def test_allowed(self, store):
        store.validate("image/png", 1024)

    @pytest.mark.parametrize("content_type", [None, "text/html", "image/svg+xml"])
    def test_wrong_type(self, store, content_type):
        with pytest.raises(ValidationFailed, match="Invalid file type"):
            store.validate(content_type, 10)

    def test_too_large(self, tmp_path):
        store = AssetStore(str(tmp_path), 2 * 1024 * 1024, ["image/png"])
        with pytest.raises(ValidationFailed) as exc_info:
            store.validate("image/png", 2 * 1024 * 1024 + 1)
        assert exc_info.value.message == "File too large. Max: 2MB"


class TestExtension:
    @pytest.mark.parametrize("filename,expected", [
        ("logo.PNG", "png"),
        ("banner.webp", "webp"),
        ("archive.tar.gz", "gz"),
        ("no-extension", "png"),
        (None, "png"),
        ("evil.p/hp", "png"),
        ("weird.", "png"),
    ])
    def test_extension_for(self, filename, expected):
        assert AssetStore.extension_for(filename) == expected


class TestSave:
    async def test_writes_under_project(self, store, tmp_path):
        stored = await store.save("project-1", "logo.png", "image/png", b"abc")

        assert stored.size_bytes == 3
        assert stored.public_path.startswith("/uploads/project-1/")
        name = stored.public_path.rsplit("/", 1)[-1]
        written = tmp_path / "uploads" / "project-1" / name
        assert written.read_bytes() == b"abc"

    async def test_names_are_unique(self, store):
        first = await store.save("p", "a.png", "image/png", b"1")
        second = await store.save("p", "a.png", "image/png", b"2")
        assert first.public_path != second.public_path

    async def test_rejects_before_writing(self, store, tmp_path):
        with pytest.raises(ValidationFailed):
            await store.save("p", "a.png", "image/png", b"x" * 2048)
        assert not (tmp_path / "uploads").exists()
