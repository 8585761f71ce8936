"""Tests for the local photo store."""

import re

import pytest

from carbon_passport.domain.errors import PhotoRejected, StorageUnavailable
from carbon_passport.infrastructure.storage import PhotoStorage, PhotoUpload

PNG = PhotoUpload("me.png", "image/png", b"\x89PNG\r\n\x1a\n" + b"0" * 64)


class TestValidation:
    def test_accepts_png(self, storage):
        storage.validate(PNG)

    def test_rejects_empty(self, storage):
        with pytest.raises(PhotoRejected, match="empty"):
            storage.validate(PhotoUpload("me.png", "image/png", b""))

    def test_rejects_oversized(self, storage):
        big = PhotoUpload("me.jpg", "image/jpeg", b"0" * (5 * 1024 * 1024 + 1))
        with pytest.raises(PhotoRejected, match="maximum size is 5 MB"):
            storage.validate(big)

    def test_exactly_max_size_is_accepted(self, storage):
        storage.validate(PhotoUpload("me.jpg", "image/jpeg", b"0" * (5 * 1024 * 1024)))

    def test_rejects_unsupported_type(self, storage):
        with pytest.raises(PhotoRejected, match="Unsupported"):
            storage.validate(PhotoUpload("me.gif", "image/gif", b"GIF89a"))


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_writes_file_and_returns_url(self, storage):
        url = await storage.upload(PNG, "owner-1")
        name = url.rsplit("/", 1)[1]
        assert url.startswith("http://test/photos/passport-owner-1-")
        assert re.fullmatch(r"passport-owner-1-\d+-[0-9a-f]{6}\.png", name)
        assert (storage.root / name).read_bytes() == PNG.data

    @pytest.mark.asyncio
    async def test_extension_from_content_type(self, storage):
        url = await storage.upload(PhotoUpload("", "image/webp", b"RIFF"), "o")
        assert url.endswith(".webp")

    @pytest.mark.asyncio
    async def test_client_file_name_does_not_pick_extension(self, storage):
        upload = PhotoUpload("x.html", "image/png", b"<script>1</script>")
        url = await storage.upload(upload, "o1")
        assert url.endswith(".png")
        assert [p.suffix for p in storage.root.iterdir()] == [".png"]

    def test_jpg_alias_maps_to_jpg(self, storage):
        name = storage.file_name_for("o", PhotoUpload("a.JPEG", "image/jpg", b"x"))
        assert name.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_invalid_photo_is_not_written(self, storage):
        with pytest.raises(PhotoRejected):
            await storage.upload(PhotoUpload("x.gif", "image/gif", b"GIF"), "o")
        assert not storage.root.exists()

    @pytest.mark.asyncio
    async def test_write_failure_is_upstream_error(self, storage, monkeypatch):
        def boom(target, data):
            raise OSError("disk full")

        monkeypatch.setattr(PhotoStorage, "_write", staticmethod(boom))
        with pytest.raises(StorageUnavailable):
            await storage.upload(PNG, "owner-1")

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        url = await storage.upload(PNG, "owner-1")
        assert await storage.delete(url) is True
        assert await storage.delete(url) is False
