"""Tests for the file-data read path."""
import pytest

from app.errors import InvalidSize, NoContent, NotFound
from app.models.base import new_id
from app.services.file_data import get_file_data, parse_size
from app.services.upload import upload

from conftest import b64, image_bytes

ALICE = "a" * 32
BOB = "b" * 32


class TestParseSize:
    @pytest.mark.parametrize("size, expected", [(None, None), ("", None), ("100", 100), (250, 250), ("500", 500)])
    def test_accepted(self, size, expected):
        assert parse_size(size) == expected

    @pytest.mark.parametrize("size", ["0", "50", "abc", "1000", "100.5"])
    def test_rejected(self, size):
        with pytest.raises(InvalidSize):
            parse_size(size)


class TestGetFileData:
    @pytest.mark.asyncio
    async def test_owner_reads_private_file(self, db, storage):
        record = await upload(db, storage, ALICE, name="notes.txt", kind="file", data=b64(b"hi"))
        data = await get_file_data(db, storage, record.id, user_id=ALICE)
        assert data.path == record.local_path
        assert data.media_type == "text/plain"

    @pytest.mark.asyncio
    async def test_private_file_hidden_from_others(self, db, storage):
        record = await upload(db, storage, ALICE, name="notes.txt", kind="file", data=b64(b"hi"))
        with pytest.raises(NotFound):
            await get_file_data(db, storage, record.id, user_id=BOB)
        with pytest.raises(NotFound):
            await get_file_data(db, storage, record.id, user_id=None)

    @pytest.mark.asyncio
    async def test_public_file_readable_by_anyone(self, db, storage):
        record = await upload(db, storage, ALICE, name="notes.txt", kind="file", is_public=True, data=b64(b"hi"))
        data = await get_file_data(db, storage, record.id)
        assert data.path == record.local_path

    @pytest.mark.asyncio
    async def test_folder_has_no_content(self, db, storage):
        record = await upload(db, storage, ALICE, name="Photos", kind="folder")
        with pytest.raises(NoContent):
            await get_file_data(db, storage, record.id, user_id=ALICE)

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, db, storage):
        with pytest.raises(NotFound):
            await get_file_data(db, storage, new_id(), user_id=ALICE)
        with pytest.raises(NotFound):
            await get_file_data(db, storage, "nope", user_id=ALICE)

    @pytest.mark.asyncio
    async def test_invalid_size(self, db, storage):
        record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        with pytest.raises(InvalidSize):
            await get_file_data(db, storage, record.id, size="42", user_id=ALICE)

    @pytest.mark.asyncio
    async def test_thumbnail_not_ready_yet(self, db, storage):
        record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        with pytest.raises(NotFound):
            await get_file_data(db, storage, record.id, size="100", user_id=ALICE)

    @pytest.mark.asyncio
    async def test_thumbnail_path_once_written(self, db, storage):
        record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        await storage.write(f"{record.local_path}_250", b"thumb")
        data = await get_file_data(db, storage, record.id, size="250", user_id=ALICE)
        assert data.path == f"{record.local_path}_250"
        assert data.media_type == "image/png"

    @pytest.mark.asyncio
    async def test_privacy_checked_before_size(self, db, storage):
        record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        with pytest.raises(NotFound):
            await get_file_data(db, storage, record.id, size="42", user_id=BOB)

    @pytest.mark.asyncio
    async def test_original_missing_on_disk(self, db, storage):
        record = await upload(db, storage, ALICE, name="notes.txt", kind="file", data=b64(b"hi"))
        await storage.delete(record.local_path)
        with pytest.raises(NotFound):
            await get_file_data(db, storage, record.id, user_id=ALICE)
