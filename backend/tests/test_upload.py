"""Tests for the upload pipeline."""
import asyncio
import os
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from app.errors import InvalidInput, InvalidParent, MissingField, NotAFolder, StorageWriteFailed
from app.models.base import new_id
from app.models.file_record import ROOT_PARENT_ID, FileRecord
from app.models.job import Job
from app.services.job_queue import THUMBNAIL_JOB
from app.services.upload import upload

from conftest import b64, image_bytes

ALICE = "a" * 32
BOB = "b" * 32


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def thumbnail_jobs(db) -> list[Job]:
    result = await db.execute(select(Job).where(Job.job_type == THUMBNAIL_JOB))
    return list(result.scalars().all())


class TestValidationOrder:
    @pytest.mark.asyncio
    async def test_missing_name_wins(self, db, storage):
        with pytest.raises(MissingField, match="Missing name"):
            await upload(db, storage, ALICE, name=None, kind="bogus", parent_id="x")

    @pytest.mark.asyncio
    async def test_bad_type_before_missing_data(self, db, storage):
        with pytest.raises(MissingField, match="Missing type"):
            await upload(db, storage, ALICE, name="a", kind="video", data=None)

    @pytest.mark.asyncio
    async def test_missing_type(self, db, storage):
        with pytest.raises(MissingField, match="Missing type"):
            await upload(db, storage, ALICE, name="a", kind=None)

    @pytest.mark.asyncio
    async def test_missing_data_before_parent(self, db, storage):
        with pytest.raises(MissingField, match="Missing data"):
            await upload(db, storage, ALICE, name="a", kind="file", parent_id=new_id())

    @pytest.mark.asyncio
    async def test_folder_needs_no_data(self, db, storage):
        record = await upload(db, storage, ALICE, name="Photos", kind="folder")
        assert record.local_path is None

    @pytest.mark.asyncio
    async def test_unknown_parent(self, db, storage):
        with pytest.raises(InvalidParent, match="Parent not found"):
            await upload(db, storage, ALICE, name="a", kind="file", parent_id=new_id(), data=b64(b"x"))

    @pytest.mark.asyncio
    async def test_empty_parent_is_not_root(self, db, storage):
        with pytest.raises(InvalidParent, match="Parent not found"):
            await upload(db, storage, ALICE, name="a.txt", kind="file", parent_id="", data=b64(b"x"))

    @pytest.mark.asyncio
    async def test_parent_is_not_a_folder(self, db, storage):
        doc = await upload(db, storage, ALICE, name="a.txt", kind="file", data=b64(b"x"))
        with pytest.raises(NotAFolder, match="Parent is not a folder"):
            await upload(db, storage, ALICE, name="b.txt", kind="file", parent_id=doc.id, data=b64(b"y"))

    @pytest.mark.asyncio
    async def test_parent_owned_by_someone_else(self, db, storage):
        bobs = await upload(db, storage, BOB, name="Bob", kind="folder")
        with pytest.raises(InvalidParent):
            await upload(db, storage, ALICE, name="a.txt", kind="file", parent_id=bobs.id, data=b64(b"x"))

    @pytest.mark.asyncio
    async def test_undecodable_data(self, db, storage):
        with pytest.raises(InvalidInput, match="Invalid data"):
            await upload(db, storage, ALICE, name="a.txt", kind="file", data="abc")
        assert await count(db, FileRecord) == 0


class TestStorage:
    @pytest.mark.asyncio
    async def test_file_bytes_written_under_content_root(self, db, storage):
        assert not storage.base_path.exists()
        record = await upload(db, storage, ALICE, name="a.txt", kind="file", data=b64(b"hello"))
        assert os.path.dirname(record.local_path) == str(storage.base_path)
        with open(record.local_path, "rb") as f:
            assert f.read() == b"hello"

    @pytest.mark.asyncio
    async def test_content_root_creation_is_idempotent(self, db, storage):
        storage.base_path.mkdir(parents=True)
        await upload(db, storage, ALICE, name="a.txt", kind="file", data=b64(b"1"))
        await upload(db, storage, ALICE, name="b.txt", kind="file", data=b64(b"2"))
        assert len(list(storage.base_path.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_write_failure_commits_no_metadata(self, db, storage):
        with patch.object(storage, "save", AsyncMock(side_effect=StorageWriteFailed())):
            with pytest.raises(StorageWriteFailed):
                await upload(db, storage, ALICE, name="a.png", kind="image", data=b64(b"x"))
        assert await count(db, FileRecord) == 0
        assert await count(db, Job) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind, data", [("file", b64(b"x")), ("folder", None)])
    async def test_unusable_content_root_is_a_write_failure(self, db, storage, kind, data):
        storage.base_path.write_bytes(b"not a directory")
        with pytest.raises(StorageWriteFailed):
            await upload(db, storage, ALICE, name="a", kind=kind, data=data)
        assert await count(db, FileRecord) == 0

    @pytest.mark.asyncio
    async def test_parent_normalized_to_root(self, db, storage):
        record = await upload(db, storage, ALICE, name="a.txt", kind="file", parent_id="0", data=b64(b"x"))
        assert record.parent_id == ROOT_PARENT_ID


class TestJobs:
    @pytest.mark.asyncio
    async def test_image_enqueues_exactly_one_job(self, db, storage):
        record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        jobs = await thumbnail_jobs(db)
        assert len(jobs) == 1
        assert jobs[0].status == "queued"
        assert jobs[0].params == {
            "fileId": record.id,
            "userId": ALICE,
            "name": f"Image thumbnail [{ALICE}-{record.id}]",
        }

    @pytest.mark.asyncio
    async def test_folder_and_file_enqueue_nothing(self, db, storage):
        await upload(db, storage, ALICE, name="Photos", kind="folder")
        await upload(db, storage, ALICE, name="a.txt", kind="file", data=b64(b"x"))
        assert await thumbnail_jobs(db) == []

    @pytest.mark.asyncio
    async def test_enqueue_failure_keeps_upload(self, db, storage):
        with patch("app.services.upload.job_queue.enqueue", AsyncMock(side_effect=RuntimeError("queue down"))):
            record = await upload(db, storage, ALICE, name="cat.png", kind="image", data=b64(image_bytes()))
        assert record.id
        assert await count(db, FileRecord) == 1
        assert os.path.exists(record.local_path)


class TestConcurrentUploads:
    @pytest.mark.asyncio
    async def test_same_payload_twice_gives_two_records(self, session_factory, storage):
        payload = b64(image_bytes())

        async def one():
            async with session_factory() as db:
                return await upload(db, storage, ALICE, name="same.png", kind="image", data=payload)

        first, second = await asyncio.gather(one(), one())
        assert first.id != second.id
        assert first.local_path != second.local_path
        async with session_factory() as db:
            assert len(await thumbnail_jobs(db)) == 2
