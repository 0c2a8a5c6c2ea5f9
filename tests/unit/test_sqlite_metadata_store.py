"""Unit tests for SQLiteMetadataStore -- CRUD, ordering and conditional updates."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pydantic
import pytest

from docrag.models.document import (
    IN_FLIGHT_STATUSES,
    TERMINAL_STATUSES,
    Document,
    DocumentStatus,
    DocumentUpdate,
)
from docrag.providers.metadata.sqlite_metadata_store import SQLiteMetadataStore
from docrag.utils.errors import (
    DocumentExistsError,
    DocumentNotFoundError,
    MetadataStoreError,
    StatusConflictError,
)

_BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _document(document_id: str = "doc-1", minutes: int = 0, **overrides) -> Document:
    fields = {
        "document_id": document_id,
        "title": "Quarterly Report",
        "filename": "report.pdf",
        "file_type": "pdf",
        "file_size": 2048,
        "uploaded_at": _BASE_TIME + timedelta(minutes=minutes),
    }
    fields.update(overrides)
    return Document(**fields)


class TestCreateAndGet:
    @pytest.mark.asyncio
    async def test_round_trips_all_fields(self, metadata_store: SQLiteMetadataStore) -> None:
        document = _document()
        await metadata_store.create(document)

        loaded = await metadata_store.get("doc-1")

        assert loaded == document
        assert loaded.uploaded_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, metadata_store: SQLiteMetadataStore) -> None:
        await metadata_store.create(_document())

        with pytest.raises(DocumentExistsError, match="doc-1"):
            await metadata_store.create(_document(title="Other"))

        loaded = await metadata_store.get("doc-1")
        assert loaded.title == "Quarterly Report"

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, metadata_store: SQLiteMetadataStore) -> None:
        assert await metadata_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, metadata_store: SQLiteMetadataStore) -> None:
        await metadata_store.create(_document("old", minutes=0))
        await metadata_store.create(_document("new", minutes=10))
        await metadata_store.create(_document("middle", minutes=5))

        listed = await metadata_store.list_all()

        assert [d.document_id for d in listed] == ["new", "middle", "old"]


class TestUpdate:
    @pytest.mark.asyncio
    async def test_applies_only_set_fields(self, metadata_store: SQLiteMetadataStore) -> None:
        await metadata_store.create(_document())

        updated = await metadata_store.update("doc-1", DocumentUpdate.processing())

        assert updated.status is DocumentStatus.PROCESSING
        assert updated.title == "Quarterly Report"
        assert await metadata_store.get("doc-1") == updated

    @pytest.mark.asyncio
    async def test_completed_transition_persists_counts(
        self, metadata_store: SQLiteMetadataStore
    ) -> None:
        await metadata_store.create(_document(status=DocumentStatus.PROCESSING))

        await metadata_store.update(
            "doc-1",
            DocumentUpdate.completed(chunk_count=3, vector_count=3, content_length=4500),
            expected_statuses={DocumentStatus.PROCESSING},
        )

        loaded = await metadata_store.get("doc-1")
        assert loaded.status is DocumentStatus.COMPLETED
        assert (loaded.chunk_count, loaded.vector_count, loaded.content_length) == (3, 3, 4500)
        assert loaded.processed_at is not None

    @pytest.mark.asyncio
    async def test_expected_status_mismatch_is_conflict(
        self, metadata_store: SQLiteMetadataStore
    ) -> None:
        await metadata_store.create(_document(status=DocumentStatus.PROCESSING))

        with pytest.raises(StatusConflictError, match="processing"):
            await metadata_store.update(
                "doc-1", DocumentUpdate.processing(), expected_statuses=TERMINAL_STATUSES
            )

        loaded = await metadata_store.get("doc-1")
        assert loaded.status is DocumentStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_expected_status_match_succeeds(
        self, metadata_store: SQLiteMetadataStore
    ) -> None:
        await metadata_store.create(_document())

        updated = await metadata_store.update(
            "doc-1", DocumentUpdate.failed("boom"), expected_statuses=IN_FLIGHT_STATUSES
        )

        assert updated.status is DocumentStatus.ERROR
        assert updated.error_message == "boom"

    @pytest.mark.asyncio
    async def test_missing_document(self, metadata_store: SQLiteMetadataStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await metadata_store.update("nope", DocumentUpdate.processing())

    @pytest.mark.asyncio
    async def test_invalid_result_is_rejected_and_not_written(
        self, metadata_store: SQLiteMetadataStore
    ) -> None:
        await metadata_store.create(_document(status=DocumentStatus.PROCESSING))

        # COMPLETED without counts violates the record invariants.
        with pytest.raises(pydantic.ValidationError):
            await metadata_store.update("doc-1", DocumentUpdate(status=DocumentStatus.COMPLETED))

        loaded = await metadata_store.get("doc-1")
        assert loaded.status is DocumentStatus.PROCESSING


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_reports_whether_row_existed(
        self, metadata_store: SQLiteMetadataStore
    ) -> None:
        await metadata_store.create(_document())

        assert await metadata_store.delete("doc-1") is True
        assert await metadata_store.delete("doc-1") is False
        assert await metadata_store.get("doc-1") is None


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_not_open_raises(self, tmp_path: Path) -> None:
        store = SQLiteMetadataStore(db_path=tmp_path / "documents.db")

        with pytest.raises(MetadataStoreError, match="not open"):
            await store.get("doc-1")

    @pytest.mark.asyncio
    async def test_context_manager_persists_across_connections(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "documents.db"

        async with SQLiteMetadataStore(db_path=db_path) as store:
            await store.create(_document())

        async with SQLiteMetadataStore(db_path=db_path) as store:
            assert (await store.get("doc-1")).title == "Quarterly Report"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, tmp_path: Path) -> None:
        store = SQLiteMetadataStore(db_path=tmp_path / "documents.db")
        await store.open()

        await store.close()
        await store.close()
