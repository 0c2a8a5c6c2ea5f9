"""Unit tests for document lifecycle and RAG models."""

from __future__ import annotations

from datetime import datetime, timezone

import pydantic
import pytest

from docrag.models.document import Document, DocumentStatus, DocumentUpdate, DocumentUpload
from docrag.models.pipeline import ConsistencyReport
from docrag.models.rag import Chunk, ExtractedText, VectorRecord, vector_id

_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _make_document(**overrides) -> Document:
    fields = {
        "document_id": "doc-1",
        "title": "Handbook",
        "filename": "handbook.pdf",
        "file_type": "pdf",
        "file_size": 1024,
        "uploaded_at": _NOW,
    }
    fields.update(overrides)
    return Document(**fields)


# ======================================================================
# Document
# ======================================================================


class TestDocument:
    def test_defaults_to_uploading(self) -> None:
        document = _make_document()

        assert document.status is DocumentStatus.UPLOADING
        assert document.is_in_flight
        assert document.chunk_count is None

    def test_completed_requires_matching_counts(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="chunk_count == vector_count"):
            _make_document(
                status=DocumentStatus.COMPLETED,
                processed_at=_NOW,
                chunk_count=3,
                vector_count=2,
            )

    def test_completed_requires_processed_at(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="processed_at"):
            _make_document(status=DocumentStatus.COMPLETED, chunk_count=1, vector_count=1)

    def test_completed_requires_vectors(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            _make_document(
                status=DocumentStatus.COMPLETED,
                processed_at=_NOW,
                chunk_count=0,
                vector_count=0,
            )

    def test_error_requires_message(self) -> None:
        with pytest.raises(pydantic.ValidationError, match="error_message"):
            _make_document(status=DocumentStatus.ERROR)

    def test_error_rejects_counts(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            _make_document(status=DocumentStatus.ERROR, error_message="boom", chunk_count=2)

    def test_frozen(self) -> None:
        document = _make_document()
        with pytest.raises(pydantic.ValidationError):
            document.status = DocumentStatus.ERROR  # type: ignore[misc]


# ======================================================================
# DocumentUpdate
# ======================================================================


class TestDocumentUpdate:
    def test_only_set_fields_are_changes(self) -> None:
        update = DocumentUpdate(status=DocumentStatus.PROCESSING)

        assert update.changes() == {"status": DocumentStatus.PROCESSING}

    def test_explicit_none_is_a_change(self) -> None:
        assert DocumentUpdate(error_message=None).changes() == {"error_message": None}

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DocumentUpdate(title="renamed")  # type: ignore[call-arg]

    def test_apply_completed(self) -> None:
        document = _make_document(status=DocumentStatus.PROCESSING)

        done = document.apply(DocumentUpdate.completed(4, 4, 7000, processed_at=_NOW))

        assert done.status is DocumentStatus.COMPLETED
        assert done.chunk_count == done.vector_count == 4
        assert done.processed_at == _NOW
        assert done.title == "Handbook"

    def test_apply_validates_result(self) -> None:
        document = _make_document(status=DocumentStatus.PROCESSING)

        with pytest.raises(pydantic.ValidationError):
            document.apply(DocumentUpdate(status=DocumentStatus.COMPLETED))

    def test_failed_clears_counts(self) -> None:
        completed = _make_document(
            status=DocumentStatus.COMPLETED, processed_at=_NOW, chunk_count=2, vector_count=2
        )

        failed = completed.apply(DocumentUpdate.failed("embedding: quota exceeded"))

        assert failed.status is DocumentStatus.ERROR
        assert failed.chunk_count is None
        assert failed.processed_at is None

    def test_processing_resets_previous_attempt(self) -> None:
        failed = _make_document(status=DocumentStatus.ERROR, error_message="old failure")

        retried = failed.apply(DocumentUpdate.processing())

        assert retried.status is DocumentStatus.PROCESSING
        assert retried.error_message is None


def test_upload_size_and_repr_hide_bytes() -> None:
    upload = DocumentUpload(filename="a.txt", data=b"secret payload")

    assert upload.size == 14
    assert "secret" not in repr(upload)


# ======================================================================
# RAG models
# ======================================================================


class TestRagModels:
    def test_vector_id_format(self) -> None:
        assert vector_id("doc-42", 0) == "doc-42-chunk-0"
        assert vector_id("doc-42", 17) == "doc-42-chunk-17"

    def test_chunk_offsets_must_match_text(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            Chunk(sequence_index=0, start=0, end=10, text="short", content="short")

    def test_vector_record_wire_shape_is_camel_case(self) -> None:
        chunk = Chunk(sequence_index=3, start=0, end=5, text="hello", content="Document: T\n\nhello")

        record = VectorRecord.for_chunk(
            document_id="doc-9",
            chunk=chunk,
            embedding=[0.1, 0.2],
            title="T",
            file_type="md",
            written_at=_NOW,
        )

        assert record.to_wire() == {
            "id": "doc-9-chunk-3",
            "embedding": [0.1, 0.2],
            "metadata": {
                "documentId": "doc-9",
                "content": "Document: T\n\nhello",
                "title": "T",
                "fileType": "md",
                "timestamp": "2024-06-01T12:00:00+00:00",
            },
        }

    def test_vector_record_requires_embedding(self) -> None:
        chunk = Chunk(sequence_index=0, start=0, end=1, text="a", content="a")
        with pytest.raises(pydantic.ValidationError):
            VectorRecord.for_chunk("d", chunk, [], "T", "txt", _NOW)

    def test_extracted_text_sentinel(self) -> None:
        nothing = ExtractedText.nothing("image-only scan", page_count=3)

        assert nothing.is_empty
        assert nothing.detail == "image-only scan"
        assert not ExtractedText(text="words").is_empty

    def test_consistency_report_flags(self) -> None:
        clean = ConsistencyReport(
            document_id="d", status=DocumentStatus.COMPLETED, chunk_count=1, vector_ids_present=1
        )
        dirty = clean.model_copy(update={"problems": ["1 of 1 expected vectors missing"]})

        assert clean.is_consistent
        assert not dirty.is_consistent
