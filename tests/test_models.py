"""
Tests for data models validation
"""
import pytest
from pydantic import ValidationError

from models import (
    Question, QuestionType, PageRange, SourceFile, ChunkJob,
    ExtractionResult, PreviewData, PreviewResponse
)


class TestQuestionModel:
    """Test the canonical question model"""

    def test_single_choice_from_wire_names(self):
        question = Question.model_validate({
            "question": "Red planet?",
            "options": ["Venus", "Mars"],
            "type": "single",
            "correctIndex": 1
        })

        assert question.text == "Red planet?"
        assert question.kind == QuestionType.SINGLE
        assert question.correct_index == 1

    def test_multiple_choice_may_be_empty(self):
        question = Question(text="Q", options=["a", "b"], kind=QuestionType.MULTIPLE, correct_indexes=[])

        assert question.correct_indexes == []

    def test_single_choice_requires_index(self):
        with pytest.raises(ValidationError) as exc_info:
            Question(text="Q", options=["a"], kind=QuestionType.SINGLE)
        assert "Single choice questions need correct_index" in str(exc_info.value)

    def test_single_choice_rejects_indexes(self):
        with pytest.raises(ValidationError):
            Question(text="Q", options=["a"], correct_index=0, correct_indexes=[0])

    def test_multiple_choice_rejects_index(self):
        with pytest.raises(ValidationError):
            Question(text="Q", options=["a"], kind=QuestionType.MULTIPLE, correct_index=0, correct_indexes=[0])

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            Question(text="Q", options=["a"], correct_index=-1)
        with pytest.raises(ValidationError):
            Question(text="Q", options=["a"], kind=QuestionType.MULTIPLE, correct_indexes=[-1])

    def test_payload_uses_wire_names(self):
        question = Question(text="Q", options=["a", "b"], kind=QuestionType.MULTIPLE, correct_indexes=[0, 1])

        assert question.to_payload() == {
            "question": "Q",
            "options": ["a", "b"],
            "type": "multiple",
            "correctIndexes": [0, 1]
        }


class TestExtractionModels:
    """Test pipeline data structures"""

    def test_page_range(self):
        page_range = PageRange(5, 9)

        assert page_range.page_count == 5
        assert page_range.label == "5-9"
        assert page_range.to_dict() == {"start": 5, "end": 9}

    @pytest.mark.parametrize("start,end", [(0, 3), (4, 3)])
    def test_invalid_page_range(self, start, end):
        with pytest.raises(ValueError):
            PageRange(start, end)

    def test_source_file_from_path(self, tmp_path):
        path = tmp_path / "exam.pdf"
        path.write_bytes(b"%PDF-1.4")

        source = SourceFile.from_path(path)

        assert source.name == "exam.pdf"
        assert source.size == 8

    def test_chunk_job_labels(self):
        job = ChunkJob("exam.pdf", 2, 3, b"", page_range=PageRange(9, 12))

        assert job.upload_name == "exam.pdf_chunk_3_pages_9-12.pdf"
        assert job.describe() == "chunk 3 (pages 9-12)"
        assert not job.is_whole_file

    def test_whole_file_job_labels(self):
        job = ChunkJob("small.pdf", 0, 1, b"")

        assert job.upload_name == "small.pdf"
        assert job.describe() == "small.pdf"
        assert job.is_whole_file

    def test_extraction_result_to_dict(self):
        result = ExtractionResult(
            title="Exam",
            description="Final",
            questions=[Question(text="Q", options=["a"], correct_index=0)],
            file_names=["exam.pdf"]
        )

        assert result.to_dict() == {
            "title": "Exam",
            "description": "Final",
            "questions": [{"question": "Q", "options": ["a"], "type": "single", "correctIndex": 0}],
            "fileNames": ["exam.pdf"],
        }


class TestAPIModels:
    """Test preview response models"""

    def test_preview_response_serialization(self):
        data = PreviewData(
            title="Exam",
            questions=[{"question": "Q"}],
            original_file_name="exam.pdf",
            file_size=10,
            file_count=1,
            file_names=["exam.pdf"]
        )

        body = PreviewResponse(data=data).model_dump(mode="json", by_alias=True, exclude_none=True)

        assert body["success"] is True
        assert body["data"]["originalFileName"] == "exam.pdf"
        assert body["data"]["fileCount"] == 1
        assert "chunkIndex" not in body["data"]

    def test_preview_requires_title(self):
        with pytest.raises(ValidationError):
            PreviewData(title="", original_file_name="a.pdf", file_size=1, file_count=1)
