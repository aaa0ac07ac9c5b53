"""
Question model shared by the extraction pipeline and the preview API
"""
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator


class QuestionType(str, Enum):
    """Answer mode of a multiple-choice question"""
    SINGLE = "single"
    MULTIPLE = "multiple"


class Question(BaseModel):
    """
    Canonical quiz question.

    Exactly one correctness field is populated and it matches ``kind``:
    ``correct_index`` for single-choice, ``correct_indexes`` for
    multiple-choice (which may be empty when the source gave no answers).
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "question": "Which planet is known as the red planet?",
                "options": ["Venus", "Mars", "Jupiter", "Saturn"],
                "type": "single",
                "correctIndex": 1
            }
        }
    )

    text: str = Field("", alias="question", description="Question text")
    options: list[str] = Field(default_factory=list, description="Answer options in display order")
    kind: QuestionType = Field(QuestionType.SINGLE, alias="type", description="Single or multiple choice")
    correct_index: Optional[int] = Field(None, alias="correctIndex", ge=0, description="Correct option for single choice")
    correct_indexes: Optional[list[int]] = Field(None, alias="correctIndexes", description="Correct options for multiple choice")
    question_image: Optional[str] = Field(None, alias="questionImage", description="Reference to a question image")
    option_images: Optional[list[Optional[str]]] = Field(None, alias="optionImages", description="Per-option image references")

    @model_validator(mode='after')
    def validate_correctness_fields(self):
        """Validate that the populated correctness field matches the question kind"""
        if self.kind == QuestionType.SINGLE:
            if self.correct_index is None or self.correct_indexes is not None:
                raise ValueError('Single choice questions need correct_index and no correct_indexes')
        else:
            if self.correct_indexes is None or self.correct_index is not None:
                raise ValueError('Multiple choice questions need correct_indexes and no correct_index')
            if any(index < 0 for index in self.correct_indexes):
                raise ValueError('correct_indexes cannot contain negative values')
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using wire field names, omitting unset optional fields"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
