"""
Normalization of raw extracted questions into the canonical Question model
"""
from typing import Any, Dict, List, Optional

from models.question import Question, QuestionType

SINGLE_INDEX_FIELDS = ("correctIndex", "correctAnswer", "originalCorrectIndex")
MULTIPLE_INDEX_FIELDS = ("correctIndexes", "correctAnswers")


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _select_single_index(raw: Dict[str, Any], option_count: int) -> int:
    for field_name in SINGLE_INDEX_FIELDS:
        value = raw.get(field_name)
        if _is_index(value) and (option_count == 0 or value < option_count):
            return value
    return 0


def _select_multiple_indexes(raw: Dict[str, Any], option_count: int) -> List[int]:
    for field_name in MULTIPLE_INDEX_FIELDS:
        value = raw.get(field_name)
        if not isinstance(value, list):
            continue
        indexes = list(dict.fromkeys(
            item for item in value
            if _is_index(item) and (option_count == 0 or item < option_count)
        ))
        if indexes:
            return indexes
    return []


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def normalize_question(raw: Dict[str, Any]) -> Question:
    """
    Map one raw question from the extraction service onto a Question.

    Missing or invalid fields are replaced with deterministic defaults, so
    this never raises for odd input: an unknown type becomes single choice,
    a single choice question without a usable answer gets index 0 and a
    multiple choice question without answers gets an empty set.
    """
    text = raw.get("question")
    options = raw.get("options")
    options = [str(option) for option in options] if isinstance(options, list) else []

    try:
        kind = QuestionType(raw.get("type"))
    except ValueError:
        kind = QuestionType.SINGLE

    option_images = raw.get("optionImages")
    if isinstance(option_images, list):
        option_images = [_optional_str(image) for image in option_images]
    else:
        option_images = None

    fields = {
        "text": text if isinstance(text, str) else "",
        "options": options,
        "kind": kind,
        "question_image": _optional_str(raw.get("questionImage")),
        "option_images": option_images,
    }

    if kind == QuestionType.SINGLE:
        fields["correct_index"] = _select_single_index(raw, len(options))
    else:
        fields["correct_indexes"] = _select_multiple_indexes(raw, len(options))

    return Question(**fields)
