"""
Order-stable, hash-based merging of per-chunk question lists
"""
import hashlib
import json
import logging
from typing import Iterable, List

from models.extraction import ChunkResult
from models.question import Question

logger = logging.getLogger(__name__)


def question_hash(question: Question) -> str:
    """
    Fingerprint a question by its normalized content.

    Text and options are trimmed and lowercased and the options are sorted,
    so the same question extracted from two overlapping chunks hashes equal
    even if the options come back in a different order.
    """
    normalized = {
        "question": question.text.strip().lower(),
        "options": sorted(option.strip().lower() for option in question.options),
        "type": question.kind.value,
    }
    serialized = json.dumps(normalized, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def merge_chunk_results(chunk_results: Iterable[ChunkResult]) -> List[Question]:
    """
    Merge the questions of successful chunks in chunk order, dropping duplicates.

    Args:
        chunk_results: Results in any order; failed results are ignored

    Returns:
        Questions in reading order, first occurrence of each hash kept
    """
    merged: List[Question] = []
    seen_hashes = set()

    successful = sorted(
        (result for result in chunk_results if result.success),
        key=lambda result: result.chunk_index
    )

    logger.info(f"Merging {len(successful)} chunks with duplicate removal")

    for result in successful:
        logger.debug(f"Processing chunk {result.chunk_index + 1}: {len(result.questions)} questions")

        for question in result.questions:
            fingerprint = question_hash(question)
            if fingerprint in seen_hashes:
                logger.debug(f"Skipped duplicate: {question.text[:50]!r}")
                continue
            seen_hashes.add(fingerprint)
            merged.append(question)

    logger.info(f"Merge result: {len(merged)} unique questions from {len(successful)} chunks")
    return merged
