"""
Tests for deduplicating merge of chunk results
"""
from hypothesis import given, strategies as st

from models.extraction import ChunkResult
from models.question import Question
from services.question_merger import merge_chunk_results, question_hash


def single(text, options=("a", "b"), correct_index=0):
    return Question(text=text, options=list(options), correct_index=correct_index)


def result(chunk_index, questions, success=True):
    return ChunkResult(
        chunk_index=chunk_index,
        source_file_name="exam.pdf",
        success=success,
        questions=list(questions),
        error=None if success else "Failed after 4 attempts: HTTP 500"
    )


class TestQuestionHash:
    """Test question fingerprints"""

    def test_case_and_whitespace_insensitive(self):
        assert question_hash(single("  What is 2+2? ")) == question_hash(single("what is 2+2?"))

    def test_option_order_ignored(self):
        assert question_hash(single("Q", ["a", "b", "c"])) == question_hash(single("Q", ["c", "A", "b "]))

    def test_type_matters(self):
        multiple = Question(text="Q", options=["a", "b"], kind="multiple", correct_indexes=[0])

        assert question_hash(single("Q")) != question_hash(multiple)

    def test_correct_answer_ignored(self):
        assert question_hash(single("Q", correct_index=0)) == question_hash(single("Q", correct_index=1))

    def test_different_text(self):
        assert question_hash(single("Q1")) != question_hash(single("Q2"))


class TestMergeChunkResults:
    """Test merging of per-chunk question lists"""

    def test_sorted_by_chunk_index(self):
        merged = merge_chunk_results([
            result(2, [single("third")]),
            result(0, [single("first")]),
            result(1, [single("second")]),
        ])

        assert [q.text for q in merged] == ["first", "second", "third"]

    def test_overlap_duplicates_removed(self):
        """A question on the shared page appears once, at its first position"""
        merged = merge_chunk_results([
            result(0, [single("Q1"), single("Q2"), single("Q3")]),
            result(1, [single("q3"), single("Q4")]),
        ])

        assert [q.text for q in merged] == ["Q1", "Q2", "Q3", "Q4"]

    def test_first_occurrence_kept(self):
        merged = merge_chunk_results([
            result(1, [single("Q", correct_index=1)]),
            result(0, [single("Q", correct_index=0)]),
        ])

        assert len(merged) == 1
        assert merged[0].correct_index == 0

    def test_failed_results_ignored(self):
        merged = merge_chunk_results([
            result(0, [single("Q1")]),
            result(1, [single("ignored")], success=False),
            result(2, [single("Q3")]),
        ])

        assert [q.text for q in merged] == ["Q1", "Q3"]

    def test_empty_input(self):
        assert merge_chunk_results([]) == []

    def test_idempotent(self):
        results = [
            result(0, [single("Q1"), single("Q2")]),
            result(1, [single("Q2"), single("Q3")]),
        ]

        first = merge_chunk_results(results)
        second = merge_chunk_results([result(0, first)])

        assert [q.text for q in second] == [q.text for q in first]

    @given(st.lists(
        st.lists(st.sampled_from(["Q1", "Q2", "Q3", "q1", "Q4"]), max_size=6),
        max_size=5
    ))
    def test_merged_hashes_unique(self, chunk_texts):
        results = [result(index, [single(text) for text in texts]) for index, texts in enumerate(chunk_texts)]

        merged = merge_chunk_results(results)

        hashes = [question_hash(q) for q in merged]
        assert len(hashes) == len(set(hashes))
        all_hashes = {question_hash(single(text)) for texts in chunk_texts for text in texts}
        assert set(hashes) == all_hashes
