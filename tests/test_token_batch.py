from __future__ import annotations

import pytest

from ct2_session.batch import TokenBatch, extract_sentences
from ct2_session.errors import TranslationError


def test_push_and_get_preserve_order_and_copy() -> None:
    sentence = ["a", "b", "c"]
    batch = TokenBatch()
    batch.push(sentence)
    batch.push(["d"])
    sentence.append("mutated")

    assert len(batch) == 2
    assert batch.get(0) == ["a", "b", "c"]
    assert batch.get(1) == ["d"]

    fetched = batch.get(0)
    fetched.append("x")
    assert batch.get(0) == ["a", "b", "c"]


def test_get_out_of_range_raises() -> None:
    batch = TokenBatch.from_sentences([["a"]])

    with pytest.raises(TranslationError, match="Index out of range"):
        batch.get(1)
    with pytest.raises(TranslationError):
        batch.get(-1)


def test_push_rejects_non_string_tokens() -> None:
    batch = TokenBatch()

    with pytest.raises(TranslationError, match="int"):
        batch.push(["a", 1])  # type: ignore[list-item]
    with pytest.raises(TranslationError, match="not a string"):
        batch.push("abc")

    assert len(batch) == 0


def test_released_batch_rejects_use() -> None:
    batch = TokenBatch.from_sentences([["a"], ["b"]])
    batch.release()
    batch.release()

    assert batch.released
    assert len(batch) == 0
    with pytest.raises(TranslationError, match="released"):
        batch.push(["c"])
    with pytest.raises(TranslationError, match="released"):
        batch.get(0)


def test_context_manager_releases_on_error() -> None:
    with pytest.raises(RuntimeError):
        with TokenBatch() as batch:
            batch.push(["a"])
            raise RuntimeError("boom")

    assert batch.released


def test_extract_sentences_reads_every_index() -> None:
    with TokenBatch.from_sentences([["a", "b"], [], ["c"]]) as batch:
        assert extract_sentences(batch) == [["a", "b"], [], ["c"]]


def test_empty_batch_extracts_nothing() -> None:
    with TokenBatch() as batch:
        assert extract_sentences(batch) == []


def test_release_keeps_previously_returned_sentences() -> None:
    batch = TokenBatch.from_sentences([["a", "b"], ["c"]])
    sentences = batch.sentences()

    batch.release()

    assert sentences == [["a", "b"], ["c"]]
    assert len(batch) == 0
