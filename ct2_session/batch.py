from __future__ import annotations

from collections.abc import Iterable, Sequence
from types import TracebackType

from ct2_session.errors import TranslationError

Sentence = list[str]


class TokenBatch:
    """Call-scoped container of pre-tokenized sentences.

    Sentences are copied in on `push` and copied out on `get`, so neither the
    caller nor the engine can alias the stored lists. A released batch holds
    no data and rejects further use.
    """

    __slots__ = ("_data", "_released")

    def __init__(self) -> None:
        self._data: list[Sentence] = []
        self._released = False

    @classmethod
    def from_sentences(cls, sentences: Iterable[Sequence[str]]) -> TokenBatch:
        batch = cls()
        try:
            batch.extend(sentences)
        except BaseException:
            batch.release()
            raise
        return batch

    def __enter__(self) -> TokenBatch:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def __len__(self) -> int:
        return len(self._data)

    @property
    def released(self) -> bool:
        return self._released

    def push(self, sentence: Sequence[str]) -> None:
        self._ensure_live()
        if isinstance(sentence, str):
            raise TranslationError("Sentence must be a sequence of tokens, not a string")
        item: Sentence = []
        for token in sentence:
            if not isinstance(token, str):
                raise TranslationError(
                    f"Token must be str, got {type(token).__name__}"
                )
            item.append(token)
        self._data.append(item)

    def extend(self, sentences: Iterable[Sequence[str]]) -> None:
        for sentence in sentences:
            self.push(sentence)

    def get(self, index: int) -> Sentence:
        self._ensure_live()
        if index < 0 or index >= len(self._data):
            raise TranslationError("Index out of range")
        return list(self._data[index])

    def sentences(self) -> list[Sentence]:
        self._ensure_live()
        return self._data

    def release(self) -> None:
        # Drop our references only; lists handed out by `sentences()` stay intact.
        self._data = []
        self._released = True

    def _ensure_live(self) -> None:
        if self._released:
            raise TranslationError("Token batch has been released")


def extract_sentences(batch: TokenBatch) -> list[Sentence]:
    length = len(batch)
    return [batch.get(index) for index in range(length)]
