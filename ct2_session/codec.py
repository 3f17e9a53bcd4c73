from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Protocol

END_TOKEN: Final[str] = "</s>"


class SentencePiece(Protocol):
    def encode(self, text: str, out_type: type[str]) -> list[str]: ...

    def decode(self, pieces: Sequence[str]) -> str: ...


@dataclass(frozen=True, slots=True)
class SentencePieceCodec:
    """Source/target SentencePiece pair used to feed and read a session."""

    source: SentencePiece
    target: SentencePiece

    def encode_batch(self, texts: Sequence[str]) -> list[list[str]]:
        return [self.source.encode(text.strip(), out_type=str) for text in texts]

    def decode_batch(self, batches: Sequence[Sequence[str]]) -> list[str]:
        return [_decode(self.target, tokens) for tokens in batches]


def load_codec(source_model: Path, target_model: Path | None = None) -> SentencePieceCodec:
    target_path = target_model or source_model
    candidates = dict.fromkeys((source_model, target_path))
    missing = [path for path in candidates if not path.exists()]
    if missing:
        msg = (
            "SentencePiece model files are missing. Expected: "
            + ", ".join(str(path) for path in missing)
        )
        raise FileNotFoundError(msg)

    import sentencepiece as spm

    source_sp = spm.SentencePieceProcessor()
    source_sp.Load(str(source_model))
    if target_path == source_model:
        return SentencePieceCodec(source=source_sp, target=source_sp)
    target_sp = spm.SentencePieceProcessor()
    target_sp.Load(str(target_path))
    return SentencePieceCodec(source=source_sp, target=target_sp)


def _decode(sp: SentencePiece, tokens: Sequence[str]) -> str:
    pieces = list(tokens)
    if pieces and pieces[-1] == END_TOKEN:
        pieces = pieces[:-1]
    return sp.decode(pieces).strip()
