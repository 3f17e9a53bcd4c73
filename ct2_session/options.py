from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from enum import Enum


class BatchUnit(Enum):
    """What `max_batch_size` counts when the engine splits a batch."""

    EXAMPLES = "examples"
    TOKENS = "tokens"

    @classmethod
    def parse(cls, value: str | BatchUnit) -> BatchUnit:
        if isinstance(value, BatchUnit):
            return value
        normalized = value.strip().lower()
        for unit in cls:
            if unit.value == normalized:
                return unit
        raise ValueError(f"Unknown batch unit: {value!r}")


@dataclass(frozen=True, slots=True)
class TranslationOptions:
    """Decoding knobs forwarded by name to `ctranslate2.Translator.translate_batch`.

    Build one per call (or share a module constant) and derive variants with
    `dataclasses.replace`; instances are immutable.
    """

    beam_size: int = 2
    patience: float = 1.0
    length_penalty: float = 1.0
    coverage_penalty: float = 0.0
    repetition_penalty: float = 1.0
    no_repeat_ngram_size: int = 0
    disable_unk: bool = False
    prefix_bias_beta: float = 0.0
    return_end_token: bool = False
    max_input_length: int = 1024
    max_decoding_length: int = 256
    min_decoding_length: int = 1
    sampling_topk: int = 1
    sampling_temperature: float = 1.0
    use_vmap: bool = False
    num_hypotheses: int = 1
    return_scores: bool = False
    return_attention: bool = False
    return_alternatives: bool = False
    min_alternative_expansion_prob: float = 0.0
    replace_unknowns: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> TranslationOptions:
        unknown = sorted(set(data) - set(_FIELD_TYPES))
        if unknown:
            raise ValueError(f"Unknown translation options: {', '.join(unknown)}")
        values = {
            name: _coerce(name, _FIELD_TYPES[name], value)
            for name, value in data.items()
        }
        return cls(**values)

    def to_kwargs(self) -> dict[str, object]:
        return asdict(self)


DEFAULT_OPTIONS = TranslationOptions()

_FIELD_TYPES: dict[str, type] = {
    item.name: type(item.default) for item in fields(TranslationOptions)
}


def _coerce(name: str, expected: type, value: object) -> object:
    if expected is bool:
        if isinstance(value, bool):
            return value
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(
        f"Option {name!r} expects {expected.__name__}, got {type(value).__name__}"
    )
