from __future__ import annotations

import dataclasses

import pytest

from ct2_session.options import DEFAULT_OPTIONS, BatchUnit, TranslationOptions


def test_defaults_match_documented_table() -> None:
    options = TranslationOptions()

    assert options.beam_size == 2
    assert options.patience == 1.0
    assert options.length_penalty == 1.0
    assert options.coverage_penalty == 0.0
    assert options.repetition_penalty == 1.0
    assert options.no_repeat_ngram_size == 0
    assert options.disable_unk is False
    assert options.prefix_bias_beta == 0.0
    assert options.return_end_token is False
    assert options.max_input_length == 1024
    assert options.max_decoding_length == 256
    assert options.min_decoding_length == 1
    assert options.sampling_topk == 1
    assert options.sampling_temperature == 1.0
    assert options.use_vmap is False
    assert options.num_hypotheses == 1
    assert options.return_scores is False
    assert options.return_attention is False
    assert options.return_alternatives is False
    assert options.min_alternative_expansion_prob == 0.0
    assert options.replace_unknowns is False


def test_to_kwargs_names_every_engine_option() -> None:
    kwargs = DEFAULT_OPTIONS.to_kwargs()

    assert len(kwargs) == 21
    assert kwargs["beam_size"] == 2
    assert kwargs["max_decoding_length"] == 256


def test_options_are_immutable() -> None:
    options = TranslationOptions()

    with pytest.raises(dataclasses.FrozenInstanceError):
        options.beam_size = 5  # type: ignore[misc]

    derived = dataclasses.replace(options, beam_size=5)
    assert derived.beam_size == 5
    assert options.beam_size == 2


def test_from_mapping_keeps_defaults_for_missing_fields() -> None:
    options = TranslationOptions.from_mapping({"beam_size": 4, "length_penalty": 2})

    assert options.beam_size == 4
    assert options.length_penalty == 2.0
    assert isinstance(options.length_penalty, float)
    assert options.max_decoding_length == 256


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="beam_width"):
        TranslationOptions.from_mapping({"beam_width": 4})


def test_from_mapping_rejects_wrong_types() -> None:
    with pytest.raises(ValueError, match="disable_unk"):
        TranslationOptions.from_mapping({"disable_unk": 1})
    with pytest.raises(ValueError, match="beam_size"):
        TranslationOptions.from_mapping({"beam_size": True})
    with pytest.raises(ValueError, match="beam_size"):
        TranslationOptions.from_mapping({"beam_size": 2.5})


def test_batch_unit_parse() -> None:
    assert BatchUnit.parse("examples") is BatchUnit.EXAMPLES
    assert BatchUnit.parse(" Tokens ") is BatchUnit.TOKENS
    assert BatchUnit.parse(BatchUnit.TOKENS) is BatchUnit.TOKENS
    with pytest.raises(ValueError):
        BatchUnit.parse("sentences")
