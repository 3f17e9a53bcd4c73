from __future__ import annotations

import argparse
from collections.abc import Sequence
import dataclasses
import json
from pathlib import Path
import sys

from ct2_session.codec import SentencePieceCodec, load_codec
from ct2_session.config import SessionConfig, load_config
from ct2_session.errors import ModelLoadError, TranslationError
from ct2_session.options import BatchUnit, TranslationOptions
from ct2_session.session import Session, TranslationOutput

EXIT_TRANSLATION_ERROR = 1
EXIT_MODEL_LOAD_ERROR = 2
EXIT_TOKENIZER_ERROR = 3

_OPTION_FLAGS = ("beam_size", "num_hypotheses", "max_decoding_length")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ct2-translate",
        description="Translate text with a CTranslate2 model directory.",
    )
    parser.add_argument(
        "--model",
        type=Path,
        default=None,
        help="Converted CTranslate2 model directory (defaults to the config file).",
    )
    parser.add_argument(
        "text",
        nargs="*",
        help="Sentences to translate. Reads one sentence per stdin line when omitted.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config file path.")
    parser.add_argument("--gpu", action="store_true", default=None)
    parser.add_argument("--compressed", action="store_true", default=None)
    parser.add_argument("--beam-size", type=int, default=None)
    parser.add_argument("--num-hypotheses", type=int, default=None)
    parser.add_argument("--max-decoding-length", type=int, default=None)
    parser.add_argument("--max-batch-size", type=int, default=None)
    parser.add_argument(
        "--batch-unit",
        choices=tuple(unit.value for unit in BatchUnit),
        default=None,
    )
    parser.add_argument(
        "--target-prefix",
        nargs="+",
        default=None,
        metavar="TOKEN",
        help="Tokens forced at the start of every output.",
    )
    parser.add_argument(
        "--sp-model",
        type=Path,
        default=None,
        help="Source SentencePiece model. Without it input is split on whitespace.",
    )
    parser.add_argument("--sp-target-model", type=Path, default=None)
    parser.add_argument(
        "--format",
        choices=("lines", "json"),
        default="lines",
        help="Output format.",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> SessionConfig:
    config = load_config(args.config)
    overrides: dict[str, object] = {}
    if args.model is not None:
        overrides["model_path"] = args.model
    if args.gpu is not None:
        overrides["use_gpu"] = args.gpu
    if args.compressed is not None:
        overrides["compressed"] = args.compressed
    if args.max_batch_size is not None:
        overrides["max_batch_size"] = args.max_batch_size
    if args.batch_unit is not None:
        overrides["batch_unit"] = BatchUnit.parse(args.batch_unit)
    overrides["options"] = _resolve_options(config.options, args)
    return dataclasses.replace(config, **overrides)


def _resolve_options(
    base: TranslationOptions, args: argparse.Namespace
) -> TranslationOptions:
    changes = {
        name: getattr(args, name)
        for name in _OPTION_FLAGS
        if getattr(args, name) is not None
    }
    if not changes:
        return base
    return dataclasses.replace(base, **changes)


def _read_texts(args: argparse.Namespace) -> list[str]:
    if args.text:
        return list(args.text)
    return [line.rstrip("\n") for line in sys.stdin if line.strip()]


def _encode(codec: SentencePieceCodec | None, texts: Sequence[str]) -> list[list[str]]:
    if codec is None:
        return [text.split() for text in texts]
    return codec.encode_batch(texts)


def _decode(codec: SentencePieceCodec | None, batches: Sequence[Sequence[str]]) -> list[str]:
    if codec is None:
        return [" ".join(tokens) for tokens in batches]
    return codec.decode_batch(batches)


def _print_lines(texts: Sequence[str], outputs: Sequence[list[str]]) -> None:
    for source, variants in zip(texts, outputs):
        if len(variants) == 1:
            print(variants[0])
            continue
        print(source)
        for idx, variant in enumerate(variants, start=1):
            print(f"  {idx}. {variant}")


def _print_json(
    texts: Sequence[str],
    outputs: Sequence[list[str]],
    results: Sequence[TranslationOutput],
) -> None:
    payload = [
        {
            "source": source,
            "translations": variants,
            "scores": list(result.scores),
        }
        for source, variants, result in zip(texts, outputs, results)
    ]
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = _resolve_config(args)
    texts = _read_texts(args)
    codec: SentencePieceCodec | None = None
    if args.sp_model is not None:
        try:
            codec = load_codec(args.sp_model, args.sp_target_model)
        except FileNotFoundError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return EXIT_TOKENIZER_ERROR

    try:
        with Session.from_spec(config.model_spec()) as session:
            results = session.translate_batch_hypotheses(
                _encode(codec, texts),
                max_batch_size=config.max_batch_size,
                options=config.options,
                batch_unit=config.batch_unit,
                target_prefix=args.target_prefix,
            )
    except ModelLoadError as exc:
        print(f"error: could not load model: {exc}", file=sys.stderr)
        return EXIT_MODEL_LOAD_ERROR
    except TranslationError as exc:
        print(f"error: translation failed: {exc}", file=sys.stderr)
        return EXIT_TRANSLATION_ERROR

    outputs = [_decode(codec, result.hypotheses) for result in results]
    if args.format == "json":
        _print_json(texts, outputs, results)
    else:
        _print_lines(texts, outputs)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
