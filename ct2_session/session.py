from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
import time
from types import TracebackType
from typing import Final, Protocol

from ct2_session.batch import Sentence, TokenBatch, extract_sentences
from ct2_session.errors import ModelLoadError, TranslationError
from ct2_session.options import DEFAULT_OPTIONS, BatchUnit, TranslationOptions
from ct2_session.telemetry import batch_meta, log_error, log_event

_LOGGER = logging.getLogger(__name__)
_UNBOUNDED_BATCH: Final[int] = 0


class Device(Enum):
    CPU = "cpu"
    CUDA = "cuda"


class Ct2TranslationResult(Protocol):
    hypotheses: Sequence[Sequence[str]]
    scores: Sequence[float]


class Ct2Translator(Protocol):
    def translate_batch(
        self,
        source: Sequence[Sequence[str]],
        target_prefix: Sequence[Sequence[str]] | None = None,
        *,
        max_batch_size: int,
        batch_type: str,
        **options: object,
    ) -> list[Ct2TranslationResult]: ...

    def unload_model(self) -> None: ...


@dataclass(frozen=True, slots=True)
class ModelSpec:
    """Everything needed to load one CTranslate2 model directory.

    `compressed` selects the reduced-precision compute type for the chosen
    device (int8 on CPU, float16 on CUDA); otherwise the engine keeps the
    type the model was converted with.
    """

    model_path: Path
    use_gpu: bool = False
    compressed: bool = False
    device_index: int = 0
    inter_threads: int = 1
    intra_threads: int = 0

    @property
    def device(self) -> Device:
        return Device.CUDA if self.use_gpu else Device.CPU

    @property
    def compute_type(self) -> str:
        if not self.compressed:
            return "default"
        return "float16" if self.use_gpu else "int8"


TranslatorLoader = Callable[[ModelSpec], Ct2Translator]


@dataclass(frozen=True, slots=True)
class TranslationOutput:
    hypotheses: tuple[tuple[str, ...], ...]
    scores: tuple[float, ...] = ()

    @property
    def best(self) -> tuple[str, ...]:
        if not self.hypotheses:
            return ()
        return self.hypotheses[0]


class Session:
    """A loaded CTranslate2 translator and the batch operations that use it.

    The session is the only owner of the model handle. Token batches are
    created per call and released before the call returns, on success and on
    failure alike. Calls are blocking and keep no state between them, so a
    failed call leaves the session usable.
    """

    def __init__(self, translator: Ct2Translator, spec: ModelSpec) -> None:
        self._translator: Ct2Translator | None = translator
        self._spec = spec

    @classmethod
    def open(
        cls,
        model_path: Path | str,
        use_gpu: bool,
        compressed: bool = False,
        *,
        loader: TranslatorLoader | None = None,
        device_index: int = 0,
        inter_threads: int = 1,
        intra_threads: int = 0,
    ) -> Session:
        spec = ModelSpec(
            model_path=Path(model_path),
            use_gpu=use_gpu,
            compressed=compressed,
            device_index=device_index,
            inter_threads=inter_threads,
            intra_threads=intra_threads,
        )
        return cls.from_spec(spec, loader=loader)

    @classmethod
    def from_spec(
        cls, spec: ModelSpec, *, loader: TranslatorLoader | None = None
    ) -> Session:
        load = loader or load_translator
        started = time.perf_counter()
        try:
            translator = load(spec)
        except Exception as exc:
            log_error(
                "session_open_failed",
                exc,
                model_path=str(spec.model_path),
                device=spec.device.value,
                compute_type=spec.compute_type,
            )
            raise ModelLoadError(str(exc), model_path=spec.model_path) from exc
        log_event(
            "session_open",
            model_path=str(spec.model_path),
            device=spec.device.value,
            compute_type=spec.compute_type,
            elapsed_ms=_elapsed_ms(started),
        )
        return cls(translator, spec)

    def __enter__(self) -> Session:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def model_spec(self) -> ModelSpec:
        return self._spec

    @property
    def closed(self) -> bool:
        return self._translator is None

    def close(self) -> None:
        translator = self._translator
        if translator is None:
            return
        self._translator = None
        try:
            translator.unload_model()
        finally:
            log_event("session_close", model_path=str(self._spec.model_path))

    def translate_batch(
        self,
        sentences: Sequence[Sequence[str]],
        max_batch_size: int | None = _UNBOUNDED_BATCH,
        options: TranslationOptions | None = None,
        batch_unit: BatchUnit | str = BatchUnit.EXAMPLES,
    ) -> list[Sentence]:
        results = self._run(sentences, None, max_batch_size, options, batch_unit)
        return _best_sentences(results)

    def translate_batch_with_target(
        self,
        sentences: Sequence[Sequence[str]],
        target_prefix: Sequence[str],
        max_batch_size: int | None = _UNBOUNDED_BATCH,
        options: TranslationOptions | None = None,
        batch_unit: BatchUnit | str = BatchUnit.EXAMPLES,
    ) -> list[Sentence]:
        results = self._run(
            sentences, target_prefix, max_batch_size, options, batch_unit
        )
        return _best_sentences(results)

    def translate_batch_hypotheses(
        self,
        sentences: Sequence[Sequence[str]],
        max_batch_size: int | None = _UNBOUNDED_BATCH,
        options: TranslationOptions | None = None,
        batch_unit: BatchUnit | str = BatchUnit.EXAMPLES,
        target_prefix: Sequence[str] | None = None,
    ) -> list[TranslationOutput]:
        """Return every hypothesis per input sentence, grouped by position.

        `translate_batch` keeps only the best hypothesis; use this when
        `num_hypotheses > 1` or when `return_scores` is set.
        """
        results = self._run(
            sentences, target_prefix, max_batch_size, options, batch_unit
        )
        return [_to_output(result) for result in results]

    def _run(
        self,
        sentences: Sequence[Sequence[str]],
        target_prefix: Sequence[str] | None,
        max_batch_size: int | None,
        options: TranslationOptions | None,
        batch_unit: BatchUnit | str,
    ) -> list[Ct2TranslationResult]:
        translator = self._translator
        if translator is None:
            raise TranslationError("Session is closed")
        resolved = options or DEFAULT_OPTIONS
        unit = _parse_unit(batch_unit)
        size = _batch_size(max_batch_size)
        with TokenBatch.from_sentences(sentences) as batch:
            count = len(batch)
            if count == 0:
                return []
            source = batch.sentences()
            meta = batch_meta(source)
            prefix = _prefix_batch(target_prefix, count)
            started = time.perf_counter()
            _LOGGER.debug(
                "translate_batch sentences=%d unit=%s max_batch_size=%d",
                count,
                unit.value,
                size,
            )
            try:
                results = list(
                    translator.translate_batch(
                        source,
                        prefix,
                        max_batch_size=size,
                        batch_type=unit.value,
                        **resolved.to_kwargs(),
                    )
                )
            except Exception as exc:
                log_error(
                    "translate_failed",
                    exc,
                    batch_unit=unit.value,
                    max_batch_size=size,
                    **meta,
                )
                raise TranslationError(str(exc)) from exc
        if len(results) != count:
            message = f"Engine returned {len(results)} results for {count} sentences"
            log_error("translate_failed", None, error=message, **meta)
            raise TranslationError(message)
        log_event(
            "translate_batch",
            batch_unit=unit.value,
            max_batch_size=size,
            beam_size=resolved.beam_size,
            num_hypotheses=resolved.num_hypotheses,
            with_target=target_prefix is not None,
            elapsed_ms=_elapsed_ms(started),
            **meta,
        )
        return results


def open_session(
    model_path: Path | str,
    use_gpu: bool,
    compressed: bool = False,
    *,
    loader: TranslatorLoader | None = None,
) -> Session:
    return Session.open(model_path, use_gpu, compressed, loader=loader)


def load_translator(spec: ModelSpec) -> Ct2Translator:
    import ctranslate2

    return ctranslate2.Translator(
        str(spec.model_path),
        device=spec.device.value,
        device_index=spec.device_index,
        compute_type=spec.compute_type,
        inter_threads=spec.inter_threads,
        intra_threads=spec.intra_threads,
    )


def _best_sentences(results: Sequence[Ct2TranslationResult]) -> list[Sentence]:
    with TokenBatch() as output:
        for result in results:
            hypotheses = result.hypotheses
            output.push(hypotheses[0] if hypotheses else [])
        return extract_sentences(output)


def _to_output(result: Ct2TranslationResult) -> TranslationOutput:
    with TokenBatch.from_sentences(result.hypotheses) as hypotheses:
        extracted = extract_sentences(hypotheses)
    return TranslationOutput(
        hypotheses=tuple(tuple(item) for item in extracted),
        scores=tuple(float(score) for score in result.scores),
    )


def _prefix_batch(
    target_prefix: Sequence[str] | None, count: int
) -> list[Sentence] | None:
    if target_prefix is None:
        return None
    with TokenBatch() as prefix:
        prefix.push(target_prefix)
        tokens = prefix.get(0)
    return [list(tokens) for _ in range(count)]


def _parse_unit(value: BatchUnit | str) -> BatchUnit:
    try:
        return BatchUnit.parse(value)
    except ValueError as exc:
        raise TranslationError(str(exc)) from exc


def _batch_size(value: int | None) -> int:
    if value is None:
        return _UNBOUNDED_BATCH
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise TranslationError(f"max_batch_size must be a non-negative int, got {value!r}")
    return value


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
