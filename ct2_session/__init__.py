from __future__ import annotations

from ct2_session.batch import TokenBatch, extract_sentences
from ct2_session.errors import Ct2SessionError, ModelLoadError, TranslationError
from ct2_session.options import DEFAULT_OPTIONS, BatchUnit, TranslationOptions
from ct2_session.session import (
    Device,
    ModelSpec,
    Session,
    TranslationOutput,
    open_session,
)

__all__ = [
    "BatchUnit",
    "Ct2SessionError",
    "DEFAULT_OPTIONS",
    "Device",
    "ModelLoadError",
    "ModelSpec",
    "Session",
    "TokenBatch",
    "TranslationError",
    "TranslationOptions",
    "TranslationOutput",
    "extract_sentences",
    "open_session",
]
