from __future__ import annotations

from pathlib import Path


class Ct2SessionError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ModelLoadError(Ct2SessionError):
    def __init__(self, message: str, model_path: Path | None = None) -> None:
        super().__init__(message)
        self.model_path = model_path


class TranslationError(Ct2SessionError):
    pass
