from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from pathlib import Path
from typing import Final

from ct2_session.errors import ModelLoadError
from ct2_session.options import BatchUnit, TranslationOptions
from ct2_session.session import ModelSpec

CONFIG_DIR_NAME: Final[str] = "ct2_session"
CONFIG_FILE_NAME: Final[str] = "config.json"
CONFIG_PATH_ENV: Final[str] = "CT2_SESSION_CONFIG"
_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionConfig:
    model_path: Path | None = None
    use_gpu: bool = False
    compressed: bool = False
    device_index: int = 0
    inter_threads: int = 1
    intra_threads: int = 0
    max_batch_size: int = 0
    batch_unit: BatchUnit = BatchUnit.EXAMPLES
    options: TranslationOptions = field(default_factory=TranslationOptions)

    def model_spec(self) -> ModelSpec:
        if self.model_path is None:
            raise ModelLoadError("No model path configured")
        return ModelSpec(
            model_path=self.model_path,
            use_gpu=self.use_gpu,
            compressed=self.compressed,
            device_index=self.device_index,
            inter_threads=self.inter_threads,
            intra_threads=self.intra_threads,
        )


def config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if override:
        return Path(override)
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_config(path: Path | None = None) -> SessionConfig:
    resolved = path or config_path()
    if not resolved.exists():
        return SessionConfig()
    try:
        raw_data = resolved.read_text(encoding="utf-8")
        payload: object = json.loads(raw_data)
    except (OSError, json.JSONDecodeError):
        _LOGGER.warning("Ignoring unreadable config file %s", resolved)
        return SessionConfig()
    return _parse_config(payload)


def save_config(config: SessionConfig, path: Path | None = None) -> None:
    resolved = path or config_path()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    data = json.dumps(_config_to_dict(config), ensure_ascii=True, indent=2)
    resolved.write_text(data, encoding="utf-8")


def _parse_config(payload: object) -> SessionConfig:
    data = _get_dict(payload)
    if data is None:
        return SessionConfig()
    defaults = SessionConfig()
    model_value = data.get("model_path")
    model_path = Path(model_value) if isinstance(model_value, str) and model_value else None
    return SessionConfig(
        model_path=model_path,
        use_gpu=_get_bool(data.get("use_gpu"), defaults.use_gpu),
        compressed=_get_bool(data.get("compressed"), defaults.compressed),
        device_index=_get_int(data.get("device_index"), defaults.device_index),
        inter_threads=_get_int(data.get("inter_threads"), defaults.inter_threads),
        intra_threads=_get_int(data.get("intra_threads"), defaults.intra_threads),
        max_batch_size=_get_int(data.get("max_batch_size"), defaults.max_batch_size),
        batch_unit=_get_batch_unit(data.get("batch_unit"), defaults.batch_unit),
        options=_parse_options(data.get("options")),
    )


def _parse_options(value: object) -> TranslationOptions:
    data = _get_dict(value)
    if data is None:
        return TranslationOptions()
    known: dict[str, object] = {}
    defaults = TranslationOptions().to_kwargs()
    for key, item in data.items():
        if key not in defaults:
            _LOGGER.warning("Ignoring unknown translation option %r", key)
            continue
        try:
            TranslationOptions.from_mapping({key: item})
        except ValueError as exc:
            _LOGGER.warning("Ignoring option %r: %s", key, exc)
            continue
        known[key] = item
    return TranslationOptions.from_mapping(known)


def _config_to_dict(config: SessionConfig) -> dict[str, object]:
    return {
        "model_path": str(config.model_path) if config.model_path else "",
        "use_gpu": config.use_gpu,
        "compressed": config.compressed,
        "device_index": config.device_index,
        "inter_threads": config.inter_threads,
        "intra_threads": config.intra_threads,
        "max_batch_size": config.max_batch_size,
        "batch_unit": config.batch_unit.value,
        "options": config.options.to_kwargs(),
    }


def _get_dict(value: object) -> dict[str, object] | None:
    if isinstance(value, dict):
        return {str(key): item for key, item in value.items()}
    return None


def _get_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _get_int(value: object, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return default


def _get_batch_unit(value: object, default: BatchUnit) -> BatchUnit:
    if not isinstance(value, str):
        return default
    try:
        return BatchUnit.parse(value)
    except ValueError:
        return default
