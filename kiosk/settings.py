# kiosk/settings.py

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)

DEFAULT_BRIGHTNESS = 1.05
DEFAULT_CONTRAST = 1.0
DEFAULT_SATURATION = 1.1

DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "fourcut-kiosk" / "settings.json"


def _coerce_positive_float(raw: Mapping[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric setting %s=%r, using %s", key, value, default)
        return default
    if number <= 0:
        logger.warning("Ignoring non-positive setting %s=%r, using %s", key, value, default)
        return default
    return number


def _coerce_path(raw: Mapping[str, Any], key: str) -> Path | None:
    value = raw.get(key)
    if not value:
        return None
    return Path(str(value)).expanduser()


def _coerce_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Snapshot of the settings the composition and print core consume.

    Built once per operation from the raw key/value record kept by the
    settings store. Every field is optional in the raw record.
    """

    template_image: Path | None = None
    output_path: Path | None = None
    brightness: float = DEFAULT_BRIGHTNESS
    contrast: float = DEFAULT_CONTRAST
    saturation: float = DEFAULT_SATURATION
    selected_printer: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "Settings":
        raw = raw or {}
        return cls(
            template_image=_coerce_path(raw, "templateImage"),
            output_path=_coerce_path(raw, "outputPath"),
            brightness=_coerce_positive_float(raw, "brightness", DEFAULT_BRIGHTNESS),
            contrast=_coerce_positive_float(raw, "contrast", DEFAULT_CONTRAST),
            saturation=_coerce_positive_float(raw, "saturation", DEFAULT_SATURATION),
            selected_printer=_coerce_str(raw, "selectedPrinter"),
        )


class SettingsStore:
    """
    JSON file holding the raw settings record.

    The record is kept as-is (UI-only keys such as the camera selection are
    round-tripped untouched); typed access goes through `Settings.from_mapping`.
    """

    def __init__(self, path: Path | None = None) -> None:
        if path is None:
            env_path = os.environ.get("KIOSK_SETTINGS_PATH")
            path = Path(env_path) if env_path else DEFAULT_SETTINGS_PATH
        self.path = path

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read settings from %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold an object, ignoring it", self.path)
            return {}
        return data

    def save(self, record: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(dict(record), indent=2), encoding="utf-8")

    def snapshot(self) -> Settings:
        return Settings.from_mapping(self.load())
