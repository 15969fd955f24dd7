from __future__ import annotations

import io
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from PIL import Image
from PySide6.QtCore import QStandardPaths

OUTPUT_FOLDER_NAME = "FourCut"
CAPTURES_ROOT = Path.home() / ".config" / "fourcut-kiosk" / "captures"

_SESSION_ID_RE = re.compile(r"^[0-9A-Za-z_-]{1,64}$")


def new_session_id(now: datetime | None = None) -> str:
    """Timestamp-derived id, unique per microsecond."""
    now = now or datetime.now()
    return now.strftime("%Y%m%dT%H%M%S%f")


def is_valid_session_id(session_id: str) -> bool:
    return bool(_SESSION_ID_RE.match(session_id))


def _pictures_location() -> str:
    return QStandardPaths.writableLocation(QStandardPaths.StandardLocation.PicturesLocation) or ""


def default_output_root() -> Path:
    pictures = _pictures_location()
    base = Path(pictures) if pictures else Path.home() / "Pictures"
    return base / OUTPUT_FOLDER_NAME


def _claim(directory: Path, stem: str, suffix: str = ".png") -> Path:
    """Exclusively create the first free `stem[_n]suffix` in `directory`."""
    n = 0
    while True:
        candidate = directory / (f"{stem}{suffix}" if n == 0 else f"{stem}_{n}{suffix}")
        try:
            with open(candidate, "xb"):
                return candidate
        except FileExistsError:
            n += 1


@dataclass(frozen=True)
class SessionStorage:
    root: Path
    session_id: str

    @property
    def sheet_path(self) -> Path:
        return self.root / f"final_{self.session_id}.png"

    def prepare(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def write_sheet(self, sheet: Image.Image) -> Path:
        """
        Write `sheet` as PNG and return the path it landed at.

        The PNG is written to a private temporary file first. The final name is
        then claimed exclusively, so a second sheet with the same session id
        gets `final_<id>_1.png` instead of replacing the first one.
        """
        self.prepare()
        fd, name = tempfile.mkstemp(prefix=".final_", suffix=".png.part", dir=self.root)
        partial = Path(name)
        target = None
        try:
            with open(fd, "wb") as fh:
                sheet.save(fh, format="PNG")
            target = _claim(self.root, self.sheet_path.stem)
            os.replace(partial, target)
        except BaseException:
            # Drop the empty placeholder if the rename never happened.
            if target is not None and partial.exists():
                target.unlink(missing_ok=True)
            raise
        finally:
            partial.unlink(missing_ok=True)
        return target


@dataclass(frozen=True)
class CaptureStorage:
    """Per-session folder of captured photos: `<root>/session_<id>/capture_<n>.png`."""

    root: Path
    session_id: str

    @property
    def session_dir(self) -> Path:
        return self.root / f"session_{self.session_id}"

    def save_capture(self, data: bytes) -> Path:
        """Store one PNG capture; `data` must decode as a PNG image."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                if img.format != "PNG":
                    raise ValueError(f"expected PNG data, got {img.format}")
                img.verify()
        except ValueError:
            raise
        except Exception as e:
            raise ValueError(f"capture is not a readable PNG image: {e}") from e

        self.session_dir.mkdir(parents=True, exist_ok=True)
        n = len(list(self.session_dir.glob("capture_*.png"))) + 1
        path = _claim(self.session_dir, f"capture_{n}")
        path.write_bytes(data)
        return path
