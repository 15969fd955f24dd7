# printing/surface_base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from printing.printer_base import PrinterDevice

PrintCallback = Callable[[bool, Optional[str]], None]


@dataclass(frozen=True)
class PageOptions:
    device_name: str
    page_size_microns: Tuple[int, int]  # (width, height)
    dpi: int
    copies: int = 1
    landscape: bool = False
    silent: bool = True
    margins_microns: Tuple[int, int, int, int] = (0, 0, 0, 0)  # top, right, bottom, left


class RenderSurface(ABC):
    """
    Offscreen surface holding one minimal page: a single image stretched to fit.

    Signals are delivered through callbacks; they may fire from any thread and
    more than once, so callers must resolve them idempotently.
    """

    @abstractmethod
    def load_image(
            self,
            image_path: Path,
            *,
            on_loaded: Callable[[], None],
            on_failed: Callable[[str], None],
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def print_page(self, options: PageOptions, callback: PrintCallback) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError


class DisplaySurface(ABC):
    """
    Handle to the active windowing layer.

    Passed explicitly to the registry and dispatcher; it provides the
    windowing-layer printer list and offscreen rendering for the fallback path.
    """

    source = "display"

    @abstractmethod
    def list_printers(self) -> List[PrinterDevice]:
        raise NotImplementedError

    @abstractmethod
    def open_offscreen(self) -> RenderSurface:
        raise NotImplementedError
