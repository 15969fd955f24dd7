from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

MM_PER_INCH = 25.4
MICRONS_PER_INCH = 25400


def mm_to_px(mm: float, dpi: int) -> int:
    return max(0, int(round(mm / MM_PER_INCH * dpi)))


@dataclass(frozen=True)
class MarginsMM:
    top: float
    right: float
    bottom: float
    left: float


@dataclass(frozen=True)
class PrintPage:
    """Physical page the fallback print path renders onto (portrait)."""

    short_edge_in: float
    long_edge_in: float
    dpi: int
    margins_mm: MarginsMM
    background_color: Tuple[int, int, int] = (255, 255, 255)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (
            int(round(self.short_edge_in * self.dpi)),
            int(round(self.long_edge_in * self.dpi)),
        )

    @property
    def size_microns(self) -> Tuple[int, int]:
        return (
            int(round(self.short_edge_in * MICRONS_PER_INCH)),
            int(round(self.long_edge_in * MICRONS_PER_INCH)),
        )

    @property
    def margins_px(self) -> Tuple[int, int, int, int]:
        """(top, right, bottom, left) in device pixels."""
        m = self.margins_mm
        return (
            mm_to_px(m.top, self.dpi),
            mm_to_px(m.right, self.dpi),
            mm_to_px(m.bottom, self.dpi),
            mm_to_px(m.left, self.dpi),
        )

    @property
    def safe_box(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height) of the printable area inside the margins."""
        top, right, bottom, left = self.margins_px
        canvas_w, canvas_h = self.canvas_size
        return left, top, max(1, canvas_w - left - right), max(1, canvas_h - top - bottom)


# 4x6 photo paper at 300 DPI -> 1200x1800. The bottom margin leaves room for
# the feed edge the printer cannot reach.
DEFAULT_PRINT_PAGE = PrintPage(
    short_edge_in=4,
    long_edge_in=6,
    dpi=300,
    margins_mm=MarginsMM(top=2, right=6, bottom=12, left=0),
)
