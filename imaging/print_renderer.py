from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image, ImageOps

from imaging.errors import PagePreparationError
from imaging.print_layout import DEFAULT_PRINT_PAGE, PrintPage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedPage:
    path: Path
    page_size_microns: Tuple[int, int]  # (width, height)
    landscape: bool = False


def _flatten(img: Image.Image, background_color: Tuple[int, int, int]) -> Image.Image:
    if img.mode in ("RGBA", "LA") or "transparency" in img.info:
        rgba = img.convert("RGBA")
        base = Image.new("RGB", rgba.size, background_color)
        base.paste(rgba, mask=rgba.getchannel("A"))
        return base
    return img.convert("RGB")


def render_print_page(img: Image.Image, page: PrintPage = DEFAULT_PRINT_PAGE) -> Image.Image:
    """Place `img` on a full-size portrait page inside the margin safe box."""
    img = _flatten(img, page.background_color)
    if img.width > img.height:
        img = img.rotate(-90, expand=True, fillcolor=page.background_color)

    safe_x, safe_y, safe_w, safe_h = page.safe_box
    # Contain fit: letterbox/pillarbox in white, never crop.
    fitted = ImageOps.pad(img, (safe_w, safe_h), method=Image.Resampling.LANCZOS, color=page.background_color)

    sheet = Image.new("RGB", page.canvas_size, page.background_color)
    sheet.paste(fitted, (safe_x, safe_y))
    return sheet


def prepare_print_page(
        image_path: Path,
        page: PrintPage = DEFAULT_PRINT_PAGE,
        temp_dir: Path | None = None,
) -> PreparedPage:
    """Render `image_path` into a temporary, printer-ready PNG.

    The caller owns the returned file and must delete it when the print
    attempt is over.
    """
    try:
        with Image.open(image_path) as src:
            src.load()
            rendered = render_print_page(src, page)
    except PagePreparationError:
        raise
    except Exception as e:
        raise PagePreparationError(f"Failed to load image for printing: {image_path}") from e

    fd, name = tempfile.mkstemp(prefix="print_", suffix=".png", dir=temp_dir)
    out_path = Path(name)
    try:
        with open(fd, "wb") as fh:
            rendered.save(fh, format="PNG", dpi=(page.dpi, page.dpi))
    except Exception as e:
        out_path.unlink(missing_ok=True)
        raise PagePreparationError(f"Failed to write print page: {e}") from e

    logger.info("Prepared %dx%d print page at %s", rendered.width, rendered.height, out_path)
    return PreparedPage(path=out_path, page_size_microns=page.size_microns, landscape=False)
