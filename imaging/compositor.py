from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageEnhance, ImageOps

from imaging.errors import CompositionError, ImageProcessingFailed, ImagingError
from imaging.slot_layout import DEFAULT_LAYOUT, CompositionLayout, PhotoSlot
from imaging.template import DEFAULT_RESOURCE_ROOT, resolve_template
from kiosk.session_storage import SessionStorage, default_output_root, new_session_id
from kiosk.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorAdjustment:
    brightness: float = 1.0
    contrast: float = 1.0
    saturation: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ColorAdjustment":
        return cls(
            brightness=settings.brightness,
            contrast=settings.contrast,
            saturation=settings.saturation,
        )


@dataclass(frozen=True)
class ProcessedPhoto:
    image: Image.Image
    left: int
    top: int


def crop_box_for_ratio(
        src_size: Tuple[int, int],
        target_ratio: float,
        tolerance: float = 0.01,
) -> Optional[Tuple[int, int, int, int]]:
    """Centered crop box that brings `src_size` to `target_ratio`.

    Returns None when the source ratio is already within `tolerance`.
    The box is (left, upper, right, lower) and always lies inside the source.
    """
    src_w, src_h = src_size
    if src_w <= 0 or src_h <= 0:
        raise ValueError("Invalid image dimensions")

    src_ratio = src_w / src_h
    if abs(src_ratio - target_ratio) <= tolerance:
        return None

    if src_ratio > target_ratio:
        # Too wide: keep full height, trim the sides.
        crop_w = min(src_w, max(1, int(round(src_h * target_ratio))))
        crop_h = src_h
    else:
        crop_w = src_w
        crop_h = min(src_h, max(1, int(round(src_w / target_ratio))))

    left = (src_w - crop_w) // 2
    top = (src_h - crop_h) // 2
    return left, top, left + crop_w, top + crop_h


def crop_to_ratio(img: Image.Image, target_ratio: float, tolerance: float = 0.01) -> Image.Image:
    box = crop_box_for_ratio(img.size, target_ratio, tolerance)
    if box is None:
        return img
    return img.crop(box)


def adjust_color(img: Image.Image, adjustment: ColorAdjustment) -> Image.Image:
    out = img
    if adjustment.brightness != 1.0:
        out = ImageEnhance.Brightness(out).enhance(adjustment.brightness)
    if adjustment.contrast != 1.0:
        out = ImageEnhance.Contrast(out).enhance(adjustment.contrast)
    if adjustment.saturation != 1.0:
        out = ImageEnhance.Color(out).enhance(adjustment.saturation)
    return out


def _load_photo(path: Path) -> Image.Image:
    with Image.open(path) as src:
        src.load()
        # Camera JPEGs are frequently stored sideways with an EXIF rotation tag.
        return ImageOps.exif_transpose(src).convert("RGB")


def process_photo(
        path: Path,
        slot: PhotoSlot,
        adjustment: ColorAdjustment,
        tolerance: float = 0.01,
) -> ProcessedPhoto:
    img = _load_photo(path)
    img = crop_to_ratio(img, slot.ratio, tolerance)
    img = adjust_color(img, adjustment)
    # Centered cover fit; after the pre-crop this is a plain resize in practice.
    img = ImageOps.fit(img, slot.size, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    return ProcessedPhoto(image=img, left=slot.x, top=slot.y)


def render_panel(template: Image.Image, photos: Sequence[ProcessedPhoto]) -> Image.Image:
    panel = template.copy()
    for photo in photos:
        panel.paste(photo.image, (photo.left, photo.top))
    return panel


def render_sheet(panel: Image.Image, layout: CompositionLayout = DEFAULT_LAYOUT) -> Image.Image:
    """Two copies of `panel` side by side on an opaque canvas."""
    panel_w, panel_h = panel.size
    sheet = Image.new("RGBA", (panel_w * 2, panel_h), layout.background_color)
    rgba_panel = panel.convert("RGBA")
    sheet.alpha_composite(rgba_panel, (0, 0))
    sheet.alpha_composite(rgba_panel, (panel_w, 0))
    return sheet


def _process_all(
        image_paths: List[Path],
        layout: CompositionLayout,
        adjustment: ColorAdjustment,
) -> List[ProcessedPhoto]:
    def run(index: int) -> ProcessedPhoto:
        path = image_paths[index]
        try:
            return process_photo(path, layout.slots[index], adjustment, layout.aspect_tolerance)
        except Exception as e:
            raise ImageProcessingFailed(index, path, str(e)) from e

    # Each slot is an independent decode/resize; regions never overlap.
    with ThreadPoolExecutor(max_workers=len(image_paths)) as pool:
        return list(pool.map(run, range(len(image_paths))))


def compose(
        image_paths: Sequence[Path | str],
        settings: Settings,
        *,
        layout: CompositionLayout = DEFAULT_LAYOUT,
        resource_root: Path = DEFAULT_RESOURCE_ROOT,
        output_root: Path | None = None,
        now: datetime | None = None,
) -> Path:
    """Build the 2-up print sheet for exactly one photo per slot and save it.

    Contract:
    - One source photo per layout slot (4 with the default layout).
    - The template is resolved before any photo is touched.
    - Any failure aborts the whole composition; no output file is written.

    Returns the path of the saved PNG.
    """
    paths = [Path(p) for p in image_paths]
    if len(paths) != len(layout.slots):
        raise CompositionError(
            f"Composition requires exactly {len(layout.slots)} photos (got {len(paths)})"
        )

    template = resolve_template(settings, resource_root)

    adjustment = ColorAdjustment.from_settings(settings)
    logger.info(
        "Processing %d photos (brightness=%s, contrast=%s, saturation=%s)",
        len(paths), adjustment.brightness, adjustment.contrast, adjustment.saturation,
    )
    photos = _process_all(paths, layout, adjustment)

    panel = render_panel(template.image, photos)
    logger.info("Single panel is %dx%d, building 2-up sheet", panel.width, panel.height)
    sheet = render_sheet(panel, layout)

    root = settings.output_path or output_root or default_output_root()
    storage = SessionStorage(root=root, session_id=new_session_id(now))
    try:
        out_path = storage.write_sheet(sheet)
    except OSError as e:
        raise ImagingError(f"Failed to save composed sheet to {root}: {e}") from e

    logger.info("Composition saved to %s", out_path)
    return out_path
