from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from PIL import Image

from imaging.errors import TemplateUnavailable
from kiosk.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE_ROOT = Path(__file__).resolve().parents[1] / "assets"

# Bundled fallbacks, relative to the resource root, in priority order.
FALLBACK_TEMPLATES = (
    Path("images") / "template-default.png",
    Path("template-default.png"),
)


@dataclass(frozen=True)
class ResolvedTemplate:
    image: Image.Image
    path: Path


def template_candidates(settings: Settings, resource_root: Path = DEFAULT_RESOURCE_ROOT) -> List[Path]:
    candidates: List[Path] = []
    if settings.template_image is not None:
        candidates.append(settings.template_image)
    candidates.extend(resource_root / rel for rel in FALLBACK_TEMPLATES)
    return candidates


def _is_usable_file(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def resolve_template(settings: Settings, resource_root: Path = DEFAULT_RESOURCE_ROOT) -> ResolvedTemplate:
    """Return the first candidate template that exists, is non-empty and decodes.

    The decoded image always carries an alpha channel.
    """
    candidates = template_candidates(settings, resource_root)

    for path in candidates:
        if not _is_usable_file(path):
            logger.debug("Skipping template candidate %s: missing or empty", path)
            continue
        try:
            with Image.open(path) as src:
                src.load()
                image = src.convert("RGBA")
        except Exception as e:
            logger.warning("Template candidate %s could not be decoded: %s", path, e)
            continue

        logger.info("Using template %s (%dx%d)", path, image.width, image.height)
        return ResolvedTemplate(image=image, path=path)

    tried = ", ".join(str(p) for p in candidates)
    raise TemplateUnavailable(f"No usable template image found (tried: {tried})")
