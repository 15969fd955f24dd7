from pathlib import Path
from typing import Tuple

from PIL import Image

TEMPLATE_SIZE = (593, 1600)


def make_image(path: Path, size: Tuple[int, int] = (50, 50), color=(255, 0, 0)) -> Path:
    Image.new("RGB", size, color).save(path)
    return path


def make_template(path: Path, size: Tuple[int, int] = TEMPLATE_SIZE, color=(20, 20, 20, 255)) -> Path:
    Image.new("RGBA", size, color).save(path)
    return path


def make_photos(directory: Path, sizes) -> list:
    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]
    return [
        make_image(directory / f"photo_{i}.jpg", size=size, color=colors[i % len(colors)])
        for i, size in enumerate(sizes)
    ]
