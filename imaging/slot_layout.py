from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PhotoSlot:
    x: int
    y: int
    width: int
    height: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def ratio(self) -> float:
        return self.width / self.height


# Matches template-default.png: the first slot is one pixel taller.
DEFAULT_SLOTS: Tuple[PhotoSlot, ...] = (
    PhotoSlot(x=30, y=46, width=533, height=357),
    PhotoSlot(x=30, y=435, width=533, height=356),
    PhotoSlot(x=30, y=823, width=533, height=356),
    PhotoSlot(x=30, y=1211, width=533, height=356),
)


@dataclass(frozen=True)
class CompositionLayout:
    slots: Tuple[PhotoSlot, ...] = DEFAULT_SLOTS
    background_color: Tuple[int, int, int, int] = (255, 255, 255, 255)

    # Aspect ratios closer than this are resized without a pre-crop
    aspect_tolerance: float = 0.01


DEFAULT_LAYOUT = CompositionLayout()
