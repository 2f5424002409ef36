import math
from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np

Mask = Callable[[int, int], bool]
Projection = Callable[[float, float], Tuple[float, float]]


@dataclass(frozen=True)
class DisplayBounds:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_bbox(cls, lng0: float, lat0: float, lng1: float, lat1: float, project: Projection) -> "DisplayBounds":
        """
        Pixel bounds covering the bounding box (lng0, lat0) lower left to
        (lng1, lat1) upper right under 'project'.
        """
        ux, uy = project(lng0, lat1)
        lx, ly = project(lng1, lat0)
        x0, y0 = math.floor(ux), math.floor(uy)
        x1, y1 = math.ceil(lx), math.ceil(ly)
        return cls(x=x0, y=y0, width=x1 - x0 + 1, height=y1 - y0 + 1)

    def clip(self, width: int, height: int) -> "DisplayBounds":
        """Intersect with a (0, 0, width, height) view."""
        x0, y0 = max(self.x, 0), max(self.y, 0)
        x1 = min(self.x + self.width, width)
        y1 = min(self.y + self.height, height)
        return DisplayBounds(x0, y0, max(0, x1 - x0), max(0, y1 - y0))


def masker(image: np.ndarray) -> Mask:
    """
    Predicate over a rendered mask image: true where the pixel's first
    channel is > 0. image is (height, width) or (height, width, channels).
    """
    a = np.asarray(image)
    if a.ndim == 3:
        a = a[..., 0]
    if a.ndim != 2:
        raise ValueError(f"Expected a 2-D image, got shape {np.shape(image)}")
    inside = a > 0
    height, width = inside.shape

    def mask(x: int, y: int) -> bool:
        return 0 <= x < width and 0 <= y < height and bool(inside[y, x])

    return mask


def dilate(image: np.ndarray, radius: int) -> np.ndarray:
    """
    Grow the true region of a boolean image by 'radius' pixels (disk
    structuring element). Used to derive the field mask from a display mask.
    """
    src = np.asarray(image) > 0
    if src.ndim == 3:
        src = src[..., 0]
    if radius <= 0:
        return src.copy()

    height, width = src.shape
    padded = np.pad(src, radius, mode="constant", constant_values=False)
    out = np.zeros_like(src)
    r2 = radius * radius
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dx * dx + dy * dy > r2:
                continue
            out |= padded[radius + dy:radius + dy + height, radius + dx:radius + dx + width]
    return out
