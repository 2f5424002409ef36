from typing import List, Protocol, Tuple

import numpy as np

Segment = Tuple[int, int, int, int]  # x0, y0, x1, y1


class Surface(Protocol):
    def fade(self) -> None:
        """Keep existing content only where it exists, scaled down in alpha."""

    def draw(self, style: int, segments: List[Segment]) -> None:
        """Stroke every segment with palette entry 'style'."""


def intensity_palette(size: int = 186) -> np.ndarray:
    """(size, 4) RGBA greys from dim (70) to white (255), alpha 1."""
    levels = np.linspace(70, 255, size) / 255.0
    palette = np.ones((size, 4), dtype=np.float32)
    palette[:, 0] = levels
    palette[:, 1] = levels
    palette[:, 2] = levels
    return palette


def scalar_palette(size: int = 255, alpha: float = 0.6) -> np.ndarray:
    """(size, 4) RGBA greys from black to near white, translucent."""
    palette = intensity_palette(size)
    palette[:, :3] = (np.arange(size) / 255.0)[:, None]
    palette[:, 3] = alpha
    return palette


class ImageSurface:
    """
    Off-screen RGBA canvas (float, 0..1) that particle frames are drawn on.
    """

    def __init__(self, width: int, height: int, palette: np.ndarray = None, fade_alpha: float = 0.93):
        self.width = width
        self.height = height
        self.palette = intensity_palette() if palette is None else np.asarray(palette, dtype=np.float32)
        self.fade_alpha = fade_alpha
        self.rgba = np.zeros((height, width, 4), dtype=np.float32)

    def fade(self):
        # "destination-in" with a fill of alpha fade_alpha
        self.rgba[..., 3] *= self.fade_alpha

    def draw(self, style: int, segments: List[Segment]):
        if not segments:
            return
        color = self.palette[min(max(style, 0), len(self.palette) - 1)]
        xs = []
        ys = []
        for x0, y0, x1, y1 in segments:
            n = max(abs(x1 - x0), abs(y1 - y0)) + 1
            xs.append(np.rint(np.linspace(x0, x1, n)).astype(np.int64))
            ys.append(np.rint(np.linspace(y0, y1, n)).astype(np.int64))
        xs = np.concatenate(xs)
        ys = np.concatenate(ys)
        keep = (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
        self.rgba[ys[keep], xs[keep]] = color

    def image(self) -> np.ndarray:
        return np.clip(self.rgba, 0.0, 1.0)

    def fill_scalar(self, field, palette: np.ndarray = None):
        """
        Paint every defined pixel of a ScalarField with the palette entry
        floor(normalized * (size - 1)). Undefined (NaN) pixels are left alone.
        """
        palette = scalar_palette() if palette is None else np.asarray(palette, dtype=np.float32)
        norm = field.normalized()
        rows, cols = np.nonzero(~np.isnan(norm))
        idx = np.floor(norm[rows, cols] * (len(palette) - 1)).astype(np.int64)
        ys = rows + field.y0
        xs = cols + field.x0
        keep = (xs >= 0) & (xs < self.width) & (ys >= 0) & (ys < self.height)
        self.rgba[ys[keep], xs[keep]] = palette[idx[keep]]
