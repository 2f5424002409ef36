import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import EmptyFieldError, InsufficientDataError, NoDataError
from .idw import Interpolator
from .kdtree import KDTree
from .masks import DisplayBounds, Mask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScalarSample:
    station_id: str
    location: Tuple[float, float]  # projected pixels
    value: float


@dataclass
class ScalarField:
    """
    Interpolated readings over the display bounds.
    values[y - y0, x - x0] is NaN where the mask is false; lo/hi span the
    masked pixels only.
    """
    x0: int
    y0: int
    values: np.ndarray
    lo: float
    hi: float

    def normalized(self) -> np.ndarray:
        """values mapped onto [0, 1] by (v - lo) / (hi - lo); a flat field maps to 0."""
        span = self.hi - self.lo
        if span <= 0:
            return np.where(np.isnan(self.values), np.nan, 0.0)
        return (self.values - self.lo) / span


def project_scalar_samples(
    records: Sequence[dict],
    project: Callable[[float, float], Tuple[float, float]],
    key: str,
) -> List[ScalarSample]:
    """
    Stations carrying a truthy reading under 'key' (e.g. "no2"), in pixel
    space. 0 and missing readings are skipped alike.
    """
    out: List[ScalarSample] = []
    for rec in records:
        raw = rec.get(key)
        if not raw:
            continue
        station = rec.get("stationId")
        try:
            value = float(raw)
            lon, lat = (float(c) for c in rec["coordinates"][:2])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Station {station}: bad {key} sample {rec!r}") from e
        if not (math.isfinite(value) and math.isfinite(lon) and math.isfinite(lat)):
            raise ValueError(f"Station {station}: {key} sample is not finite")
        x, y = project(lon, lat)
        out.append(ScalarSample(str(station), (float(x), float(y)), value))
    return out


def build_scalar_field(
    samples: Sequence[ScalarSample],
    mask: Mask,
    bounds: DisplayBounds,
    k: int = 5,
    min_samples: Optional[int] = None,
) -> ScalarField:
    """IDW of the station readings at every masked pixel of 'bounds'."""
    required = k if min_samples is None else min_samples
    if not samples:
        raise NoDataError(required)
    if len(samples) < required:
        raise InsufficientDataError(len(samples), required)

    started = time.monotonic()
    tree = KDTree([s.location for s in samples])
    interpolator = Interpolator(tree, [(s.value,) for s in samples], k=k)

    values = np.full((bounds.height, bounds.width), np.nan, dtype=np.float64)
    for r in range(bounds.height):
        y = bounds.y + r
        for c in range(bounds.width):
            x = bounds.x + c
            if mask(x, y):
                values[r, c] = interpolator.interpolate(x, y)[0]

    inside = ~np.isnan(values)
    if not inside.any():
        raise EmptyFieldError(bounds.width, bounds.height)
    lo = float(values[inside].min())
    hi = float(values[inside].max())
    logger.info("Scalar field built: %d px in [%g, %g], %.3fs", int(inside.sum()), lo, hi,
                time.monotonic() - started)
    return ScalarField(bounds.x, bounds.y, values, lo, hi)
