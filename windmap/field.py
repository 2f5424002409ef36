import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import xarray as xr

from .errors import EmptyFieldError


def pixel(v: float) -> int:
    # half up; round() rounds half to even
    return math.floor(v + 0.5)


# ---------------------------
# Vector variants
# ---------------------------

class _Absent:
    """Outside the field entirely."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "ABSENT"


ABSENT = _Absent()


@dataclass(frozen=True)
class Hidden:
    """Inside the field mask but outside the display mask: moves particles, never drawn."""
    dx: float
    dy: float


@dataclass(frozen=True)
class Visible:
    dx: float
    dy: float
    magnitude: float


Cell = Union[Hidden, Visible]
FieldVector = Union[_Absent, Hidden, Visible]

# one column: (offset, cells) where cells[y - offset] is a Cell or None
Column = Optional[Tuple[int, List[Optional[Cell]]]]


# ---------------------------
# Field
# ---------------------------

class Field:
    """
    Read-only per-pixel vector field over the display bounds.

    columns[x - x0] is None when the column has no field pixels, else
    (offset, cells) with cells[y - offset] holding a Hidden/Visible cell or
    None where the field mask was false.
    """

    def __init__(self, x0: int, y0: int, width: int, height: int, columns: Sequence[Column]):
        if len(columns) != width:
            raise ValueError(f"Got {len(columns)} columns for width {width}")
        self.x0 = x0
        self.y0 = y0
        self.width = width
        self.height = height
        self.columns = list(columns)

        # defined y's per column, and prefix sums of column populations
        self._defined: List[np.ndarray] = []
        for col in self.columns:
            if col is None:
                self._defined.append(np.empty(0, dtype=np.int64))
                continue
            offset, cells = col
            ys = [offset + i for i, c in enumerate(cells) if c is not None]
            self._defined.append(np.array(ys, dtype=np.int64))
        populations = np.array([len(d) for d in self._defined], dtype=np.int64)
        self._ends = np.cumsum(populations)
        self.total = int(self._ends[-1]) if len(self._ends) else 0

    def at(self, x: float, y: float) -> FieldVector:
        """The cell holding pixel (x, y); fractional coordinates round half up."""
        i = pixel(x) - self.x0
        if i < 0 or i >= self.width:
            return ABSENT
        col = self.columns[i]
        if col is None:
            return ABSENT
        offset, cells = col
        j = pixel(y) - offset
        if j < 0 or j >= len(cells):
            return ABSENT
        cell = cells[j]
        return ABSENT if cell is None else cell

    def random_point(self, rng: Optional[np.random.Generator] = None) -> Tuple[int, int]:
        """
        A uniformly random defined pixel (Hidden or Visible).

        Columns are weighted by their population: draw n in [0, total) and
        binary search the prefix sums for the column holding the n-th cell.
        """
        if self.total == 0:
            raise EmptyFieldError(self.width, self.height)
        rng = rng if rng is not None else np.random.default_rng()
        n = int(rng.integers(0, self.total))
        i = int(np.searchsorted(self._ends, n, side="right"))
        start = int(self._ends[i - 1]) if i > 0 else 0
        return self.x0 + i, int(self._defined[i][n - start])

    def populations(self) -> List[int]:
        return [len(d) for d in self._defined]

    def to_dataset(self) -> xr.Dataset:
        """
        The field as an xarray Dataset over (y, x) pixel coords.
        u/v are NaN outside the field; magnitude is NaN where not visible.
        """
        shape = (self.height, self.width)
        u = np.full(shape, np.nan, dtype=np.float32)
        v = np.full(shape, np.nan, dtype=np.float32)
        m = np.full(shape, np.nan, dtype=np.float32)
        visible = np.zeros(shape, dtype=bool)

        for i, col in enumerate(self.columns):
            if col is None:
                continue
            offset, cells = col
            for j, cell in enumerate(cells):
                if cell is None:
                    continue
                r = offset + j - self.y0
                if r < 0 or r >= self.height:
                    continue
                u[r, i] = cell.dx
                v[r, i] = cell.dy
                if isinstance(cell, Visible):
                    m[r, i] = cell.magnitude
                    visible[r, i] = True

        return xr.Dataset(
            {
                "u": (("y", "x"), u),
                "v": (("y", "x"), v),
                "magnitude": (("y", "x"), m),
                "defined": (("y", "x"), ~np.isnan(u)),
                "visible": (("y", "x"), visible),
            },
            coords={
                "x": np.arange(self.x0, self.x0 + self.width),
                "y": np.arange(self.y0, self.y0 + self.height),
            },
            attrs={"units": "pixels/tick", "total": self.total},
        )


def field_to_json(field: Field) -> dict:
    """Earth-style JSON document of a field (nulls where absent)."""
    ds = field.to_dataset()

    def grid(name):
        a = ds[name].values
        return [[None if math.isnan(c) else float(c) for c in row] for row in a.tolist()]

    return {
        "meta": {
            "grid": "pixels",
            "x0": field.x0,
            "y0": field.y0,
            "nx": field.width,
            "ny": field.height,
            "total": field.total,
            "units": {"u": "px/tick", "v": "px/tick"},
        },
        "u": grid("u"),  # shape [ny][nx]
        "v": grid("v"),
        "magnitude": grid("magnitude"),
    }
