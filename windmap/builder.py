import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence

from .config import FieldConfig
from .errors import EmptyFieldError, InsufficientDataError, NoDataError
from .field import Column, Field, Hidden, Visible
from .idw import Interpolator
from .masks import DisplayBounds, Mask
from .samples import StationSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildProgress:
    columns_done: int
    columns_total: int

    @property
    def fraction(self) -> float:
        return 1.0 if self.columns_total == 0 else self.columns_done / self.columns_total


class FieldBuilder:
    """
    Interpolates station vectors onto every field-mask pixel of the display
    bounds, one column at a time.

    The work is split into slices of roughly config.budget seconds (at least
    one column each). slices() yields after each slice so a driver can hand
    control back to its loop; run() drives it synchronously and build()
    drives it under asyncio, sleeping config.pause between slices. The
    Field is only published once every column is done.
    """

    def __init__(
        self,
        samples: Sequence[StationSample],
        field_mask: Mask,
        display_mask: Mask,
        bounds: DisplayBounds,
        config: Optional[FieldConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.samples = list(samples)
        self.field_mask = field_mask
        self.display_mask = display_mask
        self.bounds = bounds
        self.config = config or FieldConfig()
        self.clock = clock

        self._columns: List[Column] = []
        self._field: Optional[Field] = None

    @property
    def done(self) -> bool:
        return self._field is not None

    @property
    def field(self) -> Field:
        if self._field is None:
            raise RuntimeError("Field is not built yet")
        return self._field

    def _check_samples(self):
        required = self.config.required_samples()
        if not self.samples:
            raise NoDataError(required)
        if len(self.samples) < required:
            raise InsufficientDataError(len(self.samples), required)

    def _column(self, interpolator: Interpolator, x: int) -> Column:
        b = self.bounds
        field_mask = self.field_mask

        y_min = y_max = None
        for y in range(b.y, b.y + b.height):
            if field_mask(x, y):
                if y_min is None:
                    y_min = y
                y_max = y
        if y_min is None:
            return None

        cells = [None] * (y_max - y_min + 1)
        for y in range(y_min, y_max + 1):
            if not field_mask(x, y):
                continue
            v = interpolator.interpolate(x, y)
            if v is None:
                continue
            dx, dy = v
            if self.display_mask(x, y):
                cells[y - y_min] = Visible(dx, dy, math.sqrt(dx * dx + dy * dy))
            else:
                cells[y - y_min] = Hidden(dx, dy)
        return y_min, cells

    def slices(self) -> Iterator[BuildProgress]:
        """
        Resumable build. Raises InsufficientDataError (NoDataError when empty)
        before any column is processed, and EmptyFieldError after the last
        column when the field mask covered nothing.
        """
        self._check_samples()
        if self._field is not None:
            return

        interpolator = Interpolator.from_samples(self.samples, k=self.config.k)
        b = self.bounds
        total = b.width
        self._columns = []
        started = self.clock()
        logger.info("Building field: %d stations, %dx%d px", len(self.samples), b.width, b.height)

        x = b.x
        while x < b.x + b.width:
            deadline = self.clock() + self.config.budget
            while True:
                self._columns.append(self._column(interpolator, x))
                x += 1
                if x >= b.x + b.width or self.clock() >= deadline:
                    break
            if x < b.x + b.width:
                yield BuildProgress(len(self._columns), total)

        field = Field(b.x, b.y, b.width, b.height, self._columns)
        self._columns = []
        if field.total == 0:
            raise EmptyFieldError(b.width, b.height)
        self._field = field
        logger.info("Field built: %d cells in %.3fs", self._field.total, self.clock() - started)
        yield BuildProgress(total, total)

    def run(self) -> Field:
        """Drive every slice now, without pausing."""
        for _ in self.slices():
            pass
        return self.field

    async def build(self, on_progress: Optional[Callable[[BuildProgress], None]] = None) -> Field:
        """Drive the slices from the running event loop, yielding between them."""
        for progress in self.slices():
            if on_progress is not None:
                on_progress(progress)
            if progress.columns_done < progress.columns_total:
                await asyncio.sleep(self.config.pause)
        return self.field
