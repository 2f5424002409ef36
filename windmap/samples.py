# samples.py
import json
import logging
import math
import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from .errors import SampleSourceError
from .utils_time import parse_sample_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationSample:
    station_id: str
    location: Tuple[float, float]  # projected pixels
    vector: Tuple[float, float]    # pixels/tick, y down
    date: Optional[str] = None


def load_samples(resource: str, timeout: float = 15) -> list:
    """
    Load the raw sample records from a local JSON file or an http(s) URL.
    Failures are raised as SampleSourceError(status, message, resource).
    """
    if resource.startswith(("http://", "https://")):
        logger.info("Fetching samples: %s", resource)
        try:
            resp = requests.get(resource, timeout=timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            if e.response is None:
                raise SampleSourceError(-1, str(e), resource) from e
            raise SampleSourceError(e.response.status_code, e.response.reason or "HTTP error", resource) from e
        except requests.RequestException as e:
            raise SampleSourceError(-1, f"Cannot load resource ({e})", resource) from e
        records = resp.json()
    else:
        path = Path(resource)
        if not path.exists():
            raise SampleSourceError(404, "Not Found", resource)
        with path.open("r", encoding="utf-8") as f:
            records = json.load(f)

    if not isinstance(records, list):
        raise SampleSourceError(-1, f"Expected a JSON list of samples, got {type(records).__name__}", resource)
    return records


def wind_vector(direction_deg: float, speed: float) -> Tuple[float, float]:
    """
    Meteorological wind (direction the wind blows FROM, clockwise from north)
    to a flow vector in pixel space where y grows downward.
    A northerly (0 deg) blows toward +y.
    """
    r = math.radians(direction_deg)
    return -speed * math.sin(r), speed * math.cos(r)


def _number(value, name: str, station) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Station {station}: {name} is not a number: {value!r}") from e
    if not math.isfinite(f):
        raise ValueError(f"Station {station}: {name} is not finite: {value!r}")
    return f


def _usable(direction, speed, keep_calm: bool) -> bool:
    if keep_calm:
        # only missing readings are dropped; a calm reading has no direction
        if speed is None:
            return False
        return direction is not None or float(speed) == 0.0
    return bool(direction) and bool(speed)


def project_samples(
    records: Sequence[dict],
    project: Callable[[float, float], Tuple[float, float]],
    keep_calm: bool = False,
) -> List[StationSample]:
    """
    Convert raw records {stationId, coordinates: [lon, lat], wind: [dir, speed], date}
    into StationSamples in pixel space.

    By default a falsy direction or speed (0 or missing) drops the station,
    so calm and missing readings are treated alike. keep_calm=True keeps
    0 m/s readings as zero vectors.
    """
    out: List[StationSample] = []
    for rec in records:
        station = rec.get("stationId")
        wind = rec.get("wind") or [None, None]
        direction, speed = (list(wind) + [None, None])[:2]
        if not _usable(direction, speed, keep_calm):
            continue

        coords = rec.get("coordinates")
        if not coords or len(coords) < 2:
            raise ValueError(f"Station {station}: missing coordinates")
        lon = _number(coords[0], "longitude", station)
        lat = _number(coords[1], "latitude", station)
        speed = _number(speed, "speed", station)
        direction = _number(direction, "direction", station) if direction is not None else 0.0

        x, y = project(lon, lat)
        out.append(StationSample(
            station_id=str(station),
            location=(float(x), float(y)),
            vector=wind_vector(direction, speed),
            date=rec.get("date"),
        ))

    logger.debug("%d of %d stations usable", len(out), len(records))
    return out


def observation_time(samples: Sequence[StationSample]) -> Optional[dt.datetime]:
    """Date of the first sample of the cycle, or None when there is none."""
    for s in samples:
        if s.date:
            return parse_sample_date(s.date)
    return None
