# pipeline.py

import logging
import time
from typing import Callable, Optional, Sequence

from .builder import BuildProgress, FieldBuilder
from .config import AnimationConfig, FieldConfig
from .errors import describe
from .masks import DisplayBounds, Mask, Projection
from .particles import ParticleSystem
from .samples import project_samples
from .surface import Surface

logger = logging.getLogger(__name__)

StatusSink = Callable[[Optional[str], Optional[BaseException]], None]


def log_status(message: Optional[str], error: Optional[BaseException] = None):
    """Default status sink: writes to the log."""
    if error is not None:
        logger.error("%s", message, exc_info=error)
    elif message:
        logger.info("%s", message)


async def interpolate_vector_field(
    records: Sequence[dict],
    project: Projection,
    field_mask: Mask,
    display_mask: Mask,
    bounds: DisplayBounds,
    surface: Surface,
    field_config: Optional[FieldConfig] = None,
    animation_config: Optional[AnimationConfig] = None,
    status: StatusSink = log_status,
    frames: Optional[int] = None,
    on_start: Optional[Callable[[ParticleSystem], None]] = None,
) -> Optional[ParticleSystem]:
    """
    Sample records -> field -> animation, one step after the other.

    Any failure stops the chain and is handed to 'status' (never retried);
    the animation only starts once the whole field is built. Returns the
    ParticleSystem after its animation ends, or None on failure.
    on_start receives the ParticleSystem before its first tick, so the
    caller can stop() it.
    """
    field_config = field_config or FieldConfig()
    animation_config = animation_config or AnimationConfig()

    def progress(p: BuildProgress):
        status(f"interpolating field... {p.fraction:.0%}", None)

    try:
        samples = project_samples(records, project, keep_calm=field_config.keep_calm)

        t0 = time.monotonic()
        builder = FieldBuilder(samples, field_mask, display_mask, bounds, field_config)
        field = await builder.build(on_progress=progress)
        logger.debug("interpolating field: %.3fs", time.monotonic() - t0)

        particles = ParticleSystem(field, animation_config)
        if on_start is not None:
            on_start(particles)
        status(None, None)
        await particles.animate(surface, frames=frames)
        return particles
    except Exception as e:
        status(describe(e), e)
        return None
