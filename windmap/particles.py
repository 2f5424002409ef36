import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np

from .config import AnimationConfig
from .field import ABSENT, Field, Visible, pixel
from .surface import Segment, Surface

logger = logging.getLogger(__name__)


@dataclass
class Particle:
    x: float
    y: float
    xt: float
    yt: float
    age: int


class ParticleSystem:
    """
    Particles advected through a built Field.

    Each tick moves every particle one step and returns the drawable
    segments grouped by style index, so the surface can stroke each
    speed bucket in one batch.
    """

    def __init__(self, field: Field, config: Optional[AnimationConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        self.field = field
        self.config = config or AnimationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.running = False
        self.frames = 0

        cfg = self.config
        self.particles: List[Particle] = []
        for _ in range(cfg.particle_count):
            x, y = field.random_point(self.rng)
            age = int(self.rng.integers(0, cfg.max_age)) if cfg.max_age > 0 else 0
            self.particles.append(Particle(x, y, x, y, age))

    def style_index(self, magnitude: float) -> int:
        cfg = self.config
        m = min(max(magnitude, 0.0), cfg.max_intensity)
        return int(math.floor(m / cfg.max_intensity * (cfg.palette_size - 1)))

    def respawn(self, p: Particle):
        x, y = self.field.random_point(self.rng)
        p.x = p.xt = x
        p.y = p.yt = y
        p.age = 0

    def tick(self) -> Dict[int, List[Segment]]:
        cfg = self.config
        field = self.field
        scale = cfg.velocity_scale
        buckets: Dict[int, List[Segment]] = {}

        for p in self.particles:
            if p.age > cfg.max_age:
                self.respawn(p)

            fx, fy = pixel(p.x), pixel(p.y)
            v = field.at(fx, fy)
            if v is ABSENT:
                # escaped the field; respawn next tick
                p.age = cfg.max_age + 1
                continue

            p.xt = p.x + v.dx * scale
            p.yt = p.y + v.dy * scale
            tx, ty = pixel(p.xt), pixel(p.yt)
            if isinstance(v, Visible) and isinstance(field.at(tx, ty), Visible):
                buckets.setdefault(self.style_index(v.magnitude), []).append((fx, fy, tx, ty))

            p.x = p.xt
            p.y = p.yt
            p.age += 1

        self.frames += 1
        return buckets

    def draw_frame(self, surface: Surface) -> Dict[int, List[Segment]]:
        buckets = self.tick()
        surface.fade()
        for style in sorted(buckets):
            surface.draw(style, buckets[style])
        return buckets

    def next_delay(self, elapsed: float) -> float:
        rate = self.config.frame_rate
        return max(rate, rate - elapsed)

    def stop(self):
        """Stop scheduling ticks. A tick already in progress completes."""
        self.running = False

    async def animate(self, surface: Surface, frames: Optional[int] = None,
                      clock: Callable[[], float] = time.monotonic):
        """
        Draw a frame every config.frame_rate seconds until stop() is called
        (or 'frames' frames have been drawn).
        """
        self.running = True
        drawn = 0
        logger.info("Animating %d particles every %.0f ms", len(self.particles), self.config.frame_rate * 1000)
        while self.running:
            if frames is not None and drawn >= frames:
                self.running = False
                break
            start = clock()
            self.draw_frame(surface)
            drawn += 1
            if frames is not None and drawn >= frames:
                self.running = False
                break
            await asyncio.sleep(self.next_delay(clock() - start))
        logger.debug("Animation stopped after %d frames", drawn)
