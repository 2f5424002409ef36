from dataclasses import dataclass
from typing import Optional

@dataclass
class FieldConfig:
    k: int = 5                          # neighbors per IDW estimate
    budget: float = 0.100               # seconds of work per build slice
    pause: float = 0.025                # seconds to yield between slices
    min_samples: Optional[int] = None   # None -> k
    keep_calm: bool = False             # keep 0 m/s readings as zero vectors

    def required_samples(self) -> int:
        return self.k if self.min_samples is None else self.min_samples

@dataclass
class AnimationConfig:
    particle_count: int = 5000     # particles alive at once
    max_age: int = 30              # ticks before respawn
    frame_rate: float = 0.040      # seconds per tick
    velocity_scale: float = 1.0    # pixels moved per unit of field vector
    max_intensity: float = 17.0    # magnitude mapped to the brightest style
    palette_size: int = 186        # number of style buckets
    fade_alpha: float = 0.93       # alpha kept per frame (trail length)
    seed: Optional[int] = None     # rng seed, None for fresh entropy
