import asyncio
import json
import logging
import os
from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from windmap.config import AnimationConfig, FieldConfig
from windmap.errors import describe
from windmap.field import field_to_json
from windmap.masks import DisplayBounds, dilate, masker
from windmap.particles import ParticleSystem
from windmap.samples import load_samples, observation_time, project_samples
from windmap.scalar import build_scalar_field, project_scalar_samples
from windmap.builder import FieldBuilder
from windmap.surface import ImageSurface, intensity_palette, scalar_palette
from windmap.utils_time import cycle_key

# ================= CONFIG =================
SAMPLES = os.environ.get("SAMPLES", "samples/current.json")
OUTPUT_FOLDER = os.environ.get("OUTPUT", "windmap_output")
WIDTH = int(os.environ.get("WIDTH", 1024))
HEIGHT = int(os.environ.get("HEIGHT", 768))
FRAMES = int(os.environ.get("FRAMES", 100))
SCALAR = os.environ.get("SCALAR")  # e.g. "no2": also render that reading as a scalar overlay
FIELD_MARGIN_PX = 15   # field mask reaches this far past the display mask
# ========================================


def bbox_projection(records, width, height):
    """
    Plain equirectangular fit of the stations' bounding box onto the view,
    with a 5% border. Good enough for a preview; real maps bring their own.
    """
    lons = [float(r["coordinates"][0]) for r in records]
    lats = [float(r["coordinates"][1]) for r in records]
    lng0, lng1 = min(lons), max(lons)
    lat0, lat1 = min(lats), max(lats)
    span_x = max(lng1 - lng0, 1e-6)
    span_y = max(lat1 - lat0, 1e-6)
    s = 0.95 / max(span_x / width, span_y / height)
    cx, cy = (lng0 + lng1) / 2, (lat0 + lat1) / 2

    def project(lon, lat):
        return width / 2 + (lon - cx) * s, height / 2 - (lat - cy) * s

    return project, (lng0, lat0, lng1, lat1)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    print("Loading samples...")
    records = load_samples(SAMPLES)
    if not records:
        print("No Data")
        return

    project, bbox = bbox_projection(records, WIDTH, HEIGHT)
    bounds = DisplayBounds.from_bbox(*bbox, project).clip(WIDTH, HEIGHT)

    display = np.zeros((HEIGHT, WIDTH), dtype=bool)
    display[bounds.y:bounds.y + bounds.height, bounds.x:bounds.x + bounds.width] = True
    field_image = dilate(display, FIELD_MARGIN_PX)
    field_bounds = DisplayBounds(0, 0, WIDTH, HEIGHT)

    field_cfg = FieldConfig()
    anim_cfg = AnimationConfig(seed=0)

    samples = project_samples(records, project, keep_calm=field_cfg.keep_calm)
    when = observation_time(samples)
    print("Stations:", len(samples), "observed:", when.isoformat() if when else "?")

    print("Interpolating field...")
    builder = FieldBuilder(samples, masker(field_image), masker(display), field_bounds, field_cfg)
    try:
        field = asyncio.run(builder.build())
    except Exception as e:
        print("Failed:", describe(e))
        raise

    surface = ImageSurface(WIDTH, HEIGHT, intensity_palette(anim_cfg.palette_size), anim_cfg.fade_alpha)
    particles = ParticleSystem(field, anim_cfg)

    print(f"Animating {FRAMES} frames...")
    asyncio.run(particles.animate(surface, frames=FRAMES))

    Path(OUTPUT_FOLDER).mkdir(exist_ok=True)
    stamp = cycle_key(when) if when else "current"

    field_path = Path(OUTPUT_FOLDER) / f"field_{stamp}.json"
    frame_path = Path(OUTPUT_FOLDER) / f"frame_{stamp}.png"

    with open(field_path, "w") as f:
        json.dump(field_to_json(field), f)

    plt.imsave(frame_path, surface.image())

    print("Saved outputs:")
    print(field_path)
    print(frame_path)

    if SCALAR:
        print(f"Interpolating {SCALAR}...")
        readings = project_scalar_samples(records, project, SCALAR)
        scalar = build_scalar_field(readings, masker(display), bounds, k=field_cfg.k)
        overlay = ImageSurface(WIDTH, HEIGHT, scalar_palette())
        overlay.fill_scalar(scalar)
        scalar_path = Path(OUTPUT_FOLDER) / f"{SCALAR}_{stamp}.png"
        plt.imsave(scalar_path, overlay.image())
        print(scalar_path, f"range {scalar.lo:g}..{scalar.hi:g}")


if __name__ == "__main__":
    main()
