"""Offline rendering on a fixed timeline (frame i at i * 1000 / fps ms)."""
from __future__ import annotations

import os
from typing import Callable, Iterator, Optional

import numpy as np
from PIL import Image

from ..core.animation import AnimationConfig, Animator
from .image_ops import ImageSurface


def render_frames(
    frames: int,
    fps: float = 30.0,
    width: int = 640,
    height: int = 360,
    config: AnimationConfig | None = None,
    seed: int | None = None,
    pixel_ratio: float = 1.0,
) -> Iterator[Image.Image]:
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    surface = ImageSurface(width, height, pixel_ratio=pixel_ratio)
    animator = Animator(surface, config=config, seed=seed)
    step_ms = 1000.0 / fps
    for i in range(frames):
        animator.frame(i * step_ms)
        yield surface.to_image()


def export_animation(
    path: str,
    frames: int = 120,
    fps: float = 30.0,
    width: int = 640,
    height: int = 360,
    config: AnimationConfig | None = None,
    seed: int | None = None,
    loop: bool = True,
    pixel_ratio: float = 1.0,
    progress: Optional[Callable[[int], None]] = None,
) -> str:
    """Write frames to a GIF, or to numbered PNGs when `path` has no extension."""
    if frames < 1:
        raise ValueError(f"frames must be at least 1, got {frames}")
    ext = os.path.splitext(path)[1].lower()
    if ext not in ("", ".gif"):
        raise ValueError(f"Unsupported export format: {ext}")

    if ext == "":
        os.makedirs(path, exist_ok=True)

    out = []
    for i, im in enumerate(render_frames(frames, fps, width, height, config, seed, pixel_ratio)):
        if ext == "":
            im.save(os.path.join(path, f"frame_{i:05d}.png"))
        else:
            out.append(np.array(im))
        if progress is not None:
            progress(int((i + 1) * 100 / frames))

    if ext == ".gif":
        import imageio.v3 as iio

        dur = max(10, int(1000 / fps))
        # Pillow plays a GIF once when no loop count is written
        extra = {"loop": 0} if loop else {}
        iio.imwrite(path, np.stack(out), extension=".gif", duration=dur, **extra)
    return path
