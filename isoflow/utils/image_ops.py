from __future__ import annotations

import io
import threading
from typing import Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from ..core.contours import Segment

RGB = Tuple[int, int, int]


def clamp01(x: np.ndarray | float) -> np.ndarray | float:
    return np.clip(x, 0.0, 1.0)


def rgba(color: RGB, alpha: float) -> Tuple[int, int, int, int]:
    a = int(round(float(clamp01(alpha)) * 255))
    return (int(color[0]), int(color[1]), int(color[2]), a)


def stroke_px(width: float) -> int:
    return max(1, int(round(width)))


class ImageSurface:
    """Pillow-backed drawing surface.

    Each stroke call renders its segments onto a transparent layer and
    composites that layer once, so overlapping segments of one contour do
    not stack their alpha.
    """

    def __init__(self, width: int, height: int, pixel_ratio: float = 1.0):
        self.pixel_ratio = float(pixel_ratio)
        self._lock = threading.Lock()
        self._img = Image.new("RGBA", (max(1, int(width)), max(1, int(height))), (0, 0, 0, 255))

    @property
    def size(self) -> Tuple[int, int]:
        return self._img.size

    def resize(self, width: int, height: int) -> None:
        with self._lock:
            self._img = Image.new("RGBA", (max(1, int(width)), max(1, int(height))), (0, 0, 0, 255))

    def clear(self, color: RGB) -> None:
        with self._lock:
            self._img.paste(rgba(color, 1.0), (0, 0, *self._img.size))

    def stroke(self, segments: Sequence[Segment], color: RGB, alpha: float, width: float) -> None:
        if not segments:
            return
        with self._lock:
            layer = Image.new("RGBA", self._img.size, (0, 0, 0, 0))
            draw = ImageDraw.Draw(layer)
            fill = rgba(color, alpha)
            w = stroke_px(width)
            for (x1, y1), (x2, y2) in segments:
                draw.line((x1, y1, x2, y2), fill=fill, width=w)
            self._img = Image.alpha_composite(self._img, layer)

    def to_image(self) -> Image.Image:
        with self._lock:
            return self._img.convert("RGB")

    def to_array(self) -> np.ndarray:
        return np.array(self.to_image(), dtype=np.uint8)

    def to_png_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.to_image().save(buf, format="PNG")
        return buf.getvalue()
