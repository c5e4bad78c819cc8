"""Per-frame orchestration of the contour animation.

A frame advances the elapsed-time accumulator, rebuilds the noise field for
the current surface size and strokes one contour per iso-level. The caller
owns the `AnimationState` and passes it to every frame; configuration is
read once per frame from an externally mutated source.
"""
from __future__ import annotations

import math
import threading
import time
from dataclasses import asdict, dataclass, replace
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from .contours import Segment, extract_contours
from .field import build_field, grid_shape
from .noise import PermutationTable, build_permutation

RGB = Tuple[int, int, int]

BACKGROUND: RGB = (10, 14, 26)
STROKE: RGB = (78, 204, 163)
GRID_SIZE = 4  # px per noise sample
MIN_LEVEL = -0.7
MAX_LEVEL = 0.7
SPEED_UNIT = 0.00006  # elapsed noise time per ms at slider value 1
MIN_LINES = 2
MIN_NOISE_SCALE = 1e-3
DEFAULT_NOISE_SCALE = 370.0


@dataclass
class AnimationConfig:
    speed: float = 1 * SPEED_UNIT
    num_lines: int = 15
    noise_scale: float = DEFAULT_NOISE_SCALE

    @classmethod
    def from_sliders(cls, speed: float = 1, lines: int = 15, scale: float = 370) -> "AnimationConfig":
        return cls(speed=float(speed) * SPEED_UNIT, num_lines=int(lines), noise_scale=float(scale))

    def sanitized(self) -> "AnimationConfig":
        speed = float(self.speed)
        scale = float(self.noise_scale)
        if not math.isfinite(scale):
            scale = DEFAULT_NOISE_SCALE
        return AnimationConfig(
            speed=max(0.0, speed) if math.isfinite(speed) else 0.0,
            num_lines=max(MIN_LINES, int(self.num_lines)),
            noise_scale=scale if scale > 0 else MIN_NOISE_SCALE,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class ConfigStore:
    """Config shared with another thread; frames read a snapshot."""

    def __init__(self, config: AnimationConfig | None = None):
        self._config = config or AnimationConfig()
        self._lock = threading.Lock()

    def snapshot(self) -> AnimationConfig:
        with self._lock:
            return replace(self._config)

    def update(self, **changes) -> AnimationConfig:
        unknown = set(changes) - {"speed", "num_lines", "noise_scale"}
        if unknown:
            raise ValueError(f"Unknown config fields: {sorted(unknown)}")
        with self._lock:
            self._config = replace(self._config, **changes)
            return replace(self._config)


class Surface(Protocol):
    pixel_ratio: float

    @property
    def size(self) -> Tuple[int, int]: ...

    def clear(self, color: RGB) -> None: ...

    def stroke(self, segments: Sequence[Segment], color: RGB, alpha: float, width: float) -> None: ...


@dataclass
class AnimationState:
    elapsed_time: float = 0.0
    last_timestamp: Optional[float] = None
    frames: int = 0


@dataclass
class LevelStyle:
    level: float
    alpha: float
    width: float


@dataclass
class FrameStats:
    elapsed_time: float
    cols: int
    rows: int
    segments: int


def level_styles(num_lines: int, pixel_ratio: float = 1.0) -> List[LevelStyle]:
    n = max(MIN_LINES, int(num_lines))
    styles = []
    for i in range(n):
        frac = i / (n - 1)
        level = MIN_LEVEL + frac * (MAX_LEVEL - MIN_LEVEL)
        mid_falloff = (1 - abs(frac - 0.5) * 2) ** 0.7
        alpha = (0.15 + 0.55 * mid_falloff) * 0.75
        width = (1.5 if i % 5 == 0 else 0.7) * pixel_ratio
        styles.append(LevelStyle(level, alpha, width))
    return styles


def advance(state: AnimationState, timestamp: float, speed: float) -> float:
    if state.last_timestamp is None:
        state.last_timestamp = timestamp
    state.elapsed_time += (timestamp - state.last_timestamp) * speed
    state.last_timestamp = timestamp
    return state.elapsed_time


def _read_config(source) -> AnimationConfig:
    if isinstance(source, ConfigStore):
        source = source.snapshot()
    return source.sanitized()


def render_frame(
    state: AnimationState,
    timestamp: float,
    surface: Surface,
    table: PermutationTable,
    config: AnimationConfig | ConfigStore,
) -> FrameStats:
    cfg = _read_config(config)
    t = advance(state, timestamp, cfg.speed)

    surface.clear(BACKGROUND)

    width, height = surface.size
    ratio = getattr(surface, "pixel_ratio", 1.0)
    cols, rows = grid_shape(width, height, GRID_SIZE)
    field = build_field(table, cols, rows, GRID_SIZE, cfg.noise_scale * ratio, t)

    total = 0
    for style in level_styles(cfg.num_lines, ratio):
        segments = extract_contours(field, cols, rows, GRID_SIZE, style.level)
        if segments:
            surface.stroke(segments, STROKE, style.alpha, style.width)
        total += len(segments)

    state.frames += 1
    return FrameStats(elapsed_time=t, cols=cols, rows=rows, segments=total)


class Animator:
    def __init__(
        self,
        surface: Surface,
        config: AnimationConfig | ConfigStore | None = None,
        table: PermutationTable | None = None,
        seed: int | None = None,
    ):
        self.surface = surface
        self.config = config if config is not None else AnimationConfig()
        self.table = table if table is not None else build_permutation(seed=seed)
        self.state = AnimationState()

    def frame(self, timestamp: float) -> FrameStats:
        return render_frame(self.state, timestamp, self.surface, self.table, self.config)


class FrameLoop:
    """Drives an Animator at a target fps until stopped.

    Timestamps are monotonic milliseconds. Frames that overrun their slot are
    late, never skipped or raised.
    """

    def __init__(
        self,
        animator: Animator,
        fps: float = 60.0,
        on_frame: Callable[[FrameStats], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.animator = animator
        self.interval = 1.0 / fps
        self.on_frame = on_frame
        self._clock = clock
        self._sleep = sleep
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self, max_frames: int | None = None) -> int:
        count = 0
        while not self._stop.is_set():
            if max_frames is not None and count >= max_frames:
                break
            start = self._clock()
            stats = self.animator.frame(start * 1000.0)
            count += 1
            if self.on_frame is not None:
                self.on_frame(stats)
            remaining = self.interval - (self._clock() - start)
            if remaining > 0:
                self._sleep(remaining)
        return count
