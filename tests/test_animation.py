import threading

import numpy as np
import pytest

from isoflow.core.animation import (
    BACKGROUND,
    DEFAULT_NOISE_SCALE,
    SPEED_UNIT,
    STROKE,
    AnimationConfig,
    AnimationState,
    Animator,
    ConfigStore,
    FrameLoop,
    advance,
    level_styles,
    render_frame,
)
from isoflow.core.noise import build_permutation


class RecordingSurface:
    def __init__(self, width=64, height=48, pixel_ratio=1.0):
        self.width = width
        self.height = height
        self.pixel_ratio = pixel_ratio
        self.calls = []

    @property
    def size(self):
        return (self.width, self.height)

    def clear(self, color):
        self.calls.append(("clear", color))

    def stroke(self, segments, color, alpha, width):
        self.calls.append(("stroke", list(segments), color, alpha, width))

    def strokes(self):
        return [c for c in self.calls if c[0] == "stroke"]


@pytest.fixture(scope="module")
def table():
    return build_permutation(seed=2024)


def test_level_styles_spacing_and_alpha():
    styles = level_styles(5)
    assert [s.level for s in styles] == pytest.approx([-0.7, -0.35, 0.0, 0.35, 0.7])
    assert styles[2].alpha == pytest.approx((0.15 + 0.55) * 0.75)
    assert styles[0].alpha == pytest.approx(0.15 * 0.75)
    assert styles[0].alpha == pytest.approx(styles[-1].alpha)
    assert max(s.alpha for s in styles) == styles[2].alpha


def test_level_styles_emphasize_every_fifth_line():
    widths = [s.width for s in level_styles(11, pixel_ratio=2.0)]
    assert widths[0] == widths[5] == widths[10] == 3.0
    assert widths[1] == pytest.approx(1.4)


def test_level_styles_clamps_line_count():
    styles = level_styles(1)
    assert len(styles) == 2
    assert styles[0].level == -0.7 and styles[1].level == pytest.approx(0.7)


def test_advance_starts_at_zero_then_integrates():
    state = AnimationState()
    assert advance(state, 1000.0, 0.5) == 0.0
    assert advance(state, 1016.0, 0.5) == pytest.approx(8.0)
    assert state.last_timestamp == 1016.0


def test_config_from_sliders():
    cfg = AnimationConfig.from_sliders(speed=2, lines=20, scale=200)
    assert cfg.speed == pytest.approx(2 * SPEED_UNIT)
    assert cfg.num_lines == 20
    assert cfg.noise_scale == 200.0


def test_config_sanitized_clamps():
    cfg = AnimationConfig(speed=-1.0, num_lines=1, noise_scale=0.0).sanitized()
    assert cfg.speed == 0.0
    assert cfg.num_lines == 2
    assert cfg.noise_scale > 0


def test_frame_clears_then_strokes(table):
    surface = RecordingSurface()
    stats = render_frame(AnimationState(), 0.0, surface, table, AnimationConfig(noise_scale=20.0))
    assert surface.calls[0] == ("clear", BACKGROUND)
    strokes = surface.strokes()
    assert strokes
    assert all(c[2] == STROKE for c in strokes)
    assert stats.segments == sum(len(c[1]) for c in strokes)
    assert (stats.cols, stats.rows) == (17, 13)


def test_single_line_config_does_not_divide_by_zero(table):
    surface = RecordingSurface()
    render_frame(AnimationState(), 0.0, surface, table, AnimationConfig(num_lines=1, noise_scale=20.0))
    assert surface.calls[0][0] == "clear"


def test_zero_speed_keeps_frames_static(table):
    cfg = AnimationConfig(speed=0.0, noise_scale=20.0)
    state = AnimationState()
    first, second = RecordingSurface(), RecordingSurface()
    render_frame(state, 0.0, first, table, cfg)
    render_frame(state, 5000.0, second, table, cfg)
    assert state.elapsed_time == 0.0
    assert first.calls == second.calls


def test_time_advances_with_speed(table):
    cfg = AnimationConfig(speed=0.001, noise_scale=20.0)
    state = AnimationState()
    render_frame(state, 100.0, RecordingSurface(), table, cfg)
    stats = render_frame(state, 600.0, RecordingSurface(), table, cfg)
    assert stats.elapsed_time == pytest.approx(0.5)
    assert state.frames == 2


def test_grid_follows_surface_resize(table):
    surface = RecordingSurface(40, 40)
    animator = Animator(surface, AnimationConfig(noise_scale=20.0), table=table)
    assert (animator.frame(0.0).cols, animator.frame(16.0).rows) == (11, 11)
    surface.width = 80
    assert animator.frame(32.0).cols == 21


class CountingStore(ConfigStore):
    def __init__(self, config=None):
        super().__init__(config)
        self.reads = 0

    def snapshot(self):
        self.reads += 1
        return super().snapshot()


def test_store_snapshot_is_read_once_per_frame(table):
    store = CountingStore(AnimationConfig(num_lines=3, noise_scale=20.0))
    animator = Animator(RecordingSurface(), store, table=table)
    animator.frame(0.0)
    assert store.reads == 1
    animator.frame(16.0)
    assert store.reads == 2


def test_store_with_too_few_lines_still_renders(table):
    store = ConfigStore(AnimationConfig(num_lines=3, noise_scale=20.0))
    store.update(num_lines=0)
    assert store.snapshot().num_lines == 0
    surface = RecordingSurface()
    render_frame(AnimationState(), 0.0, surface, table, store)
    assert len(surface.strokes()) <= 2


@pytest.mark.parametrize("speed", [float("inf"), float("-inf"), float("nan")])
def test_config_sanitized_zeroes_non_finite_speed(speed):
    assert AnimationConfig(speed=speed).sanitized().speed == 0.0


@pytest.mark.parametrize("scale", [float("inf"), float("nan")])
def test_config_sanitized_resets_non_finite_scale(scale):
    assert AnimationConfig(noise_scale=scale).sanitized().noise_scale == DEFAULT_NOISE_SCALE


def test_non_finite_speed_does_not_poison_elapsed_time(table):
    store = ConfigStore(AnimationConfig(speed=float("inf"), noise_scale=20.0))
    animator = Animator(RecordingSurface(), store, table=table)
    animator.frame(0.0)
    animator.frame(16.0)
    assert animator.state.elapsed_time == 0.0
    store.update(speed=0.001)
    stats = animator.frame(516.0)
    assert stats.elapsed_time == pytest.approx(0.5)
    assert stats.segments > 0


def test_store_rejects_unknown_fields():
    with pytest.raises(ValueError):
        ConfigStore().update(colour=1)


def test_store_updates_from_threads():
    store = ConfigStore()

    def bump(n):
        store.update(num_lines=n)

    threads = [threading.Thread(target=bump, args=(n,)) for n in range(2, 12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert 2 <= store.snapshot().num_lines < 12


def test_frame_loop_runs_budget_and_stops(table):
    clock = iter(np.arange(0.0, 100.0, 0.01))
    slept = []
    animator = Animator(RecordingSurface(16, 16), AnimationConfig(noise_scale=20.0), table=table)
    loop = FrameLoop(animator, fps=10, clock=lambda: float(next(clock)), sleep=slept.append)
    assert loop.run(max_frames=3) == 3
    assert animator.state.frames == 3
    assert len(slept) == 3

    seen = []

    def stop_after_two(stats):
        seen.append(stats)
        if len(seen) == 2:
            loop.stop()

    loop.on_frame = stop_after_two
    assert loop.run() == 2
    assert loop.stopped


def test_frame_loop_rejects_bad_fps(table):
    with pytest.raises(ValueError):
        FrameLoop(Animator(RecordingSurface(), table=table), fps=0)


def test_seeded_animators_render_identically():
    a, b = RecordingSurface(), RecordingSurface()
    cfg = AnimationConfig(noise_scale=20.0)
    Animator(a, cfg, seed=5).frame(0.0)
    Animator(b, cfg, seed=5).frame(0.0)
    assert a.calls == b.calls
