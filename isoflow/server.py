"""Live preview: renders the animation in a background thread and serves frames."""
from __future__ import annotations

import math
import threading
from typing import Optional

from flask import Flask, Response, jsonify, render_template_string, request

from .core.animation import SPEED_UNIT, AnimationConfig, Animator, ConfigStore, FrameLoop, FrameStats
from .utils.image_ops import ImageSurface

HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>isoflow</title>
    <style>
        html, body { margin: 0; height: 100%; background: rgb(10, 14, 26); }
        #frame { width: 100%; height: 100%; object-fit: cover; display: block; }
    </style>
</head>
<body>
    <img id="frame" src="/frame.png" alt="">
    <script>
        const img = document.getElementById('frame');
        function refresh() {
            const next = new Image();
            next.onload = () => { img.src = next.src; setTimeout(refresh, {{ interval_ms }}); };
            next.onerror = () => setTimeout(refresh, 1000);
            next.src = '/frame.png?t=' + Date.now();
        }
        refresh();
    </script>
</body>
</html>
"""


class PreviewHost:
    def __init__(
        self,
        width: int = 960,
        height: int = 540,
        fps: float = 30.0,
        seed: int | None = None,
        config: AnimationConfig | None = None,
        pixel_ratio: float = 1.0,
    ):
        self.store = ConfigStore(config)
        self.surface = ImageSurface(width, height, pixel_ratio=pixel_ratio)
        self.animator = Animator(self.surface, config=self.store, seed=seed)
        self.loop = FrameLoop(self.animator, fps=fps, on_frame=self._publish)
        self.fps = fps
        self._frame_lock = threading.Lock()
        self._png: Optional[bytes] = None
        self._ready = threading.Event()
        self._render_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def _publish(self, stats: FrameStats) -> None:
        png = self.surface.to_png_bytes()
        with self._frame_lock:
            self._png = png
        self._ready.set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.loop.run, name="isoflow-frames", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self.loop.stop()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def latest_png(self) -> Optional[bytes]:
        with self._frame_lock:
            png = self._png
        if png is not None:
            return png
        if self._thread is None:
            with self._render_lock:
                # loop not running; render one frame on demand
                if not self._ready.is_set():
                    self._publish(self.animator.frame(0.0))
        else:
            self._ready.wait(timeout=5.0)
        with self._frame_lock:
            return self._png


def _config_payload(cfg: AnimationConfig) -> dict:
    payload = cfg.to_dict()
    payload["sliders"] = {
        "speed": cfg.speed / SPEED_UNIT,
        "lines": cfg.num_lines,
        "scale": cfg.noise_scale,
    }
    return payload


def _finite(data: dict, key: str) -> float:
    value = float(data[key])
    if not math.isfinite(value):
        raise ValueError(f"{key} must be a finite number")
    return value


def parse_slider_update(data: dict) -> dict:
    """Map slider values ({speed, lines, scale}) to config fields."""
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    changes = {}
    if "speed" in data:
        speed = _finite(data, "speed")
        if speed < 0:
            raise ValueError("speed must be >= 0")
        changes["speed"] = speed * SPEED_UNIT
    if "lines" in data:
        lines = int(_finite(data, "lines"))
        if lines < 2:
            raise ValueError("lines must be >= 2")
        changes["num_lines"] = lines
    if "scale" in data:
        scale = _finite(data, "scale")
        if scale <= 0:
            raise ValueError("scale must be > 0")
        changes["noise_scale"] = scale
    unknown = set(data) - {"speed", "lines", "scale"}
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)}")
    return changes


def create_app(host: PreviewHost | None = None) -> Flask:
    host = host or PreviewHost()
    app = Flask(__name__)
    app.config["PREVIEW_HOST"] = host

    @app.route('/')
    def index():
        return render_template_string(HTML_TEMPLATE, interval_ms=max(1, int(1000 / host.fps)))

    @app.route('/frame.png')
    def frame_png():
        png = host.latest_png()
        if png is None:
            return jsonify({'success': False, 'error': 'no frame available'}), 503
        resp = Response(png, mimetype='image/png')
        resp.headers['Cache-Control'] = 'no-store'
        return resp

    @app.route('/config', methods=['GET'])
    def get_config():
        return jsonify({'success': True, 'config': _config_payload(host.store.snapshot())})

    @app.route('/config', methods=['POST'])
    def set_config():
        try:
            changes = parse_slider_update(request.get_json(silent=True))
            cfg = host.store.update(**changes)
            return jsonify({'success': True, 'config': _config_payload(cfg)})
        except (TypeError, ValueError) as e:
            print(f"Config error: {e}")
            return jsonify({'success': False, 'error': str(e)}), 400

    return app
