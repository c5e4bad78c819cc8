"""Command line entry point.

    python -m isoflow render out.gif --frames 120
    python -m isoflow serve --port 5000
"""
from __future__ import annotations

import argparse
import sys
import webbrowser
from threading import Timer

from .core.animation import AnimationConfig


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--speed", type=float, default=1.0, help="speed slider value (x 0.00006 per ms)")
    p.add_argument("--lines", type=int, default=15, help="number of contour lines")
    p.add_argument("--scale", type=float, default=370.0, help="noise scale in px")
    p.add_argument("--seed", type=int, default=None, help="permutation seed")
    p.add_argument("--width", type=int, default=960)
    p.add_argument("--height", type=int, default=540)
    p.add_argument("--fps", type=float, default=30.0)
    p.add_argument("--pixel-ratio", type=float, default=1.0, help="device pixels per CSS pixel")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="isoflow", description="Animated noise contour lines")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="render frames to a GIF or a PNG directory")
    render.add_argument("out", help="output .gif path, or a directory for PNG frames")
    render.add_argument("--frames", type=int, default=120)
    _add_config_args(render)

    serve = sub.add_parser("serve", help="serve a live preview over HTTP")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--no-browser", action="store_true")
    _add_config_args(serve)
    return parser


def _config_from(args: argparse.Namespace) -> AnimationConfig:
    return AnimationConfig.from_sliders(speed=args.speed, lines=args.lines, scale=args.scale)


def cmd_render(args: argparse.Namespace) -> int:
    from .utils.export import export_animation

    last = [-1]

    def progress(pct: int) -> None:
        if pct // 10 != last[0]:
            last[0] = pct // 10
            print(f"  {pct:3d}%")

    print(f"Rendering {args.frames} frames at {args.width}x{args.height} -> {args.out}")
    try:
        export_animation(
            args.out,
            frames=args.frames,
            fps=args.fps,
            width=args.width,
            height=args.height,
            config=_config_from(args),
            seed=args.seed,
            pixel_ratio=args.pixel_ratio,
            progress=progress,
        )
    except ValueError as e:
        print(f"Render error: {e}", file=sys.stderr)
        return 2
    print("Done.")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import PreviewHost, create_app

    host = PreviewHost(
        width=args.width,
        height=args.height,
        fps=args.fps,
        seed=args.seed,
        config=_config_from(args),
        pixel_ratio=args.pixel_ratio,
    )
    app = create_app(host)
    url = f"http://{args.host}:{args.port}"

    print("=" * 60)
    print("isoflow - live preview")
    print("=" * 60)
    print(f"\nServing on {url}")
    print("Press Ctrl+C to stop\n")
    print("=" * 60)

    host.start()
    if not args.no_browser:
        Timer(1.5, lambda: webbrowser.open(url)).start()
    try:
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
    finally:
        host.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "render":
        return cmd_render(args)
    return cmd_serve(args)


if __name__ == "__main__":
    sys.exit(main())
