#!/usr/bin/env python3
"""
GlitchCam — Image Stream Corruption Engine
CLI entry point. Also importable as a library.

Usage:
    python glitchcam.py modes
    python glitchcam.py bytes あ abc
    python glitchcam.py inspect frame.png --source a --dest b
    python glitchcam.py inspect frame.png --mode png --no-protection
    python glitchcam.py list-effects
    python glitchcam.py serve
"""

import sys
import os
import argparse
import logging

# Add project root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

__version__ = "0.1.0"

MAX_INSPECT_MB = 50


def _load_frame(path: str):
    import numpy as np
    from PIL import Image

    if not os.path.isfile(path):
        raise FileNotFoundError(f"Input file not found: {path}")
    size_mb = os.path.getsize(path) / (1024 * 1024)
    if size_mb > MAX_INSPECT_MB:
        raise ValueError(f"Input file is {size_mb:.0f}MB, exceeds {MAX_INSPECT_MB}MB limit.")
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


def cmd_modes(args):
    from core.formats import list_modes

    print(f"\n  {'mode':6s}  {'mime type':12s}  {'quality':>7s}  {'skip':>5s}  {'protect':>7s}")
    print(f"  {'—' * 46}")
    for m in list_modes():
        quality = f"{m['quality']:.2f}" if m["quality"] is not None else "n/a"
        print(f"  {m['mode']:6s}  {m['mime_type']:12s}  {quality:>7s}  "
              f"{m['skip_bytes']:>5d}  {m['protect_fraction']:>6.0%}")
    print()


def cmd_bytes(args):
    from core.pattern import ascii_display, describe_bytes, to_bytes

    for text in args.text:
        print(f"  {text!r}: {describe_bytes(text)}")
        print(f"    {' '.join(ascii_display(b) for b in to_bytes(text))}")


def cmd_inspect(args):
    from core.corruptor import corrupt_stream
    from core.encoder import encode
    from core.formats import CorruptionMode, UnsupportedFormat
    from core.pattern import PatternConfig, describe_bytes
    from core.safety import as_rgba

    frame = as_rgba(_load_frame(args.image))
    h, w = frame.shape[:2]
    config = PatternConfig.create(args.source, args.dest,
                                  header_protection=not args.no_protection, active=True)
    modes = [args.mode] if args.mode else [m.value for m in CorruptionMode]

    print(f"\n  {args.image}: {w}x{h}")
    print(f"  Pattern: {args.source!r} ({describe_bytes(args.source)}) -> "
          f"{args.dest!r} ({describe_bytes(args.dest)})")
    print(f"  Header protection: {'on' if config.header_protection else 'off'}")
    print(f"  {'—' * 50}")
    for mode in modes:
        try:
            stream = encode(frame, mode)
        except UnsupportedFormat as e:
            print(f"    {mode:5s}  unavailable: {e}")
            continue
        report = corrupt_stream(stream, config.with_mode(mode))
        print(f"    {mode:5s}  {len(stream):>9d} bytes  start @ {report.start_offset:>8d}  "
              f"{report.replacement_count:>6d} matches  {report.changed_bytes:>6d} bytes changed")
    print()


def cmd_list_effects(args):
    from effects import list_effects

    for e in list_effects():
        print(f"    {e['name']:15s} — {e['description']}")
        params_str = ", ".join(f"{k}={v}" for k, v in e["params"].items())
        print(f"    {'':15s}   Params: {params_str}")


def cmd_serve(args):
    from server import start
    start()


def main():
    parser = argparse.ArgumentParser(
        prog="glitchcam",
        description="GlitchCam — byte-level image stream corruption",
    )
    parser.add_argument("--version", action="version", version=f"glitchcam {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine activity")
    sub = parser.add_subparsers(dest="command")

    # modes
    sub.add_parser("modes", help="List container formats and their protection settings")

    # bytes
    p = sub.add_parser("bytes", help="Show the UTF-8 bytes of pattern strings")
    p.add_argument("text", nargs="+", help="Pattern strings")

    # inspect
    p = sub.add_parser("inspect", help="Report where a pattern would hit an encoded frame")
    p.add_argument("image", help="Image file to use as the frame")
    p.add_argument("--source", default="a", help="Characters to find")
    p.add_argument("--dest", default="b", help="Characters to write")
    p.add_argument("--mode", choices=["jpeg", "png", "webp", "bmp"], help="Only this format")
    p.add_argument("--no-protection", action="store_true", help="Disable header protection")

    # list-effects
    sub.add_parser("list-effects", help="List registered per-frame effects")

    # serve
    sub.add_parser("serve", help="Launch the preview API")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    commands = {
        "modes": cmd_modes,
        "bytes": cmd_bytes,
        "inspect": cmd_inspect,
        "list-effects": cmd_list_effects,
        "serve": cmd_serve,
    }

    if args.command in commands:
        try:
            commands[args.command](args)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
