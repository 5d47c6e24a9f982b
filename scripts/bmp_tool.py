#!/usr/bin/env python3
"""
bmp_tool.py

CLI around the BMP codec.

Usage:
  bmp_tool.py info --in image.bmp
  bmp_tool.py from-raw --in raw.rgb --out out.bmp --width 660 --height 330 [--depth 32]
  bmp_tool.py to-raw --in image.bmp(.z) --out raw.rgb

Raw files are packed top-down RGB888.
"""

from __future__ import annotations

import argparse
import logging
import sys

import numpy as np

from bmp_codec import read_file, write_file
from bmp_errors import BMPError
from bmp_image import BMPImage

log = logging.getLogger("bmp_tool")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Inspect and convert uncompressed BMP files.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Print header fields")
    info.add_argument("--in", dest="infile", required=True, help="Input BMP (.bmp or .bmp.z)")

    fr = sub.add_parser("from-raw", help="Pack raw RGB888 into a BMP")
    fr.add_argument("--in", dest="infile", required=True, help="Input raw RGB888 file")
    fr.add_argument("--out", required=True, help="Output BMP path (.z to compress)")
    fr.add_argument("--width", type=int, required=True)
    fr.add_argument("--height", type=int, required=True)
    fr.add_argument("--depth", type=int, choices=[24, 32], default=24)

    tr = sub.add_parser("to-raw", help="Dump a BMP as raw RGB888")
    tr.add_argument("--in", dest="infile", required=True, help="Input BMP (.bmp or .bmp.z)")
    tr.add_argument("--out", required=True, help="Output raw RGB888 path")

    return p.parse_args(argv)


def cmd_info(args) -> None:
    with read_file(args.infile) as img:
        for k, v in img.header.as_dict().items():
            print(f"{k}: {v}")


def cmd_from_raw(args) -> None:
    W, H = args.width, args.height
    with open(args.infile, "rb") as f:
        raw = f.read()
    exp = W * H * 3
    if len(raw) != exp:
        raise SystemExit(f"ERROR: raw size {len(raw)} != expected {exp} ({W}x{H}x3)")
    rgb = np.frombuffer(raw, dtype=np.uint8).reshape((H, W, 3))
    with BMPImage.from_rgb_array(rgb, depth=args.depth) as img:
        write_file(img, args.out)
    log.info("wrote %s (%dx%d, %d BPP)", args.out, W, H, args.depth)


def cmd_to_raw(args) -> None:
    with read_file(args.infile) as img:
        rgb = img.to_rgb_array()
    with open(args.out, "wb") as f:
        f.write(rgb.tobytes())
    log.info("wrote %s (%dx%d RGB888)", args.out, rgb.shape[1], rgb.shape[0])


COMMANDS = {
    "info": cmd_info,
    "from-raw": cmd_from_raw,
    "to-raw": cmd_to_raw,
}


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        COMMANDS[args.command](args)
    except (BMPError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
