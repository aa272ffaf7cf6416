# cli.py - part of splinalign

## Copyright (C) 2025  Daniel A. Wagenaar
##
## This program is free software: you can redistribute it and/or
## modify it under the terms of the GNU General Public License as
## published by the Free Software Foundation, either version 3 of the
## License, or (at your option) any later version.
##
## This program is distributed in the hope that it will be useful, but
## WITHOUT ANY WARRANTY; without even the implied warranty of
## MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
## General Public License for more details.
##
## You should have received a copy of the GNU General Public License
## along with this program.  If not, see <https://www.gnu.org/licenses/>.


import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .image import Image
from .landmarks import newtable, readtable, writetable
from .mask import Rectangle
from .prepare import prepare
from .progress import TqdmReporter
from .transformation import TransformationType

log = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Creates the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="splinalign",
        description="Build spline pyramids and seed landmarks"
        " for registering SOURCE onto TARGET.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("source", metavar="SOURCE",
                        help="Image file to be aligned.")
    parser.add_argument("target", metavar="TARGET",
                        help="Reference image file.")
    parser.add_argument(
        "--transform",
        default=TransformationType.RIGID_BODY.value,
        choices=TransformationType.displaynames(),
        metavar="NAME",
        help="Transformation model: "
        + ", ".join(repr(n) for n in TransformationType.displaynames()) + ".",
    )
    parser.add_argument(
        "--source-rect",
        type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        help="Restrict the source to a rectangular selection.",
    )
    parser.add_argument(
        "--target-rect",
        type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        help="Restrict the target to a rectangular selection.",
    )
    parser.add_argument(
        "--source-roi",
        type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        action="append",
        help="Rectangular region of interest in the source mask."
        " May be given more than once.",
    )
    parser.add_argument(
        "--target-roi",
        type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        action="append",
        help="Rectangular region of interest in the target mask."
        " May be given more than once.",
    )
    parser.add_argument(
        "--landmarks",
        metavar="CSV",
        help="Landmark table to seed the points from.",
    )
    parser.add_argument(
        "--output",
        metavar="CSV",
        help="Where to write the seed landmark table.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    reporter = TqdmReporter(disable=not sys.stderr.isatty())
    try:
        source = Image.load(args.source)
        target = Image.load(args.target)
        table = readtable(args.landmarks) if args.landmarks else None
        sourceregions = [Rectangle(*r) for r in args.source_roi or []]
        targetregions = [Rectangle(*r) for r in args.target_roi or []]
        prep = prepare(source, target, args.transform,
                       sourceregions, targetregions, table,
                       args.source_rect, args.target_rect,
                       progress=reporter)
    except (ValueError, OSError) as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        reporter.close()

    log.info(f"Source: {prep.source}")
    log.info(f"Target: {prep.target}")
    log.info(f"Source mask: {prep.sourcemask}")
    log.info(f"Target mask: {prep.targetmask}")
    for k, (p, q) in enumerate(zip(prep.sourcelandmarks.points,
                                   prep.targetlandmarks.points)):
        log.info(f"Landmark {k}: ({p[0]:.2f}, {p[1]:.2f})"
                 f" -> ({q[0]:.2f}, {q[1]:.2f})")

    out = newtable()
    prep.sourcelandmarks.totable(out)
    prep.targetlandmarks.totable(out)
    if args.output:
        try:
            writetable(args.output, out)
        except OSError as e:
            log.error(f"Could not write {args.output}: {e}")
            return 1
        log.info(f"Landmarks written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
