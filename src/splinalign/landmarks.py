# landmarks.py - part of splinalign

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


"""Landmark points that seed the registration

A Landmarks object holds the control points of one image (source or
target) for a given transformation model. Points are kept in the
coordinates of the image's interval, i.e., relative to the top-left
corner of the selection that was cut out. Tables, on the other hand,
hold coordinates in the coordinates of the full image, so interval
offsets are subtracted when reading and added back when writing.

A table is simply a dict mapping column names to lists of values.
The relevant columns are SOURCE_X, SOURCE_Y, TARGET_X, and TARGET_Y,
which hold numbers; other columns are carried along untouched.
"""


import csv
import logging
import numpy as np
from typing import Optional, Dict, List, Mapping, Sequence
import numpy.typing
ArrayLike = numpy.typing.ArrayLike

from .interval import Interval
from .transformation import TransformationType

log = logging.getLogger(__name__)

GOLDEN_RATIO = 0.5 * (np.sqrt(5.0) - 1.0)

CROSS_HALFSIZE = 5
"""Minimal separation of the rotation points of a rigid-body model"""

SOURCE_X = "sourceX"
SOURCE_Y = "sourceY"
TARGET_X = "targetX"
TARGET_Y = "targetY"
COLUMNS = (SOURCE_X, SOURCE_Y, TARGET_X, TARGET_Y)

Table = Dict[str, List[Optional[float | str]]]


def pointcount(transformation: TransformationType | str) -> int:
    """Number of landmarks needed to constrain a transformation"""
    return TransformationType.coerce(transformation).pointcount


def defaultpoints(transformation: TransformationType | str,
                  width: float, height: float) -> np.ndarray:
    """Default landmark layout for an image of given size

    Points are placed at the center, or at a distance of a quarter of
    the golden ratio times the image size from the edges, depending on
    the transformation.
    """
    t = TransformationType.coerce(transformation)
    xmid = 0.5 * width
    ymid = 0.5 * height
    xmin = 0.25 * GOLDEN_RATIO * width
    ymin = 0.25 * GOLDEN_RATIO * height
    xmax = width - 0.25 * GOLDEN_RATIO * width
    ymax = height - 0.25 * GOLDEN_RATIO * height
    match t:
        case TransformationType.TRANSLATION:
            pts = [(xmid, ymid)]
        case TransformationType.RIGID_BODY:
            pts = [(xmid, ymid), (xmid, ymin), (xmid, ymax)]
        case TransformationType.SCALED_ROTATION:
            pts = [(xmin, ymid), (xmax, ymid)]
        case TransformationType.AFFINE:
            pts = [(xmid, ymin), (xmin, ymax), (xmax, ymax)]
        case TransformationType.BILINEAR:
            pts = [(xmin, ymin), (xmin, ymax), (xmax, ymin), (xmax, ymax)]
    return np.array(pts, dtype=float)


def newtable() -> Table:
    """An empty landmark table with all four columns"""
    return {col: [] for col in COLUMNS}


def _parse(value: str) -> Optional[float]:
    value = value.strip()
    if value == "":
        return None
    return float(value)


def readtable(path: str) -> Table:
    """Read a landmark table from a CSV file

    The file must have a header row. In the four landmark columns,
    empty cells become None and other cells are parsed as numbers. A
    landmark column with a cell that is not a number is dropped, so
    that landmarks restored from the table fall back to their default
    layout. Other columns are kept as raw strings.
    """
    table: Table = {}
    with open(path, newline="", encoding="utf-8-sig") as fd:
        reader = csv.DictReader(fd)
        for col in reader.fieldnames or []:
            table[col] = []
        for row in reader:
            for col in table:
                table[col].append(row.get(col) or "")
    for col in COLUMNS:
        if col not in table:
            continue
        try:
            table[col] = [_parse(value) for value in table[col]]
        except ValueError as e:
            log.debug(f"Dropping column {col} from {path}: {e}")
            del table[col]
    log.debug(f"Read {len(next(iter(table.values()), []))} rows"
              f" from {path}")
    return table


def writetable(path: str, table: Mapping[str, Sequence[Optional[float]]]) -> None:
    """Write a landmark table to a CSV file

    None and NaN values are written as empty cells. Strings are
    written as they are.
    """
    cols = list(table.keys())
    nrows = max((len(table[col]) for col in cols), default=0)
    with open(path, "w", newline="") as fd:
        writer = csv.writer(fd)
        writer.writerow(cols)
        for i in range(nrows):
            row = []
            for col in cols:
                v = table[col][i] if i < len(table[col]) else None
                if isinstance(v, str):
                    row.append(v)
                elif v is None or np.isnan(v):
                    row.append("")
                else:
                    row.append(repr(float(v)))
            writer.writerow(row)
    log.debug(f"Wrote {nrows} rows to {path}")


class Landmarks:
    """Control points of one image for a given transformation

    Arguments:
        transformation: a TransformationType or its display name
        interval: the Interval of the image the points belong to
        table: optional table to restore the points from

    If TABLE is given, points are read from the target columns if the
    interval is a target and from the source columns otherwise. If the
    table does not have the right number of rows or lacks one of the
    columns, the default layout is used instead. Missing values leave
    the corresponding coordinate at zero.
    """
    def __init__(self, transformation: TransformationType | str,
                 interval: Interval,
                 table: Optional[Mapping[str, Sequence[Optional[float]]]] = None):
        self.transformation = TransformationType.coerce(transformation)
        self.interval = interval
        self.current = 0
        if table is None:
            self.settransformation(self.transformation)
        else:
            self._readfrom(table)

    def columns(self) -> tuple[str, str]:
        if self.interval.istarget:
            return TARGET_X, TARGET_Y
        else:
            return SOURCE_X, SOURCE_Y

    def _readfrom(self, table: Mapping[str, Sequence[Optional[float]]]) -> None:
        N = self.transformation.pointcount
        colx, coly = self.columns()
        if colx not in table or coly not in table:
            log.debug(f"Table lacks {colx} or {coly}; using default layout")
            self.settransformation(self.transformation)
            return
        if len(table[colx]) != N or len(table[coly]) != N:
            log.debug(f"Table does not have {N} rows; using default layout")
            self.settransformation(self.transformation)
            return
        try:
            values = np.array([[np.nan if v is None else float(v)
                                for v in table[col]]
                               for col in (colx, coly)]).T
        except (TypeError, ValueError) as e:
            log.debug(f"Table has bad values ({e}); using default layout")
            self.settransformation(self.transformation)
            return
        offset = (self.interval.xoffset, self.interval.yoffset)
        self._points = np.zeros((N, 2))
        for j in range(2):
            for i in range(N):
                if not np.isnan(values[i, j]):
                    self._points[i, j] = values[i, j] - offset[j]

    @property
    def points(self) -> np.ndarray:
        """All points as an N×2 array, in interval coordinates"""
        return self._points

    @property
    def point(self) -> np.ndarray:
        """The current point"""
        return self._points[self.current]

    def setcurrentpoint(self, k: int) -> None:
        if k < 0 or k >= len(self._points):
            raise IndexError(f"No landmark {k} among {len(self._points)}")
        self.current = k

    def setpoints(self, points: ArrayLike) -> None:
        """Replace the coordinates of all points, without clipping"""
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        if len(points) != len(self._points):
            raise ValueError(f"Expected {len(self._points)} points,"
                             f" got {len(points)}")
        self._points = points.copy()

    def settransformation(self, transformation: TransformationType | str) -> None:
        """Switch to a new transformation and reset to the default layout"""
        self.transformation = TransformationType.coerce(transformation)
        self._points = defaultpoints(self.transformation,
                                     self.interval.width, self.interval.height)
        self.current = 0

    def movepoint(self, x: float, y: float) -> None:
        """Move the current point, clipping to the extent of the interval

        For a rigid-body transformation, a move of either rotation point
        is silently ignored if it would bring the point within
        CROSS_HALFSIZE of the reflection of the other rotation point
        through the center point, or if the two rotation points would
        come so close that half their distance is no more than
        CROSS_HALFSIZE.
        """
        x = self.interval.clipx(x)
        y = self.interval.clipy(y)
        if (self.transformation is TransformationType.RIGID_BODY
                and self.current != 0):
            center = self._points[0]
            other = self._points[3 - self.current]
            mirror = 2 * center - other
            if np.hypot(x - mirror[0], y - mirror[1]) <= CROSS_HALFSIZE:
                return
            if 0.5 * np.hypot(x - other[0], y - other[1]) <= CROSS_HALFSIZE:
                return
        self._points[self.current] = (x, y)

    def totable(self, table: Table) -> Table:
        """Store the points in the appropriate columns of TABLE

        Offsets are added back, so the table holds image coordinates.
        The table is resized to the number of points: other columns
        are truncated or padded with None. Returns the table for
        convenience.
        """
        N = len(self._points)
        for col in table:
            values = list(table[col])[:N]
            table[col] = values + [None] * (N - len(values))
        offset = (self.interval.xoffset, self.interval.yoffset)
        for j, col in enumerate(self.columns()):
            table[col] = [float(self._points[i, j] + offset[j])
                          for i in range(N)]
        return table

    def __len__(self):
        return len(self._points)

    def __repr__(self):
        role = "target" if self.interval.istarget else "source"
        return (f"Landmarks[{self.transformation.value}, {role},"
                f" {len(self._points)} points]")
