# mask.py - part of splinalign

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


import logging
import numpy as np
import cv2
from numba import jit
from typing import Optional, List, Iterable, Tuple
import numpy.typing
ArrayLike = numpy.typing.ArrayLike

from .interval import Interval, Cancelable, Reporter

log = logging.getLogger(__name__)


class Rectangle:
    """Axis-aligned rectangular region of interest

    Arguments:
        x, y: top-left corner in image coordinates
        width, height: extent of the rectangle

    A pixel at (x', y') belongs to the region if x ≤ x' < x + width
    and y ≤ y' < y + height, so an integer rectangle covers exactly
    width × height pixels. (Polygons, in contrast, include their
    boundary.)
    """
    def __init__(self, x: float, y: float, width: float, height: float):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def contains(self, x: float, y: float) -> bool:
        return (self.x <= x < self.x + self.width
                and self.y <= y < self.y + self.height)

    def interior(self, xoffset: int, yoffset: int,
                 width: int, height: int) -> Iterable[Tuple[int, int]]:
        """Pixels of the region that lie within the given raster"""
        x0 = max(int(np.ceil(self.x)), xoffset)
        y0 = max(int(np.ceil(self.y)), yoffset)
        x1 = min(int(np.ceil(self.x + self.width)) - 1, xoffset + width - 1)
        y1 = min(int(np.ceil(self.y + self.height)) - 1, yoffset + height - 1)
        for y in range(y0, y1 + 1):
            for x in range(x0, x1 + 1):
                yield x, y

    def __repr__(self):
        return f"Rectangle[{self.x}, {self.y}, {self.width}, {self.height}]"


class Polygon:
    """Polygonal region of interest

    Arguments:
        points: N×2 array of (x, y) vertices in image coordinates
    """
    def __init__(self, points: ArrayLike):
        self.points = np.asarray(points, np.float32).reshape(-1, 2)

    def contains(self, x: float, y: float) -> bool:
        return cv2.pointPolygonTest(self.points, (float(x), float(y)), False) >= 0

    def interior(self, xoffset: int, yoffset: int,
                 width: int, height: int) -> Iterable[Tuple[int, int]]:
        """Pixels of the region that lie within the given raster"""
        canvas = np.zeros((height, width), np.uint8)
        pts = np.round(self.points - [xoffset, yoffset]).astype(np.int32)
        cv2.fillPoly(canvas, [pts], 1)
        ys, xs = np.nonzero(canvas)
        return zip((xs + xoffset).tolist(), (ys + yoffset).tolist())

    def __repr__(self):
        return f"Polygon[{len(self.points)} vertices]"


@jit(nopython=True)
def half_mask(full):
    """Reduce a mask by a factor of two in both dimensions

    Each output cell accumulates the absolute values of the 2×2 block
    of input cells it covers. If the input width (height) is odd, the
    last input column (row) is folded into the last output column
    (row). The result therefore encodes how much of each coarse cell
    is covered, not an interpolated mask.
    """
    H, W = full.shape
    H1 = H // 2
    W1 = W // 2
    half = np.zeros((H1, W1), np.float32)
    if H1 == 0 or W1 == 0:
        return half
    for y in range(H):
        j = y // 2
        if j >= H1:
            j = H1 - 1
        for x in range(W):
            i = x // 2
            if i >= W1:
                i = W1 - 1
            half[j, i] += abs(full[y, x])
    return half


class MaskPyramid:
    """Multiresolution weighting mask built from regions of interest

    Arguments:
        width, height: size of the full-resolution mask
        xoffset, yoffset: image coordinates of the top-left pixel
        depth: number of levels including full resolution
        cancel: optional cancellation token, polled once per level
        progress: optional callback `report(current, total, message)`

    Use `setdata` (or `clearmask`) to fill the full-resolution mask,
    then `run` to build the pyramid. For convenience, both return self.

    The full-resolution mask is in `mask`; reduced levels are in
    `pyramid`, a list ordered from finest to coarsest.
    """
    def __init__(self, width: int, height: int,
                 xoffset: int = 0, yoffset: int = 0,
                 depth: int = 1,
                 cancel: Optional[Cancelable] = None,
                 progress: Optional[Reporter] = None):
        self.interval = Interval(width, height, xoffset, yoffset,
                                 depth, False, cancel, progress)
        self.mask = np.zeros((height, width), np.float32)
        self.pyramid: List[np.ndarray] = []

    @property
    def width(self) -> int:
        return self.interval.width

    @property
    def height(self) -> int:
        return self.interval.height

    @property
    def depth(self) -> int:
        return self.interval.depth

    def clearmask(self) -> "MaskPyramid":
        """Set every pixel of the full-size mask to one"""
        iv = self.interval
        iv.addworkload("Clearing mask", 1)
        self.mask = np.ones((iv.height, iv.width), np.float32)
        iv.workloaddone()
        return self

    def setdata(self, regions: Optional[Iterable] = None) -> "MaskPyramid":
        """Rasterize regions of interest into the full-size mask

        Arguments:
            regions: collection of regions in image coordinates

        Each region must either have an `interior(xoffset, yoffset,
        width, height)` method that enumerates the (x, y) pixels it
        covers, or a `contains(x, y)` method. The mask is the union of
        all regions. Without any regions, the whole mask is set to one.
        """
        regions = list(regions) if regions is not None else []
        if not regions:
            return self.clearmask()
        iv = self.interval
        self.mask = np.zeros((iv.height, iv.width), np.float32)
        iv.addworkload("Computing mask", len(regions))
        for roi in regions:
            if hasattr(roi, "interior"):
                for x, y in roi.interior(iv.xoffset, iv.yoffset,
                                         iv.width, iv.height):
                    self.mask[y - iv.yoffset, x - iv.xoffset] = 1.0
            else:
                for y in range(iv.height):
                    for x in range(iv.width):
                        if roi.contains(x + iv.xoffset, y + iv.yoffset):
                            self.mask[y, x] = 1.0
            iv.workloadstep()
        iv.workloaddone()
        log.debug(f"Mask covers {int(self.mask.sum())} of"
                  f" {self.mask.size} pixels")
        return self

    def run(self) -> "MaskPyramid":
        """Build the mask pyramid, stopping early if canceled"""
        iv = self.interval
        iv.addworkload("Reducing mask", iv.depth - 1)
        full = self.mask
        for _ in range(1, iv.depth):
            if iv.iscanceled():
                log.info(f"Canceled mask pyramid after"
                         f" {len(self.pyramid)} of {iv.depth - 1} levels")
                return self
            half = half_mask(full)
            self.pyramid.append(half)
            full = half
            iv.workloadstep()
        iv.workloaddone()
        return self

    def __repr__(self):
        return (f"MaskPyramid[{self.width}x{self.height},"
                f" {len(self.pyramid)}/{self.depth - 1} levels]")
