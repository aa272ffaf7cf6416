# interval.py - part of splinalign

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


from typing import Optional, Callable, Protocol

MIN_SIZE = 12
"""Minimal linear dimension of an image in the multiresolution pyramid"""

Reporter = Callable[[int, int, str], None]


class Cancelable(Protocol):
    """Anything with an `is_set` method, e.g., a `threading.Event`"""
    def is_set(self) -> bool: ...


def pyramiddepth(sw: int, sh: int, tw: int, th: int) -> int:
    """Number of resolution levels available for a pair of images

    Arguments:
        sw, sh: width and height of the source image
        tw, th: width and height of the target image

    Returns:
        the pyramid depth, which is at least one

    A depth of one means that only the full-size level exists. Each
    further level is available if all four dimensions are still at
    least twice `MIN_SIZE` before halving.
    """
    depth = 1
    while (2 * MIN_SIZE <= sw and 2 * MIN_SIZE <= sh
           and 2 * MIN_SIZE <= tw and 2 * MIN_SIZE <= th):
        sw //= 2
        sh //= 2
        tw //= 2
        th //= 2
        depth += 1
    return depth


class Interval:
    """Geometry and run state shared by image and mask pyramids

    Arguments:
        width, height: size of the full-resolution raster
        xoffset, yoffset: position of the raster's top-left pixel in
                          the coordinates of the full image
        depth: number of pyramid levels, including full resolution
        istarget: whether this is the target (True) or source image
        cancel: optional token; building stops once `cancel.is_set()`
        progress: optional callback `report(current, total, message)`

    The cancellation token and progress callback belong to the caller.
    An Interval only ever reads the former and calls the latter.
    """
    def __init__(self, width: int, height: int,
                 xoffset: int = 0, yoffset: int = 0,
                 depth: int = 1, istarget: bool = False,
                 cancel: Optional[Cancelable] = None,
                 progress: Optional[Reporter] = None):
        if depth < 1:
            raise ValueError("Pyramid depth must be at least one")
        self.width = int(width)
        self.height = int(height)
        self.xoffset = int(xoffset)
        self.yoffset = int(yoffset)
        self.depth = int(depth)
        self.istarget = bool(istarget)
        self.cancel = cancel
        self.progress = progress
        self._workload = 0
        self._done = 0
        self._message = ""

    def iscanceled(self) -> bool:
        if self.cancel is None:
            return False
        return self.cancel.is_set()

    def clipx(self, x: float) -> float:
        """Clip a horizontal coordinate to the extent of the interval"""
        return min(max(x, self.xoffset), self.xoffset + self.width)

    def clipy(self, y: float) -> float:
        """Clip a vertical coordinate to the extent of the interval"""
        return min(max(y, self.yoffset), self.yoffset + self.height)

    def addworkload(self, message: str, workload: int) -> None:
        self._workload = workload
        self._done = 0
        self._message = message
        if self.progress is not None:
            self.progress(0, workload, message)

    def workloadstep(self) -> None:
        self._done += 1
        if self.progress is not None:
            self.progress(self._done, self._workload, self._message)

    def workloaddone(self) -> None:
        if self.progress is not None:
            self.progress(self._workload, self._workload, self._message)

    def __repr__(self):
        role = "target" if self.istarget else "source"
        return (f"Interval[{self.width}x{self.height}"
                f" @ ({self.xoffset},{self.yoffset}),"
                f" depth={self.depth}, {role}]")
