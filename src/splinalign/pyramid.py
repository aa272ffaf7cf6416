# pyramid.py - part of splinalign

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


import enum
import dataclasses
import logging
import numpy as np
from typing import Optional, List
import numpy.typing
ArrayLike = numpy.typing.ArrayLike

from . import splines
from .image import Image, asimage
from .interval import Interval, Cancelable, Reporter
from .transformation import TransformationType

log = logging.getLogger(__name__)


class PyramidKind(enum.Enum):
    """Which arrays the levels of an image pyramid carry"""
    COEFFICIENT = "coefficient"
    IMAGE_AND_GRADIENT = "image and gradient"
    IMAGE = "image"


@dataclasses.dataclass
class Level:
    """One reduced-resolution level of an image pyramid

    Only the arrays that belong to the pyramid's kind are set:

        COEFFICIENT - coefficients (degree-7 B-spline)
        IMAGE_AND_GRADIENT - samples, xgradient, ygradient
        IMAGE - samples
    """
    width: int
    height: int
    samples: Optional[np.ndarray] = None
    xgradient: Optional[np.ndarray] = None
    ygradient: Optional[np.ndarray] = None
    coefficients: Optional[np.ndarray] = None


def pyramidkind(transformation: TransformationType, istarget: bool) -> PyramidKind:
    """The kind of pyramid needed for a given role and transformation

    For translation, rigid-body, scaled-rotation, and affine
    transformations, the source needs samples and gradients while the
    target only needs coefficients to resample from. For bilinear
    transformations, the source needs coefficients and the target
    needs samples.
    """
    if transformation.isbilinear:
        return PyramidKind.IMAGE if istarget else PyramidKind.COEFFICIENT
    return PyramidKind.COEFFICIENT if istarget else PyramidKind.IMAGE_AND_GRADIENT


class ImagePyramid:
    """Multiresolution spline representation of an image

    Arguments:
        image: the full-resolution image (anything acceptable to Image);
               its `xoffset` and `yoffset` are used if it has them
        transformation: a TransformationType or its display name
        istarget: whether this is the target (True) or source image
        depth: number of levels including full resolution; see
               `interval.pyramiddepth`
        cancel: optional cancellation token, polled once per level
        progress: optional callback `report(current, total, message)`

    Use the `run` method to perform the computations. For convenience,
    `run` returns self, so

        pyr = ImagePyramid(img, "Affine", False, 4).run()

    is the common idiom.

    After running, the full-resolution data is available in the
    `coefficient` and `image` properties and, for a source image under
    an affine-family transformation, in `xgradient` and `ygradient`.
    The reduced levels are in `pyramid`, a list of Level records ordered
    from finest to coarsest, so `pyramid.pop()` yields the coarsest
    level first. If building was canceled, `pyramid` holds fewer than
    `depth - 1` levels.
    """
    def __init__(self, image: ArrayLike,
                 transformation: TransformationType | str,
                 istarget: bool = False,
                 depth: int = 1,
                 cancel: Optional[Cancelable] = None,
                 progress: Optional[Reporter] = None):
        self.image = asimage(image)
        self.transformation = TransformationType.coerce(transformation)
        self.interval = Interval(self.image.width, self.image.height,
                                 self.image.xoffset, self.image.yoffset,
                                 depth, istarget, cancel, progress)
        self.kind = pyramidkind(self.transformation, istarget)
        self.coefficient: Optional[np.ndarray] = None
        self.xgradient: Optional[np.ndarray] = None
        self.ygradient: Optional[np.ndarray] = None
        self.pyramid: List[Level] = []

    @staticmethod
    def frombuffer(buffer: ArrayLike, width: int, height: int,
                   xoffset: int, yoffset: int,
                   transformation: TransformationType | str,
                   istarget: bool = False, depth: int = 1,
                   cancel: Optional[Cancelable] = None,
                   progress: Optional[Reporter] = None) -> "ImagePyramid":
        """Construct from a row-major float buffer with explicit geometry"""
        img = Image.frombuffer(buffer, width, height, xoffset, yoffset)
        return ImagePyramid(img, transformation, istarget, depth,
                            cancel, progress)

    @property
    def width(self) -> int:
        return self.interval.width

    @property
    def height(self) -> int:
        return self.interval.height

    @property
    def depth(self) -> int:
        return self.interval.depth

    @property
    def istarget(self) -> bool:
        return self.interval.istarget

    def run(self) -> "ImagePyramid":
        """Compute coefficients, gradients, and the pyramid

        The full-size B-spline coefficients are always computed, even
        if the cancellation token is already set, because everything
        else depends on them.
        """
        iv = self.interval
        role = "target" if iv.istarget else "source"
        log.debug(f"Building {self.kind.value} pyramid for {role}"
                  f" {iv.width}x{iv.height}, depth {iv.depth}")
        iv.addworkload("Interpolating", 1)
        self.coefficient = splines.samples_to_coefficients_2d(self.image, 3)
        iv.workloaddone()
        if self.kind is PyramidKind.IMAGE_AND_GRADIENT:
            iv.addworkload("Computing gradient", 1)
            self.xgradient, self.ygradient = splines.image_to_xy_gradient_2d(self.image)
            iv.workloaddone()
            self._buildimageandgradientpyramid()
        elif self.kind is PyramidKind.COEFFICIENT:
            self._buildcoefficientpyramid()
        else:
            self._buildimagepyramid()
        if len(self.pyramid) < iv.depth - 1:
            log.info(f"Canceled {role} pyramid after"
                     f" {len(self.pyramid)} of {iv.depth - 1} levels")
        return self

    def _levels(self, message: str):
        # Yields the level numbers that remain to be built, until canceled
        iv = self.interval
        iv.addworkload(message, iv.depth - 1)
        for depth in range(1, iv.depth):
            if iv.iscanceled():
                return
            yield depth
            iv.workloadstep()
        iv.workloaddone()

    def _buildcoefficientpyramid(self) -> None:
        if self.depth > 1:
            fulldual = splines.coefficients_to_samples_2d(self.coefficient, 7)
        for _ in self._levels("Reducing coefficients"):
            halfdual = splines.reduce_dual_2d(fulldual)
            H, W = halfdual.shape
            coefficients = splines.samples_to_coefficients_2d(halfdual, 7)
            self.pyramid.append(Level(W, H, coefficients=coefficients))
            fulldual = halfdual

    def _buildimageandgradientpyramid(self) -> None:
        if self.depth > 1:
            fulldual = splines.cardinal_to_dual_2d(self.image, 3)
        for _ in self._levels("Reducing image and gradient"):
            halfdual = splines.reduce_dual_2d(fulldual)
            H, W = halfdual.shape
            coefficients = splines.samples_to_coefficients_2d(halfdual, 7)
            xgradient, ygradient = splines.coefficient_to_xy_gradient_2d(coefficients)
            samples = splines.coefficients_to_samples_2d(coefficients, 3)
            self.pyramid.append(Level(W, H, samples=samples,
                                      xgradient=xgradient,
                                      ygradient=ygradient))
            fulldual = halfdual

    def _buildimagepyramid(self) -> None:
        if self.depth > 1:
            fulldual = splines.cardinal_to_dual_2d(self.image, 3)
        for _ in self._levels("Reducing image"):
            halfdual = splines.reduce_dual_2d(fulldual)
            H, W = halfdual.shape
            samples = splines.dual_to_cardinal_2d(halfdual, 3)
            self.pyramid.append(Level(W, H, samples=samples))
            fulldual = halfdual

    def __repr__(self):
        role = "target" if self.istarget else "source"
        return (f"ImagePyramid[{self.width}x{self.height}, {role},"
                f" {self.transformation.value}, {self.kind.value},"
                f" {len(self.pyramid)}/{self.depth - 1} levels]")
