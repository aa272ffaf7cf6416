# prepare.py - part of splinalign

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


import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Iterable, Mapping, Sequence
import numpy.typing
ArrayLike = numpy.typing.ArrayLike

from .image import Image, asimage
from .interval import pyramiddepth, Cancelable, Reporter
from .landmarks import Landmarks
from .mask import MaskPyramid
from .pyramid import ImagePyramid
from .transformation import TransformationType

log = logging.getLogger(__name__)


@dataclasses.dataclass
class Preparation:
    """Everything a registration optimizer needs to get started

    Fields:
        transformation: the transformation model
        depth: number of pyramid levels, including full resolution
        source, target: the image pyramids
        sourcemask, targetmask: the mask pyramids
        sourcelandmarks, targetlandmarks: the seed landmarks
    """
    transformation: TransformationType
    depth: int
    source: ImagePyramid
    target: ImagePyramid
    sourcemask: MaskPyramid
    targetmask: MaskPyramid
    sourcelandmarks: Landmarks
    targetlandmarks: Landmarks

    @property
    def complete(self) -> bool:
        """False if any of the pyramids was cut short by cancellation"""
        n = self.depth - 1
        return (len(self.source.pyramid) == n
                and len(self.target.pyramid) == n
                and len(self.sourcemask.pyramid) == n
                and len(self.targetmask.pyramid) == n)


def _select(image: Image, rect: Optional[ArrayLike]) -> Image:
    if rect is None:
        return image
    return image.roi(rect)


def _buildmask(image: Image, regions: Optional[Iterable], depth: int,
               cancel: Optional[Cancelable],
               progress: Optional[Reporter]) -> MaskPyramid:
    mask = MaskPyramid(image.width, image.height,
                       image.xoffset, image.yoffset,
                       depth, cancel, progress)
    return mask.setdata(regions).run()


def prepare(source: Optional[ArrayLike],
            target: Optional[ArrayLike],
            transformation: TransformationType | str = "Rigid body",
            sourceregions: Optional[Iterable] = None,
            targetregions: Optional[Iterable] = None,
            table: Optional[Mapping[str, Sequence[Optional[float]]]] = None,
            sourcerect: Optional[ArrayLike] = None,
            targetrect: Optional[ArrayLike] = None,
            cancel: Optional[Cancelable] = None,
            progress: Optional[Reporter] = None) -> Preparation:
    """Build image and mask pyramids for a pair of images

    Arguments:
        source, target: the images (anything acceptable to Image)
        transformation: a TransformationType or its display name
        sourceregions, targetregions: optional regions of interest
                                      (see MaskPyramid.setdata)
        table: optional landmark table to seed the points from
        sourcerect, targetrect: optional (x, y, w, h) selections to
                                restrict each image to
        cancel: optional cancellation token shared by all four builds
        progress: optional callback `report(current, total, message)`

    Returns:
        a Preparation

    The four pyramids are built concurrently on a thread pool; the
    landmarks are restored once all four are complete. Raises
    NoImageError if either image is missing or not two-dimensional.
    """
    transformation = TransformationType.coerce(transformation)
    source = _select(asimage(source), sourcerect)
    target = _select(asimage(target), targetrect)
    depth = pyramiddepth(source.width, source.height,
                         target.width, target.height)
    log.info(f"Preparing {transformation.value} registration of"
             f" {source.width}x{source.height} onto"
             f" {target.width}x{target.height}, depth {depth}")

    with ThreadPoolExecutor(max_workers=4) as executor:
        fsrc = executor.submit(
            lambda: ImagePyramid(source, transformation, False, depth,
                                 cancel, progress).run())
        ftgt = executor.submit(
            lambda: ImagePyramid(target, transformation, True, depth,
                                 cancel, progress).run())
        fsmask = executor.submit(_buildmask, source, sourceregions, depth,
                                 cancel, progress)
        ftmask = executor.submit(_buildmask, target, targetregions, depth,
                                 cancel, progress)
        srcpyr = fsrc.result()
        tgtpyr = ftgt.result()
        srcmask = fsmask.result()
        tgtmask = ftmask.result()

    prep = Preparation(transformation, depth,
                       srcpyr, tgtpyr, srcmask, tgtmask,
                       Landmarks(transformation, srcpyr.interval, table),
                       Landmarks(transformation, tgtpyr.interval, table))
    if not prep.complete:
        log.info("Preparation was canceled before completion")
    return prep
