# __init__.py - part of splinalign

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

"""splinalign - Multiresolution spline pyramids for image registration

Acknowledgments
---------------

The recursive computation of B-spline coefficients and the reduction
of spline representations to coarser scales follow:

    Unser M, Aldroubi A, Eden M, 1993. B-spline signal processing:
    Part II - Efficient design and applications. IEEE Trans. Signal
    Process. 41, 834-848. https://doi.org/10.1109/78.193221.

    Unser M, Aldroubi A, Eden M, 1993. The L2-polynomial spline
    pyramid. IEEE Trans. Pattern Anal. Mach. Intell. 15, 364-379.
    https://doi.org/10.1109/34.206956.

The overall preparation of source and target images, masks, and
landmarks for landmark-seeded registration follows the
pyramid approach to registration described in:

    Thévenaz P, Ruttimann UE, Unser M, 1998. A pyramid approach to
    subpixel registration based on intensity. IEEE Trans. Image
    Process. 7, 27-41. https://doi.org/10.1109/83.650848.

"""

__version__ = "0.1.0"

from .image import Image, NoImageError
from .interval import Interval, MIN_SIZE, pyramiddepth
from .transformation import TransformationType
from .pyramid import ImagePyramid, PyramidKind, Level
from .mask import MaskPyramid, Rectangle, Polygon
from .landmarks import Landmarks, GOLDEN_RATIO, CROSS_HALFSIZE
from .prepare import prepare, Preparation
