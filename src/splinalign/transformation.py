# transformation.py - part of splinalign

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
from typing import List


class TransformationType(enum.Enum):
    """The transformation models supported for registration

    The value of each member is the display name that is used in
    configuration files and on the command line.

        TRANSLATION - One point; keeps area, angle, and orientation
        RIGID_BODY - One point for the translation plus a pair of points
                     that define the rotation angle
        SCALED_ROTATION - Two points; translation, rotation, and
                          isotropic scaling
        AFFINE - Three points; any map of parallel lines onto parallel
                 lines
        BILINEAR - Four points; u = p0 + p1 x + p2 y + p3 x y and
                   likewise for v
    """
    TRANSLATION = "Translation"
    RIGID_BODY = "Rigid body"
    SCALED_ROTATION = "Scaled rotation"
    AFFINE = "Affine"
    BILINEAR = "Bilinear"

    @property
    def displayname(self) -> str:
        return self.value

    @property
    def pointcount(self) -> int:
        """Number of landmarks needed to constrain the transformation"""
        return _POINTCOUNTS[self]

    @property
    def isbilinear(self) -> bool:
        """True for the model whose pyramids are built differently

        Translation, rigid body, scaled rotation, and affine
        transformations share one preprocessing pipeline; the bilinear
        transformation swaps the roles of source and target.
        """
        return self is TransformationType.BILINEAR

    @staticmethod
    def fromdisplayname(name: str) -> "TransformationType":
        """Look up a transformation by its display name

        Raises ValueError if the name is not one of `displaynames()`.
        """
        for t in TransformationType:
            if t.value == name:
                return t
        raise ValueError(f"Unknown transformation: {name!r}")

    @staticmethod
    def displaynames() -> List[str]:
        return [t.value for t in TransformationType]

    @staticmethod
    def coerce(t: "TransformationType | str") -> "TransformationType":
        """Accept either a TransformationType or its display name"""
        if isinstance(t, TransformationType):
            return t
        return TransformationType.fromdisplayname(t)


_POINTCOUNTS = {
    TransformationType.TRANSLATION: 1,
    TransformationType.RIGID_BODY: 3,
    TransformationType.SCALED_ROTATION: 2,
    TransformationType.AFFINE: 3,
    TransformationType.BILINEAR: 4,
}
