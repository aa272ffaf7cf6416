# image.py - part of splinalign

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


import numpy as np
import cv2
from typing import Optional
import numpy.typing
ArrayLike = numpy.typing.ArrayLike


class NoImageError(ValueError):
    """Raised when there is no usable raster to pull data from"""
    pass


class Image(np.ndarray):
    """A representation of an image as a 2D array

    Images can be constructed in several ways:

    * from numpy arrays using

          img = Image(array)

    * loaded from an image file using

          img = Image.load(filename)

      or simply

          img = Image(filename)

    * from a row-major buffer using

          img = Image.frombuffer(buffer, width, height)

    Our native data format is np.float32. For convenience, np.uint8 or
    np.uint16 is also accepted. The intensity of such images is scaled
    by a factor of 255 or 65535, respectively.

    We do not keep color information. If YxXxC images are provided, the
    color channel is averaged away with equal weights for each channel.

    An Image remembers where its top-left pixel lies in the image it
    was cut from, in its `xoffset` and `yoffset` attributes. These are
    zero for freshly loaded images.

    An Image is just a numpy array with the following additional methods:

        roi - Extract a rectangular selection, keeping track of offsets
        raster - The pixels as a flat row-major float32 array
    """

    xoffset = 0
    yoffset = 0

    @staticmethod
    def load(path: str) -> "Image":
        data = cv2.imread(path, cv2.IMREAD_ANYDEPTH + cv2.IMREAD_GRAYSCALE)
        if data is None:
            raise FileNotFoundError(path)
        return Image(data)

    @staticmethod
    def frombuffer(buffer: ArrayLike, width: int, height: int,
                   xoffset: int = 0, yoffset: int = 0) -> "Image":
        """Construct an image from a row-major raster

        Pixel (x, y) is taken from index x + width*y of BUFFER.
        """
        data = np.asarray(buffer, np.float32)
        if data.size != width * height:
            raise ValueError(f"Buffer of {data.size} pixels does not match"
                             f" {width}x{height}")
        img = Image(data.reshape(height, width))
        img.xoffset = int(xoffset)
        img.yoffset = int(yoffset)
        return img

    def __new__(cls, data: ArrayLike):
        if type(data)==str:
            fn = data
            data = cv2.imread(fn,
                              cv2.IMREAD_ANYDEPTH + cv2.IMREAD_GRAYSCALE)
            if data is None:
                raise FileNotFoundError(fn)
        obj = np.asarray(data).view(cls)
        if obj.dtype == np.uint8:
            scl = 255
        elif obj.dtype == np.uint16:
            scl = 65535
        elif obj.dtype == np.uint32:
            scl = 2**32 - 1
        else:
            scl = 1
        if len(obj.shape) == 3:
            obj = obj.mean(-1).astype(np.float32)
        if len(obj.shape) != 2:
            raise ValueError("Data must be two-dimensional")

        if obj.dtype != np.float32:
            obj = obj.astype(np.float32)
        if scl != 1:
            obj /= scl
        return obj

    def __array_finalize__(self, obj):
        if obj is None:
            return
        self.xoffset = getattr(obj, "xoffset", 0)
        self.yoffset = getattr(obj, "yoffset", 0)

    @property
    def width(self) -> int:
        return self.shape[1]

    @property
    def height(self) -> int:
        return self.shape[0]

    def roi(self, rect: ArrayLike) -> "Image":
        '''ROI - Extract rectangular window from an image
        win = img.ROI((x0,y0,w,h)) extracts a rectangular window
        from an image.
        X0, Y0, W, and H are in the coordinates of the image, i.e., they
        already include the image's own offsets. They need not be integers:
        the window comprises all pixels whose coordinates lie in the closed
        rectangle. The window must overlap the image.
        The result remembers its position in its XOFFSET and YOFFSET.'''
        x0, y0, w, h = rect
        xmin = max(int(np.ceil(x0)) - self.xoffset, 0)
        ymin = max(int(np.ceil(y0)) - self.yoffset, 0)
        xmax = min(int(np.floor(x0 + w)) - self.xoffset, self.width - 1)
        ymax = min(int(np.floor(y0 + h)) - self.yoffset, self.height - 1)
        if xmax < xmin or ymax < ymin:
            raise ValueError(f"Selection {tuple(rect)} does not overlap image")
        win = Image(np.ascontiguousarray(self[ymin:ymax+1, xmin:xmax+1]))
        win.xoffset = self.xoffset + xmin
        win.yoffset = self.yoffset + ymin
        return win

    def raster(self) -> np.ndarray:
        """RASTER - The pixels as a row-major array
        img.RASTER() returns a flat float32 array in which pixel (x, y)
        lives at index x + width*y.
        """
        return np.ascontiguousarray(self.view(np.ndarray)).ravel()

    def __repr__(self):
        if len(self.shape)==2:
            return (f"Image[{self.width}x{self.height}"
                    f" @ ({self.xoffset},{self.yoffset})"
                    f" min={self.min():.3f} max={self.max():.3f}"
                    f" mean={self.mean():.3f}]")
        elif len(self.shape)==0:
            return self.view(np.ndarray).flatten()[0].__repr__()
        else:
            return self.view(np.ndarray).__repr__()

    def __str__(self):
        return self.__repr__()


def asimage(data: Optional[ArrayLike]) -> Image:
    """Convert DATA to an Image, or fail with NoImageError

    None, or anything that is not a 2D raster (after averaging away
    color), is rejected.
    """
    if data is None:
        raise NoImageError("There is no active image")
    if isinstance(data, Image):
        return data
    try:
        return Image(data)
    except ValueError as e:
        raise NoImageError(str(e)) from e
