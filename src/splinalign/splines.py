# splines.py - part of splinalign

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

"""B-spline primitives with mirror boundary conditions

The 1-D functions operate on float64 numpy arrays. All of them extend
the signal symmetrically about the half-sample points beyond either
end, i.e., (… c1 c0 | c0 c1 … cN-1 | cN-1 cN-2 …).

The 2-D functions apply the 1-D ones to every row and then to every
column of a (height, width) raster. Intermediate results are stored as
float32, the native raster type.

The recursive filtering follows

    Unser M, Aldroubi A, Eden M. 1993. B-spline signal processing:
    Part II - Efficient design and applications. IEEE Trans. Signal
    Process. 41(2), 834-848.

and the pyramid reduction uses the dual representation described in

    Thévenaz P, Ruttimann UE, Unser M. 1998. A pyramid approach to
    subpixel registration based on intensity. IEEE Trans. Image
    Process. 7(1), 27-41.
"""

import math
import numpy as np
from numba import jit
from typing import Tuple, Optional
import numpy.typing
ArrayLike = numpy.typing.ArrayLike


_POLES = {
    3: np.array([math.sqrt(3.0) - 2.0]),
    7: np.array([
        -0.5352804307964381655424037816816460718339231523426924148812,
        -0.122554615192326690515272264359357343605486549427295558490763,
        -0.0091486948096082769285930216516478534156925639545994482648003]),
}

_TAPS = {
    3: np.array([2.0 / 3.0, 1.0 / 6.0]),
    7: np.array([151.0 / 315.0, 397.0 / 1680.0, 1.0 / 42.0, 1.0 / 5040.0]),
}

_GRADIENT = np.array([0.0, 1.0 / 2.0])


def _poles(degree: int) -> np.ndarray:
    if degree not in _POLES:
        raise ValueError(f"Unsupported spline degree: {degree}")
    return _POLES[degree]


def _taps(degree: int) -> np.ndarray:
    if degree not in _TAPS:
        raise ValueError(f"Unsupported spline degree: {degree}")
    return _TAPS[degree]


@jit(nopython=True)
def initial_causal_coefficient(c, z, tolerance):
    """Initial value of the causal recursion for pole Z

    The mirrored geometric sum is truncated once the terms fall below
    TOLERANCE. If TOLERANCE is zero, all terms are included.
    """
    N = c.shape[0]
    z1 = z
    zn = z ** N
    total = (1.0 + z) * (c[0] + zn * c[N - 1])
    horizon = N
    if tolerance > 0.0:
        horizon = 2 + int(math.log(tolerance) / math.log(abs(z)))
        if horizon > N:
            horizon = N
    zn = zn * zn
    for n in range(1, horizon - 1):
        z1 = z1 * z
        zn = zn / z
        total = total + (z1 + zn) * c[n]
    return total / (1.0 - z ** (2 * N))


@jit(nopython=True)
def initial_anticausal_coefficient(c, z):
    """Initial value of the anticausal recursion for pole Z"""
    return z * c[c.shape[0] - 1] / (z - 1.0)


@jit(nopython=True)
def _interpolate(c, poles, tolerance):
    N = c.shape[0]
    if N == 1:
        return
    gain = 1.0
    for k in range(poles.shape[0]):
        gain *= (1.0 - poles[k]) * (1.0 - 1.0 / poles[k])
    for n in range(N):
        c[n] = c[n] * gain
    for k in range(poles.shape[0]):
        z = poles[k]
        c[0] = initial_causal_coefficient(c, z, tolerance)
        for n in range(1, N):
            c[n] = c[n] + z * c[n - 1]
        c[N - 1] = initial_anticausal_coefficient(c, z)
        for n in range(N - 2, -1, -1):
            c[n] = z * (c[n + 1] - c[n])


@jit(nopython=True)
def symmetric_fir_mirror(h, c, s):
    """Symmetric FIR filter with mirror boundaries

    Arguments:
        h: half of the kernel, starting at the center tap; must have
           length 2 or 4
        c: input sequence
        s: output sequence, same length as C

    Sequences that are shorter than twice the kernel support are
    handled by closed-form expressions that fold the mirrored
    samples back onto the available ones.
    """
    N = c.shape[0]
    if h.shape[0] == 2:
        if N >= 2:
            s[0] = h[0] * c[0] + h[1] * (c[0] + c[1])
            for i in range(1, N - 1):
                s[i] = h[0] * c[i] + h[1] * (c[i - 1] + c[i + 1])
            s[N - 1] = h[0] * c[N - 1] + h[1] * (c[N - 2] + c[N - 1])
        else:
            s[0] = (h[0] + 2.0 * h[1]) * c[0]
    elif h.shape[0] == 4:
        if N >= 6:
            s[0] = (h[0] * c[0] + h[1] * (c[0] + c[1])
                    + h[2] * (c[1] + c[2]) + h[3] * (c[2] + c[3]))
            s[1] = (h[0] * c[1] + h[1] * (c[0] + c[2])
                    + h[2] * (c[0] + c[3]) + h[3] * (c[1] + c[4]))
            s[2] = (h[0] * c[2] + h[1] * (c[1] + c[3])
                    + h[2] * (c[0] + c[4]) + h[3] * (c[0] + c[5]))
            for i in range(3, N - 3):
                s[i] = (h[0] * c[i] + h[1] * (c[i - 1] + c[i + 1])
                        + h[2] * (c[i - 2] + c[i + 2])
                        + h[3] * (c[i - 3] + c[i + 3]))
            s[N - 3] = (h[0] * c[N - 3] + h[1] * (c[N - 4] + c[N - 2])
                        + h[2] * (c[N - 5] + c[N - 1])
                        + h[3] * (c[N - 6] + c[N - 1]))
            s[N - 2] = (h[0] * c[N - 2] + h[1] * (c[N - 3] + c[N - 1])
                        + h[2] * (c[N - 4] + c[N - 1])
                        + h[3] * (c[N - 5] + c[N - 2]))
            s[N - 1] = (h[0] * c[N - 1] + h[1] * (c[N - 2] + c[N - 1])
                        + h[2] * (c[N - 3] + c[N - 2])
                        + h[3] * (c[N - 4] + c[N - 3]))
        elif N == 5:
            s[0] = (h[0] * c[0] + h[1] * (c[0] + c[1])
                    + h[2] * (c[1] + c[2]) + h[3] * (c[2] + c[3]))
            s[1] = (h[0] * c[1] + h[1] * (c[0] + c[2])
                    + h[2] * (c[0] + c[3]) + h[3] * (c[1] + c[4]))
            s[2] = (h[0] * c[2] + h[1] * (c[1] + c[3])
                    + (h[2] + h[3]) * (c[0] + c[4]))
            s[3] = (h[0] * c[3] + h[1] * (c[2] + c[4])
                    + h[2] * (c[1] + c[4]) + h[3] * (c[0] + c[3]))
            s[4] = (h[0] * c[4] + h[1] * (c[3] + c[4])
                    + h[2] * (c[2] + c[3]) + h[3] * (c[1] + c[2]))
        elif N == 4:
            s[0] = (h[0] * c[0] + h[1] * (c[0] + c[1])
                    + h[2] * (c[1] + c[2]) + h[3] * (c[2] + c[3]))
            s[1] = (h[0] * c[1] + h[1] * (c[0] + c[2])
                    + h[2] * (c[0] + c[3]) + h[3] * (c[1] + c[3]))
            s[2] = (h[0] * c[2] + h[1] * (c[1] + c[3])
                    + h[2] * (c[0] + c[3]) + h[3] * (c[0] + c[2]))
            s[3] = (h[0] * c[3] + h[1] * (c[2] + c[3])
                    + h[2] * (c[1] + c[2]) + h[3] * (c[0] + c[1]))
        elif N == 3:
            s[0] = (h[0] * c[0] + h[1] * (c[0] + c[1])
                    + h[2] * (c[1] + c[2]) + 2.0 * h[3] * c[2])
            s[1] = (h[0] * c[1] + (h[1] + h[2]) * (c[0] + c[2])
                    + 2.0 * h[3] * c[1])
            s[2] = (h[0] * c[2] + h[1] * (c[1] + c[2])
                    + h[2] * (c[0] + c[1]) + 2.0 * h[3] * c[0])
        elif N == 2:
            s[0] = ((h[0] + h[1] + h[3]) * c[0]
                    + (h[1] + 2.0 * h[2] + h[3]) * c[1])
            s[1] = ((h[0] + h[1] + h[3]) * c[1]
                    + (h[1] + 2.0 * h[2] + h[3]) * c[0])
        elif N == 1:
            s[0] = (h[0] + 2.0 * (h[1] + h[2] + h[3])) * c[0]


@jit(nopython=True)
def antisymmetric_fir_mirror(h, c, s):
    """Antisymmetric FIR filter with mirror boundaries

    Only the tap H[1] is used; H[0] is the (zero) center tap.
    """
    N = c.shape[0]
    if N >= 2:
        s[0] = h[1] * (c[1] - c[0])
        for i in range(1, N - 1):
            s[i] = h[1] * (c[i + 1] - c[i - 1])
        s[N - 1] = h[1] * (c[N - 1] - c[N - 2])
    else:
        s[0] = 0.0


@jit(nopython=True)
def _reduce(c, s):
    h0 = 6.0 / 16.0
    h1 = 4.0 / 16.0
    h2 = 1.0 / 16.0
    N = c.shape[0]
    M = s.shape[0]
    if M >= 2:
        s[0] = h0 * c[0] + h1 * (c[0] + c[1]) + h2 * (c[1] + c[2])
        i = 2
        for j in range(1, M - 1):
            s[j] = (h0 * c[i] + h1 * (c[i - 1] + c[i + 1])
                    + h2 * (c[i - 2] + c[i + 2]))
            i += 2
        if N == 2 * M:
            s[M - 1] = (h0 * c[N - 2] + h1 * (c[N - 3] + c[N - 1])
                        + h2 * (c[N - 4] + c[N - 1]))
        else:
            s[M - 1] = (h0 * c[N - 3] + h1 * (c[N - 4] + c[N - 2])
                        + h2 * (c[N - 5] + c[N - 1]))
    elif N == 3:
        s[0] = h0 * c[0] + h1 * (c[0] + c[1]) + h2 * (c[1] + c[2])
    elif N == 2:
        s[0] = h0 * c[0] + h1 * (c[0] + c[1]) + 2.0 * h2 * c[1]


def samplesToCoefficients(c: ArrayLike, degree: int = 3,
                          tolerance: float = 0.0) -> np.ndarray:
    """Convert cardinal samples to B-spline coefficients

    Arguments:
        c: sequence of samples; converted in place if it is a float64
           array
        degree: spline degree, 3 or 7
        tolerance: relative precision of the initial causal
                   coefficient; zero means exact

    Returns:
        the coefficients

    A sequence of length one is returned unchanged.
    """
    c = np.asarray(c, np.float64)
    _interpolate(c, _poles(degree), tolerance)
    return c


def coefficientsToSamples(c: ArrayLike, degree: int = 3) -> np.ndarray:
    """Evaluate a B-spline at the integers

    This is the inverse of `samplesToCoefficients`. Works in place if
    C is a float64 array.
    """
    c = np.asarray(c, np.float64)
    s = np.empty_like(c)
    symmetric_fir_mirror(_taps(degree), c, s)
    c[:] = s
    return c


def coefficientToGradient(c: ArrayLike) -> np.ndarray:
    """Derivative of a cubic B-spline at the integers

    Works in place if C is a float64 array.
    """
    c = np.asarray(c, np.float64)
    s = np.empty_like(c)
    antisymmetric_fir_mirror(_GRADIENT, c, s)
    c[:] = s
    return c


def reduceDual(c: ArrayLike, s: Optional[np.ndarray] = None) -> np.ndarray:
    """Decimate a dual representation by a factor of two

    Arguments:
        c: sequence of length N
        s: optional output array of length N // 2

    Returns:
        the reduced sequence

    The kernel is [1 4 6 4 1] / 16, evaluated at even positions of C.
    """
    c = np.asarray(c, np.float64)
    if s is None:
        s = np.zeros(c.shape[0] // 2)
    _reduce(c, s)
    return s


def samples_to_coefficients_2d(cardinal: np.ndarray, degree: int = 3) -> np.ndarray:
    """B-spline coefficients of an image"""
    cardinal = np.asarray(cardinal)
    poles = _poles(degree)
    H, W = cardinal.shape
    basic = np.empty((H, W), np.float32)
    for y in range(H):
        line = cardinal[y].astype(np.float64)
        _interpolate(line, poles, 0.0)
        basic[y] = line
    for x in range(W):
        line = basic[:, x].astype(np.float64)
        _interpolate(line, poles, 0.0)
        basic[:, x] = line
    return basic


def coefficients_to_samples_2d(basic: np.ndarray, degree: int = 3) -> np.ndarray:
    """Evaluate a 2D B-spline at the pixel positions"""
    basic = np.asarray(basic)
    h = _taps(degree)
    H, W = basic.shape
    cardinal = np.empty((H, W), np.float32)
    for y in range(H):
        line = basic[y].astype(np.float64)
        data = np.empty_like(line)
        symmetric_fir_mirror(h, line, data)
        cardinal[y] = data
    for x in range(W):
        line = cardinal[:, x].astype(np.float64)
        data = np.empty_like(line)
        symmetric_fir_mirror(h, line, data)
        cardinal[:, x] = data
    return cardinal


def cardinal_to_dual_2d(cardinal: np.ndarray, degree: int = 3) -> np.ndarray:
    """Dual representation of an image

    The image is interpolated at DEGREE and then sampled with the
    B-spline of degree 2·DEGREE + 1.
    """
    return coefficients_to_samples_2d(samples_to_coefficients_2d(cardinal, degree),
                                      2 * degree + 1)


def dual_to_cardinal_2d(dual: np.ndarray, degree: int = 3) -> np.ndarray:
    """Inverse of `cardinal_to_dual_2d`"""
    return coefficients_to_samples_2d(samples_to_coefficients_2d(dual, 2 * degree + 1),
                                      degree)


def reduce_dual_2d(full: np.ndarray) -> np.ndarray:
    """Halve both dimensions of a dual representation

    Rows are reduced first, then columns. Odd trailing pixels are
    absorbed by the boundary formulas of `reduceDual`.
    """
    full = np.asarray(full)
    H, W = full.shape
    W1 = W // 2
    H1 = H // 2
    demi = np.empty((H, W1), np.float32)
    for y in range(H):
        demi[y] = reduceDual(full[y].astype(np.float64))
    half = np.empty((H1, W1), np.float32)
    for x in range(W1):
        half[:, x] = reduceDual(demi[:, x].astype(np.float64))
    return half


def coefficient_to_xy_gradient_2d(basic: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Horizontal and vertical gradients of a cubic B-spline image

    Arguments:
        basic: B-spline coefficients

    Returns:
        xgradient, ygradient: gradients at the pixel positions

    The derivative is taken along one axis while the spline is merely
    evaluated along the other.
    """
    basic = np.asarray(basic)
    H, W = basic.shape
    xgradient = np.empty((H, W), np.float32)
    ygradient = np.empty((H, W), np.float32)
    for y in range(H):
        line = basic[y].astype(np.float64)
        data = line.copy()
        coefficientToGradient(line)
        coefficientsToSamples(data, 3)
        xgradient[y] = line
        ygradient[y] = data
    for x in range(W):
        line = xgradient[:, x].astype(np.float64)
        coefficientsToSamples(line, 3)
        xgradient[:, x] = line
        line = ygradient[:, x].astype(np.float64)
        coefficientToGradient(line)
        ygradient[:, x] = line
    return xgradient, ygradient


def image_to_xy_gradient_2d(image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Horizontal and vertical gradients of an image

    Each row (for the horizontal gradient) or column (for the vertical
    gradient) is interpolated by a cubic spline, which is then
    differentiated at the sample positions.
    """
    image = np.asarray(image)
    H, W = image.shape
    xgradient = np.empty((H, W), np.float32)
    ygradient = np.empty((H, W), np.float32)
    for y in range(H):
        line = image[y].astype(np.float64)
        samplesToCoefficients(line, 3)
        coefficientToGradient(line)
        xgradient[y] = line
    for x in range(W):
        line = image[:, x].astype(np.float64)
        samplesToCoefficients(line, 3)
        coefficientToGradient(line)
        ygradient[:, x] = line
    return xgradient, ygradient
