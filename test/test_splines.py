"""
Unit tests for the spline filters.
"""

import pytest
import numpy as np
from scipy import ndimage

from splinalign import splines


def mirrored(c, k):
    """Pad C by K samples on each side with half-sample symmetry."""
    return np.pad(np.asarray(c, float), k, mode="symmetric")


class TestSamplesToCoefficients:
    """Test the recursive coefficient filter."""

    @pytest.mark.parametrize("N", [6, 17, 64])
    def test_matches_scipy_cubic(self, rng, N):
        """Cubic coefficients agree with scipy's reflect-mode prefilter."""
        x = rng.random(N)
        expected = ndimage.spline_filter1d(x, order=3, mode="reflect",
                                           output=np.float64)
        c = splines.samplesToCoefficients(x.copy(), 3)
        np.testing.assert_allclose(c, expected, rtol=1e-6, atol=1e-9)

    def test_in_place(self, rng):
        """A float64 array is converted in place."""
        x = rng.random(10)
        y = splines.samplesToCoefficients(x, 3)
        assert y is x

    def test_length_one_is_noop(self):
        c = splines.samplesToCoefficients(np.array([3.5]), 7)
        assert c[0] == 3.5

    @pytest.mark.parametrize("degree", [3, 7])
    def test_constant(self, degree):
        """Coefficients of a constant signal are that constant."""
        c = splines.samplesToCoefficients(np.full(12, 2.5), degree)
        np.testing.assert_allclose(c, 2.5, rtol=1e-12)

    @pytest.mark.parametrize("degree", [3, 7])
    @pytest.mark.parametrize("N", [6, 7, 11, 32])
    def test_roundtrip(self, rng, degree, N):
        """Evaluating the spline at the integers restores the samples."""
        x = rng.random(N)
        c = splines.samplesToCoefficients(x.copy(), degree)
        s = splines.coefficientsToSamples(c, degree)
        np.testing.assert_allclose(s, x, atol=1e-10)

    def test_tolerance_close_to_exact(self, rng):
        """A truncated causal initialization is nearly exact."""
        x = rng.random(100)
        exact = splines.samplesToCoefficients(x.copy(), 3, 0.0)
        approx = splines.samplesToCoefficients(x.copy(), 3, 1e-9)
        np.testing.assert_allclose(approx, exact, atol=1e-7)

    def test_unsupported_degree(self):
        with pytest.raises(ValueError):
            splines.samplesToCoefficients(np.zeros(5), 5)


class TestInitialCoefficients:
    """Test the seeds of the recursions."""

    def test_anticausal(self):
        z = np.sqrt(3) - 2
        c = np.array([1.0, 2.0, 4.0])
        assert splines.initial_anticausal_coefficient(c, z) == pytest.approx(
            z * 4.0 / (z - 1.0))

    def test_causal_constant(self):
        """For a constant signal, the causal seed is c / (1 - z)."""
        z = np.sqrt(3) - 2
        c = np.ones(20)
        assert splines.initial_causal_coefficient(c, z, 0.0) == pytest.approx(
            1.0 / (1.0 - z))


class TestSymmetricFir:
    """Test the symmetric FIR filters, including the short-length cases."""

    @pytest.mark.parametrize("N", range(1, 13))
    def test_four_taps(self, rng, N):
        h = np.array([151 / 315, 397 / 1680, 1 / 42, 1 / 5040])
        c = rng.random(N)
        s = np.empty(N)
        splines.symmetric_fir_mirror(h, c, s)
        p = mirrored(c, 3)
        kernel = np.concatenate([h[::-1], h[1:]])
        expected = np.convolve(p, kernel, mode="valid")
        np.testing.assert_allclose(s, expected, atol=1e-12)

    @pytest.mark.parametrize("N", range(1, 9))
    def test_two_taps(self, rng, N):
        h = np.array([2 / 3, 1 / 6])
        c = rng.random(N)
        s = np.empty(N)
        splines.symmetric_fir_mirror(h, c, s)
        p = mirrored(c, 1)
        expected = h[0] * p[1:-1] + h[1] * (p[:-2] + p[2:])
        np.testing.assert_allclose(s, expected, atol=1e-12)

    def test_unit_gain(self):
        """Both kernels preserve constants."""
        for degree in (3, 7):
            for N in (1, 2, 3, 5, 9):
                s = splines.coefficientsToSamples(np.ones(N), degree)
                np.testing.assert_allclose(s, 1.0, atol=1e-12)


class TestGradient:
    """Test the antisymmetric FIR filter."""

    def test_edges(self):
        c = np.array([1.0, 3.0, 7.0, 8.0])
        g = splines.coefficientToGradient(c)
        np.testing.assert_allclose(g, [1.0, 3.0, 2.5, 0.5])

    def test_length_one(self):
        g = splines.coefficientToGradient(np.array([5.0]))
        assert g[0] == 0.0

    def test_ramp_interior(self):
        """The derivative of a sampled ramp is one away from the edges."""
        x = np.arange(40, dtype=float)
        c = splines.samplesToCoefficients(x, 3)
        g = splines.coefficientToGradient(c)
        np.testing.assert_allclose(g[8:-8], 1.0, atol=1e-3)


class TestReduceDual:
    """Test the half-band decimation."""

    @pytest.mark.parametrize("N", range(2, 12))
    def test_constant(self, N):
        s = splines.reduceDual(np.full(N, 3.0))
        assert len(s) == N // 2
        np.testing.assert_allclose(s, 3.0, rtol=1e-12)

    @pytest.mark.parametrize("N", [4, 5, 10, 11, 30])
    def test_matches_mirrored_convolution(self, rng, N):
        c = rng.random(N)
        s = splines.reduceDual(c)
        p = mirrored(c, 2)
        kernel = np.array([1, 4, 6, 4, 1]) / 16
        expected = np.convolve(p, kernel, mode="valid")[0:2 * (N // 2):2]
        np.testing.assert_allclose(s, expected, atol=1e-12)

    def test_output_buffer(self, rng):
        c = rng.random(9)
        out = np.zeros(4)
        s = splines.reduceDual(c, out)
        assert s is out


class Test2D:
    """Test the separable two-dimensional operations."""

    def test_coefficients_match_scipy(self, random_image_100x80):
        img = random_image_100x80
        expected = ndimage.spline_filter(img.astype(np.float64), order=3,
                                         mode="reflect", output=np.float64)
        c = splines.samples_to_coefficients_2d(img, 3)
        assert c.dtype == np.float32
        assert c.shape == img.shape
        np.testing.assert_allclose(c, expected, rtol=1e-4, atol=1e-5)

    @pytest.mark.parametrize("degree", [3, 7])
    def test_roundtrip(self, smooth_image_64x48, degree):
        img = smooth_image_64x48
        c = splines.samples_to_coefficients_2d(img, degree)
        s = splines.coefficients_to_samples_2d(c, degree)
        np.testing.assert_allclose(s, img, atol=1e-4)

    def test_dual_roundtrip(self, smooth_image_64x48):
        img = smooth_image_64x48
        dual = splines.cardinal_to_dual_2d(img, 3)
        back = splines.dual_to_cardinal_2d(dual, 3)
        np.testing.assert_allclose(back, img, atol=1e-4)

    def test_reduce_shape(self, random_image_100x80):
        half = splines.reduce_dual_2d(random_image_100x80[:79, :99])
        assert half.shape == (39, 49)
        assert half.dtype == np.float32

    def test_reduce_constant(self):
        half = splines.reduce_dual_2d(np.full((13, 20), 0.75, np.float32))
        np.testing.assert_allclose(half, 0.75, atol=1e-6)

    def test_gradients_agree(self, smooth_image_64x48):
        """Gradients from coefficients equal gradients from samples."""
        img = smooth_image_64x48
        gx1, gy1 = splines.image_to_xy_gradient_2d(img)
        gx2, gy2 = splines.coefficient_to_xy_gradient_2d(
            splines.samples_to_coefficients_2d(img, 3))
        np.testing.assert_allclose(gx2, gx1, atol=1e-4)
        np.testing.assert_allclose(gy2, gy1, atol=1e-4)

    def test_gradient_directions(self):
        """A pattern that varies only along x has no y gradient."""
        x = np.arange(30, dtype=np.float32)
        img = np.tile(np.sin(x / 4), (20, 1)).astype(np.float32)
        gx, gy = splines.image_to_xy_gradient_2d(img)
        np.testing.assert_allclose(gy, 0.0, atol=1e-6)
        row = splines.coefficientToGradient(
            splines.samplesToCoefficients(img[0].astype(np.float64), 3))
        np.testing.assert_allclose(gx[7], row, atol=1e-5)
