#!/usr/bin/env python

import numpy.testing as npt
import numpy as np
import pytest

from greedyroi.summary_images import (correlation_image, neighbor_mask, peak_correlation_image,
                                      subsample_frames)


def test_neighbor_masks():
    eight = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]])
    npt.assert_array_equal(neighbor_mask(), eight)
    npt.assert_array_equal(neighbor_mask(8), eight)
    npt.assert_array_equal(neighbor_mask([1, 2]), eight)
    npt.assert_array_equal(neighbor_mask(4), [[0, 1, 0], [1, 0, 1], [0, 1, 0]])

    ring = neighbor_mask([3, 4])
    assert ring.shape == (7, 7)
    assert ring[3, 3] == 0
    assert ring[3, 6] == 1 and ring[0, 3] == 1 and ring[1, 0] == 1
    assert ring[3, 4] == 0 and ring[0, 0] == 0 and ring[1, 1] == 0

    with pytest.raises(ValueError):
        neighbor_mask(6)


def test_correlation_image_is_deterministic():
    np.random.seed(0)
    Y = np.random.randn(12 * 15, 100)
    Cn1 = correlation_image(Y, [1, 2], 12, 15)
    Cn2 = correlation_image(Y, [1, 2], 12, 15)
    npt.assert_array_equal(Cn1, Cn2)
    assert Cn1.shape == (12 * 15,)


def test_correlation_image_identical_traces():
    np.random.seed(1)
    trace = np.random.randn(50)
    Y = np.tile(trace, (8 * 9, 1)) * np.arange(1, 8 * 9 + 1)[:, np.newaxis]
    # border pixels only average over their valid neighbours
    npt.assert_allclose(correlation_image(Y, [1, 2], 8, 9), 1, rtol=1e-4)
    npt.assert_allclose(correlation_image(Y, 4, 8, 9), 1, rtol=1e-4)
    npt.assert_allclose(correlation_image(Y, [3, 4], 8, 9), 1, rtol=1e-4)


def test_correlation_image_noise_and_constant_pixels():
    np.random.seed(2)
    Y = np.random.randn(20 * 20, 500)
    Y[:20] = 3.
    Cn = correlation_image(Y, [1, 2], 20, 20)
    assert np.all(np.isfinite(Cn))
    assert np.abs(Cn[20:]).mean() < 0.1
    img = Cn.reshape((20, 20), order='F')
    npt.assert_array_equal(img[:, 0], 0)


def test_correlation_image_movie_input():
    np.random.seed(3)
    Y = np.random.randn(10, 7, 40)
    npt.assert_allclose(correlation_image(Y, [1, 2]),
                        correlation_image(Y.reshape((-1, 40), order='F'), [1, 2], 10, 7))
    with pytest.raises(ValueError):
        correlation_image(Y.reshape((-1, 40)), [1, 2], 10, 8)


def test_correlation_image_single_pixel():
    Cn = correlation_image(np.zeros((1, 10)), [5, 6], 1, 1)
    npt.assert_array_equal(Cn, [0])


def test_peak_correlation_image():
    np.random.seed(4)
    Y = np.random.randn(16 * 16, 300)
    ind_frame = subsample_frames(300)
    Cn, C1, Cb = peak_correlation_image(Y, 16, 16, 5, ind_frame)
    npt.assert_allclose(Cn, C1 - Cb)
    npt.assert_allclose(C1, correlation_image(Y, [1, 2], 16, 16))
    npt.assert_allclose(Cb, correlation_image(Y[:, ind_frame[::3]], [5, 6], 16, 16))


def test_subsample_frames():
    npt.assert_array_equal(subsample_frames(10), np.arange(10))
    ind = subsample_frames(5000)
    assert len(ind) == 1000
    assert ind[0] == 0 and ind[-1] == 4999
    assert np.all(np.diff(ind) > 0)
    npt.assert_array_equal(subsample_frames(1), [0])
