#!/usr/bin/env python

import numpy.testing as npt
import numpy as np
import pytest

from greedyroi.source_extraction.greedy import extraction


def rank1_patch(seed=0):
    np.random.seed(seed)
    a = np.random.rand(25)
    c = np.maximum(np.random.randn(200), 0)
    return a, c, np.outer(a, c)


def test_nonneg_footprint_exact():
    a, c, data = rank1_patch()
    npt.assert_allclose(extraction.nonneg_footprint(data, c), a)


def test_nonneg_footprint_is_clipped():
    a, c, data = rank1_patch(1)
    data[:5] *= -1
    ai = extraction.nonneg_footprint(data, c)
    npt.assert_array_equal(ai[:5], 0)
    npt.assert_allclose(ai[5:], a[5:])


def test_nonneg_footprint_zero_trace():
    _, _, data = rank1_patch(2)
    npt.assert_array_equal(extraction.nonneg_footprint(data, np.zeros(data.shape[1])), 0)


def test_rank1_extractor_keeps_trace():
    a, c, data = rank1_patch(3)
    ai, ci = extraction.Rank1Extractor().extract(data, 2 * c)
    npt.assert_array_equal(ci, 2 * c)
    npt.assert_allclose(ai, a / 2)


def test_finetune():
    a, c, data = rank1_patch(4)
    np.random.seed(5)
    noisy = data + 0.05 * np.random.randn(*data.shape)
    ci0 = c + 0.3 * np.random.rand(len(c))
    ai, ci = extraction.finetune(noisy, ci0, nIter=5)
    npt.assert_allclose(np.linalg.norm(ai), 1)
    assert np.all(ai >= 0)
    assert np.corrcoef(ai, a)[0, 1] > 0.99
    assert np.corrcoef(ci, c)[0, 1] > 0.99
    # lower tail of the trace is clipped
    assert ci.min() >= np.median(ci) - 2 * np.std(ci) - 1e-6


def test_finetune_negative_data():
    _, c, data = rank1_patch(6)
    ai, ci = extraction.finetune(-data, c, nIter=3)
    npt.assert_array_equal(ai, 0)


def test_finetune_extractor_matches_function():
    a, c, data = rank1_patch(7)
    ai, ci = extraction.FinetuneExtractor(n_iter=3).extract(data, c)
    ai2, ci2 = extraction.finetune(data, c, nIter=3)
    npt.assert_array_equal(ai, ai2)
    npt.assert_array_equal(ci, ci2)


def test_get_extractor():
    assert isinstance(extraction.get_extractor('rank1'), extraction.Rank1Extractor)
    ft = extraction.get_extractor('finetune', n_iter=2)
    assert isinstance(ft, extraction.FinetuneExtractor)
    assert ft.n_iter == 2
    with pytest.raises(ValueError):
        extraction.get_extractor('svd')
