#!/usr/bin/env python
# -*- coding: utf-8 -*-

""" Rank-1 factorization of a small patch of data

Given a patch (pixels x time) that contains a single neuron and an initial
estimate of its trace, compute a non-negative spatial footprint ai and a
temporal trace ci such that data ~ ai * ci.

Two strategies share the interface extract(data, ci) -> (ai, ci):

    Rank1Extractor      closed-form non-negative least squares for ai, ci kept
    FinetuneExtractor   a few rounds of block coordinate descent (finetune)
"""
#\package greedyroi/source_extraction/greedy
#\version   1.0
#\copyright GNU General Public License v2.0

import numpy as np


def nonneg_footprint(data, ci):
    """least squares footprint for a fixed trace, projected onto ai >= 0"""
    ci_norm = np.dot(ci, ci)
    if ci_norm <= 0:
        return np.zeros(data.shape[0])
    return np.maximum(0, np.dot(data, ci) / ci_norm)


def finetune(data, ci, nIter=5):
    """do matrix factorization given the model data = ai*ci, where ai>=0

    Args:
        data: np.ndarray
            d x T matrix, small patch containing one neuron

        ci: np.ndarray
            initial value for the trace (T,)

        nIter: int
            number of coordinate descent steps

    Returns:
        ai: np.ndarray (d,)
            result of the fine-tuned neuron shape, unit norm

        ci: np.ndarray (T,)
            result of the fine-tuned trace
    """
    data = np.maximum(data, 0)
    ci = np.asarray(ci, dtype=np.float64).copy()
    ai = np.zeros(data.shape[0])
    for _ in range(nIter):
        # update basis
        ai = nonneg_footprint(data, ci)
        norm_ai = np.linalg.norm(ai)
        if norm_ai == 0:
            break
        ai /= norm_ai
        ci = np.dot(ai, data)

    temp = np.median(ci) - 2 * np.std(ci)
    ci[ci < temp] = temp
    return ai, ci


class Rank1Extractor(object):
    """Footprint from one non-negative least squares step, trace unchanged"""

    name = 'rank1'

    def extract(self, data, ci):
        return nonneg_footprint(data, ci), ci

    def __repr__(self):
        return 'Rank1Extractor()'


class FinetuneExtractor(object):
    """Alternating updates of footprint and trace (see finetune)"""

    name = 'finetune'

    def __init__(self, n_iter=5):
        self.n_iter = n_iter

    def extract(self, data, ci):
        return finetune(data, ci, nIter=self.n_iter)

    def __repr__(self):
        return 'FinetuneExtractor(n_iter={0})'.format(self.n_iter)


def get_extractor(method='rank1', n_iter=5):
    """extraction strategy by name, 'rank1' or 'finetune'"""
    if method == 'rank1':
        return Rank1Extractor()
    elif method == 'finetune':
        return FinetuneExtractor(n_iter=n_iter)
    else:
        raise ValueError('Unknown extraction method {0}, use "rank1" or "finetune"'.format(method))
