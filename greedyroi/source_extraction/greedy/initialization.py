#!/usr/bin/env python
# -*- coding: utf-8 -*-

""" Greedy initialization of neurons for microendoscopic data

In each iteration the pixel with the largest (max - median) / noise ratio
weighted by its local correlation is selected. The pixels of its
neighbourhood that are correlated with the seed trace and connected to the
seed form the support of a new neuron, whose footprint is obtained from a
rank-1 factorization. The neuron is then peeled off the data and the
peak-to-noise ratio and correlation image are updated locally.

This is a modification of the greedyROI method used in Pnevmatikakis et.al.
(2016), with features specialized for endoscope data.

See Also:
------------
http://www.cell.com/neuron/pdf/S0896-6273(15)01084-3.pdf
"""
#\package greedyroi/source_extraction/greedy
#\version   1.0
#\copyright GNU General Public License v2.0
#\author: Pengcheng Zhou, Carnegie Mellon University (greedyROI_corr_endoscope)

from collections import namedtuple
import copy
import cv2
import logging
import numpy as np
from scipy.ndimage import binary_dilation
from scipy.ndimage import label as bwlabel
import scipy.sparse as spr
from skimage.morphology import disk

from .extraction import get_extractor
from .params import GreedyParams
from .pre_processing import estimate_noise
from ...summary_images import correlation_image, peak_correlation_image, subsample_frames

# window around a seed pixel: ind_nhood (nr x nc) holds the pixel indices of the
# window in the full frame, seed marks the pixels averaged into the seed trace
Neighborhood = namedtuple('Neighborhood', ['r', 'c', 'ind_nhood', 'seed'])


def reshape_movie(Y, dims):
    """ pixels x time view of Y, a d1 x d2 x T movie or a (d1*d2) x T matrix """
    Y = np.asarray(Y)
    if Y.size == 0:
        raise ValueError('Y is empty')
    if Y.ndim == 3:
        if Y.shape[:2] != tuple(dims):
            raise ValueError('Movie of size {0} does not match dims {1}'.format(Y.shape[:2], dims))
        Y = np.reshape(Y, (-1, Y.shape[-1]), order='F')
    elif Y.ndim == 2:
        if Y.shape[0] != np.prod(dims):
            raise ValueError('Y has {0} pixels, expected d1*d2={1}'.format(Y.shape[0], np.prod(dims)))
    else:
        raise ValueError('Y must be a d1 x d2 x T movie or a pixels x time matrix')
    if np.any(np.isnan(Y)):
        raise ValueError('The algorithm has not been tested with missing values (NaNs). '
                         'Remove NaNs and rerun the algorithm.')
    return Y


def pearson_corr(y0, Y_box):
    """correlation between the trace y0 and each row of Y_box, 0 for constant traces"""
    yc = y0 - np.mean(y0)
    Bc = Y_box - np.mean(Y_box, axis=1, keepdims=True)
    num = Bc.dot(yc)
    den = np.linalg.norm(Bc, axis=1) * np.linalg.norm(yc)
    return np.divide(num, den, out=np.zeros_like(num), where=den > 0)


class GreedyPeeler(object):
    """
    State of the greedy peeling procedure.

    The object owns the residual Y, the peak-to-noise ratio and the correlation
    image for the duration of the search; each call of step() evaluates one
    candidate pixel.
    """

    def __init__(self, Y, params, sn=None, extractor=None):
        """
        Args:
            Y: np.ndarray
                d1 x d2 x T movie or (d1*d2) x T matrix. It is copied.

            params: GreedyParams
                parameters, with dims set

            sn: np.ndarray or None
                noise level of each pixel. Estimated with the preprocess
                group's noise_method when None

            extractor: object or None
                rank-1 extraction strategy with a method extract(data, ci);
                built from init/method_extract when None
        """
        logger = logging.getLogger("greedyroi")
        params.check_consistency()
        self.params = params
        self.dims = params.get('data', 'dims')
        init = params.get_group('init')
        d1, d2 = self.dims

        Y = reshape_movie(Y, self.dims)
        self.Y = np.array(Y, dtype=np.float64)
        d, T = self.Y.shape
        self.T = T

        if sn is None:
            pre = params.get_group('preprocess')
            sn = estimate_noise(self.Y, method=pre['noise_method'], noise_range=pre['noise_range'],
                                psd_method=pre['psd_method'],
                                max_num_samples_fft=pre['max_num_samples_fft'])
        sn = np.asarray(sn, dtype=np.float64)
        if sn.ndim == 2:
            sn = sn.ravel(order='F')
        if sn.size != d:
            raise ValueError('sn has {0} entries, expected one per pixel ({1})'.format(sn.size, d))
        if np.any(np.isnan(sn)) or np.any(sn < 0):
            raise ValueError('sn must be non-negative and free of NaNs')
        self.Y_std = sn.ravel()

        self.K = init['K']
        self.gSig = init['gSig']
        self.gSiz = init['gSiz']
        self.pSiz = init['pSiz']
        self.min_corr = init['min_corr']
        self.min_pixel = init['min_pixel']
        self.conf_thresh = init['conf_thresh']
        self.min_score = init['stop_factor'] * init['min_corr']
        self.psf = np.ones((self.gSig, self.gSig), dtype=np.float32) / self.gSig ** 2
        # kernel center, the upper left one of the central pixels for an even gSig
        self.psf_anchor = ((self.gSig - 1) // 2, (self.gSig - 1) // 2)
        self.nhood = disk(init['bSiz']).astype(bool)
        if extractor is None:
            extractor = get_extractor(init['method_extract'], n_iter=init['n_iter_finetune'])
        self.extractor = extractor

        logger.info('Computing correlation image')
        self.ind_frame = subsample_frames(T, init['max_frames'])
        self.Cn, _, self.Cb = peak_correlation_image(self.Y, d1, d2, self.gSiz, self.ind_frame,
                                                     coarse_stride=init['coarse_stride'])
        self.Y_median = np.median(self.Y[:, self.ind_frame], axis=1)
        self.Y -= self.Y_median[:, np.newaxis]

        peak_ratio = self.ratio(np.max(self.Y, axis=1), slice(None))
        peak_ratio = np.reshape(peak_ratio, self.dims, order='F')
        peak_ratio[:self.gSig, :] = 0
        peak_ratio[-self.gSig:, :] = 0
        peak_ratio[:, :self.gSig] = 0
        peak_ratio[:, -self.gSig:] = 0
        self.peak_ratio = peak_ratio.ravel(order='F')

        self.k = 0
        self.n_candidates = 0
        self.stopped = False
        self.ind_A = []
        self.A = []
        self.C = []
        self.center = []

    def ratio(self, values, ind):
        """ values / noise level of the pixels ind, 0 where the noise level is 0 """
        sn = self.Y_std[ind]
        return np.divide(values, sn, out=np.zeros(np.shape(values)), where=sn > 0)

    def select_candidate(self):
        """ pixel with the largest peak_ratio * Cn, its score and its priority before the
        visit; the pixel is never visited again """
        score = self.peak_ratio * self.Cn
        ind_p = int(np.argmax(score))
        max_v = score[ind_p]
        priority = self.peak_ratio[ind_p]
        self.peak_ratio[ind_p] = 0
        self.n_candidates += 1
        return ind_p, max_v, priority

    def neighborhood(self, r, c):
        """ window of half width gSiz around (r, c) and the seed patch of half width pSiz """
        d1, d2 = self.dims
        rsub = np.arange(max(0, r - self.gSiz), min(d1, r + self.gSiz + 1))
        csub = np.arange(max(0, c - self.gSiz), min(d2, c + self.gSiz + 1))
        ind_nhood = np.ravel_multi_index(tuple(np.meshgrid(rsub, csub, indexing='ij')), self.dims, order='F')

        seed = np.zeros(ind_nhood.shape, dtype=bool)
        r0, c0 = rsub[0], csub[0]
        seed[max(0, r - self.pSiz) - r0:min(d1, r + self.pSiz + 1) - r0,
             max(0, c - self.pSiz) - c0:min(d2, c + self.pSiz + 1) - c0] = True
        return Neighborhood(r, c, ind_nhood, seed)

    def coherent_pixels(self, Y_box, box):
        """ pixels of the window correlated with the seed trace and connected to the seed

        Args:
            Y_box: np.ndarray
                residual in the window, (nr*nc) x T

            box: Neighborhood

        Returns:
            y0: np.ndarray (T,)
                mean activity of the seed pixels, negative values set to 0

            temp: np.ndarray (nr x nc)
                correlation of each pixel with y0

            active_pixel: np.ndarray (nr x nc), bool
                connected component containing the seed
        """
        y0 = np.mean(Y_box[box.seed.ravel()], axis=0)
        y0[y0 < 0] = 0

        temp = pearson_corr(y0, Y_box).reshape(box.ind_nhood.shape)
        active_pixel = temp > self.min_corr
        l, _ = bwlabel(active_pixel, structure=np.ones((3, 3)))
        # the most frequent label among the seed pixels, smallest one on ties
        seed_label = np.argmax(np.bincount(l[box.seed]))
        active_pixel &= (l == seed_label)
        return y0, temp, active_pixel

    def step(self):
        """ evaluate one candidate pixel

        Returns:
            bool, False once the search is over (K neurons found or no peak
            strong enough)
        """
        logger = logging.getLogger("greedyroi")
        if self.stopped or self.k >= self.K:
            self.stopped = True
            return False

        ind_p, max_v, priority = self.select_candidate()
        if priority <= 0 or self.n_candidates > self.Y.shape[0]:
            # every pixel with a positive priority has been visited
            logger.debug('No unvisited candidate left, stopping')
            self.stopped = True
            return False
        if max_v < self.min_score:
            # peak_ratio * local correlation too small everywhere
            logger.debug('Largest score {0:.3f} below {1:.3f}, stopping'.format(max_v, self.min_score))
            self.stopped = True
            return False
        if self.Cn[ind_p] < self.min_corr:
            # ignore this local maximum due to small local correlation
            logger.debug('Pixel {0} skipped: local correlation {1:.3f}'.format(ind_p, self.Cn[ind_p]))
            return True

        r, c = np.unravel_index(ind_p, self.dims, order='F')
        box = self.neighborhood(int(r), int(c))
        ind_box = box.ind_nhood.ravel()
        Y_box = self.Y[ind_box]

        y0, temp, active_pixel = self.coherent_pixels(Y_box, box)
        if active_pixel.sum() < self.min_pixel:
            logger.debug('Pixel ({0}, {1}) skipped: {2} coherent pixels'.format(r, c, active_pixel.sum()))
            return True

        # expand nonzero area
        active_pixel = binary_dilation(active_pixel, structure=self.nhood)
        ind_active = box.ind_nhood[active_pixel]
        data = Y_box[active_pixel.ravel()]
        self.peak_ratio[box.ind_nhood[temp > self.conf_thresh]] = 0

        # rank-1 matrix factorization in this small area
        ai, ci = self.extractor.extract(data, y0)
        if np.linalg.norm(ai) == 0:
            logger.debug('Pixel ({0}, {1}) skipped: empty footprint'.format(r, c))
            return True

        self.k += 1
        self.ind_A.append(ind_active)
        self.A.append(ai)
        self.C.append(ci)
        self.center.append((int(r), int(c)))
        self.Y[ind_active] = data - np.outer(ai, ci)

        if self.k % 10 == 0:
            logger.info('{0}/{1} neurons have been detected'.format(self.k, self.K))
        if self.k == self.K:
            self.stopped = True
            return False

        self.update_peak_ratio(box, active_pixel, ind_active)
        self.update_correlation(box)
        return True

    def update_peak_ratio(self, box, active_pixel, ind_active):
        """ decrease the peak-to-noise ratio around a neuron that was peeled off """
        tmp_old = self.peak_ratio[ind_active]
        tmp_new = self.ratio(np.max(self.Y[ind_active], axis=1), ind_active)
        temp = np.zeros(box.ind_nhood.shape, dtype=np.float32)
        # after each iteration, the peak ratio can not be increased
        temp[active_pixel] = np.maximum(0, tmp_old - tmp_new)
        temp = cv2.filter2D(temp, -1, self.psf, anchor=self.psf_anchor, borderType=cv2.BORDER_CONSTANT)
        ind_box = box.ind_nhood.ravel()
        self.peak_ratio[ind_box] = np.maximum(0, self.peak_ratio[ind_box] - temp.ravel())

    def update_correlation(self, box):
        """ recompute the fine scale correlation image in the window from the residual """
        nr, nc = box.ind_nhood.shape
        ind_box = box.ind_nhood.ravel(order='F')
        C1 = correlation_image(self.Y[ind_box][:, self.ind_frame], [1, 2], nr, nc)
        self.Cn[ind_box] = C1 - self.Cb[ind_box]

    def run(self):
        """ peel off neurons until K neurons are found or no candidate is left """
        logger = logging.getLogger("greedyroi")
        while self.step():
            pass
        logger.info('In total, {0} neurons were initialized after {1} candidates.'.format(
            self.k, self.n_candidates))
        return self

    def results(self):
        """
        Returns:
            Ain: scipy.sparse.csc_matrix, d x k
                spatial components

            Cin: np.ndarray, k x T
                temporal components, negative values set to 0

            bin: np.ndarray, d x nb
                spatial components of the background (zeros)

            fin: np.ndarray, nb x T
                temporal components of the background (zeros)

            center: np.ndarray, k x 2
                (row, column) of each neuron's seed pixel

            res: np.ndarray, d x T
                residual after removing the neurons, baseline included
        """
        d, T = self.Y.shape
        nb = self.params.get('init', 'nb')
        if self.k > 0:
            rows = np.concatenate(self.ind_A)
            cols = np.concatenate([[i] * len(ind) for i, ind in enumerate(self.ind_A)])
            vals = np.concatenate(self.A)
        else:
            rows = cols = vals = np.zeros(0)
        Ain = spr.csc_matrix((vals, (rows.astype(int), cols.astype(int))), shape=(d, self.k))
        Ain.eliminate_zeros()
        Cin = np.reshape(np.array(self.C, dtype=np.float64), (self.k, T))
        Cin[Cin < 0] = 0
        center = np.reshape(np.array(self.center, dtype=int), (self.k, 2))
        res = self.Y + self.Y_median[:, np.newaxis]
        b_in = np.zeros((d, nb))
        f_in = np.zeros((nb, T))
        return Ain, Cin, b_in, f_in, center, res


def greedyROI_corr_endoscope(Y, K, options, sn=None):
    """a greedy method for detecting ROIs and initializing CNMF-E

    In each iteration, it searches the pixel with the largest value of
    (max - median) / noise * Cn, which achieves a balance of SNR and local
    correlation.

    Args:
        Y: np.ndarray
            d x T matrix (pixels ordered with order='F') or d1 x d2 x T movie

        K: int
            maximum number of neurons to be detected

        options: dict or GreedyParams
            d1, d2: frame dimensions
            gSig: expected radius of a neuron
            gSiz: half width of the neighbourhood of a neuron
            nb: number of background components
            bSiz: radius of the dilation of the support
            min_corr: minimum correlation for segmenting neurons
            any other key of the init or preprocess groups of GreedyParams

        sn: np.ndarray or None
            noise level of each pixel; temporal std when None

    Returns:
        Ain: scipy.sparse.csc_matrix, d x K'
            estimated spatial components

        Cin: np.ndarray, K' x T
            estimated temporal components

        bin: np.ndarray, d x nb
            spatial components of the background

        fin: np.ndarray, nb x T
            temporal components of the background

        center: np.ndarray, K' x 2
            coordinate of each neuron's center

        res: np.ndarray, d x T
            residual after initializing Ain, Cin, bin, fin
    """
    params = copy.deepcopy(GreedyParams.from_options(options))
    params.set('init', {'K': K})
    peeler = GreedyPeeler(Y, params, sn=sn)
    return peeler.run().results()
