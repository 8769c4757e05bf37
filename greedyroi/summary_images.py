#!/usr/bin/env python
# -*- coding: utf-8 -*-

""" functions that create correlation images from pixels x time data

The local correlation image is used by the greedy initialization both as a
spatial coherence map and as a weight of the peak-to-noise ratio. Two scales
are combined: a fine one (direct neighbours) and a coarse one (a ring of
radius gSiz), whose difference suppresses broad out-of-focus correlations.

See Also:
------------
greedyroi.source_extraction.greedy.initialization
"""

# \package greedyroi
# \version   1.0
# \copyright GNU General Public License v2.0

import logging
import numpy as np
from scipy.ndimage import correlate

#%%


def neighbor_mask(sz=None):
    """ construct a binary matrix indicating the locations of the neighbours

    Args:
        sz: None, int or [dmin, dmax]
            4: use the 4 nearest neighbours
            8 or None: use the 8 nearest neighbours
            [dmin, dmax]: use neighbouring pixels with distances in [dmin, dmax)

    Returns:
        mask: np.ndarray (2*r+1 x 2*r+1), float32
    """
    if sz is None or np.isscalar(sz):
        if sz is None or sz == 8:
            mask = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]])
        elif sz == 4:
            mask = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]])
        else:
            raise ValueError('sz must be 4, 8 or a pair [dmin, dmax], got {0}'.format(sz))
    elif len(sz) == 2:
        dmin, dmax = float(min(sz)), float(max(sz))
        rmax = max(int(np.ceil(dmax)) - 1, 0)
        xx, yy = np.meshgrid(np.arange(-rmax, rmax + 1), np.arange(-rmax, rmax + 1))
        rr = np.sqrt(xx ** 2 + yy ** 2)
        mask = (rr >= dmin) & (rr < dmax)
        # the center never counts as its own neighbour
        mask[rmax, rmax] = False
    else:
        raise ValueError('sz must be 4, 8 or a pair [dmin, dmax], got {0}'.format(sz))

    return mask.astype(np.float32)


def correlation_image(Y, sz=None, d1=None, d2=None):
    """Computes the local correlation image of Y

    Each pixel gets the mean Pearson correlation between its trace and the
    traces of the neighbours selected by sz. Pixels close to the border only
    average over the neighbours that fall inside the frame.

    Args:
        Y: np.ndarray
            (d1*d2) x T matrix (pixels ordered column-wise, order='F') or
            d1 x d2 x T movie

        sz: None, int or [dmin, dmax]
            neighbourhood definition, see neighbor_mask

        d1, d2: int
            frame dimensions, required when Y is 2D

    Returns:
        Cn: np.ndarray (d1*d2,)
            local correlation of each pixel, flattened with order='F'
    """
    Y = np.asarray(Y)
    if Y.ndim == 3:
        d1, d2 = Y.shape[:2]
    elif Y.ndim == 2:
        if d1 is None or d2 is None:
            raise ValueError('d1 and d2 must be given for pixels x time data')
        if Y.shape[0] != d1 * d2:
            raise ValueError('Y has {0} pixels, expected d1*d2={1}'.format(Y.shape[0], d1 * d2))
    else:
        raise ValueError('Y must be a 2D or 3D array')

    T = Y.shape[-1]
    # T x d1 x d2, the layout used for frame-wise filtering
    data = np.reshape(Y, (d1, d2, T), order='F').transpose(2, 0, 1).astype(np.float32)

    # normalize data
    data -= np.mean(data, axis=0)
    data_std = np.sqrt(np.mean(data ** 2, axis=0))
    data_std[data_std == 0] = np.inf
    data /= data_std

    mask = neighbor_mask(sz)
    data_filter = correlate(data, mask[np.newaxis], mode='constant', cval=0.)
    n_neighbors = correlate(np.ones((d1, d2), dtype=np.float32), mask,
                            mode='constant', cval=0.)

    Cn = np.mean(data_filter * data, axis=0)
    Cn = np.divide(Cn, n_neighbors, out=np.zeros_like(Cn), where=n_neighbors > 0)

    return Cn.ravel(order='F').astype(np.float64)


def subsample_frames(T, max_frames=1000):
    """indices of at most max_frames frames spread evenly over [0, T)"""
    return np.unique(np.round(np.linspace(0, T - 1, min(T, max_frames))).astype(int))


def peak_correlation_image(Y, d1, d2, gSiz, ind_frame=None, coarse_stride=3):
    """Peak-enhancing correlation image, fine scale minus coarse scale

    Args:
        Y: np.ndarray
            (d1*d2) x T matrix

        d1, d2: int
            frame dimensions

        gSiz: int
            radius of the ring used for the coarse (background) correlation

        ind_frame: np.ndarray or None
            frames used for the fine correlation, default subsample_frames(T)

        coarse_stride: int
            only every coarse_stride-th frame of ind_frame enters the coarse image

    Returns:
        Cn: np.ndarray (d1*d2,)
            C1 - Cb

        C1: np.ndarray (d1*d2,)
            correlation with the 8 direct neighbours

        Cb: np.ndarray (d1*d2,)
            correlation with pixels at distance gSiz
    """
    logger = logging.getLogger("greedyroi")
    if ind_frame is None:
        ind_frame = subsample_frames(Y.shape[-1])
    logger.debug('Computing correlation images on {0} frames'.format(len(ind_frame)))
    C1 = correlation_image(Y[:, ind_frame], [1, 2], d1, d2)
    Cb = correlation_image(Y[:, ind_frame[::coarse_stride]], [gSiz, gSiz + 1], d1, d2)
    return C1 - Cb, C1, Cb
