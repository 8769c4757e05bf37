#!/usr/bin/env python
# -*- coding: utf-8 -*-

""" Estimation of the noise level of each pixel

The greedy initialization normalizes peak heights by a per-pixel noise level.
It is either given by the user, taken as the temporal standard deviation, or
estimated from the high frequency part of the power spectral density.

See Also:
------------

@authors: agiovann epnev
"""
#\package greedyroi/source_extraction/greedy
#\version   1.0
#\copyright GNU General Public License v2.0

import cv2
import logging
import numpy as np

#%%


def frequency_window(T, noise_range=[0.25, 0.5]):
    """ boolean mask of the rfft frequencies of a T sample trace within noise_range (Nyquist = 0.5) """
    ff = np.arange(T // 2 + 1) / T
    return (ff > noise_range[0]) & (ff <= noise_range[1])


def get_noise_fft(Y, noise_range=[0.25, 0.5], noise_method='logmexp', max_num_samples_fft=3072,
                  opencv=True):
    """Estimate the noise level for each pixel by averaging the power spectral density.

    Args:
        Y: np.ndarray
            traces with time in the last axis, e.g. pixels x time or d1 x d2 x T

        noise_range: [low, high] between 0 and 0.5
            range of frequencies compared to the Nyquist rate over which the
            power spectrum is averaged

        noise_method: string
            method of averaging the noise, see mean_psd

        max_num_samples_fft: int
            longer traces only contribute their first max_num_samples_fft samples

        opencv: bool
            use cv2.dft instead of numpy's rfft

    Returns:
        sn: np.ndarray
            noise level for each trace, shape Y.shape[:-1]
    """
    Y = np.asarray(Y)
    lead_shape = Y.shape[:-1]
    traces = np.reshape(Y[..., :max_num_samples_fft], (-1, min(Y.shape[-1], max_num_samples_fft)))
    T = traces.shape[-1]
    ind = frequency_window(T, noise_range)

    if opencv:
        psdx = []
        for y in traces.astype(np.float32):
            dft = cv2.dft(y, flags=cv2.DFT_COMPLEX_OUTPUT).squeeze()[:len(ind)][ind]
            psdx.append(np.sum(dft * dft, axis=-1) / T)
        psdx = np.array(psdx)
    else:
        psdx = np.abs(np.fft.rfft(traces, axis=-1)[:, ind]) ** 2 / T
    # one-sided spectrum
    psdx *= 2

    return np.reshape(mean_psd(psdx, method=noise_method), lead_shape)


def mean_psd(y, method='logmexp'):
    """
    Averaging the PSD

    Args:
        y: np.ndarray
             PSD values

        method: string
            method of averaging the noise.
            Choices:
             'mean': Mean
             'median': Median
             'logmexp': Exponential of the mean of the logarithm of PSD (default)

    Returns:
        mp: array
            mean psd
    """

    if method == 'mean':
        mp = np.sqrt(np.mean(y / 2, axis=-1))
    elif method == 'median':
        mp = np.sqrt(np.median(y / 2, axis=-1))
    else:
        mp = np.log((y + 1e-10) / 2)
        mp = np.mean(mp, axis=-1)
        mp = np.exp(mp)
        mp = np.sqrt(mp)

    return mp


def estimate_noise(Y, method='std', noise_range=[0.25, 0.5], psd_method='logmexp',
                   max_num_samples_fft=3072):
    """Noise level of each row of the pixels x time matrix Y

    Args:
        Y: np.ndarray
            d x T matrix

        method: 'std' or 'fft'
            'std' is the temporal standard deviation, 'fft' averages the
            power spectral density over noise_range (see get_noise_fft)

    Returns:
        sn: np.ndarray (d,)
    """
    logger = logging.getLogger("greedyroi")
    if method == 'std':
        if Y.shape[-1] < 2:
            return np.zeros(Y.shape[0])
        return np.std(Y, axis=-1, ddof=1)
    elif method == 'fft':
        logger.info('Estimating noise level from the power spectral density')
        return get_noise_fft(Y, noise_range=noise_range, noise_method=psd_method,
                             max_num_samples_fft=max_num_samples_fft)
    else:
        raise ValueError('Unknown noise method {0}, use "std" or "fft"'.format(method))
