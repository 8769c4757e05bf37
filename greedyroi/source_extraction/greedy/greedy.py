#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
The class used to run the greedy correlation based initialization on a movie

Example of usage:

    params = GreedyParams(params_dict={'data': {'dims': (d1, d2)},
                                       'init': {'K': 50, 'gSig': 3, 'gSiz': 11}})
    gr = GreedyROI(params=params).fit(Y)
    A, C = gr.estimates.A, gr.estimates.C
"""
#\package greedyroi/source_extraction/greedy
#\version   1.0
#\copyright GNU General Public License v2.0

import copy
import logging
import numpy as np

from .estimates import Estimates
from .initialization import GreedyPeeler
from .params import GreedyParams


class GreedyROI(object):
    """  Greedy initialization of neurons, peeling them off the data one at a time.

    The results are stored in self.estimates. They are meant to seed a CNMF(-E)
    refinement and are not refined here.
    """

    def __init__(self, params=None, extractor=None):
        """
        Args:
            params: GreedyParams or None
                parameters, defaults are used when None

            extractor: object or None
                custom extraction strategy, see extraction.Rank1Extractor
        """
        self.params = GreedyParams() if params is None else params
        self.extractor = extractor
        self.estimates = Estimates()

    def fit(self, Y, sn=None):
        """ find neurons in Y

        Args:
            Y: np.ndarray
                d1 x d2 x T movie, or (d1*d2) x T matrix if params data/dims is set

            sn: np.ndarray or None
                noise level of each pixel

        Returns:
            self
        """
        logger = logging.getLogger("greedyroi")
        params = copy.deepcopy(self.params)
        if params.get('data', 'dims') is None and np.ndim(Y) == 3:
            params.set('data', {'dims': np.shape(Y)[:2]})
        logger.info('Greedy initialization of at most {0} neurons'.format(params.get('init', 'K')))

        peeler = GreedyPeeler(Y, params, sn=sn, extractor=self.extractor).run()
        A, C, b, f, center, R = peeler.results()
        self.estimates = Estimates(A=A, b=b, C=C, f=f, R=R, dims=params.get('data', 'dims'),
                                   center=center, Cn=peeler.Cn.copy(), sn=peeler.Y_std)
        return self
