#!/usr/bin/env python

import numpy as np
import scipy.sparse


class Estimates(object):
    """
    Class for storing the results of the greedy initialization.
    """
    def __init__(self, A=None, b=None, C=None, f=None, R=None, dims=None, center=None, Cn=None, sn=None):
        """Class for storing the variables related to the estimates of spatial footprints, temporal traces
        and background.

        Args:
            A:  scipy.sparse.csc_matrix (dimensions: # of pixels x # components)
                set of spatial footprints. Each footprint is represented in a column of A, flattened with order = 'F'

            C:  np.ndarray (dimensions: # of components x # of timesteps)
                set of temporal traces (each row of C corresponds to a trace)

            b:  np.ndarray (dimensions: # of pixels x # of background components)
                set of spatial background components (zeros, not estimated)

            f:  np.ndarray (dimensions: # of background components x # of timesteps)
                set of temporal background components (zeros, not estimated)

            R:  np.ndarray (dimensions: # of pixels x # of timesteps)
                residual after removing all components, baseline included

            dims: tuple
                dimensions of the FOV

            center: np.ndarray (dimensions: # of components x 2)
                (row, column) of the seed pixel of each component

            Cn: np.ndarray (dimensions: # of pixels)
                correlation image at the end of the initialization

            sn: np.ndarray (dimensions: # of pixels)
                noise level for each pixel
        """
        self.A = A
        self.C = C
        self.b = b
        self.f = f
        self.R = R
        self.dims = dims
        self.center = center
        self.Cn = Cn
        self.sn = sn

    @property
    def nr(self):
        """number of components"""
        return 0 if self.C is None else self.C.shape[0]

    def reconstruct(self):
        """ pixels x time movie explained by the components """
        return np.asarray(self.A.dot(self.C))

    def footprints_as_images(self):
        """ footprints reshaped to # components x d1 x d2 """
        A = self.A.toarray() if scipy.sparse.issparse(self.A) else np.asarray(self.A)
        return np.reshape(A, tuple(self.dims) + (-1,), order='F').transpose(2, 0, 1)

    def __repr__(self):
        return 'Estimates(nr={0}, dims={1})'.format(self.nr, self.dims)
