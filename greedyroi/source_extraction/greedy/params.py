#!/usr/bin/env python

import json
import logging
import numpy as np
from pprint import pformat
from typing import Optional


class GreedyParams(object):
    """Class for setting and changing the parameters of the greedy initialization."""

    def __init__(self, params_from_file:Optional[str]=None, params_dict={}):
        """Class for setting the processing parameters of the greedy correlation based
        initialization.

        Params have default values; users can override the defaults in two ways:
            A) During initialisation of the object, pass a nested dictionary through the
               params_dict parameter, or the name of a jsonfile containing the same nested
               dictionary through the params_from_file parameter
            B) If the GreedyParams object already exists, call its change_params() method to
               pass in a dict or change_params_from_jsonfile() to pass in a filename
        Keys may be given pathed ({'init': {'gSig': 3}}) or flat ({'gSig': 3}); flat keys
        are looked up in every group.

        Object Structure:
          GreedyParams.data (features of the data):
            dims: (int, int), default: None
                dimensions of the FOV in pixels (d1, d2)

          GreedyParams.init (parameters of the peeling procedure):
            K: int, default: 30
                maximum number of neurons to be detected

            gSig: int, default: 3
                expected radius of a neuron. Size of the kernel used for smoothing the
                decrement of the peak-to-noise ratio and width of the ignored border

            gSiz: int, default: 11
                half width of the neighbourhood searched around a seed pixel, also the
                radius of the ring used for the coarse correlation image

            pSiz: int, default: 1
                half width of the patch around the seed pixel averaged into the seed trace

            bSiz: int, default: 1
                radius of the disk used to dilate the support of a neuron

            nb: int, default: 1
                number of background components (returned as zeros)

            min_corr: float, default: 0.8
                minimum local correlation of a seed pixel and minimum correlation with
                the seed trace for a pixel to belong to the neuron

            min_pixel: int, default: 4
                minimum number of pixels of a neuron

            conf_thresh: float, default: 0.8
                pixels correlated above this level with the seed trace are not searched
                again

            stop_factor: float, default: 3
                the search stops once max(peak_ratio * Cn) < stop_factor * min_corr

            max_frames: int, default: 1000
                number of frames used for computing correlation images and the median

            coarse_stride: int, default: 3
                temporal subsampling of the frames used for the coarse correlation image

            method_extract: 'rank1'|'finetune', default: 'rank1'
                how a neuron is factorized from its neighbourhood

            n_iter_finetune: int, default: 5
                number of block coordinate descent rounds for method_extract='finetune'

          GreedyParams.preprocess (noise estimation):
            noise_method: 'std'|'fft', default: 'std'
                noise level used when none is given: temporal std or PSD based estimate

            noise_range: [float, float], default: [.25, .5]
                range of normalized frequencies over which the PSD is averaged

            psd_method: 'mean'|'median'|'logmexp', default: 'logmexp'
                PSD averaging method

            max_num_samples_fft: int, default: 3072
                only the first max_num_samples_fft frames enter the PSD
        """
        self.data = {
            'dims': None
        }

        self.init = {
            'K': 30,
            'gSig': 3,
            'gSiz': 11,
            'pSiz': 1,
            'bSiz': 1,
            'nb': 1,
            'min_corr': 0.8,
            'min_pixel': 4,
            'conf_thresh': 0.8,
            'stop_factor': 3,
            'max_frames': 1000,
            'coarse_stride': 3,
            'method_extract': 'rank1',
            'n_iter_finetune': 5,
        }

        self.preprocess = {
            'noise_method': 'std',
            'noise_range': [0.25, 0.5],
            'psd_method': 'logmexp',
            'max_num_samples_fft': 3 * 1024,
        }

        if params_from_file is not None:
            self.change_params_from_jsonfile(params_from_file, check=False)
        self.change_params(params_dict, check=False)

    @classmethod
    def from_options(cls, options):
        """ Build a params object from a flat option bundle with keys d1, d2, gSig, gSiz,
        nb, bSiz, min_corr (and optionally any other key of the init/preprocess groups)
        """
        if isinstance(options, GreedyParams):
            return options
        options = dict(options)
        d1, d2 = options.pop('d1', None), options.pop('d2', None)
        if d1 is not None and d2 is not None:
            options['dims'] = (d1, d2)
        params = cls()
        params.change_params(options, check=False)
        return params

    def check_consistency(self):
        """ Ensures that the parameters satisfy the constraints of the algorithm.
        Raises ValueError for a configuration that cannot produce a meaningful result.
        """
        dims = self.data['dims']
        if dims is None or len(dims) != 2:
            raise ValueError('dims has to be a pair (d1, d2), got {0}'.format(dims))
        if min(dims) <= 0:
            raise ValueError('dims must be positive, got {0}'.format(dims))
        self.data['dims'] = tuple(int(d) for d in dims)

        init = self.init
        for key in ('gSig', 'gSiz', 'max_frames', 'coarse_stride'):
            if not np.isscalar(init[key]) or int(init[key]) != init[key] or init[key] <= 0:
                raise ValueError('{0} has to be a positive integer, got {1}'.format(key, init[key]))
        for key in ('pSiz', 'bSiz', 'nb', 'K', 'min_pixel', 'n_iter_finetune'):
            if not np.isscalar(init[key]) or int(init[key]) != init[key] or init[key] < 0:
                raise ValueError('{0} has to be a non-negative integer, got {1}'.format(key, init[key]))
        if init['min_corr'] is None or not 0 < init['min_corr'] <= 1:
            raise ValueError('min_corr has to be in (0, 1], got {0}'.format(init['min_corr']))
        if not -1 < init['conf_thresh'] <= 1:
            raise ValueError('conf_thresh has to be in (-1, 1], got {0}'.format(init['conf_thresh']))
        if init['stop_factor'] is None or init['stop_factor'] <= 0:
            raise ValueError('stop_factor has to be positive, got {0}'.format(init['stop_factor']))
        if init['method_extract'] not in ('rank1', 'finetune'):
            raise ValueError('method_extract has to be "rank1" or "finetune", got {0}'.format(
                init['method_extract']))
        if init['pSiz'] > init['gSiz']:
            logging.warning(f"pSiz={init['pSiz']} is larger than gSiz={init['gSiz']}, setting pSiz to gSiz")
            self.set('init', {'pSiz': init['gSiz']})

        if self.preprocess['noise_method'] not in ('std', 'fft'):
            raise ValueError('noise_method has to be "std" or "fft", got {0}'.format(
                self.preprocess['noise_method']))
        noise_range = self.preprocess['noise_range']
        if len(noise_range) != 2 or not 0 <= noise_range[0] < noise_range[1] <= 0.5:
            raise ValueError('noise_range has to satisfy 0 <= low < high <= 0.5, got {0}'.format(noise_range))

    def set(self, group:str, val_dict:dict, verbose=False) -> None:
        """ Add key-value pairs to a group. Existing key-value pairs will be overwritten
            if specified in val_dict, but not deleted.

        Args:
            group: The name of the group
            val_dict: A dictionary with key-value pairs to be set for the group
            verbose: warn about keys that do not exist in the group
        """
        if not hasattr(self, group):
            raise KeyError(f'No group in GreedyParams named {group}')

        d = getattr(self, group)
        for k, v in val_dict.items():
            if k not in d:
                if verbose:
                    logging.warning(f"{group}/{k} not set: invalid target in GreedyParams object")
            else:
                try:
                    if np.any(d[k] != v):
                        logging.info(f"Changing key {k} in group {group} from {d[k]} to {v}")
                except ValueError:  # d[k] and v also differ if above comparison fails, e.g. lists of different length
                    logging.info(f"Changing key {k} in group {group} from {d[k]} to {v}")
                d[k] = v

    def get(self, group, key):
        """ Get a value for a given group and key. Raises an exception if no such group/key combination exists.

        Args:
            group: The name of the group.
            key: The key for the property in the group of interest.

        Returns: The value for the group/key combination.
        """
        if not hasattr(self, group):
            raise KeyError(f'No group in GreedyParams named {group}')

        d = getattr(self, group)
        if key not in d:
            raise KeyError(f'No key {key} in group {group}')

        return d[key]

    def get_group(self, group):
        """ Get the dictionary of key-value pairs for a group.

        Args:
            group: The name of the group.
        """
        if not hasattr(self, group):
            raise KeyError(f'No group in GreedyParams named {group}')

        return getattr(self, group)

    def __eq__(self, other):
        if not isinstance(other, GreedyParams):
            return False

        parent_dict1 = self.to_dict()
        parent_dict2 = other.to_dict()
        if parent_dict1.keys() != parent_dict2.keys():
            return False

        for k1, child_dict1 in parent_dict1.items():
            child_dict2 = parent_dict2[k1]
            if child_dict1.keys() != child_dict2.keys():
                return False
            for k2, v in child_dict1.items():
                if not np.array_equal(np.asarray(v, dtype=object), np.asarray(child_dict2[k2], dtype=object)):
                    return False

        return True

    def to_dict(self) -> dict:
        """Returns the params class as a dictionary with subdictionaries for each
        category."""
        return {
            'data': self.data,
            'init': self.init,
            'preprocess': self.preprocess
        }

    def to_json(self) -> str:
        """ Reversibly serialise GreedyParams to json """
        dictdata = self.to_dict()

        class NumpyEncoder(json.JSONEncoder):  # Custom json encoder that handles ndarrays better
            def default(self, obj):
                if isinstance(obj, np.ndarray):
                    return obj.tolist()
                elif isinstance(obj, np.integer):
                    return int(obj)
                elif isinstance(obj, np.floating):
                    return float(obj)
                return json.JSONEncoder.default(self, obj)
        return json.dumps(dictdata, cls=NumpyEncoder)

    def to_jsonfile(self, targfn:str) -> None:
        """ Reversibly serialise GreedyParams to a json file """
        with open(targfn, 'w') as targfh:
            targfh.write(self.to_json())

    def __repr__(self) -> str:
        formatted_outputs = [
            f'{group_name}:\n\n{pformat(group_dict)}'
            for group_name, group_dict in self.to_dict().items()
        ]

        return 'GreedyParams:\n\n' + '\n\n'.join(formatted_outputs)

    def change_params(self, params_dict, warn_unused:bool=True, verbose:bool=False, check:bool=True) -> None:
        """ Method for updating the params object by providing a dictionary.

        Args:
            params_dict: dictionary with parameters to be changed, either pathed
                         ({'init': {'gSig': 3}}) or flat ({'gSig': 3})
            warn_unused: If True, emit warnings when the params dict has fields in it that
                         were never used in populating the Params object.
            verbose: passed to set()
            check: run check_consistency() after the update
        """
        groups = list(self.to_dict().keys())
        for paramkey, value in params_dict.items():
            if paramkey in groups:
                cat_handle = getattr(self, paramkey)
                for k in value:
                    if k not in cat_handle and warn_unused:
                        logging.warning(f"In setting GreedyParams, provided key {paramkey}/{k} was not consumed.")
                self.set(paramkey, value, verbose=verbose)
            else:
                consumed = False
                for group in groups:
                    if paramkey in getattr(self, group):
                        self.set(group, {paramkey: value}, verbose=verbose)
                        consumed = True
                if not consumed and warn_unused:
                    logging.warning(f"In setting GreedyParams, provided key {paramkey} was unused.")
        if check:
            self.check_consistency()

    def change_params_from_json(self, jsonstring:str, verbose:bool=False, check:bool=True) -> None:
        """ Same as change_params, except it takes json as input """
        to_load = json.loads(jsonstring)
        self.change_params(to_load, verbose=verbose, check=check)

    def change_params_from_jsonfile(self, json_fn:str, verbose:bool=False, check:bool=True) -> None:
        """ Same as change_params, except it takes a json file as input; pass the filename """
        with open(json_fn, 'r') as json_fh:
            to_load = json.load(json_fh)
        self.change_params(to_load, verbose=verbose, check=check)
