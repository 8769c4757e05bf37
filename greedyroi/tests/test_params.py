#!/usr/bin/env python

import pytest

from greedyroi.source_extraction.greedy.params import GreedyParams


def test_defaults():
    params = GreedyParams()
    assert params.get('init', 'gSig') == 3
    assert params.get('init', 'conf_thresh') == 0.8
    assert params.get('init', 'stop_factor') == 3
    assert params.get('preprocess', 'noise_method') == 'std'
    assert params.get('data', 'dims') is None


def test_change_params_pathed_and_flat():
    params = GreedyParams(params_dict={'data': {'dims': (20, 30)}, 'init': {'gSig': 4}})
    assert params.get('init', 'gSig') == 4
    params.change_params({'gSiz': 9, 'noise_method': 'fft'})
    assert params.get('init', 'gSiz') == 9
    assert params.get('preprocess', 'noise_method') == 'fft'


def test_from_options():
    params = GreedyParams.from_options({'d1': 20, 'd2': 30, 'gSig': 2, 'gSiz': 6, 'nb': 2,
                                        'bSiz': 2, 'min_corr': 0.7})
    params.check_consistency()
    assert params.get('data', 'dims') == (20, 30)
    assert params.get('init', 'nb') == 2
    assert params.get('init', 'min_corr') == 0.7
    assert GreedyParams.from_options(params) is params


def test_unknown_group_or_key():
    params = GreedyParams()
    with pytest.raises(KeyError):
        params.get('motion', 'gSig')
    with pytest.raises(KeyError):
        params.get('init', 'max_shifts')
    with pytest.raises(KeyError):
        params.set('motion', {'gSig': 3})
    with pytest.raises(KeyError):
        params.get_group('motion')


@pytest.mark.parametrize('change', [{'gSig': 0}, {'gSiz': 2.5}, {'pSiz': -1}, {'min_corr': -1},
                                    {'min_corr': 0.}, {'conf_thresh': 1.5}, {'stop_factor': -1}, {'stop_factor': 0},
                                    {'method_extract': 'nmf'}, {'noise_method': 'welch'},
                                    {'noise_range': [0.4, 0.2]}, {'dims': (0, 10)}])
def test_inconsistent_params_raise(change):
    params = GreedyParams(params_dict={'data': {'dims': (20, 30)}})
    with pytest.raises(ValueError):
        params.change_params(change)


def test_missing_dims_raise():
    with pytest.raises(ValueError):
        GreedyParams().check_consistency()


def test_patch_larger_than_neighbourhood_is_clipped():
    params = GreedyParams(params_dict={'data': {'dims': (20, 30)}})
    params.change_params({'init': {'gSiz': 2, 'pSiz': 4}})
    assert params.get('init', 'pSiz') == 2


def test_json_roundtrip(tmp_path):
    params = GreedyParams(params_dict={'data': {'dims': (20, 30)}, 'init': {'K': 12, 'bSiz': 2}})
    fname = str(tmp_path / 'params.json')
    params.to_jsonfile(fname)
    loaded = GreedyParams(params_from_file=fname)
    assert loaded == params
    loaded.change_params({'K': 13})
    assert loaded != params


def test_repr():
    assert 'min_corr' in repr(GreedyParams())
