#!/usr/bin/env python3
"""
Configuration, dataset, evaluation and utility tests
"""

import logging
import os

import numpy as np
import pytest
import torch

from incremental_gmm.config import get_default_config, merge_config
from incremental_gmm.datasets import make_grid, make_target_function, sample_stream
from incremental_gmm.evaluate import evaluate_mixture
from incremental_gmm.mixture import IncrementalGaussianMixture
from incremental_gmm.utils import (
    load_config,
    load_results,
    moving_average,
    save_config,
    save_results,
    set_seed,
    setup_logging,
)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_merge_config_rejects_unknown_keys():
    config = get_default_config()
    merged = merge_config(config, {'novelty_threshold': 0.5})
    assert merged['novelty_threshold'] == 0.5
    assert config['novelty_threshold'] == 0.01

    with pytest.raises(KeyError):
        merge_config(config, {'novelty': 0.5})


@pytest.mark.parametrize('filename', ['config.yaml', 'config.json'])
def test_save_and_load_config(tmp_path, filename):
    path = str(tmp_path / 'nested' / filename)
    config = get_default_config()
    save_config(config, path)
    assert load_config(path) == config


def test_shipped_default_yaml_matches_defaults():
    path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'configs', 'default.yaml')
    assert load_config(path) == get_default_config()


def test_load_config_requires_mapping(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text('- 1\n- 2\n')
    with pytest.raises(ValueError):
        load_config(str(path))


def test_save_and_load_results(tmp_path):
    path = str(tmp_path / 'results.pkl')
    save_results({'mse': 0.25, 'values': [1.0, 2.0]}, path)
    assert load_results(path) == {'mse': 0.25, 'values': [1.0, 2.0]}


def test_setup_logging_writes_file(tmp_path, restore_root_logging):
    logger = setup_logging(str(tmp_path), 'experiment', 'DEBUG')
    logger.info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = tmp_path / 'experiment.log'
    assert log_file.exists()
    assert 'hello' in log_file.read_text()


def test_set_seed_is_reproducible():
    set_seed(7)
    first = (np.random.rand(), torch.rand(1).item())
    set_seed(7)
    second = (np.random.rand(), torch.rand(1).item())
    assert first == second


def test_moving_average():
    assert moving_average([1.0, 2.0], window=5) == [1.0, 2.0]
    assert moving_average([1.0, 3.0, 5.0, 7.0], window=2) == [1.0, 2.0, 4.0, 6.0]


def test_target_functions():
    fn, dim = make_target_function('sin')
    assert dim == 1
    assert fn(np.array([0.0])) == pytest.approx(0.0)

    fn, dim = make_target_function('step')
    assert fn(np.array([-0.1])) == -1.0
    assert fn(np.array([0.1])) == 1.0

    fn, dim = make_target_function('bumps2d')
    assert dim == 2
    assert fn(np.array([1.0, 1.0])) > 0.9

    with pytest.raises(ValueError):
        make_target_function('cosine')


def test_sample_stream_bounds():
    fn, dim = make_target_function('bumps2d')
    samples = list(sample_stream(fn, 25, -1.0, 2.0, dim, rng=np.random.default_rng(3)))
    assert len(samples) == 25
    for x, y in samples:
        assert x.shape == (2,)
        assert np.all((x >= -1.0) & (x <= 2.0))
        assert y == pytest.approx(fn(x))


def test_make_grid_shapes():
    assert make_grid(0.0, 1.0, 1, 5).shape == (5, 1)
    grid = make_grid(0.0, 1.0, 2, 4)
    assert grid.shape == (16, 2)
    np.testing.assert_array_equal(grid[0], [0.0, 0.0])
    np.testing.assert_array_equal(grid[-1], [1.0, 1.0])


def test_evaluate_mixture_counts_unexplained_points():
    mixture = IncrementalGaussianMixture(initial_variance=1.0, novelty_threshold=0.01)
    mixture.update([0.0], 2.0)

    X = np.array([[0.0], [0.5], [100.0]])
    y = np.array([2.0, 1.0, 0.0])
    results = evaluate_mixture(mixture, X, y)

    assert results['num_points'] == 3
    assert results['num_unexplained'] == 1
    assert results['num_clusters'] == 1
    assert results['mse'] == pytest.approx(0.5)
    assert results['mae'] == pytest.approx(0.5)
    assert results['max_error'] == pytest.approx(1.0)
