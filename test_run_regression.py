#!/usr/bin/env python3
"""
End-to-end tests of the regression runner
"""

import logging
import math

import pytest

from incremental_gmm.config import get_default_config, merge_config
from incremental_gmm.utils import load_results, save_config
from run_regression import main, run


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


def test_run_fits_sine():
    config = merge_config(get_default_config(), {'num_samples': 300, 'eval_points': 50,
                                                 'log_every': 100, 'seed': 1})
    results = run(config, logging.getLogger('test_run'))

    stats = results['statistics']
    assert stats['total_updates'] == 300
    assert 1 <= stats['num_clusters'] <= 300
    assert stats['input_dim'] == 1

    evaluation = results['evaluation']
    assert evaluation['num_points'] == 50
    assert evaluation['num_unexplained'] < 50
    assert math.isfinite(evaluation['mse'])
    assert len(results['online_abs_error']) <= 299


def test_main_with_config_file(tmp_path, restore_root_logging):
    config_path = str(tmp_path / 'run.yaml')
    save_config({'target_function': 'step', 'num_samples': 150, 'eval_points': 30,
                 'log_every': 50}, config_path)
    results_path = str(tmp_path / 'out' / 'results.pkl')

    results = main(['--config', config_path, '--seed', '3',
                    '--log_dir', str(tmp_path / 'logs'),
                    '--experiment_name', 'step_run',
                    '--results', results_path])

    assert results['config']['target_function'] == 'step'
    assert results['config']['seed'] == 3
    assert results['statistics']['total_updates'] == 150
    assert (tmp_path / 'logs' / 'step_run.log').exists()

    saved = load_results(results_path)
    assert saved['statistics'] == results['statistics']
    assert saved['evaluation'] == results['evaluation']


def test_main_rejects_unknown_config_keys(tmp_path, restore_root_logging):
    config_path = str(tmp_path / 'bad.yaml')
    save_config({'learning_rate': 0.1}, config_path)
    with pytest.raises(KeyError):
        main(['--config', config_path, '--log_dir', str(tmp_path)])
