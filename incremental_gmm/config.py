from typing import Any, Dict, Optional


def get_default_config():
    """Get default configuration"""
    return {
        'initial_variance': 1.0,  # new clusters start as initial_variance * I
        'novelty_threshold': 0.01,  # fraction of peak density below which an input is novel
        'input_dim': None,  # None: fixed by the first update
        'max_condition_number': 1e12,  # covariances above this are treated as singular
        'target_function': 'sin',
        'num_samples': 2000,
        'input_low': -3.0,
        'input_high': 3.0,
        'noise_std': 0.0,
        'eval_points': 200,  # per axis
        'log_every': 500,
        'log_level': 'INFO',
        'seed': 42
    }


def merge_config(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of base updated with overrides, rejecting unknown keys"""
    merged = dict(base)
    if not overrides:
        return merged

    unknown = sorted(set(overrides) - set(base))
    if unknown:
        raise KeyError(f"Unknown configuration keys: {', '.join(unknown)}")

    merged.update(overrides)
    return merged
