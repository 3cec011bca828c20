from typing import Callable, Dict, Iterator, Optional, Tuple

import numpy as np

TargetFunction = Callable[[np.ndarray], float]


def _sin(x: np.ndarray) -> float:
    return float(np.sin(x[0]))


def _step(x: np.ndarray) -> float:
    return 1.0 if x[0] >= 0.0 else -1.0


def _bumps2d(x: np.ndarray) -> float:
    # Two opposite bumps on a flat plane
    return float(np.exp(-np.sum((x - 1.0) ** 2)) - np.exp(-np.sum((x + 1.0) ** 2)))


TARGET_FUNCTIONS: Dict[str, Tuple[TargetFunction, int]] = {
    'sin': (_sin, 1),
    'step': (_step, 1),
    'bumps2d': (_bumps2d, 2),
}


def make_target_function(name: str) -> Tuple[TargetFunction, int]:
    """Return the target function registered under name and its input dimension"""
    try:
        return TARGET_FUNCTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown target function '{name}', "
                         f"expected one of {sorted(TARGET_FUNCTIONS)}") from None


def sample_stream(fn: TargetFunction, num_samples: int, low: float, high: float, dim: int,
                  noise_std: float = 0.0,
                  rng: Optional[np.random.Generator] = None) -> Iterator[Tuple[np.ndarray, float]]:
    """Yield (x, y) pairs with x uniform in [low, high]^dim and y = fn(x) + noise"""
    rng = rng if rng is not None else np.random.default_rng()
    for _ in range(num_samples):
        x = rng.uniform(low, high, size=dim)
        y = fn(x)
        if noise_std > 0:
            y += float(rng.normal(0.0, noise_std))
        yield x, y


def make_grid(low: float, high: float, dim: int, points: int) -> np.ndarray:
    """Regular grid with `points` values per axis, shape [points**dim, dim]"""
    axis = np.linspace(low, high, points)
    mesh = np.meshgrid(*([axis] * dim), indexing='ij')
    return np.stack([m.ravel() for m in mesh], axis=1)
