import logging
from typing import Dict

import numpy as np

from .exceptions import ZeroEvidenceError
from .mixture import IncrementalGaussianMixture

logger = logging.getLogger(__name__)


def evaluate_mixture(mixture: IncrementalGaussianMixture, X: np.ndarray, y: np.ndarray) -> Dict:
    """Evaluate mixture predictions against targets.

    Points that no cluster explains (zero total evidence) are counted in
    ``num_unexplained`` and left out of the error statistics.
    """
    predictions = []
    targets = []
    unexplained = 0

    for x_i, y_i in zip(X, y):
        try:
            predictions.append(mixture.predict(x_i))
        except ZeroEvidenceError:
            unexplained += 1
            continue
        targets.append(float(y_i))

    if unexplained:
        logger.warning(f"⚠️ {unexplained}/{len(X)} evaluation points not explained by any cluster")

    if predictions:
        errors = np.array(predictions) - np.array(targets)
        mse = float(np.mean(errors ** 2))
        mae = float(np.mean(np.abs(errors)))
        max_error = float(np.max(np.abs(errors)))
    else:
        mse = mae = max_error = float('nan')

    return {
        'mse': mse,
        'mae': mae,
        'max_error': max_error,
        'num_points': len(X),
        'num_unexplained': unexplained,
        'num_clusters': mixture.num_clusters
    }
