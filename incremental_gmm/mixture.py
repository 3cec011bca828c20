import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
import torch
from scipy.linalg import inv, LinAlgError

from .exceptions import (
    DimensionMismatchError,
    EmptyMixtureError,
    InvalidInputError,
    SingularCovarianceError,
    ZeroEvidenceError,
)

logger = logging.getLogger(__name__)


@dataclass
class GaussianCluster:
    """Gaussian cluster annotated with a regression value"""
    id: int
    mean: np.ndarray                 # μ_k
    covariance: np.ndarray           # Σ_k
    inv_covariance: np.ndarray       # Σ_k^-1, cached
    normalization: float             # leading coefficient of the density
    value: float                     # regression estimate of the region
    accumulated_responsibility: float = 1.0  # sprobability, pseudo-count
    mixing_weight: float = 1.0               # probability, prior mass

    def density(self, x: np.ndarray) -> float:
        """Gaussian likelihood of x under this cluster"""
        diff = x - self.mean
        return float(self.normalization * np.exp(-0.5 * (diff @ self.inv_covariance @ diff)))


class UpdateResult(NamedTuple):
    cluster_id: int
    created: bool
    learning_rate: float
    responsibility: float


class IncrementalGaussianMixture:
    """Online mixture of Gaussians used as a scalar regressor.

    Every call to ``update`` either spawns a new cluster centred on the input
    (when no existing cluster explains it well enough) or moves the cluster
    with the greatest evidence towards the observation, with a learning rate
    that decays as the cluster accumulates responsibility. ``predict`` blends
    the cluster values by their posterior responsibility for the input.

    The engine keeps no internal lock: concurrent ``predict`` calls are safe
    only while no ``update`` runs.
    """

    def __init__(self,
                 initial_variance: float,
                 novelty_threshold: float,
                 input_dim: Optional[int] = None,
                 max_condition_number: float = 1e12):
        if not math.isfinite(initial_variance) or initial_variance <= 0:
            raise ValueError(f"initial_variance must be positive, got {initial_variance}")
        if not math.isfinite(novelty_threshold):
            raise ValueError(f"novelty_threshold must be finite, got {novelty_threshold}")
        if novelty_threshold < 0:
            raise ValueError(f"novelty_threshold must be non-negative, got {novelty_threshold}")
        if max_condition_number <= 1:
            raise ValueError(f"max_condition_number must be > 1, got {max_condition_number}")

        self.initial_variance = float(initial_variance)
        self.novelty_threshold = float(novelty_threshold)
        self.max_condition_number = float(max_condition_number)

        self._clusters: List[GaussianCluster] = []
        self._input_dim: Optional[int] = None
        self._inv_2pi_d: Optional[float] = None  # 1 / (2π)^(D/2)
        if input_dim is not None:
            self._set_input_dim(input_dim)

        # Event tracking
        self.birth_events: List[Dict[str, Any]] = []
        self.assignment_history: List[int] = []

        logger.debug(f"Mixture initialized: σ²={self.initial_variance}, "
                     f"novelty={self.novelty_threshold}, D={self._input_dim}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'IncrementalGaussianMixture':
        return cls(initial_variance=config['initial_variance'],
                   novelty_threshold=config['novelty_threshold'],
                   input_dim=config.get('input_dim'),
                   max_condition_number=config.get('max_condition_number', 1e12))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def clusters(self) -> Tuple[GaussianCluster, ...]:
        return tuple(self._clusters)

    @property
    def num_clusters(self) -> int:
        return len(self._clusters)

    @property
    def input_dim(self) -> Optional[int]:
        return self._input_dim

    def __len__(self):
        return len(self._clusters)

    def get_statistics(self) -> Dict[str, Any]:
        """Summary of the mixture state"""
        total_updates = len(self.assignment_history)
        return {
            'num_clusters': len(self._clusters),
            'input_dim': self._input_dim,
            'total_updates': total_updates,
            'total_births': len(self.birth_events),
            'birth_rate': len(self.birth_events) / total_updates if total_updates else 0.0,
            'total_accumulated_responsibility': self._total_accumulated_responsibility(),
            'mixing_weight_sum': sum(c.mixing_weight for c in self._clusters),
            'cluster_values': [c.value for c in self._clusters],
            'cluster_accumulated_responsibility': [c.accumulated_responsibility for c in self._clusters],
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def density(self, cluster_id: int, x) -> float:
        """p(x | cluster)"""
        if not 0 <= cluster_id < len(self._clusters):
            raise IndexError(f"no cluster with id {cluster_id}")
        x = self._prepare_input(x)
        return self._clusters[cluster_id].density(x)

    def evidences(self, x) -> np.ndarray:
        """p(x | cluster) * p(cluster) for every cluster"""
        return self._evidences(self._prepare_input(x))

    def responsibilities(self, x) -> np.ndarray:
        """Posterior p(cluster | x) for every cluster"""
        x = self._prepare_input(x)
        return self._normalize(self._evidences(x))

    def predict(self, x) -> float:
        """Responsibility-weighted blend of the cluster values"""
        x = self._prepare_input(x)
        responsibilities = self._normalize(self._evidences(x))
        values = np.array([c.value for c in self._clusters])
        return float(values @ responsibilities)

    def predict_batch(self, X) -> np.ndarray:
        """Predict every row of X, shape [N, D].

        A 1-D X is read as a single input when its length equals D > 1, and
        as N scalar inputs otherwise.
        """
        if isinstance(X, torch.Tensor):
            X = X.detach().cpu().numpy()
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            if self._input_dim is not None and self._input_dim > 1 and X.size == self._input_dim:
                X = X.reshape(1, -1)
            else:
                X = X.reshape(-1, 1)
        return np.array([self.predict(row) for row in X])

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def update(self, x, target: float) -> UpdateResult:
        """Incorporate one (input, target) observation"""
        x = self._prepare_input(x)
        try:
            target = float(target)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"target must be a scalar, got {target!r}") from e
        if not math.isfinite(target):
            raise InvalidInputError(f"target must be finite, got {target}")

        evidences = self._evidences(x)

        # Novel iff no cluster explains x above its own peak density scaled
        # by the novelty threshold. Vacuously true for an empty mixture.
        normalizations = np.array([c.normalization for c in self._clusters])
        novel = bool(np.all(evidences <= normalizations * self.novelty_threshold))

        if novel:
            result = self._create_cluster(x, target)
        else:
            result = self._update_winner(x, target, evidences)

        self.assignment_history.append(result.cluster_id)
        return result

    def _create_cluster(self, x: np.ndarray, target: float) -> UpdateResult:
        dim = x.shape[0]
        inv_2pi_d = self._inv_2pi_d if self._inv_2pi_d is not None else self._gaussian_factor(dim)

        covariance = np.eye(dim) * self.initial_variance
        inv_covariance, normalization = self._covariance_terms(covariance, inv_2pi_d)

        total_before = self._total_accumulated_responsibility()
        cluster = GaussianCluster(
            id=len(self._clusters),
            mean=x.copy(),
            covariance=covariance,
            inv_covariance=inv_covariance,
            normalization=normalization,
            value=target,
            accumulated_responsibility=1.0,
            mixing_weight=1.0 / (total_before + 1.0),
        )

        if self._input_dim is None:
            self._set_input_dim(dim)
        self._clusters.append(cluster)

        # Renormalize the priors of the other clusters
        new_total = total_before + 1.0
        for other in self._clusters[:-1]:
            other.mixing_weight = other.accumulated_responsibility / new_total

        self.birth_events.append({
            'timestep': len(self.assignment_history),
            'cluster_id': cluster.id,
            'initial_point': x.copy()
        })
        logger.debug(f"🐣 New cluster {cluster.id} born at μ={x}, value={target:.4f}")

        return UpdateResult(cluster_id=cluster.id, created=True,
                            learning_rate=1.0, responsibility=1.0)

    def _update_winner(self, x: np.ndarray, target: float, evidences: np.ndarray) -> UpdateResult:
        responsibilities = self._normalize(evidences)

        # Winner-take-most: the cluster with the greatest raw evidence
        # receives the whole update, scaled by its responsibility.
        winner = int(np.argmax(evidences))
        cluster = self._clusters[winner]
        proba = float(responsibilities[winner])
        total_before = self._total_accumulated_responsibility()

        new_accumulated = cluster.accumulated_responsibility + proba
        learning_rate = proba / new_accumulated
        delta_mean = x - cluster.mean
        mean_shift = learning_rate * delta_mean
        delta_prev_mean = delta_mean - mean_shift

        covariance = cluster.covariance + learning_rate * (
            np.outer(delta_prev_mean, delta_prev_mean) - cluster.covariance
        )
        inv_covariance, normalization = self._covariance_terms(covariance, self._inv_2pi_d)

        # Commit only once every new quantity is known to be valid
        cluster.accumulated_responsibility = new_accumulated
        cluster.mixing_weight = new_accumulated / (total_before + proba)
        cluster.mean = cluster.mean + mean_shift
        cluster.value += learning_rate * (target - cluster.value)
        cluster.covariance = covariance
        cluster.inv_covariance = inv_covariance
        cluster.normalization = normalization

        return UpdateResult(cluster_id=winner, created=False,
                            learning_rate=learning_rate, responsibility=proba)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _prepare_input(self, x) -> np.ndarray:
        if isinstance(x, torch.Tensor):
            x = x.detach().cpu().numpy()
        try:
            x = np.asarray(x, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"input must be a numeric vector: {e}") from e

        # A single-row batch [1, D] is accepted as one input
        if x.ndim == 2 and x.shape[0] == 1:
            x = x[0]
        if x.ndim != 1:
            raise InvalidInputError(f"input must be a 1-D vector, got shape {x.shape}")
        if x.size == 0:
            raise InvalidInputError("input vector is empty")
        if not np.all(np.isfinite(x)):
            raise InvalidInputError(f"input contains non-finite values: {x}")
        if self._input_dim is not None and x.shape[0] != self._input_dim:
            raise DimensionMismatchError(self._input_dim, x.shape[0])
        return x

    def _set_input_dim(self, dim: int):
        dim = int(dim)
        if dim <= 0:
            raise ValueError(f"input_dim must be positive, got {dim}")
        self._input_dim = dim
        self._inv_2pi_d = self._gaussian_factor(dim)

    @staticmethod
    def _gaussian_factor(dim: int) -> float:
        factor = math.exp(-0.5 * dim * math.log(2.0 * math.pi))
        if factor == 0.0:
            raise InvalidInputError(f"input dimension {dim} is too large for a float64 density")
        return factor

    def _evidences(self, x: np.ndarray) -> np.ndarray:
        return np.array([c.density(x) * c.mixing_weight for c in self._clusters], dtype=np.float64)

    def _normalize(self, evidences: np.ndarray) -> np.ndarray:
        if evidences.size == 0:
            raise EmptyMixtureError("the mixture has no cluster yet")

        total = evidences.sum()
        if not total > 0:
            raise ZeroEvidenceError(f"no cluster explains the input (evidence sum {total})")
        return evidences / total

    def _total_accumulated_responsibility(self) -> float:
        return float(sum(c.accumulated_responsibility for c in self._clusters))

    def _covariance_terms(self, covariance: np.ndarray, inv_2pi_d: float) -> Tuple[np.ndarray, float]:
        """Inverse and density normalization of a covariance matrix.

        The normalization uses the Frobenius norm of the covariance where a
        textbook Gaussian would use its determinant. Predictions depend on this
        scaling, so it must stay as is.
        """
        if not np.all(np.isfinite(covariance)):
            raise SingularCovarianceError("covariance contains non-finite values")

        with np.errstate(divide='ignore', invalid='ignore'):
            condition = np.linalg.cond(covariance)
        if not np.isfinite(condition) or condition > self.max_condition_number:
            logger.warning(f"⚠️ Rejecting near-singular covariance (condition number {condition:.3e})")
            raise SingularCovarianceError(f"covariance is numerically singular "
                                          f"(condition number {condition:.3e})")

        try:
            inv_covariance = inv(covariance)
        except LinAlgError as e:
            raise SingularCovarianceError(f"covariance inversion failed: {e}") from e

        norm = np.linalg.norm(covariance)
        if not norm > 0:
            raise SingularCovarianceError("covariance has zero norm")

        return inv_covariance, inv_2pi_d / math.sqrt(norm)
