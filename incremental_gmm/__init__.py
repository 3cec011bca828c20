from .config import get_default_config, merge_config
from .exceptions import (
    DimensionMismatchError,
    EmptyMixtureError,
    InvalidInputError,
    MixtureError,
    SingularCovarianceError,
    ZeroEvidenceError,
)
from .mixture import GaussianCluster, IncrementalGaussianMixture, UpdateResult

__version__ = '0.1.0'
