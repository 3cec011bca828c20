import numpy as np


class MixtureError(Exception):
    """Base class for failures raised by the mixture engine"""


class EmptyMixtureError(MixtureError):
    """No cluster exists yet, so there is nothing to query"""


class ZeroEvidenceError(MixtureError):
    """Every cluster assigns zero evidence to the input"""


class DimensionMismatchError(MixtureError, ValueError):
    """Input length disagrees with the dimensionality of the mixture"""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"expected an input of dimension {expected}, got {got}")


class SingularCovarianceError(MixtureError, np.linalg.LinAlgError):
    """Covariance matrix cannot be (reliably) inverted"""


class InvalidInputError(MixtureError, ValueError):
    """Input vector or target is malformed or not finite"""
