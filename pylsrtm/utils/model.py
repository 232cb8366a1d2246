__all__ = [
    "extend_boundary",
    "crop_boundary",
    "vel2slowsq",
    "slowsq2vel",
]

import numpy as np

from pylsrtm.utils.typing import NDArray


def extend_boundary(model: NDArray, nbound: int) -> NDArray:
    r"""Extend model for absorbing boundary

    Pad a model of size :math:`[n_z \times n_x]` by ``nbound`` cells on the
    left, right and bottom edges by replicating the nearest physical values.
    The top edge (free surface) is not padded.

    Parameters
    ----------
    model : :obj:`numpy.ndarray`
        Physical model
    nbound : :obj:`int`
        Width of the absorbing boundary

    Returns
    -------
    modelext : :obj:`numpy.ndarray`
        Extended model of size :math:`[(n_z + n_b) \times (n_x + 2 n_b)]`

    """
    if nbound < 0:
        raise ValueError(f"nbound={nbound} must be non-negative")
    return np.pad(model, ((0, nbound), (nbound, nbound)), mode="edge")


def crop_boundary(modelext: NDArray, nbound: int) -> NDArray:
    """Remove absorbing boundary from an extended model"""
    if nbound == 0:
        return modelext.copy()
    return modelext[:-nbound, nbound:-nbound].copy()


def vel2slowsq(vel: NDArray) -> NDArray:
    """Convert velocity into squared slowness"""
    if np.any(vel <= 0):
        raise ValueError("velocity must be positive")
    return 1.0 / vel**2


def slowsq2vel(m: NDArray) -> NDArray:
    """Convert squared slowness into velocity"""
    if np.any(m <= 0):
        raise ValueError("squared slowness must be positive")
    return 1.0 / np.sqrt(m)
