__all__ = [
    "surface_array",
    "grid_indices",
    "point_sources",
]

from typing import Optional, Tuple, Union

import numpy as np
import numpy.typing as npt

from pylsrtm.utils.typing import DTypeLike, IntNDArray, NDArray


def surface_array(
    n: int,
    left: int,
    right: int,
    kind: str = "uniform",
    rng: Optional[np.random.Generator] = None,
) -> IntNDArray:
    r"""Surface array

    Lateral grid indices of an array of shots (or receivers) deployed
    between the ``left`` and ``right`` columns of the physical grid.

    Parameters
    ----------
    n : :obj:`int`
        Number of elements
    left : :obj:`int`
        Index of the leftmost available column
    right : :obj:`int`
        Index of the rightmost available column (included)
    kind : :obj:`str`, optional
        Deployment type: ``uniform`` (regular stride) or ``random``
        (sorted random subset of the available columns)
    rng : :obj:`numpy.random.Generator`, optional
        Random generator used when ``kind="random"``

    Returns
    -------
    ix : :obj:`numpy.ndarray`
        Column indices of the array

    Raises
    ------
    ValueError
        If ``n`` is not positive or larger than the available columns
    NotImplementedError
        If ``kind`` is neither ``uniform`` nor ``random``

    """
    if left < 0 or right < left:
        raise ValueError(f"invalid column range [{left}, {right}]")
    ncols = right - left + 1
    if n < 1 or n > ncols:
        raise ValueError(f"n={n} must be between 1 and {ncols}")
    if kind == "uniform":
        ix = np.arange(left, right + 1, int(np.ceil(ncols / n)))
    elif kind == "random":
        rng = np.random.default_rng() if rng is None else rng
        ix = np.sort(rng.choice(np.arange(left, right + 1), n, replace=False))
    else:
        raise NotImplementedError("kind must be uniform or random")
    return ix.astype(int)


def grid_indices(
    iz: Union[int, npt.ArrayLike],
    ix: npt.ArrayLike,
    nbound: int,
    shape: Tuple[int, int],
) -> IntNDArray:
    r"""Indices on the padded grid

    Convert physical (depth, lateral) grid positions into indices of the
    flattened model extended by ``nbound`` cells on the left, right and
    bottom edges.

    Parameters
    ----------
    iz : :obj:`int` or :obj:`numpy.ndarray`
        Depth indices (a single value is used for all positions)
    ix : :obj:`numpy.ndarray`
        Lateral indices
    nbound : :obj:`int`
        Width of the absorbing boundary
    shape : :obj:`tuple`
        Shape of the padded model :math:`(n_z + n_b, n_x + 2 n_b)`

    Returns
    -------
    idx : :obj:`numpy.ndarray`
        Indices on the flattened padded grid

    Raises
    ------
    ValueError
        If any position falls outside the physical grid or if positions
        are repeated

    """
    ix = np.atleast_1d(np.asarray(ix, dtype=int))
    iz = np.broadcast_to(np.asarray(iz, dtype=int), ix.shape)
    nz, nx = shape[0] - nbound, shape[1] - 2 * nbound
    if len(ix) == 0:
        raise ValueError("at least one position is required")
    if np.any(ix < 0) or np.any(ix >= nx) or np.any(iz < 0) or np.any(iz >= nz):
        raise ValueError(f"positions must lie within the {nz}x{nx} physical grid")
    idx = iz * shape[1] + ix + nbound
    if len(np.unique(idx)) != len(idx):
        raise ValueError("positions must not be repeated")
    return idx


def point_sources(
    idx: IntNDArray,
    npoints: int,
    scale: complex = 1.0,
    dtype: DTypeLike = "complex128",
) -> NDArray:
    r"""Batch of point sources

    Parameters
    ----------
    idx : :obj:`numpy.ndarray`
        Indices of the sources on the flattened grid
    npoints : :obj:`int`
        Number of grid points
    scale : :obj:`complex`, optional
        Amplitude of each source (e.g., wavelet at the current frequency)
    dtype : :obj:`str`, optional
        Type of elements of the source matrix

    Returns
    -------
    srcs : :obj:`numpy.ndarray`
        Source matrix of size :math:`[n_{points} \times n_{src}]` with a single
        non-zero entry per column

    """
    srcs = np.zeros((npoints, len(idx)), dtype=dtype)
    srcs[idx, np.arange(len(idx))] = scale
    return srcs
