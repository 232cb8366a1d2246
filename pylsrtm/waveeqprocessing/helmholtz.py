__all__ = [
    "cpml_profile",
    "HelmholtzCPML",
    "helmholtz",
]

import logging
from typing import Tuple

import numpy as np
from scipy.sparse import csc_matrix, diags, identity, kron
from scipy.sparse.linalg import splu

from pylsrtm.utils.typing import DTypeLike, NDArray

logger = logging.getLogger(__name__)

# centered finite-difference coefficients of first and second derivatives
_fdcoeffs = {
    2: (np.array([-1 / 2, 0, 1 / 2]), np.array([1.0, -2.0, 1.0])),
    4: (
        np.array([1 / 12, -2 / 3, 0, 2 / 3, -1 / 12]),
        np.array([-1 / 12, 4 / 3, -5 / 2, 4 / 3, -1 / 12]),
    ),
}


def _fdmatrix(n: int, coeffs: NDArray, sampling: float) -> csc_matrix:
    """Centered derivative matrix with zero values outside the grid"""
    half = len(coeffs) // 2
    offsets = np.arange(-half, half + 1)
    nonzero = coeffs != 0
    return diags(
        list(coeffs[nonzero] / sampling), list(offsets[nonzero]), shape=(n, n)
    ).tocsc()


def cpml_profile(
    n: int,
    nbound: int,
    sampling: float,
    vmax: float,
    start: bool = True,
    end: bool = True,
    rcoef: float = 1e-3,
) -> Tuple[NDArray, NDArray]:
    r"""CPML damping profile

    Quadratic damping profile along one axis of the padded grid and its
    spatial derivative.

    Parameters
    ----------
    n : :obj:`int`
        Number of samples along the axis (including boundary)
    nbound : :obj:`int`
        Width of the absorbing boundary
    sampling : :obj:`float`
        Sampling step along the axis
    vmax : :obj:`float`
        Maximum velocity of the model
    start : :obj:`bool`, optional
        Absorbing boundary at the start of the axis
    end : :obj:`bool`, optional
        Absorbing boundary at the end of the axis
    rcoef : :obj:`float`, optional
        Theoretical reflection coefficient at normal incidence

    Returns
    -------
    d : :obj:`numpy.ndarray`
        Damping profile
    dd : :obj:`numpy.ndarray`
        Derivative of the damping profile along the axis

    Notes
    -----
    The damping profile is zero in the interior of the model and grows as

    .. math::
        d(x) = d_0 \left(\frac{l(x)}{L}\right)^2, \quad
        d_0 = \frac{3 v_{max} \log(1/R)}{2 L}

    where :math:`l(x)` is the distance from the interior edge of the boundary
    and :math:`L = n_b \Delta x` is its thickness.

    """
    d = np.zeros(n)
    dd = np.zeros(n)
    if nbound == 0:
        return d, dd
    thick = nbound * sampling
    d0 = 3.0 * vmax * np.log(1.0 / rcoef) / (2.0 * thick)
    dist = np.arange(nbound, 0, -1) * sampling
    if start:
        d[:nbound] = d0 * (dist / thick) ** 2
        dd[:nbound] = -2.0 * d0 * dist / thick**2
    if end:
        d[-nbound:] = d0 * (dist[::-1] / thick) ** 2
        dd[-nbound:] = 2.0 * d0 * dist[::-1] / thick**2
    return d, dd


class HelmholtzCPML:
    r"""Helmholtz operator with CPML boundaries.

    Assemble and factorize the frequency-domain acoustic wave equation
    for a single angular frequency over a model padded with an absorbing
    boundary on its left, right and bottom edges (the top edge acts as a
    free surface).

    Parameters
    ----------
    model : :obj:`numpy.ndarray`
        Velocity (or squared slowness) model of size
        :math:`[(n_z + n_b) \times (n_x + 2 n_b)]`
    omega : :obj:`float`
        Angular frequency
    nbound : :obj:`int`
        Width of the absorbing boundary
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    order : :obj:`int`, optional
        Order of the finite-difference stencils (``2`` or ``4``)
    kind : :obj:`str`, optional
        Kind of model (``velocity`` or ``slowsq``)
    rcoef : :obj:`float`, optional
        Theoretical reflection coefficient of the absorbing boundary
    dtype : :obj:`str`, optional
        Type of elements of the system matrix

    Attributes
    ----------
    A : :obj:`scipy.sparse.csc_matrix`
        System matrix of size :math:`[N \times N]` with
        :math:`N = (n_z + n_b)(n_x + 2 n_b)`
    dims : :obj:`tuple`
        Shape of the padded model

    Raises
    ------
    ValueError
        If ``omega`` is not strictly positive, or if the model, sampling,
        or boundary width are invalid
    NotImplementedError
        If ``order`` or ``kind`` are not supported

    Notes
    -----
    The Helmholtz equation with complex coordinate stretching
    :math:`s_x = 1 / (1 + i d_x(x) / \omega)` (and similarly along depth)
    reads

    .. math::
        -\left( s_x \frac{\partial}{\partial x}
        \left(s_x \frac{\partial u}{\partial x}\right) +
        s_z \frac{\partial}{\partial z}
        \left(s_z \frac{\partial u}{\partial z}\right) +
        \omega^2 m u \right) = f

    where :math:`m = 1/v^2`. Expanding the stretched derivatives yields
    :math:`s_x^2 \partial_{xx} + s_x s'_x \partial_x` terms, so that the
    first-derivative contributions make the system matrix non-symmetric
    inside the boundary. Wavefields are ordered as the row-major flattening
    of the padded model, and values outside of the grid are taken to be zero.

    The system matrix is factorized once (at the first call of
    :meth:`solve`) and the factorization is reused for any number of
    right-hand sides.

    """

    def __init__(
        self,
        model: NDArray,
        omega: float,
        nbound: int,
        dz: float,
        dx: float,
        order: int = 2,
        kind: str = "velocity",
        rcoef: float = 1e-3,
        dtype: DTypeLike = "complex128",
    ) -> None:
        if omega <= 0:
            raise ValueError(f"omega={omega} must be strictly positive")
        if order not in _fdcoeffs:
            raise NotImplementedError("order must be 2 or 4")
        if dz <= 0 or dx <= 0:
            raise ValueError("dz and dx must be positive")
        model = np.asarray(model, dtype=float)
        if model.ndim != 2:
            raise ValueError("model must be a 2-dimensional array")
        if np.any(model <= 0):
            raise ValueError("model must be strictly positive")
        if nbound < 0 or nbound >= model.shape[0] or 2 * nbound >= model.shape[1]:
            raise ValueError(f"nbound={nbound} is not compatible with model shape")
        if kind == "velocity":
            self.m = 1.0 / model**2
            self.vmax = float(model.max())
        elif kind == "slowsq":
            self.m = model
            self.vmax = float(1.0 / np.sqrt(model.min()))
        else:
            raise NotImplementedError("kind must be velocity or slowsq")

        self.dims = model.shape
        self.omega = omega
        self.nbound = nbound
        self.dz, self.dx = dz, dx
        self.order = order
        self.rcoef = rcoef
        self.dtype = np.dtype(dtype)
        self.A = self._assemble()
        self._lu = None

    def __repr__(self) -> str:
        return (
            f"<{self.dims[0]}x{self.dims[1]} {type(self).__name__} "
            f"at omega={self.omega:.4f} with dtype={self.dtype}>"
        )

    @property
    def npoints(self) -> int:
        return self.dims[0] * self.dims[1]

    def _stretched(
        self, n: int, sampling: float, start: bool, end: bool
    ) -> csc_matrix:
        """Stretched second derivative along one axis"""
        first, second = _fdcoeffs[self.order]
        d, dd = cpml_profile(
            n, self.nbound, sampling, self.vmax, start=start, end=end, rcoef=self.rcoef
        )
        s = 1.0 / (1.0 + 1j * d / self.omega)
        sds = -1j * dd * s**3 / self.omega
        return (
            diags(s**2) @ _fdmatrix(n, second, sampling**2)
            + diags(sds) @ _fdmatrix(n, first, sampling)
        )

    def _assemble(self) -> csc_matrix:
        nz, nx = self.dims
        Dx = self._stretched(nx, self.dx, start=True, end=True)
        # no absorbing boundary at the free surface
        Dz = self._stretched(nz, self.dz, start=False, end=True)
        lap = kron(identity(nz), Dx) + kron(Dz, identity(nx))
        A = -(lap + diags(self.omega**2 * self.m.ravel()))
        return csc_matrix(A, dtype=self.dtype)

    def solve(self, rhs: NDArray) -> NDArray:
        r"""Solve Helmholtz equation

        Parameters
        ----------
        rhs : :obj:`numpy.ndarray`
            Source vector of size :math:`[N]` or matrix of size
            :math:`[N \times n_{src}]` (one source per column)

        Returns
        -------
        u : :obj:`numpy.ndarray`
            Wavefield(s) with the same size of ``rhs``

        """
        rhs = np.asarray(rhs, dtype=self.dtype)
        if rhs.shape[0] != self.npoints:
            raise ValueError(
                f"rhs has {rhs.shape[0]} rows, operator has {self.npoints} points"
            )
        if self._lu is None:
            self._lu = splu(self.A)
        return self._lu.solve(rhs)


def helmholtz(
    model: NDArray,
    srcs: NDArray,
    omega: float,
    order: int,
    nbound: int,
    dz: float,
    dx: float,
    kind: str = "velocity",
) -> Tuple[csc_matrix, NDArray]:
    r"""Frequency-domain acoustic modelling

    Solve the Helmholtz equation with CPML boundaries for a batch of
    sources sharing the same angular frequency.

    Parameters
    ----------
    model : :obj:`numpy.ndarray`
        Velocity (or squared slowness) model over the padded grid
    srcs : :obj:`numpy.ndarray`
        Source matrix of size :math:`[N \times n_{src}]`
    omega : :obj:`float`
        Angular frequency
    order : :obj:`int`
        Order of the finite-difference stencils (``2`` or ``4``)
    nbound : :obj:`int`
        Width of the absorbing boundary
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    kind : :obj:`str`, optional
        Kind of model (``velocity`` or ``slowsq``)

    Returns
    -------
    A : :obj:`scipy.sparse.csc_matrix`
        System matrix
    u : :obj:`numpy.ndarray`
        Wavefields of size :math:`[N \times n_{src}]`

    See Also
    --------
    HelmholtzCPML : Helmholtz operator with reusable factorization

    """
    Hop = HelmholtzCPML(model, omega, nbound, dz, dx, order=order, kind=kind)
    return Hop.A, Hop.solve(srcs)
