__all__ = ["LSRTM"]

import logging
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from pylsrtm.optimization.callback import Callbacks
from pylsrtm.optimization.cls_gaussnewton import GaussNewtonLSRTM
from pylsrtm.utils.acquisition import grid_indices, surface_array
from pylsrtm.utils.model import crop_boundary, extend_boundary, slowsq2vel, vel2slowsq
from pylsrtm.utils.typing import BoundsLike, IntNDArray, NDArray
from pylsrtm.utils.wavelets import (
    active_frequencies,
    ricker,
    time_axis,
    wavelet_spectrum,
)
from pylsrtm.waveeqprocessing.survey import SurveySimulator

logger = logging.getLogger(__name__)


class LSRTM:
    r"""Least-squares reverse-time migration (LSRTM).

    Estimate a velocity model given the true model ``vel`` used to simulate
    the observed data and a smooth initial model ``vel0``, for shots and
    receivers deployed at the surface.

    Parameters
    ----------
    vel : :obj:`numpy.ndarray`
        True velocity model of size :math:`[n_z \times n_x]`
    vel0 : :obj:`numpy.ndarray`
        Initial (smooth) velocity model of size :math:`[n_z \times n_x]`
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    nbound : :obj:`int`, optional
        Width of the absorbing boundary
    srcs : :obj:`numpy.ndarray`, optional
        Lateral grid indices of the shots (if ``None``, one shot per column)
    recs : :obj:`numpy.ndarray`, optional
        Lateral grid indices of the receivers (if ``None``, one receiver per
        column)
    f0 : :obj:`float` or :obj:`tuple`, optional
        Central frequency (or frequencies) of the Ricker wavelet
    order : :obj:`int`, optional
        Order of the finite-difference stencils (``2`` or ``4``)
    alpha : :obj:`float`, optional
        Stability factor used to choose the time step of the wavelet
    freqthresh : :obj:`float`, optional
        Spectral amplitude threshold used to select active frequencies
    omegas : :obj:`numpy.ndarray`, optional
        Active angular frequencies. If provided together with ``wavs``,
        the wavelet is not created and these frequencies are used instead
    wavs : :obj:`numpy.ndarray`, optional
        Complex wavelet amplitudes at ``omegas``

    Attributes
    ----------
    Sop : :class:`pylsrtm.waveeqprocessing.SurveySimulator`
        Survey simulator
    velext : :obj:`numpy.ndarray`
        True velocity model extended with absorbing boundary
    vel0ext : :obj:`numpy.ndarray`
        Initial velocity model extended with absorbing boundary

    Raises
    ------
    ValueError
        If ``vel`` and ``vel0`` have different shapes or if only one of
        ``omegas`` and ``wavs`` is provided

    Notes
    -----
    The observed data are modelled once from the true model at all the
    active frequencies of the source wavelet. The initial model is then
    iteratively updated with :class:`pylsrtm.optimization.cls_gaussnewton.GaussNewtonLSRTM`
    in terms of squared slowness over the padded grid, and converted back
    into velocity over the physical grid once the inversion has terminated.

    """

    def __init__(
        self,
        vel: NDArray,
        vel0: NDArray,
        dz: float,
        dx: float,
        nbound: int = 20,
        srcs: Optional[IntNDArray] = None,
        recs: Optional[IntNDArray] = None,
        f0: Union[float, Sequence[float]] = 20.0,
        order: int = 2,
        alpha: Optional[float] = None,
        freqthresh: Optional[float] = None,
        omegas: Optional[NDArray] = None,
        wavs: Optional[NDArray] = None,
    ) -> None:
        if vel.shape != vel0.shape:
            raise ValueError(
                f"vel {vel.shape} and vel0 {vel0.shape} must have the same shape"
            )
        if (omegas is None) != (wavs is None):
            raise ValueError("omegas and wavs must be provided together")
        self.nz, self.nx = vel.shape
        self.dz, self.dx = dz, dx
        self.nbound = nbound
        self.velext = extend_boundary(vel, nbound)
        self.vel0ext = extend_boundary(vel0, nbound)

        # source wavelet and active frequencies
        if omegas is None:
            self.t, self.dt, self.nfft = time_axis(vel, dz, dx, alpha=alpha)
            self.wav, _, self.wavc = ricker(self.t[: len(self.t) // 2 + 1], f0=f0)
            w, wavf = wavelet_spectrum(self.wav, self.dt, nfft=self.nfft)
            omegas, wavs = active_frequencies(w, wavf, freqthresh=freqthresh)
            logger.info(
                "%d active frequencies between %.2f and %.2f Hz",
                len(omegas),
                omegas[0] / (2 * np.pi),
                omegas[-1] / (2 * np.pi),
            )

        # acquisition geometry on the surface
        srcs = surface_array(self.nx, 0, self.nx - 1) if srcs is None else srcs
        recs = surface_array(self.nx, 0, self.nx - 1) if recs is None else recs
        self.isrc = grid_indices(0, srcs, nbound, self.velext.shape)
        self.irec = grid_indices(0, recs, nbound, self.velext.shape)

        self.Sop = SurveySimulator(
            self.isrc, self.irec, omegas, wavs, nbound, dz, dx, order=order
        )
        self.dtrue = None

    def modelling(self, pool=None) -> NDArray:
        r"""Model observed data

        Parameters
        ----------
        pool : :obj:`multiprocessing.pool.Pool`, optional
            Pool of workers (``None`` for serial mode)

        Returns
        -------
        dtrue : :obj:`numpy.ndarray`
            Observed data of size :math:`[n_r \times n_s \times n_\omega]`

        """
        self.dtrue = self.Sop.simulate(vel2slowsq(self.velext), kind="slowsq", pool=pool)
        return self.dtrue

    def solve(
        self,
        niter: Optional[int] = None,
        delta: Optional[float] = None,
        epsilon: Optional[float] = None,
        damp: float = 5.0,
        hessian: str = "diagonal",
        bounds: BoundsLike = None,
        illumination: str = "damp",
        backtrack: int = 0,
        m0: Optional[NDArray] = None,
        dres0: Optional[NDArray] = None,
        nproc: Optional[int] = None,
        callbacks: Optional[Sequence[Callbacks]] = None,
        show: bool = False,
    ) -> Tuple[NDArray, int, NDArray, str]:
        r"""Solve least-squares reverse-time migration

        Parameters
        ----------
        niter : :obj:`int`, optional
            Maximum number of iterations
        delta : :obj:`float`, optional
            Tolerance on the relative model change
        epsilon : :obj:`float`, optional
            Step scaling
        damp : :obj:`float`, optional
            Damping of the Hessian relative to its maximum diagonal value
        hessian : :obj:`str`, optional
            Hessian approximation (``diagonal`` or ``exact``)
        bounds : :obj:`tuple`, optional
            Minimum and maximum velocity used to clip the updated model
        illumination : :obj:`str`, optional
            Policy at grid points with zero pseudo-Hessian (``damp`` or ``zero``)
        backtrack : :obj:`int`, optional
            Maximum number of step halvings used to enforce a misfit decrease
        m0 : :obj:`numpy.ndarray`, optional
            Initial squared slowness model over the padded grid (if ``None``,
            the squared slowness of the extended initial model). Together
            with ``dres0``, it allows restarting from a saved iteration
        dres0 : :obj:`numpy.ndarray`, optional
            Residual data of ``m0`` (if ``None``, computed by modelling ``m0``)
        nproc : :obj:`int`, optional
            Number of processes used to evaluate the frequencies in parallel
        callbacks : :obj:`list`, optional
            Callbacks objects used to implement custom callbacks
        show : :obj:`bool`, optional
            Display iterations log

        Returns
        -------
        velinv : :obj:`numpy.ndarray`
            Estimated velocity model of size :math:`[n_z \times n_x]`
        iiter : :obj:`int`
            Number of executed iterations
        cost : :obj:`numpy.ndarray`
            History of the relative model change
        status : :obj:`str`
            Termination status (``converged`` or ``maxiter``)

        """
        self.solver = GaussNewtonLSRTM(self.Sop, callbacks=callbacks, nproc=nproc)
        if self.dtrue is None:
            try:
                self.modelling(pool=self.solver.pool)
            except Exception:
                self.solver.finalize()
                raise
        self.minv, iiter, cost, status = self.solver.solve(
            self.dtrue,
            vel2slowsq(self.vel0ext) if m0 is None else m0,
            niter=niter,
            delta=delta,
            epsilon=epsilon,
            damp=damp,
            hessian=hessian,
            bounds=bounds,
            illumination=illumination,
            backtrack=backtrack,
            dres0=dres0,
            show=show,
        )
        velinv = crop_boundary(slowsq2vel(self.minv), self.nbound)
        return velinv, iiter, cost, status
