__all__ = ["GaussNewtonLSRTM"]

import logging
import time
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np
from scipy.linalg import solve as dense_solve

from pylsrtm.config import get_option
from pylsrtm.optimization.basesolver import Solver, _units
from pylsrtm.optimization.callback import Callbacks, _callback_stop
from pylsrtm.utils.acquisition import point_sources
from pylsrtm.utils.metrics import misfit, relative_change
from pylsrtm.utils.multiproc import create_pool, frequency_map, get_nproc
from pylsrtm.utils.typing import BoundsLike, IntNDArray, NDArray
from pylsrtm.waveeqprocessing.helmholtz import HelmholtzCPML

if TYPE_CHECKING:
    from pylsrtm.waveeqprocessing.survey import SurveySimulator

logger = logging.getLogger(__name__)


def _greens_freq(
    m: NDArray,
    omega: float,
    wav: complex,
    isrc: IntNDArray,
    irec: IntNDArray,
    nbound: int,
    dz: float,
    dx: float,
    order: int,
    dres: NDArray,
    hessian: str,
) -> Tuple[NDArray, NDArray]:
    """Pseudo-Hessian and migrated image of a single frequency"""
    tstart = time.time()
    Hop = HelmholtzCPML(m, omega, nbound, dz, dx, order=order, kind="slowsq")
    # Green's functions for every shot and every receiver
    gs = Hop.solve(point_sources(isrc, Hop.npoints))
    gr = Hop.solve(point_sources(irec, Hop.npoints))

    scale = omega**4 * np.abs(wav) ** 2
    if hessian == "diagonal":
        hess = scale * np.sum(np.abs(gs) ** 2, axis=1) * np.sum(np.abs(gr) ** 2, axis=1)
    else:
        hess = scale * (gs.conj() @ gs.T) * (gr.conj() @ gr.T)
    mig = omega**2 * wav * np.sum(gs * (gr @ dres.conj()), axis=1)
    logger.debug(
        "Generate %d Green's functions at f = %f Hz ... elapsed time = %fs",
        len(isrc) + len(irec),
        omega / (2 * np.pi),
        time.time() - tstart,
    )
    return hess, mig


class GaussNewtonLSRTM(Solver):
    r"""Gauss-Newton least-squares reverse-time migration

    Update a squared slowness model given a survey simulator ``Sop`` and
    observed data using Gauss-Newton iterations with a diagonal
    (pseudo-) Hessian.

    Parameters
    ----------
    Sop : :obj:`pylsrtm.waveeqprocessing.SurveySimulator`
        Survey simulator
    callbacks : :obj:`list`, optional
        Callbacks objects used to implement custom callbacks
    nproc : :obj:`int`, optional
        Number of processes used to evaluate the frequencies in parallel using
        ``multiprocessing`` (if ``None``, use the configured default).
        If ``nproc=1``, work in serial mode. If ``nproc=-1``, use all the
        available CPUs.

    Attributes
    ----------
    status : :obj:`str`
        State of the solver: ``init`` (created), ``iterating`` (after setup),
        ``converged`` (relative model change below ``delta``), or ``maxiter``
        (maximum number of iterations reached)
    dres : :obj:`numpy.ndarray`
        Residual data of the current model
    hess : :obj:`numpy.ndarray`
        Pseudo-Hessian (or full Hessian) of the last step
    mig : :obj:`numpy.ndarray`
        Migrated image of the last step
    dm : :obj:`numpy.ndarray`
        Model update of the last step
    cost : :obj:`list`
        History of the relative model change
    misfit : :obj:`list`
        History of the data misfit (initial value included)

    Notes
    -----
    Under the Born approximation, the residual data :math:`\mathbf{d}` for a
    source :math:`x_s`, receiver :math:`x_r`, and angular frequency
    :math:`\omega` are linearly related to a squared slowness perturbation:

    .. math::
        d(x_r, x_s, \omega) = \omega^2 W(\omega) \sum_x
        G(x, x_r, \omega) G(x, x_s, \omega) \delta m(x)

    where :math:`G` are the Green's functions of the current model and
    :math:`W` is the spectrum of the source wavelet. At every step, the
    migrated image (gradient) and the diagonal of the Gauss-Newton Hessian
    are accumulated over frequencies

    .. math::
        \mathbf{mig} = \sum_\omega \omega^2 W \sum_{x_s} G_s
        \left(\sum_{x_r} G_r d^*\right), \quad
        \mathbf{H} = \sum_\omega \omega^4 |W|^2 \sum_{x_s} |G_s|^2
        \sum_{x_r} |G_r|^2

    and the model is updated as

    .. math::
        \mathbf{m}_{k+1} = \mathbf{m}_k + \epsilon
        \frac{\Re(\mathbf{mig})}{\mathbf{H} + \lambda}, \quad
        \lambda = \text{damp} \cdot \max(\mathbf{H})

    The iterations stop when
    :math:`||\mathbf{m}_{k+1} - \mathbf{m}_k||_F / ||\mathbf{m}_k||_F < \delta`
    or when the maximum number of iterations is reached.
 When ``backtrack > 0``, the step is halved until the data misfit does
    not increase, which makes the misfit history non-increasing.

    """

    def __init__(
        self,
        Sop: "SurveySimulator",
        callbacks: Optional[Sequence[Callbacks]] = None,
        nproc: Optional[int] = None,
    ) -> None:
        super().__init__(Sop, callbacks=callbacks)
        self.nproc = get_nproc(nproc)
        self.pool = create_pool(self.nproc)
        self.status = "init"

    def _print_setup(self) -> None:
        self._print_solver(nbar=65)
        print(
            f"delta = {self.delta:10e}\tepsilon = {self.epsilon:10e}\t"
            f"niter = {self.niter}"
        )
        print(f"hessian = {self.hessian}\tdamp = {self.damp}\tnproc = {self.nproc}")
        print("-" * 65 + "\n")
        print("    Itn        ||dm||/||m||          misfit")

    def _print_step(self) -> None:
        print(
            f"{self.iiter:6g}        {self.cost[-1]:11.4e}        "
            f"{self.misfit[-1]:11.4e}"
        )

    def _print_finalize(self, nbar: int = 65) -> None:
        print(f"\nStatus = {self.status}")
        super()._print_finalize(nbar=nbar)

    def memory_usage(
        self,
        show: bool = False,
        unit: str = "B",
    ) -> float:
        """Compute memory usage of the solver

        Must be called after :meth:`setup` as it requires the size of the model.

        Parameters
        ----------
        show : :obj:`bool`, optional
            Display memory usage
        unit: :obj:`str`, optional
            Unit used to display memory usage (
            ``B``, ``KB``, ``MB`` or ``GB``)

        Returns
        -------
        memuse :obj:`float`
            Memory usage in Bytes

        """
        if not hasattr(self, "dims"):
            raise ValueError("memory_usage requires the solver to be setup")
        nbytes = np.dtype("complex128").itemsize
        npoints = self.dims[0] * self.dims[1]

        # Setup: dtrue, dres, model
        memuse = 2 * self.Sop.nrec * self.Sop.nsrc * self.Sop.nfreq * nbytes
        memuse += npoints * nbytes // 2

        # Step (per concurrent frequency): Green's functions, hessian, image
        ntasks = min(self.nproc, self.Sop.nfreq)
        memtask = npoints * (self.Sop.nsrc + self.Sop.nrec + 1) * nbytes
        if self.hessian == "diagonal":
            memtask += npoints * nbytes // 2
        else:
            memtask += npoints**2 * nbytes
        memuse += ntasks * memtask

        if show:
            print(
                f"GaussNewtonLSRTM predicted memory usage: "
                f"{memuse / _units[unit]:.2f} {unit}"
            )
        return memuse

    def setup(
        self,
        dtrue: NDArray,
        m0: NDArray,
        niter: Optional[int] = None,
        delta: Optional[float] = None,
        epsilon: Optional[float] = None,
        damp: float = 5.0,
        hessian: str = "diagonal",
        bounds: BoundsLike = None,
        illumination: str = "damp",
        backtrack: int = 0,
        dres0: Optional[NDArray] = None,
        show: bool = False,
    ) -> NDArray:
        r"""Setup solver

        Parameters
        ----------
        dtrue : :obj:`np.ndarray`
            Observed data of size :math:`[n_r \times n_s \times n_\omega]`
        m0 : :obj:`np.ndarray`
            Initial squared slowness model over the padded grid
        niter : :obj:`int`, optional
            Maximum number of iterations (if ``None``, use the configured
            default)
        delta : :obj:`float`, optional
            Tolerance on the relative model change (if ``None``, use the
            configured default)
        epsilon : :obj:`float`, optional
            Step scaling (if ``None``, use the configured default)
        damp : :obj:`float`, optional
            Damping of the Hessian relative to its maximum diagonal value
        hessian : :obj:`str`, optional
            Hessian approximation: ``diagonal`` (pseudo-Hessian) or ``exact``
            (dense Gauss-Newton Hessian, to be used only for small models)
        bounds : :obj:`tuple`, optional
            Minimum and maximum velocity used to clip the updated model
            (if ``None``, the model is not clipped)
        illumination : :obj:`str`, optional
            Policy at grid points with zero pseudo-Hessian: ``damp`` (use the
            damped update) or ``zero`` (do not update those points)
        backtrack : :obj:`int`, optional
            Maximum number of step halvings used to enforce a decrease of the
            data misfit at every iteration (``0`` disables the control and
            every update is accepted)
        dres0 : :obj:`np.ndarray`, optional
            Residual data of ``m0`` (if ``None``, computed by modelling
            ``m0``). Useful when restarting from a saved iteration
        show : :obj:`bool`, optional
            Display setup log

        Returns
        -------
        m : :obj:`np.ndarray`
            Initial model

        """
        if dtrue.shape != self.Sop.dshape:
            raise ValueError(f"dtrue has shape {dtrue.shape}, expected {self.Sop.dshape}")
        if m0.ndim != 2:
            raise ValueError("m0 must be a 2-dimensional array")
        if hessian not in ("diagonal", "exact"):
            raise NotImplementedError("hessian must be diagonal or exact")
        if illumination not in ("damp", "zero"):
            raise NotImplementedError("illumination must be damp or zero")
        if damp <= 0:
            raise ValueError(f"damp={damp} must be positive")
        if bounds is not None and not 0 < bounds[0] < bounds[1]:
            raise ValueError("bounds must satisfy 0 < vmin < vmax")
        if backtrack < 0:
            raise ValueError(f"backtrack={backtrack} must be non-negative")

        self.dtrue = dtrue
        self.dims = m0.shape
        self.niter = get_option("maxiter") if niter is None else niter
        self.delta = get_option("delta") if delta is None else delta
        self.epsilon = get_option("epsilon") if epsilon is None else epsilon
        self.damp = damp
        self.hessian = hessian
        self.bounds = bounds
        self.illumination = illumination
        self.backtrack = backtrack

        m = np.array(m0, dtype=float)
        if dres0 is None:
            self.dres = self.Sop.residual(dtrue, m, kind="slowsq", pool=self.pool)
        else:
            if dres0.shape != self.Sop.dshape:
                raise ValueError("dres0 must have the same shape of dtrue")
            self.dres = dres0
        self.hess = self.mig = self.dm = None

        # create variables to track the model change and misfit
        self.cost: List = []
        self.misfit: List = [misfit(self.dres)]
        self.iiter = 0
        self.status = "iterating"

        if show:
            self._print_setup()
        return m

    def _update(self, hess: NDArray, mig: NDArray) -> NDArray:
        """Damped Gauss-Newton model update"""
        if self.hessian == "diagonal":
            hmax = hess.max()
        else:
            hmax = np.real(np.diag(hess)).max()
        if hmax <= 0:
            logger.warning("Pseudo-Hessian is identically zero, model not updated")
            return np.zeros(mig.size)
        lamda = self.damp * hmax

        if self.hessian == "diagonal":
            dm = self.epsilon * np.real(mig) / (hess + lamda)
            unlit = hess == 0
            if np.any(unlit):
                logger.warning(
                    "Pseudo-Hessian is zero at %d grid points", np.count_nonzero(unlit)
                )
                if self.illumination == "zero":
                    dm[unlit] = 0.0
        else:
            hreal = np.real(hess)
            hreal[np.diag_indices_from(hreal)] += lamda
            dm = self.epsilon * dense_solve(hreal, np.real(mig), assume_a="pos")
        return dm

    def _trial(self, m: NDArray, dm: NDArray) -> Tuple[NDArray, NDArray]:
        """Updated model and its residual data

        When ``backtrack > 0``, the step is halved until the model is strictly
        positive and the misfit does not increase. If no such step is found,
        the current model and residual are returned unchanged.

        """
        for ihalf in range(self.backtrack + 1):
            mnew = m + dm
            if self.bounds is not None:
                vmin, vmax = self.bounds
                np.clip(mnew, 1.0 / vmax**2, 1.0 / vmin**2, out=mnew)
            if np.all(mnew > 0):
                dres = self.Sop.residual(
                    self.dtrue, mnew, kind="slowsq", pool=self.pool
                )
                if self.backtrack == 0 or misfit(dres) <= self.misfit[-1]:
                    if ihalf > 0:
                        logger.debug(
                            "Step halved %d times at iteration %d",
                            ihalf,
                            self.iiter + 1,
                        )
                    return mnew, dres
            elif self.backtrack == 0:
                raise ValueError(
                    f"Iteration {self.iiter + 1}: updated model is not strictly "
                    "positive, use bounds, backtrack or a smaller epsilon"
                )
            dm = 0.5 * dm
        logger.warning(
            "Iteration %d: misfit not decreased after %d step halvings, "
            "model not updated",
            self.iiter + 1,
            self.backtrack,
        )
        return m.copy(), self.dres

    def step(self, m: NDArray, show: bool = False) -> NDArray:
        r"""Run one step of solver

        Parameters
        ----------
        m : :obj:`np.ndarray`
            Current model to be updated by a step of Gauss-Newton (updated
            in place once the residual of the new model is available)
        show : :obj:`bool`, optional
            Display iteration log

        Returns
        -------
        m : :obj:`np.ndarray`
            Updated model

        Raises
        ------
        ValueError
            If the updated model is not strictly positive and ``backtrack=0``.
            In this case neither ``m`` nor the state of the solver are changed

        """
        Sop = self.Sop
        results = frequency_map(
            _greens_freq,
            [
                (
                    m,
                    omega,
                    wav,
                    Sop.isrc,
                    Sop.irec,
                    Sop.nbound,
                    Sop.dz,
                    Sop.dx,
                    Sop.order,
                    self.dres[..., iw],
                    self.hessian,
                )
                for iw, (omega, wav) in enumerate(zip(Sop.omegas, Sop.wavs))
            ],
            pool=self.pool,
        )
        # reduction in frequency order
        hess, mig = results[0]
        for hessw, migw in results[1:]:
            hess = hess + hessw
            mig = mig + migw

        mnew, dres = self._trial(m, self._update(hess, mig).reshape(self.dims))

        # commit the step
        mold = m.copy()
        m[:] = mnew
        self.hess = hess.reshape(self.dims) if self.hessian == "diagonal" else hess
        self.mig = mig.reshape(self.dims)
        self.dm = m - mold
        self.dres = dres

        self.iiter += 1
        self.cost.append(relative_change(m, mold))
        self.misfit.append(misfit(self.dres))
        logger.info(
            "LSRTM iteration no. %d, model norm difference = %.6f",
            self.iiter,
            self.cost[-1],
        )
        if self.cost[-1] < self.delta:
            self.status = "converged"
        if show:
            self._print_step()
        return m

    def run(
        self,
        m: NDArray,
        niter: Optional[int] = None,
        show: bool = False,
        itershow: Tuple[int, int, int] = (10, 10, 10),
    ) -> NDArray:
        r"""Run solver

        Parameters
        ----------
        m : :obj:`np.ndarray`
            Current model to be updated by multiple steps of Gauss-Newton
        niter : :obj:`int`, optional
            Maximum number of iterations. Can be set to ``None`` if already
            provided in the setup call
        show : :obj:`bool`, optional
            Display logs
        itershow : :obj:`tuple`, optional
            Display set log for the first N1 steps, last N2 steps,
            and every N3 steps in between where N1, N2, N3 are the
            three element of the list.

        Returns
        -------
        m : :obj:`np.ndarray`
            Estimated model

        """
        niter = self.niter if niter is None else niter
        while self.iiter < niter and self.status != "converged":
            showstep = (
                True
                if show
                and (
                    self.iiter < itershow[0]
                    or niter - self.iiter < itershow[1]
                    or self.iiter % itershow[2] == 0
                )
                else False
            )
            m = self.step(m, showstep)
            self.callback(m)
            # check if any callback has raised a stop flag
            if _callback_stop(self.callbacks):
                break
        if self.status != "converged" and self.iiter >= niter:
            self.status = "maxiter"
            logger.info(
                "Maximum number of iterations (%d) reached without convergence", niter
            )
        return m

    def finalize(self, show: bool = False) -> None:
        r"""Finalize solver

        Close the pool of workers, if any.

        Parameters
        ----------
        show : :obj:`bool`, optional
            Display finalize log

        """
        self.tend = time.time()
        self.telapsed = self.tend - self.tstart
        if self.pool is not None:
            self.pool.close()
            self.pool.join()
            self.pool = None
        if show:
            self._print_finalize()

    def solve(
        self,
        dtrue: NDArray,
        m0: NDArray,
        niter: Optional[int] = None,
        delta: Optional[float] = None,
        epsilon: Optional[float] = None,
        damp: float = 5.0,
        hessian: str = "diagonal",
        bounds: BoundsLike = None,
        illumination: str = "damp",
        backtrack: int = 0,
        dres0: Optional[NDArray] = None,
        show: bool = False,
        itershow: Tuple[int, int, int] = (10, 10, 10),
    ) -> Tuple[NDArray, int, NDArray, str]:
        r"""Run entire solver

        Parameters
        ----------
        dtrue : :obj:`np.ndarray`
            Observed data of size :math:`[n_r \times n_s \times n_\omega]`
        m0 : :obj:`np.ndarray`
            Initial squared slowness model over the padded grid
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
        dres0 : :obj:`np.ndarray`, optional
            Residual data of ``m0``
        show : :obj:`bool`, optional
            Display logs
        itershow : :obj:`tuple`, optional
            Display set log for the first N1 steps, last N2 steps,
            and every N3 steps in between where N1, N2, N3 are the
            three element of the list.

        Returns
        -------
        m : :obj:`np.ndarray`
            Estimated squared slowness model
        iiter : :obj:`int`
            Number of executed iterations
        cost : :obj:`numpy.ndarray`
            History of the relative model change
        status : :obj:`str`
            Termination status (``converged`` or ``maxiter``)

        """
        try:
            m = self.setup(
                dtrue=dtrue,
                m0=m0,
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
            m = self.run(m, show=show, itershow=itershow)
        finally:
            # release the pool also when a step fails
            self.finalize(show)
        return m, self.iiter, np.array(self.cost), self.status
