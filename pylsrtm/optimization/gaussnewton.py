__all__ = ["gauss_newton"]

from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

from pylsrtm.optimization.callback import Callbacks
from pylsrtm.optimization.cls_gaussnewton import GaussNewtonLSRTM
from pylsrtm.utils.typing import BoundsLike, NDArray

if TYPE_CHECKING:
    from pylsrtm.waveeqprocessing.survey import SurveySimulator


def gauss_newton(
    Sop: "SurveySimulator",
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
    nproc: Optional[int] = None,
    show: bool = False,
    itershow: Tuple[int, int, int] = (10, 10, 10),
    callback: Optional[Callable] = None,
    callbacks: Optional[Sequence[Callbacks]] = None,
) -> Tuple[NDArray, int, NDArray, str]:
    r"""Gauss-Newton least-squares reverse-time migration

    Update a squared slowness model given a survey simulator ``Sop`` and
    observed data ``dtrue`` using Gauss-Newton iterations with a diagonal
    (pseudo-) Hessian.

    Parameters
    ----------
    Sop : :obj:`pylsrtm.waveeqprocessing.SurveySimulator`
        Survey simulator
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
        Residual data of ``m0`` (if ``None``, computed by modelling ``m0``)
    nproc : :obj:`int`, optional
        Number of processes used to evaluate the frequencies in parallel
    show : :obj:`bool`, optional
        Display iterations log
    itershow : :obj:`tuple`, optional
        Display set log for the first N1 steps, last N2 steps,
        and every N3 steps in between where N1, N2, N3 are the
        three element of the list.
    callback : :obj:`callable`, optional
        Function with signature (``callback(m)``) to call after each iteration
        where ``m`` is the current model
    callbacks : :obj:`list`, optional
        Callbacks objects used to implement custom callbacks

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

    Notes
    -----
    See :class:`pylsrtm.optimization.cls_gaussnewton.GaussNewtonLSRTM`

    """
    gnsolve = GaussNewtonLSRTM(Sop, callbacks=callbacks, nproc=nproc)
    if callback is not None:
        gnsolve.callback = callback
    return gnsolve.solve(
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
        itershow=itershow,
    )
