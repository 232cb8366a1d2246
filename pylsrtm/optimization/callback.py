__all__ = [
    "Callbacks",
    "MetricsCallback",
    "SaveIterationCallback",
    "load_iteration",
]

import logging
import os
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import numpy as np

from pylsrtm.utils.metrics import mse, snr
from pylsrtm.utils.model import slowsq2vel
from pylsrtm.utils.typing import NDArray

if TYPE_CHECKING:
    from pylsrtm.optimization.basesolver import Solver

logger = logging.getLogger(__name__)


class Callbacks:
    r"""Callbacks

    This is a template class which a user must subclass when implementing callbacks for a solver.
    This class comprises of the following methods:

    - ``on_setup_begin``: a method that is invoked at the start of the setup method of the solver
    - ``on_setup_end``: a method that is invoked at the end of the setup method of the solver
    - ``on_step_begin``: a method that is invoked at the start of the step method of the solver
    - ``on_step_end``: a method that is invoked at the end of the setup step of the solver
    - ``on_run_begin``: a method that is invoked at the start of the run method of the solver
    - ``on_run_end``: a method that is invoked at the end of the run method of the solver

    All methods take two input parameters: the solver itself, and the current
    squared slowness model ``m``.

    Moreover, some callback may be used to implement custom stopping criteria for the solver.
    This can be done by adding a boolean attribute ``stop`` to the callback object, which will
    be initially set to ``False``. As soon as the callback sets this attribute to ``True``, the
    ``run`` method of the solver will stop iterating and return the current model.

    """

    def __init__(self) -> None:
        pass

    def on_setup_begin(self, solver: "Solver", m0: NDArray) -> None:
        """Callback before setup"""
        pass

    def on_setup_end(self, solver: "Solver", m: NDArray) -> None:
        """Callback after setup"""
        pass

    def on_step_begin(self, solver: "Solver", m: NDArray) -> None:
        """Callback before step of solver"""
        pass

    def on_step_end(self, solver: "Solver", m: NDArray) -> None:
        """Callback after step of solver"""
        pass

    def on_run_begin(self, solver: "Solver", m: NDArray) -> None:
        """Callback before entire solver run"""
        pass

    def on_run_end(self, solver: "Solver", m: NDArray) -> None:
        """Callback after entire solver run"""
        pass


class MetricsCallback(Callbacks):
    r"""Metrics callback

    This callback can be used to store the error of the estimated velocity
    model with respect to the true one during iterations.

    Parameters
    ----------
    veltrue : :obj:`np.ndarray`
        True velocity model over the padded grid
    which : :obj:`tuple`, optional
        List of metrics to compute (currently available: "mse" and "snr")

    """

    def __init__(
        self,
        veltrue: NDArray,
        which: Sequence[str] = ("mse", "snr"),
    ):
        self.veltrue = veltrue
        self.which = which
        self.metrics: Dict[str, List] = {name: [] for name in which}

    def on_step_end(self, solver: "Solver", m: NDArray) -> None:
        vel = slowsq2vel(m)
        if "mse" in self.which:
            self.metrics["mse"].append(mse(self.veltrue, vel))
        if "snr" in self.which:
            self.metrics["snr"].append(snr(self.veltrue, vel))


class SaveIterationCallback(Callbacks):
    r"""Save iteration callback

    This callback writes the intermediate products of the inversion to
    ``.npz`` archives in ``outdir``:

    - ``dtrue.npz``: observed data (written once at setup)
    - ``iter{i}.npz``: residual data ``dres`` and model ``model`` for
      ``i=0`` (after setup), and additionally pseudo-Hessian ``hessian``,
      migrated image ``mig``, model update ``dm``, and velocity ``vel``
      for every following iteration

    Parameters
    ----------
    outdir : :obj:`str`
        Output directory (created if it does not exist)
    offset : :obj:`int`, optional
        Offset added to the iteration number (useful when restarting from
        a saved iteration)

    """

    def __init__(self, outdir: str, offset: int = 0) -> None:
        self.outdir = outdir
        self.offset = offset
        os.makedirs(outdir, exist_ok=True)

    def _filename(self, iiter: int) -> str:
        return os.path.join(self.outdir, f"iter{iiter + self.offset}.npz")

    def on_setup_end(self, solver: "Solver", m: NDArray) -> None:
        if self.offset == 0:
            np.savez(os.path.join(self.outdir, "dtrue.npz"), dtrue=solver.dtrue)
            np.savez(self._filename(0), dres=solver.dres, model=m)

    def on_step_end(self, solver: "Solver", m: NDArray) -> None:
        filename = self._filename(solver.iiter)
        np.savez(
            filename,
            dres=solver.dres,
            hessian=solver.hess,
            mig=solver.mig,
            dm=solver.dm,
            model=m,
            vel=slowsq2vel(m),
        )
        logger.debug("Saved iteration %d to %s", solver.iiter + self.offset, filename)


def load_iteration(outdir: str, iiter: Optional[int] = None) -> Dict[str, NDArray]:
    r"""Load saved iteration

    Parameters
    ----------
    outdir : :obj:`str`
        Directory where :class:`SaveIterationCallback` wrote its archives
    iiter : :obj:`int`, optional
        Iteration to load (if ``None``, load the observed data)

    Returns
    -------
    arrays : :obj:`dict`
        Arrays stored in the archive

    """
    name = "dtrue.npz" if iiter is None else f"iter{iiter}.npz"
    with np.load(os.path.join(outdir, name)) as archive:
        return {key: archive[key] for key in archive.files}


def _callback_stop(callbacks: Optional[Sequence[Callbacks]]) -> bool:
    """Check if any callback has raised a stop flag"""
    if callbacks is not None:
        return any(getattr(callback, "stop", False) for callback in callbacks)
    return False
