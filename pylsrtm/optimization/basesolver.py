__all__ = ["Solver"]

import functools
import time
from abc import ABCMeta, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Sequence

from pylsrtm.optimization.callback import Callbacks
from pylsrtm.utils.typing import NDArray

if TYPE_CHECKING:
    from pylsrtm.waveeqprocessing.survey import SurveySimulator

_units = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


class Solver(metaclass=ABCMeta):
    r"""Solver

    This is a template class which a user must subclass when implementing a new
    model-update solver. This class comprises of the following mandatory methods:

    - ``__init__``: initialization method to which the survey simulator `Sop`
      must be passed
    - ``memory_usage``: a method to compute upfront the memory used by each
      step of the solver
    - ``setup``: a method that is invoked to setup the solver, basically it will
      create anything required prior to applying a step of the solver
    - ``step``: a method applying a single step of the solver
    - ``run``: a method applying multiple steps of the solver
    - ``finalize``: a method that is invoked at the end of the optimization
      process. It can be used to do some final clean-up
    - ``solve``: a method applying the entire optimization loop of the solver for a
      certain number of steps

    and optional methods:

    - ``_print_solver``: a method print on screen details of the solver (already implemented)
    - ``_print_setup``: a method print on screen details of the setup process
    - ``_print_step``: a method print on screen details of each step
    - ``_print_finalize``: a method print on screen details of the finalize process
    - ``callback``: a method implementing a callback function, which is called after
      every step of the solver

    Parameters
    ----------
    Sop : :obj:`pylsrtm.waveeqprocessing.SurveySimulator`
        Survey simulator providing the acquisition and the active frequencies
    callbacks : :obj:`list`
        Callbacks objects used to implement custom callbacks

    """

    def __init__(
        self,
        Sop: "SurveySimulator",
        callbacks: Optional[Sequence[Callbacks]] = None,
    ) -> None:
        self.Sop = Sop
        self.callbacks = callbacks
        self._registercallbacks()
        self.iiter = 0
        self.tstart = time.time()

    def _print_solver(self, text: str = "", nbar: int = 80) -> None:
        print(f"{type(self).__name__}" + text)
        print(
            "-" * nbar + "\n"
            f"The survey has {self.Sop.nsrc} shots, {self.Sop.nrec} receivers "
            f"and {self.Sop.nfreq} active frequencies"
        )

    def _print_setup(self, *args: Any, **kwargs: Any) -> None:
        pass

    def _print_step(self, *args: Any, **kwargs: Any) -> None:
        pass

    def _print_finalize(self, *args: Any, nbar: int = 80, **kwargs: Any) -> None:
        print(
            f"\nIterations = {self.iiter}        Total time (s) = {self.telapsed:.2f}"
        )
        print("-" * nbar + "\n")

    def _registercallbacks(self) -> None:
        # Wrap setup, step and run so that on_*_begin callbacks are invoked
        # in order before the method and on_*_end callbacks in reverse order
        # after it
        def cbdecorator(func, setup=False):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                m = kwargs.get("m0", None) if setup else args[0]
                if self.callbacks:
                    for cb in self.callbacks:
                        getattr(cb, f"on_{func.__name__}_begin")(self, m)
                ret = func(*args, **kwargs)
                if self.callbacks:
                    for cb in self.callbacks[::-1]:
                        getattr(cb, f"on_{func.__name__}_end")(
                            self, ret if setup else args[0]
                        )
                return ret

            return wrapper

        for method in ["setup", "step", "run"]:
            setattr(
                self,
                method,
                cbdecorator(
                    getattr(self, method), True if method == "setup" else False
                ),
            )

    @abstractmethod
    def memory_usage(
        self,
        show: bool = False,
        unit: str = "B",
    ) -> float:
        """Compute memory usage of the solver

        This method computes an estimate of the memory required by the solver
        given the size of the model and of the acquisition. This is useful to
        assess upfront if the solver will run out of memory.

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
            Memory usage in bytes

        """
        pass

    @abstractmethod
    def setup(
        self,
        dtrue: NDArray,
        m0: NDArray,
        *args,
        show: bool = False,
        **kwargs,
    ) -> NDArray:
        """Setup solver

        Parameters
        ----------
        dtrue : :obj:`np.ndarray`
            Observed data
        m0 : :obj:`np.ndarray`
            Initial model
        show : :obj:`bool`, optional
            Display setup log

        """
        pass

    @abstractmethod
    def step(
        self,
        m: NDArray,
        *args,
        show: bool = False,
        **kwargs,
    ) -> Any:
        """Run one step of solver

        Parameters
        ----------
        m : :obj:`np.ndarray`
            Current model to be updated by a step of the solver
        show : :obj:`bool`, optional
            Display step log

        """
        pass

    @abstractmethod
    def run(
        self,
        m: NDArray,
        *args,
        show: bool = False,
        **kwargs,
    ) -> Any:
        """Run multiple steps of solver

        Parameters
        ----------
        m : :obj:`np.ndarray`
            Current model to be updated by multiple steps of the solver
        show : :obj:`bool`, optional
            Display step log

        """
        pass

    def finalize(
        self,
        *args,
        show: bool = False,
        **kwargs,
    ) -> Any:
        """Finalize solver

        Parameters
        ----------
        show : :obj:`bool`, optional
            Display finalize log

        """
        self.tend = time.time()
        self.telapsed = self.tend - self.tstart
        if show:
            self._print_finalize()

    @abstractmethod
    def solve(
        self,
        dtrue: NDArray,
        m0: NDArray,
        *args,
        show: bool = False,
        **kwargs,
    ) -> Any:
        """Solve

        Parameters
        ----------
        dtrue : :obj:`np.ndarray`
            Observed data
        m0 : :obj:`np.ndarray`
            Initial model
        show : :obj:`bool`, optional
            Display finalize log

        """
        pass

    def callback(
        self,
        m: NDArray,
        *args,
        **kwargs,
    ) -> None:
        """Callback routine

        This routine can be overwritten by the user. Its function signature must
        contain a single input that contains the current model (when using the
        `solve` method it will be automatically invoked after each step of the
        solve)

        Parameters
        ----------
        m : :obj:`np.ndarray`
            Current model

        """
        pass
