"""
Configuration
=============

The configuration module controls the default parameters of the inversion
in PyLSRTM. Any entry point that receives ``None`` for one of these
parameters falls back to the value stored here.

    alpha                   Stability factor used to choose the time step of
                            the source wavelet.
    delta                   Tolerance on the relative model change.
    epsilon                 Step scaling of the Gauss-Newton update.
    freqthresh              Spectral amplitude threshold to select active
                            frequencies.
    maxiter                 Maximum number of Gauss-Newton iterations.
    nproc                   Number of processes used for the frequency loop.
                            (-1 to use all the available CPUs).

You can either set behavior globally with getter/setter:

    get_option              Get the current value of an option.
    set_option              Set an option.

or use a context manager (with blocks):

    options                 Temporarily change one or more options.

"""
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Dict, Generator

__all__ = [
    "get_option",
    "set_option",
    "options",
]


@dataclass
class Config:
    alpha: float = 0.75
    delta: float = 1e-4
    epsilon: float = 1.0
    freqthresh: float = 2.0
    maxiter: int = 20
    nproc: int = 1


_config = Config()


def _check_option(name: str, val: Any) -> None:
    if name not in asdict(_config):
        raise KeyError(f"{name} is not a valid option")
    if name == "alpha" and not 0 < val <= 1:
        raise ValueError(f"alpha={val} must be in (0, 1]")
    if name in ("delta", "epsilon") and val <= 0:
        raise ValueError(f"{name}={val} must be positive")
    if name == "maxiter" and (int(val) != val or val < 1):
        raise ValueError(f"maxiter={val} must be a positive integer")
    if name == "nproc" and (int(val) != val or (val < 1 and val != -1)):
        raise ValueError(f"nproc={val} must be a positive integer or -1")
    if name == "freqthresh" and val < 0:
        raise ValueError(f"freqthresh={val} must be non-negative")


def get_option(name: str) -> Any:
    if name not in asdict(_config):
        raise KeyError(f"{name} is not a valid option")
    return getattr(_config, name)


def set_option(name: str, val: Any) -> None:
    _check_option(name, val)
    setattr(_config, name, val)


@contextmanager
def options(**kwargs: Any) -> Generator[Dict[str, Any], None, None]:
    for name, val in kwargs.items():
        _check_option(name, val)
    previous = {name: get_option(name) for name in kwargs}
    for name, val in kwargs.items():
        setattr(_config, name, val)
    try:
        yield previous
    finally:
        for name, val in previous.items():
            setattr(_config, name, val)
