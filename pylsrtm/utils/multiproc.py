__all__ = [
    "get_nproc",
    "create_pool",
    "frequency_map",
]

import multiprocessing as mp
from multiprocessing.pool import Pool
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pylsrtm.config import get_option


def get_nproc(nproc: Optional[int] = None) -> int:
    r"""Number of processes

    Parameters
    ----------
    nproc : :obj:`int`, optional
        Number of processes (if ``None``, use the configured default).
        If ``nproc=-1``, use all the available CPUs.

    Returns
    -------
    nproc : :obj:`int`
        Number of processes

    """
    nproc = get_option("nproc") if nproc is None else nproc
    if nproc == -1:
        return mp.cpu_count()
    if nproc < 1:
        raise ValueError(f"nproc={nproc} must be positive or -1")
    return nproc


def create_pool(nproc: Optional[int] = None) -> Optional[Pool]:
    r"""Create pool of workers

    Parameters
    ----------
    nproc : :obj:`int`, optional
        Number of processes (if ``None``, use the configured default).
        If ``nproc=1``, no pool is created and work is done in serial mode.
        If ``nproc=-1``, use all the available CPUs.

    Returns
    -------
    pool : :obj:`multiprocessing.pool.Pool`
        Pool of workers (``None`` in serial mode)

    """
    nproc = get_nproc(nproc)
    return mp.Pool(processes=nproc) if nproc > 1 else None


def frequency_map(
    func: Callable,
    args: Sequence[Tuple[Any, ...]],
    pool: Optional[Pool] = None,
) -> List[Any]:
    r"""Apply a function to each frequency

    Run one task per frequency, either serially or through ``pool``, and
    wait for all of them to complete. Results are returned in the same order
    as ``args`` so that any reduction is independent of task scheduling.
    An exception raised by any task propagates to the caller.

    Parameters
    ----------
    func : :obj:`callable`
        Module-level function to apply (must be picklable)
    args : :obj:`list`
        Arguments of each task
    pool : :obj:`multiprocessing.pool.Pool`, optional
        Pool of workers (``None`` for serial mode)

    Returns
    -------
    results : :obj:`list`
        Output of each task

    """
    if pool is None:
        return [func(*arg) for arg in args]
    return pool.starmap(func, args)
