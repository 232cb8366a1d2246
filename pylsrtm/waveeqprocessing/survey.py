__all__ = [
    "simulate",
    "SurveySimulator",
]

import logging
import time
from multiprocessing.pool import Pool
from typing import Optional

import numpy as np

from pylsrtm.utils.acquisition import point_sources
from pylsrtm.utils.multiproc import frequency_map
from pylsrtm.utils.typing import IntNDArray, NDArray
from pylsrtm.waveeqprocessing.helmholtz import HelmholtzCPML

logger = logging.getLogger(__name__)


def _modelling_freq(
    model: NDArray,
    omega: float,
    wav: complex,
    isrc: IntNDArray,
    irec: IntNDArray,
    nbound: int,
    dz: float,
    dx: float,
    order: int,
    kind: str,
) -> NDArray:
    """Receiver data of all shots for a single frequency"""
    tstart = time.time()
    Hop = HelmholtzCPML(model, omega, nbound, dz, dx, order=order, kind=kind)
    u = Hop.solve(point_sources(isrc, Hop.npoints, scale=wav))
    logger.debug(
        "Generate %d frequency responses at f = %f Hz ... elapsed time = %fs",
        len(isrc),
        omega / (2 * np.pi),
        time.time() - tstart,
    )
    return u[irec]


def simulate(
    model: NDArray,
    omegas: NDArray,
    wavs: NDArray,
    isrc: IntNDArray,
    irec: IntNDArray,
    nbound: int,
    dz: float,
    dx: float,
    order: int = 2,
    kind: str = "velocity",
    pool: Optional[Pool] = None,
) -> NDArray:
    r"""Frequency-domain survey simulation

    Model the data recorded by every receiver for every shot at each
    active frequency. Each frequency is an independent task that can be
    run in parallel through ``pool``.

    Parameters
    ----------
    model : :obj:`numpy.ndarray`
        Velocity (or squared slowness) model over the padded grid
    omegas : :obj:`numpy.ndarray`
        Active angular frequencies
    wavs : :obj:`numpy.ndarray`
        Complex wavelet amplitudes at the active frequencies
    isrc : :obj:`numpy.ndarray`
        Indices of the shots on the flattened padded grid
    irec : :obj:`numpy.ndarray`
        Indices of the receivers on the flattened padded grid
    nbound : :obj:`int`
        Width of the absorbing boundary
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    order : :obj:`int`, optional
        Order of the finite-difference stencils
    kind : :obj:`str`, optional
        Kind of model (``velocity`` or ``slowsq``)
    pool : :obj:`multiprocessing.pool.Pool`, optional
        Pool of workers (``None`` for serial mode)

    Returns
    -------
    data : :obj:`numpy.ndarray`
        Data of size :math:`[n_r \times n_s \times n_\omega]`

    """
    if np.max(isrc) >= model.size or np.max(irec) >= model.size:
        raise ValueError("shot or receiver indices exceed the model size")
    datas = frequency_map(
        _modelling_freq,
        [
            (model, omega, wav, isrc, irec, nbound, dz, dx, order, kind)
            for omega, wav in zip(omegas, wavs)
        ],
        pool=pool,
    )
    return np.stack(datas, axis=-1)


class SurveySimulator:
    r"""Survey simulator.

    Frequency-domain acquisition of shot gathers over a padded model,
    given fixed shot and receiver positions, active frequencies, and
    wavelet amplitudes.

    Parameters
    ----------
    isrc : :obj:`numpy.ndarray`
        Indices of the shots on the flattened padded grid
    irec : :obj:`numpy.ndarray`
        Indices of the receivers on the flattened padded grid
    omegas : :obj:`numpy.ndarray`
        Active angular frequencies
    wavs : :obj:`numpy.ndarray`
        Complex wavelet amplitudes at the active frequencies
    nbound : :obj:`int`
        Width of the absorbing boundary
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    order : :obj:`int`, optional
        Order of the finite-difference stencils

    Raises
    ------
    ValueError
        If no frequency is provided, if frequencies are not strictly positive,
        if frequencies and wavelet amplitudes have different size, or if no
        shot or receiver is provided

    """

    def __init__(
        self,
        isrc: IntNDArray,
        irec: IntNDArray,
        omegas: NDArray,
        wavs: NDArray,
        nbound: int,
        dz: float,
        dx: float,
        order: int = 2,
    ) -> None:
        self.isrc = np.atleast_1d(np.asarray(isrc, dtype=int))
        self.irec = np.atleast_1d(np.asarray(irec, dtype=int))
        self.omegas = np.atleast_1d(np.asarray(omegas, dtype=float))
        self.wavs = np.atleast_1d(np.asarray(wavs, dtype=complex))
        if len(self.omegas) == 0:
            raise ValueError("at least one active frequency is required")
        if np.any(self.omegas <= 0):
            raise ValueError("active frequencies must be strictly positive")
        if len(self.omegas) != len(self.wavs):
            raise ValueError("omegas and wavs must have the same size")
        if len(self.isrc) == 0 or len(self.irec) == 0:
            raise ValueError("at least one shot and one receiver are required")
        self.nbound = nbound
        self.dz, self.dx = dz, dx
        self.order = order

    @property
    def nsrc(self) -> int:
        return len(self.isrc)

    @property
    def nrec(self) -> int:
        return len(self.irec)

    @property
    def nfreq(self) -> int:
        return len(self.omegas)

    @property
    def dshape(self):
        return self.nrec, self.nsrc, self.nfreq

    def simulate(
        self,
        model: NDArray,
        kind: str = "velocity",
        pool: Optional[Pool] = None,
    ) -> NDArray:
        r"""Simulate survey

        Parameters
        ----------
        model : :obj:`numpy.ndarray`
            Velocity (or squared slowness) model over the padded grid
        kind : :obj:`str`, optional
            Kind of model (``velocity`` or ``slowsq``)
        pool : :obj:`multiprocessing.pool.Pool`, optional
            Pool of workers (``None`` for serial mode)

        Returns
        -------
        data : :obj:`numpy.ndarray`
            Data of size :math:`[n_r \times n_s \times n_\omega]`

        """
        return simulate(
            model,
            self.omegas,
            self.wavs,
            self.isrc,
            self.irec,
            self.nbound,
            self.dz,
            self.dx,
            order=self.order,
            kind=kind,
            pool=pool,
        )

    def residual(
        self,
        dtrue: NDArray,
        model: NDArray,
        kind: str = "velocity",
        pool: Optional[Pool] = None,
    ) -> NDArray:
        r"""Residual data

        Parameters
        ----------
        dtrue : :obj:`numpy.ndarray`
            Observed data of size :math:`[n_r \times n_s \times n_\omega]`
        model : :obj:`numpy.ndarray`
            Velocity (or squared slowness) model over the padded grid
        kind : :obj:`str`, optional
            Kind of model (``velocity`` or ``slowsq``)
        pool : :obj:`multiprocessing.pool.Pool`, optional
            Pool of workers (``None`` for serial mode)

        Returns
        -------
        dres : :obj:`numpy.ndarray`
            Observed minus modelled data

        """
        if dtrue.shape != self.dshape:
            raise ValueError(f"dtrue has shape {dtrue.shape}, expected {self.dshape}")
        return dtrue - self.simulate(model, kind=kind, pool=pool)
