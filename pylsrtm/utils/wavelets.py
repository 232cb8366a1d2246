__all__ = [
    "ricker",
    "time_axis",
    "wavelet_spectrum",
    "active_frequencies",
]

import warnings
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np
import numpy.typing as npt

from pylsrtm.config import get_option
from pylsrtm.utils.typing import NDArray


def _tcrop(t: npt.ArrayLike) -> npt.ArrayLike:
    """Crop time axis with even number of samples"""
    if len(t) % 2 == 0:
        t = t[:-1]
        warnings.warn("one sample removed from time axis...")
    return t


def ricker(
    t: npt.ArrayLike,
    f0: Union[float, Sequence[float]] = 20,
    taper: Optional[Callable] = None,
) -> Tuple[npt.ArrayLike, npt.ArrayLike, int]:
    r"""Ricker wavelet

    Create a Ricker wavelet given time axis ``t`` and central frequency ``f_0``.
    When more than one central frequency is provided, the wavelet is the sum
    of the Ricker wavelets of each frequency.

    Parameters
    ----------
    t : :obj:`numpy.ndarray`
        Time axis (positive part including zero sample)
    f0 : :obj:`float` or :obj:`tuple`, optional
        Central frequency (or frequencies)
    taper : :obj:`func`, optional
        Taper to apply to wavelet (must be a function that
        takes the size of the window as input

    Returns
    -------
    w : :obj:`numpy.ndarray`
        Wavelet
    t : :obj:`numpy.ndarray`
        Symmetric time axis
    wcenter : :obj:`int`
        Index of center of wavelet

    """
    t = _tcrop(t)
    t = np.concatenate((np.flipud(-t[1:]), t), axis=0)

    w = np.zeros(len(t))
    for f in np.atleast_1d(f0):
        w += (1 - 2 * (np.pi * f * t) ** 2) * np.exp(-((np.pi * f * t) ** 2))
    wcenter = np.argmax(np.abs(w))

    # apply taper
    if taper is not None:
        w *= taper(len(t))

    return w, t, wcenter


def time_axis(
    vel: NDArray,
    dz: float,
    dx: float,
    alpha: Optional[float] = None,
) -> Tuple[NDArray, float, int]:
    r"""Time axis of a survey

    Choose the time step from the stability criterion of a second-order
    finite-difference time-domain scheme and the number of samples from the
    two-way traveltime along the diagonal of the model.

    Parameters
    ----------
    vel : :obj:`numpy.ndarray`
        Velocity model of size :math:`[n_z \times n_x]`
    dz : :obj:`float`
        Depth sampling
    dx : :obj:`float`
        Lateral sampling
    alpha : :obj:`float`, optional
        Stability factor (if ``None``, use the configured default)

    Returns
    -------
    t : :obj:`numpy.ndarray`
        Time axis
    dt : :obj:`float`
        Time sampling
    nfft : :obj:`int`
        Number of samples of the FFT (next power of two of ``len(t)``)

    Notes
    -----
    The time step is :math:`\Delta t = \alpha \Delta z / (v_{max} \sqrt{2})`
    and the number of samples is
    :math:`n_t = 2 \sqrt{(n_x \Delta x)^2 + (n_z \Delta z)^2} / (v_{min}
    \Delta t) + 1`.

    """
    alpha = get_option("alpha") if alpha is None else alpha
    vmin, vmax = float(np.min(vel)), float(np.max(vel))
    if vmin <= 0:
        raise ValueError("velocity must be positive")
    nz, nx = vel.shape
    dt = alpha * dz / vmax / np.sqrt(2)
    nt = int(round(np.sqrt((dx * nx) ** 2 + (dz * nz) ** 2) * 2 / vmin / dt + 1))
    nfft = 2 ** int(np.ceil(np.log2(nt)))
    t = np.arange(nt) * dt
    return t, dt, nfft


def wavelet_spectrum(
    wav: NDArray,
    dt: float,
    nfft: Optional[int] = None,
) -> Tuple[NDArray, NDArray]:
    r"""Spectrum of a wavelet

    Parameters
    ----------
    wav : :obj:`numpy.ndarray`
        Time-domain wavelet
    dt : :obj:`float`
        Time sampling
    nfft : :obj:`int`, optional
        Number of samples of the FFT (if ``None``, use the length of ``wav``)

    Returns
    -------
    w : :obj:`numpy.ndarray`
        Analog angular frequencies in :math:`[-\pi, \pi) / \Delta t`
    wavf : :obj:`numpy.ndarray`
        Complex spectrum of the wavelet, ordered as ``w``

    """
    nfft = len(wav) if nfft is None else nfft
    if nfft < len(wav):
        raise ValueError(f"nfft={nfft} must not be smaller than the wavelet")
    wavf = np.fft.fftshift(np.fft.fft(wav, nfft))
    w = np.fft.fftshift(np.fft.fftfreq(nfft, dt)) * 2 * np.pi
    return w, wavf


def active_frequencies(
    w: NDArray,
    wavf: NDArray,
    freqthresh: Optional[float] = None,
) -> Tuple[NDArray, NDArray]:
    r"""Active frequencies

    Select the strictly positive frequencies whose spectral amplitude is
    above a threshold.

    Parameters
    ----------
    w : :obj:`numpy.ndarray`
        Angular frequencies
    wavf : :obj:`numpy.ndarray`
        Complex spectrum of the wavelet
    freqthresh : :obj:`float`, optional
        Amplitude threshold (if ``None``, use the configured default)

    Returns
    -------
    omegas : :obj:`numpy.ndarray`
        Active angular frequencies
    wavs : :obj:`numpy.ndarray`
        Complex wavelet amplitudes at the active frequencies

    Raises
    ------
    ValueError
        If no frequency is above the threshold

    """
    freqthresh = get_option("freqthresh") if freqthresh is None else freqthresh
    iw = np.where((np.abs(wavf) > freqthresh) & (w > 0))[0]
    if len(iw) == 0:
        raise ValueError(
            f"no active frequency with amplitude above freqthresh={freqthresh}"
        )
    return w[iw], wavf[iw]
