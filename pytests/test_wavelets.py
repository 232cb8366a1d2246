import numpy as np
import pytest
from numpy.testing import assert_allclose

from pylsrtm.config import options
from pylsrtm.utils.wavelets import active_frequencies, ricker, time_axis, wavelet_spectrum

par1 = {"nt": 21, "dt": 0.004}  # odd samples
par2 = {"nt": 20, "dt": 0.004}  # even samples


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_ricker(par):
    """Create ricker wavelet and check size and central value"""
    t = np.arange(par["nt"]) * par["dt"]
    wav, twav, wcenter = ricker(t, f0=20)

    assert twav.size == (par["nt"] - 1 if par["nt"] % 2 == 0 else par["nt"]) * 2 - 1
    assert wav.shape[0] == (par["nt"] - 1 if par["nt"] % 2 == 0 else par["nt"]) * 2 - 1
    assert wav[wcenter] == 1


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_ricker_multiple(par):
    """Ricker wavelet with multiple central frequencies is the sum of wavelets"""
    t = np.arange(par["nt"]) * par["dt"]
    wav, _, wcenter = ricker(t, f0=(10, 20))
    wav10, _, _ = ricker(t, f0=10)
    wav20, _, _ = ricker(t, f0=20)
    assert_allclose(wav, wav10 + wav20)
    assert wav[wcenter] == 2


def test_time_axis():
    """Time step and number of samples of the survey"""
    vel = 1500.0 * np.ones((50, 60))
    vel[25:] = 2500.0
    t, dt, nfft = time_axis(vel, 10.0, 10.0, alpha=0.5)
    assert_allclose(dt, 0.5 * 10.0 / 2500.0 / np.sqrt(2))
    assert_allclose(t[1] - t[0], dt)
    nt = int(round(np.sqrt(600.0**2 + 500.0**2) * 2 / 1500.0 / dt + 1))
    assert len(t) == nt
    assert nfft >= nt
    assert nfft < 2 * nt
    assert nfft & (nfft - 1) == 0

    # default stability factor
    with options(alpha=0.75):
        _, dt, _ = time_axis(vel, 10.0, 10.0)
    assert_allclose(dt, 0.75 * 10.0 / 2500.0 / np.sqrt(2))

    with pytest.raises(ValueError):
        _ = time_axis(-vel, 10.0, 10.0)


def test_wavelet_spectrum():
    """Spectrum is centred around zero frequency"""
    dt = 0.002
    t = np.arange(101) * dt
    wav, _, _ = ricker(t, f0=15)
    w, wavf = wavelet_spectrum(wav, dt, nfft=512)
    assert w.shape == wavf.shape == (512,)
    assert np.all(np.diff(w) > 0)
    assert w[256] == 0
    assert_allclose(w[257] - w[256], 2 * np.pi / (512 * dt))
    assert_allclose(wavf[256], np.sum(wav), atol=1e-10)

    with pytest.raises(ValueError):
        _ = wavelet_spectrum(wav, dt, nfft=len(wav) - 1)


def test_active_frequencies():
    """Active frequencies are positive and above threshold"""
    dt = 0.002
    t = np.arange(101) * dt
    wav, _, _ = ricker(t, f0=15)
    w, wavf = wavelet_spectrum(wav, dt, nfft=512)
    omegas, wavs = active_frequencies(w, wavf, freqthresh=2.0)
    assert len(omegas) == len(wavs) > 0
    assert np.all(omegas > 0)
    assert np.all(np.abs(wavs) > 2.0)
    # peak of the Ricker spectrum lies within the active band
    assert omegas[0] < 2 * np.pi * 15 < omegas[-1]

    with options(freqthresh=2.0):
        omegas1, wavs1 = active_frequencies(w, wavf)
    assert_allclose(omegas1, omegas)
    assert_allclose(wavs1, wavs)

    with pytest.raises(ValueError):
        _ = active_frequencies(w, wavf, freqthresh=10 * np.abs(wavf).max())
