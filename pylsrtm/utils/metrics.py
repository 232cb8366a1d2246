__all__ = [
    "relative_change",
    "misfit",
    "mse",
    "snr",
]

import numpy as np
import numpy.typing as npt


def relative_change(mnew: npt.ArrayLike, mold: npt.ArrayLike) -> float:
    r"""Relative model change

    Compute :math:`||\mathbf{m}_{new} - \mathbf{m}_{old}||_F /
    ||\mathbf{m}_{old}||_F`, returning ``inf`` when the old model is zero.

    """
    nold = np.linalg.norm(mold)
    if nold == 0:
        return float(np.inf)
    return float(np.linalg.norm(mnew - mold) / nold)


def misfit(dres: npt.ArrayLike) -> float:
    r"""Data misfit :math:`\frac{1}{2} \sum |d_{res}|^2` of residual data"""
    return float(0.5 * np.sum(np.abs(dres) ** 2))


def mse(xref: npt.ArrayLike, xcmp: npt.ArrayLike) -> float:
    """Mean Square Error (MSE) between two vectors"""
    return float(np.mean(np.abs(xref - xcmp) ** 2))


def snr(xref: npt.ArrayLike, xcmp: npt.ArrayLike) -> float:
    """Signal to Noise Ratio (SNR) of ``xcmp`` with respect to ``xref``"""
    xrefv = np.mean(np.abs(xref) ** 2)
    return float(10.0 * np.log10(xrefv / mse(xref, xcmp)))
