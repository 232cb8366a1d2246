"""
Wave Equation processing
========================

The subpackage waveeqprocessing provides frequency-domain modelling
operators and applications aimed at solving imaging problems with the
acoustic wave equation.

A list of operators present in pylsrtm.waveeqprocessing:

    HelmholtzCPML                   Helmholtz operator with CPML boundaries.
    SurveySimulator                 Frequency-domain survey simulator.

and a list of applications:

    LSRTM                           Least-squares reverse-time migration.

"""

from .helmholtz import *
from .lsrtm import *
from .survey import *

__all__ = [
    "cpml_profile",
    "HelmholtzCPML",
    "helmholtz",
    "simulate",
    "SurveySimulator",
    "LSRTM",
]
