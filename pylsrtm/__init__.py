"""
PyLSRTM
=======

Least-squares reverse-time migration (LSRTM) is one of the most used
imaging methods in exploration seismology: a smooth background velocity
model is iteratively corrected so that the data it predicts match the data
recorded at the surface.

When working in the frequency domain, each temporal frequency leads to a
Helmholtz equation whose discretization is a large, sparse, complex-valued
system of equations. PyLSRTM assembles such systems with a complex-stretched
absorbing boundary (CPML), factorizes them once per frequency and reuses the
factorization for as many sources as required. On top of this engine, a
Gauss-Newton solver with a diagonal (pseudo-) Hessian updates the squared
slowness model one iteration at a time.

PyLSRTM provides
  1. A frequency-domain Helmholtz solver with CPML boundaries
  2. A survey simulator producing frequency-domain shot gathers
  3. A Gauss-Newton LSRTM solver and an out-of-the-box application.

Available subpackages
---------------------
waveeqprocessing
    Wave equation modelling and LSRTM application
optimization
    Solvers
utils
    Utility routines

"""

import logging

from .config import *
from . import (
    optimization,
    utils,
    waveeqprocessing,
)
from .optimization.gaussnewton import *
from .utils.acquisition import *
from .utils.model import *
from .utils.wavelets import *
from .waveeqprocessing.helmholtz import *
from .waveeqprocessing.lsrtm import *
from .waveeqprocessing.survey import *

# Prevent no handler message if an application using PyLSRTM does not configure logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

try:
    from .version import version as __version__
except ImportError:
    # If it was not installed, then we don't know the version. We could throw a
    # warning here, but this case *should* be rare. pylsrtm should be installed
    # properly!
    from datetime import datetime

    __version__ = "unknown-" + datetime.today().strftime("%Y%m%d")
