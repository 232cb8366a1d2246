"""
Optimization
============

The subpackage optimization provides the solvers used to update a velocity
model from surface seismic data.

A list of solvers in pylsrtm.optimization.gaussnewton:

    gauss_newton                    Gauss-Newton LSRTM with pseudo-Hessian.

Note that solvers are thin wrappers over class-based solvers, which can be
accessed from submodules with equivalent name and prefix cls_. Callbacks to
monitor or persist the inversion are available in pylsrtm.optimization.callback.

"""
