import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy.sparse.linalg import spsolve

from pylsrtm.utils.acquisition import grid_indices, point_sources
from pylsrtm.utils.model import extend_boundary
from pylsrtm.waveeqprocessing.helmholtz import HelmholtzCPML, cpml_profile, helmholtz

par1 = {"nz": 20, "nx": 24, "nbound": 8, "dz": 10.0, "dx": 10.0, "order": 2}  # 2nd order
par2 = {"nz": 20, "nx": 24, "nbound": 8, "dz": 10.0, "dx": 10.0, "order": 4}  # 4th order
par3 = {"nz": 16, "nx": 30, "nbound": 6, "dz": 5.0, "dx": 10.0, "order": 2}  # dz != dx

omega = 2 * np.pi * 15.0


def _twolayer(par):
    vel = 1500.0 * np.ones((par["nz"], par["nx"]))
    vel[par["nz"] // 2 :] = 2500.0
    return extend_boundary(vel, par["nbound"])


def _operator(par, vel=None, **kwargs):
    vel = _twolayer(par) if vel is None else vel
    return HelmholtzCPML(
        vel, omega, par["nbound"], par["dz"], par["dx"], order=par["order"], **kwargs
    )


def test_zero_frequency():
    """Check error is raised for zero or negative frequency"""
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(_twolayer(par1), 0.0, par1["nbound"], 10.0, 10.0)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(_twolayer(par1), -omega, par1["nbound"], 10.0, 10.0)


def test_unknown_order_kind():
    """Check error is raised if unknown order or kind is passed"""
    vel = _twolayer(par1)
    with pytest.raises(NotImplementedError):
        _ = HelmholtzCPML(vel, omega, par1["nbound"], 10.0, 10.0, order=3)
    with pytest.raises(NotImplementedError):
        _ = HelmholtzCPML(vel, omega, par1["nbound"], 10.0, 10.0, kind="foo")


def test_invalid_inputs():
    """Check error is raised for invalid model, sampling, and boundary"""
    vel = _twolayer(par1)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(vel, omega, -1, 10.0, 10.0)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(vel, omega, vel.shape[1] // 2, 10.0, 10.0)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(vel, omega, par1["nbound"], 0.0, 10.0)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(-vel, omega, par1["nbound"], 10.0, 10.0)
    with pytest.raises(ValueError):
        _ = HelmholtzCPML(vel.ravel(), omega, par1["nbound"], 10.0, 10.0)


def test_cpml_profile():
    """Damping is zero in the interior and grows towards the edges"""
    n, nbound = 30, 8
    d, dd = cpml_profile(n, nbound, 10.0, 2000.0)
    assert_array_equal(d[nbound:-nbound], 0.0)
    assert_array_equal(dd[nbound:-nbound], 0.0)
    assert np.all(np.diff(d[:nbound]) < 0)
    assert np.all(np.diff(d[-nbound:]) > 0)
    assert_allclose(d, d[::-1])
    assert_allclose(dd, -dd[::-1])

    d, dd = cpml_profile(n, nbound, 10.0, 2000.0, start=False)
    assert_array_equal(d[:-nbound], 0.0)
    assert np.all(d[-nbound:] > 0)

    d, dd = cpml_profile(n, 0, 10.0, 2000.0)
    assert_array_equal(d, 0.0)
    assert_array_equal(dd, 0.0)


@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
def test_matrix(par):
    """Size, type, and stencil width of the system matrix"""
    Hop = _operator(par)
    nzp, nxp = par["nz"] + par["nbound"], par["nx"] + 2 * par["nbound"]
    assert Hop.dims == (nzp, nxp)
    assert Hop.A.shape == (nzp * nxp, nzp * nxp)
    assert Hop.A.dtype == np.complex128

    # interior point away from any boundary
    irow = (nzp // 2) * nxp + nxp // 2
    nnz = np.count_nonzero(Hop.A[irow].toarray())
    assert nnz == (5 if par["order"] == 2 else 9)


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_symmetry(par):
    """Matrix is symmetric without absorbing boundary and non-symmetric with it"""
    Hop = _operator(par)
    assert abs(Hop.A - Hop.A.T).max() > 0

    vel = _twolayer({**par, "nbound": 0})
    Hop = HelmholtzCPML(vel, omega, 0, par["dz"], par["dx"], order=par["order"])
    assert abs(Hop.A - Hop.A.T).max() <= 1e-12 * abs(Hop.A).max()


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_kind(par):
    """Velocity and squared slowness models give the same operator"""
    vel = _twolayer(par)
    Hvel = _operator(par, vel=vel, kind="velocity")
    Hslo = _operator(par, vel=1.0 / vel**2, kind="slowsq")
    assert_allclose(Hvel.A.toarray(), Hslo.A.toarray(), rtol=1e-10)


@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
def test_solve(par):
    """Factorized solve matches a direct sparse solve"""
    rng = np.random.default_rng(0)
    Hop = _operator(par)
    srcs = rng.normal(size=(Hop.npoints, 3)) + 1j * rng.normal(size=(Hop.npoints, 3))
    u = Hop.solve(srcs)
    assert u.shape == srcs.shape
    assert_allclose(u, spsolve(Hop.A, srcs), rtol=1e-8, atol=1e-12 * np.abs(u).max())

    # single source vector
    u1 = Hop.solve(srcs[:, 0])
    assert_allclose(u1, u[:, 0], rtol=1e-10, atol=1e-14 * np.abs(u).max())

    with pytest.raises(ValueError):
        _ = Hop.solve(srcs[:-1])


@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
def test_helmholtz(par):
    """Functional interface returns system matrix and wavefields"""
    vel = _twolayer(par)
    Hop = _operator(par, vel=vel)
    idx = grid_indices(0, [2, par["nx"] // 2], par["nbound"], vel.shape)
    srcs = point_sources(idx, vel.size)
    A, u = helmholtz(
        vel, srcs, omega, par["order"], par["nbound"], par["dz"], par["dx"]
    )
    assert_allclose(A.toarray(), Hop.A.toarray())
    assert_allclose(A @ u, srcs, atol=1e-8)


@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
def test_superposition(par):
    """Wavefield of the sum of two source batches is the sum of the wavefields"""
    rng = np.random.default_rng(1)
    Hop = _operator(par)
    s1 = rng.normal(size=(Hop.npoints, 2)) + 1j * rng.normal(size=(Hop.npoints, 2))
    s2 = rng.normal(size=(Hop.npoints, 2)) + 1j * rng.normal(size=(Hop.npoints, 2))
    u12 = Hop.solve(s1 + s2)
    u1, u2 = Hop.solve(s1), Hop.solve(s2)
    assert_allclose(u12, u1 + u2, rtol=1e-8, atol=1e-10 * np.abs(u12).max())


@pytest.mark.parametrize("par", [(par1), (par2), (par3)])
def test_reciprocity(par):
    """Swapping shot and receiver in a laterally symmetric model"""
    vel = _twolayer(par)
    Hop = _operator(par, vel=vel)
    ia, ib = grid_indices(0, [3, par["nx"] - 4], par["nbound"], vel.shape)
    u = Hop.solve(point_sources(np.array([ia, ib]), Hop.npoints))
    assert np.abs(u[ib, 0]) > 0
    assert_allclose(u[ib, 0], u[ia, 1], rtol=1e-8)


def test_absorbing_boundary():
    """Wavefield is attenuated within the absorbing boundary"""
    par = {"nz": 30, "nx": 30, "nbound": 10, "dz": 10.0, "dx": 10.0, "order": 2}
    vel = extend_boundary(1500.0 * np.ones((par["nz"], par["nx"])), par["nbound"])
    Hop = _operator(par, vel=vel)
    idx = grid_indices(0, par["nx"] // 2, par["nbound"], vel.shape)
    u = np.abs(Hop.solve(point_sources(idx, Hop.npoints))[:, 0]).reshape(Hop.dims)
    nb, nz = par["nbound"], par["nz"]
    inner = np.mean(u[:nz, nb]) + np.mean(u[:nz, -nb - 1])
    outer = np.mean(u[:nz, 0]) + np.mean(u[:nz, -1])
    assert outer < 0.3 * inner
    assert np.mean(u[-1]) < 0.3 * np.mean(u[nz - 1])
