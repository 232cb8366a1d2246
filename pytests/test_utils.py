import multiprocessing as mp

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from pylsrtm.config import options
from pylsrtm.utils.acquisition import grid_indices, point_sources, surface_array
from pylsrtm.utils.metrics import misfit, mse, relative_change, snr
from pylsrtm.utils.model import crop_boundary, extend_boundary, slowsq2vel, vel2slowsq
from pylsrtm.utils.multiproc import create_pool, frequency_map, get_nproc

par1 = {"nz": 10, "nx": 12, "nbound": 0}  # no boundary
par2 = {"nz": 10, "nx": 12, "nbound": 4}  # with boundary


def test_surface_array():
    """Uniform and random surface arrays"""
    assert_array_equal(surface_array(20, 0, 19), np.arange(20))
    assert_array_equal(surface_array(5, 0, 19), np.array([0, 4, 8, 12, 16]))
    assert_array_equal(surface_array(3, 2, 7), np.array([2, 4, 6]))

    ix = surface_array(6, 0, 19, kind="random", rng=np.random.default_rng(0))
    assert len(ix) == 6
    assert len(np.unique(ix)) == 6
    assert np.all(np.diff(ix) > 0)
    assert ix.min() >= 0 and ix.max() <= 19
    ix1 = surface_array(6, 0, 19, kind="random", rng=np.random.default_rng(0))
    assert_array_equal(ix, ix1)


def test_surface_array_invalid():
    """Check error is raised for invalid surface arrays"""
    with pytest.raises(ValueError):
        _ = surface_array(0, 0, 19)
    with pytest.raises(ValueError):
        _ = surface_array(21, 0, 19)
    with pytest.raises(ValueError):
        _ = surface_array(2, 5, 4)
    with pytest.raises(NotImplementedError):
        _ = surface_array(2, 0, 19, kind="foo")


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_grid_indices(par):
    """Indices on the flattened padded grid"""
    nb = par["nbound"]
    shape = (par["nz"] + nb, par["nx"] + 2 * nb)
    idx = grid_indices(0, np.arange(par["nx"]), nb, shape)
    assert_array_equal(idx, np.arange(par["nx"]) + nb)

    idx = grid_indices([1, 3], [0, 2], nb, shape)
    assert_array_equal(idx, np.array([shape[1] + nb, 3 * shape[1] + 2 + nb]))

    # indices point to the physical position in the extended model
    model = np.arange(par["nz"] * par["nx"], dtype=float).reshape(par["nz"], par["nx"])
    modelext = extend_boundary(model, nb)
    idx = grid_indices(np.array([2, 5]), np.array([7, 1]), nb, shape)
    assert_array_equal(modelext.ravel()[idx], np.array([model[2, 7], model[5, 1]]))

    with pytest.raises(ValueError):
        _ = grid_indices(0, [par["nx"]], nb, shape)
    with pytest.raises(ValueError):
        _ = grid_indices(par["nz"], [0], nb, shape)
    with pytest.raises(ValueError):
        _ = grid_indices(0, [-1], nb, shape)
    with pytest.raises(ValueError):
        _ = grid_indices(0, [1, 1], nb, shape)
    with pytest.raises(ValueError):
        _ = grid_indices(0, [], nb, shape)


def test_point_sources():
    """One unit entry per column at the source position"""
    idx = np.array([3, 7, 1])
    srcs = point_sources(idx, 10, scale=2 - 1j)
    assert srcs.shape == (10, 3)
    assert srcs.dtype == np.complex128
    assert_array_equal(np.count_nonzero(srcs, axis=0), np.ones(3))
    assert_array_equal(srcs[idx, np.arange(3)], (2 - 1j) * np.ones(3))


@pytest.mark.parametrize("par", [(par1), (par2)])
def test_extend_crop_boundary(par):
    """Extended model replicates edges and is cropped back to the input model"""
    nb = par["nbound"]
    rng = np.random.default_rng(0)
    model = 1500.0 + 1000.0 * rng.uniform(size=(par["nz"], par["nx"]))
    modelext = extend_boundary(model, nb)
    assert modelext.shape == (par["nz"] + nb, par["nx"] + 2 * nb)
    assert_array_equal(crop_boundary(modelext, nb), model)
    if nb > 0:
        assert_array_equal(modelext[: par["nz"], :nb], model[:, :1] * np.ones((1, nb)))
        assert_array_equal(modelext[: par["nz"], -nb:], model[:, -1:] * np.ones((1, nb)))
        assert_array_equal(modelext[-1, nb:-nb], model[-1])

    with pytest.raises(ValueError):
        _ = extend_boundary(model, -1)


def test_slowsq():
    """Conversion between velocity and squared slowness"""
    vel = np.array([[1500.0, 2000.0], [2500.0, 3000.0]])
    m = vel2slowsq(vel)
    assert_allclose(m, 1.0 / vel**2)
    assert_allclose(slowsq2vel(m), vel)

    with pytest.raises(ValueError):
        _ = vel2slowsq(np.array([0.0, 1500.0]))
    with pytest.raises(ValueError):
        _ = slowsq2vel(np.array([-1.0, 1.0]))


def test_metrics():
    """Relative change, misfit and quality metrics"""
    mold = np.ones((3, 4))
    mnew = mold + 0.1
    assert_allclose(relative_change(mnew, mold), 0.1)
    assert relative_change(mold, mold) == 0.0
    assert relative_change(mold, np.zeros((3, 4))) == np.inf

    dres = np.array([1 + 1j, 2.0, -1j])
    assert_allclose(misfit(dres), 0.5 * (2 + 4 + 1))

    xref = np.ones(10)
    assert mse(xref, xref) == 0.0
    assert_allclose(mse(xref, xref + 0.1), 0.01)
    assert_allclose(snr(xref, xref + 0.1), 20.0)


def test_frequency_map():
    """Serial and parallel evaluation return results in order"""
    args = [(2, 3), (3, 2), (5, 1)]
    assert frequency_map(pow, args) == [8, 9, 5]

    assert create_pool(1) is None
    pool = create_pool(2)
    try:
        assert frequency_map(pow, args, pool=pool) == [8, 9, 5]
    finally:
        pool.close()
        pool.join()

    with pytest.raises(ValueError):
        _ = create_pool(0)


def test_get_nproc():
    """Number of processes from argument, configuration or CPU count"""
    assert get_nproc(3) == 3
    assert get_nproc(-1) == mp.cpu_count()
    with options(nproc=2):
        assert get_nproc() == 2
    with options(nproc=-1):
        assert get_nproc() == mp.cpu_count()
    with pytest.raises(ValueError):
        _ = get_nproc(-2)
