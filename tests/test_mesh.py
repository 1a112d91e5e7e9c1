import numpy as np
import pytest

from chargetransport import Mesh, ConfigurationError


def three_regions():
    mesh = Mesh(np.linspace(0, 3, 7))
    mesh.cellmask(1, 0, 1)
    mesh.cellmask(2, 1, 2)
    mesh.cellmask(3, 2, 3)
    return mesh


def test_control_volumes():
    x = np.array([0., 1., 3., 6.])
    mesh = Mesh(x)
    assert np.allclose(mesh.dx, [1, 2, 3])
    assert np.allclose(mesh.volumes, [0.5, 1.5, 2.5, 1.5])
    assert np.isclose(mesh.volumes.sum(), 6)


def test_regions():
    mesh = three_regions()
    mesh.finalize()
    assert mesh.cell_region.tolist() == [1, 1, 2, 2, 3, 3]
    assert mesh.node_region.tolist() == [1, 1, 1, 2, 2, 3, 3]
    assert mesh.bregions == {1: 0, 2: 6}


def test_inner_boundaries():
    mesh = three_regions()
    mesh.bfacemask(3, 1.)
    mesh.bfacemask(4, 2.)
    assert mesh.inner_nodes == {3: 2, 4: 4}
    assert mesh.is_outer(1) and mesh.is_outer(2)
    assert not mesh.is_outer(3)


def test_tolerance_matching():
    mesh = Mesh(np.linspace(0, 1e-6, 11))
    # coordinates off by rounding errors still match a node
    assert mesh.node_index(0.3e-6 + 1e-22) == 3
    with pytest.raises(ConfigurationError):
        mesh.node_index(0.35e-6)
    with pytest.raises(ConfigurationError):
        mesh.bfacemask(3, 0.35e-6)


def test_invalid_coordinates():
    with pytest.raises(ConfigurationError):
        Mesh([0., 2., 1.])
    with pytest.raises(ConfigurationError):
        Mesh([0.])


def test_overlap():
    mesh = Mesh(np.linspace(0, 3, 7))
    mesh.cellmask(1, 0, 2)
    mesh.cellmask(2, 1, 3)
    with pytest.raises(ConfigurationError):
        mesh.finalize()


def test_gap():
    mesh = Mesh(np.linspace(0, 3, 7))
    mesh.cellmask(1, 0, 1)
    mesh.cellmask(2, 2, 3)
    with pytest.raises(ConfigurationError):
        mesh.finalize()


def test_incomplete_cover():
    mesh = Mesh(np.linspace(0, 3, 7))
    mesh.cellmask(1, 0, 2)
    with pytest.raises(ConfigurationError):
        mesh.finalize()


def test_boundary_conflicts():
    mesh = three_regions()
    mesh.bfacemask(3, 1.)
    # outer node already owned by the boundary region 1
    with pytest.raises(ConfigurationError):
        mesh.bfacemask(4, 0.)
    with pytest.raises(ConfigurationError):
        mesh.bfacemask(3, 2.)
