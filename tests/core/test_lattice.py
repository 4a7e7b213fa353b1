import pytest
import numpy as np

from slabgen.core.lattice import Lattice
from slabgen.exceptions import LatticeError


def test_degenerate_lattice():
    with pytest.raises(LatticeError):
        Lattice([[1, 0, 0], [2, 0, 0], [0, 0, 1]])


def test_non_finite_lattice():
    with pytest.raises(LatticeError):
        Lattice([[np.nan, 0, 0], [0, 1, 0], [0, 0, 1]])


def test_matrix_is_a_copy():
    lattice = Lattice(np.eye(3)*2)
    matrix = lattice.matrix
    matrix[0, 0] = 10
    assert lattice.matrix[0, 0] == 2


@pytest.mark.parametrize("parameters", [
    pytest.param((3.0, 3.0, 3.0, 90, 90, 90), id="cubic"),
    pytest.param((3.2, 3.2, 5.1, 90, 90, 120), id="hexagonal"),
    pytest.param((4.1, 5.3, 6.2, 78, 95, 103), id="triclinic"),
])
def test_from_parameters(parameters):
    lattice = Lattice.from_parameters(*parameters)
    assert np.allclose(lattice.lengths, parameters[:3])
    assert np.allclose(lattice.angles, parameters[3:])


def test_from_parameters_impossible_angles():
    with pytest.raises(LatticeError):
        Lattice.from_parameters(3, 3, 3, 10, 10, 120)


@pytest.mark.parametrize("hkl, expected", [
    pytest.param((1, 0, 0), 4.0, id="100"),
    pytest.param((1, 1, 0), 4.0/np.sqrt(2), id="110"),
    pytest.param((1, 1, 1), 4.0/np.sqrt(3), id="111"),
    pytest.param((2, 1, 0), 4.0/np.sqrt(5), id="210"),
])
def test_d_hkl_cubic(hkl, expected):
    lattice = Lattice(np.eye(3)*4)
    assert lattice.d_hkl(hkl) == pytest.approx(expected)


def test_reciprocal_lattice():
    lattice = Lattice.from_parameters(4.1, 5.3, 6.2, 78, 95, 103)
    reciprocal = lattice.get_reciprocal_lattice_crystallographic()
    assert np.allclose(np.dot(lattice.matrix, reciprocal.matrix.T), np.eye(3))


def test_plane_normal_is_perpendicular_to_plane():
    lattice = Lattice.from_parameters(4.1, 5.3, 6.2, 78, 95, 103)
    normal = lattice.get_plane_normal((1, 1, 0))
    in_plane = lattice.get_cartesian_coords([1, -1, 0])
    assert np.linalg.norm(normal) == pytest.approx(1)
    assert np.dot(normal, in_plane) == pytest.approx(0, abs=1e-10)


def test_coordinate_conversion():
    lattice = Lattice.from_parameters(3.2, 3.2, 5.1, 90, 90, 120)
    scaled = np.array([[0.25, 0.5, 0.75]])
    cart = lattice.get_cartesian_coords(scaled)
    assert np.allclose(lattice.get_fractional_coords(cart), scaled)
