import pytest
import numpy as np

from slabgen.core.basis import find_surface_basis
from slabgen.core.lattice import Lattice
from slabgen.exceptions import ThicknessTooSmall, InvalidVacuum
from slabgen.synthesis.builder import build_slab_cell

cubic = Lattice(np.eye(3)*4.0)
monoclinic = Lattice.from_parameters(4.0, 5.0, 6.0, 90, 110, 90)
triclinic = Lattice.from_parameters(4.1, 5.3, 6.2, 78, 95, 103)


def test_cubic_example():
    basis = find_surface_basis(cubic, (1, 0, 0))
    cell = build_slab_cell(cubic, basis, 8.0, 10.0)
    assert cell.repeat_count == 2
    assert cell.thickness == pytest.approx(8.0)
    assert np.linalg.norm(cell.matrix[2]) == pytest.approx(18.0)
    assert np.allclose(np.linalg.norm(cell.in_plane, axis=1), [4, 4])


@pytest.mark.parametrize("thickness, expected", [
    pytest.param(0.1, 1, id="thin"),
    pytest.param(4.0, 1, id="exact"),
    pytest.param(4.0001, 2, id="just above"),
    pytest.param(15.0, 4, id="default"),
])
def test_repeat_count(thickness, expected):
    basis = find_surface_basis(cubic, (1, 0, 0))
    cell = build_slab_cell(cubic, basis, thickness, 0.0)
    assert cell.repeat_count == expected
    assert cell.thickness >= thickness - 1e-9


@pytest.mark.parametrize("thickness", [0, -1.0, float("nan"), float("inf")])
def test_invalid_thickness(thickness):
    basis = find_surface_basis(cubic, (1, 0, 0))
    with pytest.raises(ThicknessTooSmall):
        build_slab_cell(cubic, basis, thickness, 10.0)


@pytest.mark.parametrize("vacuum", [-0.1, float("nan")])
def test_invalid_vacuum(vacuum):
    basis = find_surface_basis(cubic, (1, 0, 0))
    with pytest.raises(InvalidVacuum):
        build_slab_cell(cubic, basis, 10.0, vacuum)


@pytest.mark.parametrize("lattice", [
    pytest.param(monoclinic, id="monoclinic"),
    pytest.param(triclinic, id="triclinic"),
])
@pytest.mark.parametrize("hkl", [(0, 0, 1), (1, 0, 1), (1, 1, 1), (2, 1, 3)])
@pytest.mark.parametrize("orient", [True, False])
def test_thickness_and_vacuum_along_normal(lattice, hkl, orient):
    basis = find_surface_basis(lattice, hkl)
    cell = build_slab_cell(lattice, basis, 12.0, 7.5, orient=orient)
    normal = cell.normal
    d = lattice.d_hkl(basis.miller.indices)

    assert cell.interplanar_spacing == pytest.approx(d)
    assert np.dot(cell.stacking_vector, normal) == pytest.approx(cell.repeat_count*d)
    assert np.dot(cell.matrix[2], normal) == pytest.approx(cell.thickness + 7.5)
    assert abs(np.dot(cell.matrix[0], normal)) < 1e-9
    assert abs(np.dot(cell.matrix[1], normal)) < 1e-9
    # The area of the surface cell times the spacing is the bulk volume
    area = np.linalg.norm(np.cross(cell.matrix[0], cell.matrix[1]))
    assert area*d == pytest.approx(lattice.volume)


def test_orientation():
    basis = find_surface_basis(triclinic, (1, 1, 1))
    cell = build_slab_cell(triclinic, basis, 10.0, 10.0, orient=True)
    matrix = cell.matrix
    assert abs(matrix[0, 1]) < 1e-9 and abs(matrix[0, 2]) < 1e-9
    assert abs(matrix[1, 2]) < 1e-9
    assert np.allclose(cell.normal, [0, 0, 1])
    assert np.linalg.det(matrix) > 0


def test_repeated_cell():
    basis = find_surface_basis(cubic, (1, 1, 0))
    cell = build_slab_cell(cubic, basis, 5.0, 5.0)
    bigger = cell.repeated(2, 3)
    assert bigger.in_plane_repeats == (2, 3)
    assert np.allclose(bigger.in_plane[0], 2*cell.in_plane[0])
    assert np.allclose(bigger.in_plane[1], 3*cell.in_plane[1])
    assert np.allclose(bigger.matrix[2], cell.matrix[2])
