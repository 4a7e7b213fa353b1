import pytest
import numpy as np

from slabgen.core.basis import (
    MillerIndices,
    get_integer_plane_basis,
    find_surface_basis,
    reduce_basis_2d,
)
from slabgen.core.lattice import Lattice
from slabgen.exceptions import DegeneratePlane

cubic = Lattice(np.eye(3)*4.0)
hexagonal = Lattice.from_parameters(3.2, 3.2, 5.1, 90, 90, 120)
triclinic = Lattice.from_parameters(4.1, 5.3, 6.2, 78, 95, 103)
fcc_primitive = Lattice([[0, 2.82, 2.82], [2.82, 0, 2.82], [2.82, 2.82, 0]])

millers = [
    (1, 0, 0), (0, 1, 0), (0, 0, 1), (0, 0, -1), (1, 1, 0), (1, -1, 0), (1, 1, 1),
    (2, 1, 0), (3, 2, 1), (-1, 2, -3), (0, 3, 2), (4, 0, 3), (5, 7, 11),
]


@pytest.mark.parametrize("hkl", millers + [(-2, 3, 0), (0, -1, -1), (3, 0, -2)])
def test_integer_plane_basis(hkl):
    miller = MillerIndices(hkl)
    u, v, w = get_integer_plane_basis(miller)
    indices = miller.as_array()
    assert np.dot(u, indices) == 0
    assert np.dot(v, indices) == 0
    assert np.dot(w, indices) == 1
    assert round(abs(np.linalg.det(np.array([u, v, w])))) == 1


@pytest.mark.parametrize("indices, expected", [
    pytest.param((2, 2, 0), (1, 1, 0), id="common factor"),
    pytest.param((0, 0, -3), (0, 0, -1), id="negative"),
    pytest.param((1, 2, 3), (1, 2, 3), id="reduced"),
])
def test_miller_reduction(indices, expected):
    assert MillerIndices(indices).indices == expected


@pytest.mark.parametrize("indices", [
    pytest.param((0, 0, 0), id="zero"),
    pytest.param((1, 0.5, 0), id="non-integer"),
    pytest.param((1, 0), id="too short"),
])
def test_invalid_miller(indices):
    with pytest.raises(DegeneratePlane):
        MillerIndices(indices)


def test_zero_miller_fails_basis():
    with pytest.raises(DegeneratePlane):
        find_surface_basis(cubic, (0, 0, 0))


@pytest.mark.parametrize("lattice", [
    pytest.param(cubic, id="cubic"),
    pytest.param(hexagonal, id="hexagonal"),
    pytest.param(triclinic, id="triclinic"),
    pytest.param(fcc_primitive, id="fcc primitive"),
])
@pytest.mark.parametrize("hkl", millers)
def test_surface_basis_properties(lattice, hkl):
    basis = find_surface_basis(lattice, hkl)
    miller = np.array(MillerIndices(hkl).indices)
    u, v = basis.reduced
    w = basis.transverse

    # In-plane vectors lie exactly in the plane
    for vector in basis.in_plane + basis.reduced:
        assert np.dot(vector, miller) == 0
    cart = basis.get_cartesian(lattice)
    normal = lattice.get_plane_normal(miller)
    assert abs(np.dot(cart[0], normal)) < 1e-9
    assert abs(np.dot(cart[1], normal)) < 1e-9

    # One interplanar step along the normal
    assert np.dot(w, miller) == 1
    assert np.dot(cart[2], normal) == pytest.approx(lattice.d_hkl(miller))

    # Same lattice, right handed
    assert round(abs(np.linalg.det(basis.matrix))) == 1
    assert np.dot(np.cross(cart[0], cart[1]), cart[2]) > 0

    # Reduced pair: shortest first, size reduced
    metric = lattice.metric_tensor
    uu = u @ metric @ u
    vv = v @ metric @ v
    uv = u @ metric @ v
    assert uu <= vv*(1 + 1e-9)
    assert abs(uv) <= uu/2*(1 + 1e-9)


def test_cubic_100_uses_original_vectors():
    basis = find_surface_basis(cubic, (1, 0, 0))
    cart = basis.get_cartesian(cubic)
    assert np.allclose(np.abs(cart[0]), [0, 4, 0]) or np.allclose(np.abs(cart[0]), [0, 0, 4])
    assert np.allclose(np.abs(cart[1]), [0, 0, 4]) or np.allclose(np.abs(cart[1]), [0, 4, 0])
    assert np.allclose(cart[2], [4, 0, 0])


@pytest.mark.parametrize("u, v", [
    pytest.param((1, 0, 0), (7, 1, 0), id="long second"),
    pytest.param((5, 1, 0), (1, 0, 0), id="swapped"),
    pytest.param((3, -2, 0), (-4, 3, 0), id="skewed"),
])
def test_reduction_is_idempotent(u, v):
    metric = triclinic.metric_tensor
    u1, v1 = reduce_basis_2d(u, v, metric)
    u2, v2 = reduce_basis_2d(u1, v1, metric)

    def as_set(vectors):
        return {tuple(x) for x in vectors} | {tuple(-x) for x in vectors}
    assert as_set((u1, v1)) == as_set((u2, v2))


def test_reduction_keeps_area():
    metric = np.eye(3)
    u, v = np.array([3, -2, 0]), np.array([-4, 3, 0])
    u1, v1 = reduce_basis_2d(u, v, metric)
    assert abs(np.cross(u1, v1)[2]) == abs(np.cross(u, v)[2])
    assert {tuple(np.abs(u1)), tuple(np.abs(v1))} == {(1, 0, 0), (0, 1, 0)}
