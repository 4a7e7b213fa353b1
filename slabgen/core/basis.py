"""
Integer lattice arithmetic for finding the surface cell of a lattice plane.
"""
import logging
from functools import reduce
from math import gcd

import numpy as np
from ase.build.general_surface import ext_gcd

from slabgen.data.constants import MAX_ASPECT_RATIO
from slabgen.exceptions import DegeneratePlane

logger = logging.getLogger(__name__)


class MillerIndices(object):
    """Miller indices (hkl) of a lattice plane, stored in reduced form.
    """
    def __init__(self, indices):
        """
        Args:
            indices(sequence of three ints): The Miller indices.

        Raises:
            DegeneratePlane: If the indices are all zero or not integers.
        """
        if isinstance(indices, MillerIndices):
            indices = indices.indices
        try:
            values = list(indices)
        except TypeError:
            raise DegeneratePlane("Miller indices must be a sequence of three integers.", value=indices)
        if len(values) != 3:
            raise DegeneratePlane("Miller indices must be a sequence of three integers.", value=indices)
        ints = []
        for value in values:
            try:
                as_int = int(round(float(value)))
            except (TypeError, ValueError):
                raise DegeneratePlane("Miller index '{}' is not an integer.".format(value), value=indices)
            if as_int != value:
                raise DegeneratePlane("Miller index '{}' is not an integer.".format(value), value=indices)
            ints.append(as_int)
        divisor = reduce(gcd, ints)
        if divisor == 0:
            raise DegeneratePlane("The Miller indices (0, 0, 0) do not define a plane.", value=tuple(ints))
        self._indices = tuple(x // divisor for x in ints)

    @property
    def indices(self):
        return self._indices

    @property
    def h(self):
        return self._indices[0]

    @property
    def k(self):
        return self._indices[1]

    @property
    def l(self):
        return self._indices[2]

    def as_array(self):
        return np.array(self._indices, dtype=int)

    def __iter__(self):
        return iter(self._indices)

    def __len__(self):
        return 3

    def __getitem__(self, i):
        return self._indices[i]

    def __eq__(self, other):
        if isinstance(other, MillerIndices):
            return self._indices == other._indices
        return NotImplemented

    def __hash__(self):
        return hash(self._indices)

    def __str__(self):
        return "({} {} {})".format(*self._indices)

    def __repr__(self):
        return "MillerIndices({}, {}, {})".format(*self._indices)


def get_integer_plane_basis(miller):
    """Returns two integer vectors spanning the lattice plane and one
    integer vector w with w . hkl = 1. Together they form a unimodular
    matrix, so the three vectors span the same lattice as the original cell.

    The construction is the one used by ase.build.surface.

    Args:
        miller(MillerIndices): The plane.

    Returns:
        tuple: (u, v, w) as integer arrays.
    """
    h, k, l = miller.indices
    if k == 0 and l == 0:
        u = np.array([0, 1, 0])
        v = np.array([0, 0, 1])
        w = np.array([h, 0, 0])
        return u, v, w

    p, q = ext_gcd(k, l)
    g = p*k + q*l
    a, b = ext_gcd(g, h)
    divisor = gcd(k, l)
    u = np.array([g, -p*h, -q*h])
    v = np.array([0, l // divisor, -k // divisor])
    w = np.array([b, a*p, a*q])

    # ext_gcd fixes the sign of a*g + b*h only up to +-1
    if np.dot(w, miller.as_array()) < 0:
        w = -w
    return u, v, w


def reduce_basis_2d(u, v, metric):
    """Gauss-Lagrange reduction of a pair of integer lattice vectors.

    The shorter vector is repeatedly subtracted from the longer one until
    the pair is size reduced. The first returned vector is the shortest
    lattice vector of the plane and the pair spans the same two-dimensional
    lattice. Reducing an already reduced basis returns it unchanged (up to
    the order of two equally long vectors).

    Args:
        u, v(sequence of ints): The integer vectors.
        metric(np.ndarray): 3x3 metric tensor used for the dot products.

    Returns:
        tuple: (u, v) as integer arrays.
    """
    metric = np.asarray(metric, dtype=np.float64)
    u = np.array(u, dtype=int)
    v = np.array(v, dtype=int)

    def dot(x, y):
        return float(np.dot(x, np.dot(metric, y)))

    if dot(u, u) > dot(v, v):
        u, v = v, u
    while True:
        uu = dot(u, u)
        mu = int(np.rint(dot(u, v) / uu))
        if mu == 0:
            break
        v_new = v - mu*u
        vv = dot(v, v)
        if dot(v_new, v_new) >= vv*(1 - 1e-12):
            break
        v = v_new
        if dot(v, v) < uu*(1 - 1e-12):
            u, v = v, u
        else:
            break

    # Among the equally short choices for the second vector, the least
    # skewed one is used.
    uu = dot(u, u)
    vv = dot(v, v)
    best = v
    for candidate in (v - u, v + u):
        cc = dot(candidate, candidate)
        if abs(cc - vv) <= vv*1e-12 and abs(dot(u, candidate)) < abs(dot(u, best)) - uu*1e-12:
            best = candidate
    return u, best


def minimize_shear(w, u, v, metric):
    """Subtracts integer multiples of the in-plane vectors from w so that
    its component within the plane is as short as possible.
    """
    metric = np.asarray(metric, dtype=np.float64)
    gram = np.array([
        [u @ metric @ u, u @ metric @ v],
        [u @ metric @ v, v @ metric @ v],
    ], dtype=np.float64)
    rhs = np.array([w @ metric @ u, w @ metric @ v], dtype=np.float64)
    alpha, beta = np.linalg.solve(gram, rhs)
    a0, b0 = int(np.floor(alpha)), int(np.floor(beta))

    best = None
    best_length = None
    for da in (0, 1):
        for db in (0, 1):
            candidate = w - (a0 + da)*u - (b0 + db)*v
            length = float(candidate @ metric @ candidate)
            if best is None or length < best_length*(1 - 1e-12):
                best = candidate
                best_length = length
    return best


class SurfaceBasis(object):
    """The integer vectors defining the surface cell of a lattice plane.

    Attributes:
        miller(MillerIndices): The plane.
        in_plane(tuple): The two integer vectors spanning the plane as
            constructed from the Miller indices.
        reduced(tuple): The reduced version of the in-plane pair.
        transverse(np.ndarray): Integer vector w with w . hkl = 1, i.e. a
            lattice vector reaching the next lattice plane.
    """
    def __init__(self, miller, in_plane, reduced, transverse):
        self._miller = miller
        self._in_plane = tuple(np.array(x, dtype=int) for x in in_plane)
        self._reduced = tuple(np.array(x, dtype=int) for x in reduced)
        self._transverse = np.array(transverse, dtype=int)
        for vector in self._in_plane + self._reduced + (self._transverse,):
            vector.flags.writeable = False

    @property
    def miller(self):
        return self._miller

    @property
    def in_plane(self):
        return self._in_plane

    @property
    def reduced(self):
        return self._reduced

    @property
    def transverse(self):
        return self._transverse

    @property
    def matrix(self):
        """Integer matrix with the reduced in-plane vectors and the
        transverse vector as rows.
        """
        return np.array([self._reduced[0], self._reduced[1], self._transverse])

    def get_cartesian(self, lattice):
        """Returns the cartesian versions of the reduced in-plane vectors and
        the transverse vector as rows of a 3x3 array.
        """
        return np.dot(self.matrix, lattice.matrix)

    def __repr__(self):
        return "SurfaceBasis(miller={}, u={}, v={}, w={})".format(
            self._miller,
            self._reduced[0].tolist(),
            self._reduced[1].tolist(),
            self._transverse.tolist(),
        )


def find_surface_basis(lattice, hkl):
    """Finds the surface cell of the lattice plane (hkl).

    Args:
        lattice(Lattice): The bulk lattice.
        hkl(sequence of three ints or MillerIndices): The plane.

    Returns:
        SurfaceBasis: The reduced in-plane vectors and a transverse vector
        with minimal shear. The cartesian triple product of the vectors is
        positive.

    Raises:
        DegeneratePlane: If hkl is (0, 0, 0).
    """
    miller = MillerIndices(hkl)
    metric = lattice.metric_tensor
    u0, v0, w0 = get_integer_plane_basis(miller)
    u, v = reduce_basis_2d(u0, v0, metric)
    w = minimize_shear(w0, u, v, metric)

    cart = np.dot(np.array([u, v, w]), lattice.matrix)
    if np.dot(np.cross(cart[0], cart[1]), cart[2]) < 0:
        v = -v

    len_u = np.sqrt(u @ metric @ u)
    len_v = np.sqrt(v @ metric @ v)
    aspect = max(len_u, len_v) / min(len_u, len_v)
    if aspect > MAX_ASPECT_RATIO:
        logger.warning(
            "The surface cell of plane %s is elongated (aspect ratio %.2f).",
            miller, aspect
        )
    logger.debug("Surface basis for %s: u=%s, v=%s, w=%s", miller, u, v, w)
    return SurfaceBasis(miller, (u0, v0), (u, v), w)
