import numpy as np
from ase.geometry import cellpar_to_cell

from slabgen.data.constants import DET_THRESHOLD
from slabgen.exceptions import LatticeError


class Lattice(object):
    """
    A lattice object.  Essentially a matrix with conversion matrices. In
    general, it is assumed that length units are in Angstroms and angles are in
    degrees unless otherwise stated. A lattice is never modified after
    creation; transformations create new lattices.
    """
    def __init__(self, matrix):
        """
        Create a lattice from any sequence of 9 numbers. Note that the sequence
        is assumed to be read one row at a time. Each row represents one
        lattice vector.

        Args:
            matrix: Sequence of numbers in any form, e.g. a numpy array or
                [[10, 0, 0], [20, 10, 0], [0, 0, 30]] for a lattice with
                lattice vectors [10, 0, 0], [20, 10, 0] and [0, 0, 30].

        Raises:
            LatticeError: If the vectors do not span a three-dimensional cell.
        """
        m = np.array(matrix, dtype=np.float64).reshape((3, 3))
        if not np.all(np.isfinite(m)):
            raise LatticeError("The lattice vectors contain non-finite values.")
        det = np.linalg.det(m)
        if abs(det) < DET_THRESHOLD:
            raise LatticeError(
                "The lattice vectors are linearly dependent (determinant {:.3g})."
                .format(det),
                value=det
            )
        m.flags.writeable = False
        self._matrix = m
        self._lengths = np.sqrt(np.sum(m ** 2, axis=1))
        self._angles = None
        self._inv_matrix = None

    @staticmethod
    def from_parameters(a, b, c, alpha, beta, gamma):
        """Creates a lattice from the lattice constants. The first vector is
        placed along the x-axis and the second vector in the xy-plane.

        Args:
            a, b, c(float): Lengths of the lattice vectors in angstrom.
            alpha, beta, gamma(float): Angles between the lattice vectors in
                degrees.

        Returns:
            Lattice: The new lattice.
        """
        if min(a, b, c) <= 0:
            raise LatticeError("Lattice constants must be positive.")
        cosines = np.cos(np.radians([alpha, beta, gamma]))
        ca, cb, cg = cosines
        metric_det = 1 - ca**2 - cb**2 - cg**2 + 2*ca*cb*cg
        if not np.isfinite(metric_det) or metric_det <= 0:
            raise LatticeError(
                "The angles ({}, {}, {}) do not define a valid cell."
                .format(alpha, beta, gamma)
            )
        return Lattice(cellpar_to_cell([a, b, c, alpha, beta, gamma]))

    @property
    def matrix(self):
        """Copy of matrix representing the Lattice"""
        return np.array(self._matrix)

    @property
    def inv_matrix(self):
        """
        Inverse of lattice matrix.
        """
        if self._inv_matrix is None:
            inv = np.linalg.inv(self._matrix)
            inv.flags.writeable = False
            self._inv_matrix = inv
        return self._inv_matrix

    @property
    def metric_tensor(self):
        """The metric tensor G = M M^T of the lattice."""
        return np.dot(self._matrix, self._matrix.T)

    def get_cartesian_coords(self, fractional_coords):
        """
        Returns the cartesian coordinates given fractional coordinates.

        Args:
            fractional_coords (3x1 array): Fractional coords.

        Returns:
            Cartesian coordinates
        """
        return np.dot(fractional_coords, self._matrix)

    def get_fractional_coords(self, cart_coords):
        """
        Returns the fractional coordinates given cartesian coordinates.

        Args:
            cart_coords (3x1 array): Cartesian coords.

        Returns:
            Fractional coordinates.
        """
        return np.dot(cart_coords, self.inv_matrix)

    @property
    def lengths(self):
        return np.array(self._lengths)

    @property
    def angles(self):
        """
        Returns the angles (alpha, beta, gamma) of the lattice.
        """
        if self._angles is None:
            angles = np.zeros(3)
            for i in range(3):
                j = (i + 1) % 3
                k = (i + 2) % 3
                angles[i] = np.dot(
                    self._matrix[j],
                    self._matrix[k]) / (self._lengths[j] * self._lengths[k])
            angles = np.clip(angles, -1.0, 1.0)
            self._angles = np.arccos(angles) * 180. / np.pi
        return np.array(self._angles)

    @property
    def abc(self):
        """
        Lengths of the lattice vectors, i.e. (a, b, c)
        """
        return tuple(self._lengths)

    @property
    def volume(self):
        """
        Volume of the unit cell.
        """
        m = self._matrix
        return abs(np.dot(np.cross(m[0], m[1]), m[2]))

    def get_reciprocal_lattice_crystallographic(self):
        """
        Returns the *crystallographic* reciprocal lattice, i.e., no factor of
        2 * pi. Row i is the reciprocal vector b_i with a_i . b_j = delta_ij.
        """
        return Lattice(self.inv_matrix.T)

    def get_plane_normal(self, hkl):
        """Returns the unit normal of the lattice plane (hkl) in cartesian
        coordinates.
        """
        g = np.dot(np.asarray(hkl, dtype=np.float64), self.inv_matrix.T)
        norm = np.linalg.norm(g)
        if norm == 0:
            raise ValueError("The Miller indices (0, 0, 0) have no normal.")
        return g / norm

    def d_hkl(self, hkl):
        """Returns the distance between consecutive (hkl) lattice planes.
        """
        g = np.dot(np.asarray(hkl, dtype=np.float64), self.inv_matrix.T)
        norm = np.linalg.norm(g)
        if norm == 0:
            raise ValueError("The Miller indices (0, 0, 0) have no spacing.")
        return 1.0 / norm

    def __eq__(self, other):
        if not isinstance(other, Lattice):
            return NotImplemented
        return np.allclose(self._matrix, other._matrix)

    def __hash__(self):
        return hash(tuple(np.round(self._matrix, 8).ravel()))

    def __repr__(self):
        rows = ", ".join("[{:.6f}, {:.6f}, {:.6f}]".format(*row) for row in self._matrix)
        return "Lattice([{}])".format(rows)
