"""
Construction of the periodic cell of a surface slab.
"""
import logging
import math

import numpy as np

from slabgen.core.lattice import Lattice
from slabgen.data.constants import MAX_ASPECT_RATIO
from slabgen.exceptions import ThicknessTooSmall, InvalidVacuum

logger = logging.getLogger(__name__)


def get_orientation_matrix(a, normal):
    """Returns the rotation that maps the vector a onto the x-axis and the
    normal onto the z-axis. Rows of the returned matrix are the new axes.
    """
    e1 = a/np.linalg.norm(a)
    e3 = normal/np.linalg.norm(normal)
    e2 = np.cross(e3, e1)
    return np.array([e1, e2, e3])


class SlabCell(object):
    """The periodic cell of a slab.

    The first two cell vectors are the reduced in-plane vectors of the
    surface basis, possibly repeated. The third one is the transverse vector
    repeated repeat_count times plus the vacuum along the exact plane normal.
    Thickness and vacuum are measured along the normal, so the cell is
    oblique whenever the transverse vector is sheared.
    """
    def __init__(self, lattice, surface_basis, repeat_count, vacuum,
                 requested_thickness=None, orient=True, in_plane_repeats=(1, 1)):
        """
        Args:
            lattice(Lattice): The bulk lattice.
            surface_basis(SurfaceBasis): The surface basis of the plane.
            repeat_count(int): Number of transverse steps in the slab.
            vacuum(float): Vacuum thickness in angstrom.
            requested_thickness(float): The thickness that was asked for.
            orient(bool): Whether the cell is rotated so that the first
                in-plane vector lies along x and the normal along z.
            in_plane_repeats(tuple): Repetitions of the in-plane vectors.
        """
        self._bulk_lattice = lattice
        self._surface_basis = surface_basis
        self._repeat_count = int(repeat_count)
        self._vacuum = float(vacuum)
        self._orient = orient
        self._in_plane_repeats = tuple(int(x) for x in in_plane_repeats)

        u, v, w = surface_basis.get_cartesian(lattice)
        normal = np.cross(u, v)
        normal /= np.linalg.norm(normal)
        self._spacing = float(np.dot(w, normal))
        self._requested_thickness = self.thickness if requested_thickness is None else float(requested_thickness)

        if orient:
            rotation = get_orientation_matrix(u, normal)
        else:
            rotation = np.eye(3)
        self._rotation = rotation

        na, nb = self._in_plane_repeats
        source = np.array([
            na*u,
            nb*v,
            self._repeat_count*w + self._vacuum*normal,
        ])
        self._lattice = Lattice(np.dot(source, rotation.T))
        self._u = np.dot(u, rotation.T)
        self._v = np.dot(v, rotation.T)
        self._w = np.dot(w, rotation.T)
        self._normal = np.dot(normal, rotation.T)

    @property
    def bulk_lattice(self):
        return self._bulk_lattice

    @property
    def surface_basis(self):
        return self._surface_basis

    @property
    def lattice(self):
        return self._lattice

    @property
    def matrix(self):
        return self._lattice.matrix

    @property
    def rotation(self):
        """Rotation from the bulk cartesian frame to the slab frame."""
        return np.array(self._rotation)

    @property
    def in_plane(self):
        """The two in-plane cell vectors in the slab frame."""
        return self._lattice.matrix[:2]

    @property
    def transverse_step(self):
        """One transverse lattice vector in the slab frame."""
        return np.array(self._w)

    @property
    def stacking_vector(self):
        """The part of the third cell vector occupied by the slab."""
        return self._repeat_count*self._w

    @property
    def normal(self):
        return np.array(self._normal)

    @property
    def interplanar_spacing(self):
        return self._spacing

    @property
    def repeat_count(self):
        return self._repeat_count

    @property
    def thickness(self):
        """The realised slab thickness along the normal."""
        return self._repeat_count*self._spacing

    @property
    def requested_thickness(self):
        return self._requested_thickness

    @property
    def vacuum(self):
        return self._vacuum

    @property
    def height(self):
        """Extent of the cell along the normal."""
        return self.thickness + self._vacuum

    @property
    def in_plane_repeats(self):
        return self._in_plane_repeats

    @property
    def aspect_ratio(self):
        lengths = np.linalg.norm(self.in_plane, axis=1)
        return float(lengths.max()/lengths.min())

    def to_slab_frame(self, cartesian):
        """Rotates cartesian vectors of the bulk frame into the slab frame."""
        return np.dot(cartesian, self._rotation.T)

    def repeated(self, na, nb):
        """Returns the cell of an in-plane supercell of this slab."""
        ra, rb = self._in_plane_repeats
        return SlabCell(
            self._bulk_lattice,
            self._surface_basis,
            self._repeat_count,
            self._vacuum,
            requested_thickness=self._requested_thickness,
            orient=self._orient,
            in_plane_repeats=(ra*na, rb*nb),
        )

    def with_repeat_count(self, repeat_count):
        """Returns the same cell with a different number of transverse
        steps. The vacuum is kept."""
        if int(repeat_count) < 1:
            raise ThicknessTooSmall("The repeat count must be at least one.", value=repeat_count)
        return SlabCell(
            self._bulk_lattice,
            self._surface_basis,
            repeat_count,
            self._vacuum,
            requested_thickness=self._requested_thickness,
            orient=self._orient,
            in_plane_repeats=self._in_plane_repeats,
        )

    def __repr__(self):
        return "SlabCell(miller={}, repeat_count={}, thickness={:.3f}, vacuum={:.3f})".format(
            self._surface_basis.miller, self._repeat_count, self.thickness, self._vacuum
        )


def build_slab_cell(lattice, surface_basis, thickness, vacuum, orient=True, in_plane_repeats=(1, 1)):
    """Builds the slab cell for the requested thickness and vacuum.

    The repeat count is the smallest number of transverse steps whose
    extent along the normal reaches the requested thickness.

    Args:
        lattice(Lattice): The bulk lattice.
        surface_basis(SurfaceBasis): The surface basis of the plane.
        thickness(float): Minimum slab thickness along the normal in
            angstrom.
        vacuum(float): Vacuum thickness along the normal in angstrom.
        orient(bool): Rotate the cell so that the normal is along z.
        in_plane_repeats(tuple): Repetitions of the in-plane vectors.

    Returns:
        SlabCell: The new cell.

    Raises:
        ThicknessTooSmall: If thickness is not a positive number.
        InvalidVacuum: If vacuum is negative or not finite.
    """
    try:
        thickness = float(thickness)
    except (TypeError, ValueError):
        raise ThicknessTooSmall("Invalid slab thickness '{}'.".format(thickness), value=thickness)
    if not math.isfinite(thickness) or thickness <= 0:
        raise ThicknessTooSmall(
            "The slab thickness must be positive, got {}.".format(thickness),
            value=thickness
        )
    try:
        vacuum = float(vacuum)
    except (TypeError, ValueError):
        raise InvalidVacuum("Invalid vacuum '{}'.".format(vacuum), value=vacuum)
    if not math.isfinite(vacuum) or vacuum < 0:
        raise InvalidVacuum(
            "The vacuum must be non-negative, got {}.".format(vacuum),
            value=vacuum
        )

    d = lattice.d_hkl(surface_basis.miller.indices)
    repeat_count = max(1, int(math.ceil(thickness/d - 1e-8)))
    cell = SlabCell(
        lattice,
        surface_basis,
        repeat_count,
        vacuum,
        requested_thickness=thickness,
        orient=orient,
        in_plane_repeats=in_plane_repeats,
    )
    logger.info(
        "Plane %s: d_hkl = %.4f A, requested thickness %.3f A -> %d layers (%.3f A).",
        surface_basis.miller, d, thickness, repeat_count, cell.thickness
    )
    if cell.aspect_ratio > MAX_ASPECT_RATIO:
        logger.warning(
            "The slab cell has a high in-plane aspect ratio of %.2f.", cell.aspect_ratio
        )
    return cell
