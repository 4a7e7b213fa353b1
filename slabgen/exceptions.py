class SlabGenError(Exception):
    def __init__(self, message, value=None):
        self.value = value
        Exception.__init__(self, message)


class GeometryError(SlabGenError):
    """Base class for errors in the definition of the requested geometry.
    These are fatal: no partial output is produced.
    """
    pass


class DegeneratePlane(GeometryError):
    """The Miller indices do not define a plane, e.g. (0, 0, 0).
    """
    pass


class ThicknessTooSmall(GeometryError):
    """The requested slab thickness is not a positive number.
    """
    pass


class InvalidVacuum(GeometryError):
    """The requested vacuum is negative or not a finite number.
    """
    pass


class LatticeError(GeometryError):
    """The lattice vectors do not span a three-dimensional cell.
    """
    pass


class NoSafeOffsetFound(SlabGenError):
    """Every normal coordinate is covered by an atom or a bond, so no cut
    exists that keeps all molecules intact.
    """
    pass


class Advisory(SlabGenError):
    """Base class for recoverable conditions. The pipeline completes and
    reports these alongside the result.
    """
    pass


class UnsafeOffset(Advisory):
    """An explicitly requested cut offset falls inside a forbidden interval.
    """
    pass


class NonStoichiometricResult(Advisory):
    """The reconstruction could not bring the dipole below the tolerance.
    The value holds the residual dipole.
    """
    pass


class TaggingUnavailable(Advisory):
    """The chemistry tagging collaborator failed or produced no tags.
    """
    pass


class StructureReadError(SlabGenError):
    """The input structure could not be read.
    """
    pass
