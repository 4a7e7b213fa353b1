"""
Reading and writing of structures. The file formats are handled by ASE.
"""
import logging

import ase.io

from slabgen.core.system import Crystal
from slabgen.exceptions import StructureReadError

logger = logging.getLogger(__name__)


def read_crystal(path, format=None):
    """Reads a bulk crystal from a structure file.

    Args:
        path(str): Path of the file.
        format(str): ASE format name. Guessed from the file name by default.

    Returns:
        Crystal: The first structure in the file.

    Raises:
        StructureReadError: If the file cannot be read or holds no periodic
            three-dimensional cell.
    """
    try:
        atoms = ase.io.read(str(path), format=format)
    except FileNotFoundError:
        raise StructureReadError("The file '{}' does not exist.".format(path), value=str(path))
    except Exception as e:
        raise StructureReadError("Could not read '{}': {}".format(path, e), value=str(path))
    if atoms.cell.rank != 3:
        raise StructureReadError(
            "The structure in '{}' does not have a three-dimensional cell.".format(path),
            value=str(path)
        )
    crystal = Crystal.from_atoms(atoms)
    logger.info("Read %s from '%s'.", crystal, path)
    return crystal


def write_slab(slab, path, format=None):
    """Writes a slab to a structure file.

    Args:
        slab(SlabCrystal): The slab.
        path(str): Path of the file.
        format(str): ASE format name. Guessed from the file name by default.
    """
    ase.io.write(str(path), slab.to_atoms(), format=format)
    logger.info("Wrote %d atoms to '%s'.", len(slab), path)
