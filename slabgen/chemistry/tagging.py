"""
Node and linker roles from an external framework decomposition tool.

The tool is run as a subprocess with the structure file and a working
directory as its last two arguments. It is expected to leave the node
fragments under <workdir>/nodes and the linker fragments under
<workdir>/linkers, either as individual XYZ files or as a single CIF file.
Any failure is reported as TaggingUnavailable so that the caller can
continue without roles.
"""
import logging
import shlex
import subprocess
from pathlib import Path

import numpy as np
import ase.io
from scipy.spatial import cKDTree

from slabgen.core.system import Role
from slabgen.data.constants import TAG_TOLERANCE, TAGGER_TIMEOUT
from slabgen.exceptions import TaggingUnavailable
from slabgen.geometry import cartesian

logger = logging.getLogger(__name__)

NODE_DIRECTORY = "nodes"
LINKER_DIRECTORY = "linkers"
NODE_FALLBACKS = ("nodes.cif",)
LINKER_FALLBACKS = ("edges.cif", "linkers.cif")


def run_tagger(command, input_path, workdir, timeout=TAGGER_TIMEOUT):
    """Runs the external decomposition tool.

    Args:
        command(str or list): The executable and its leading arguments.
        input_path(str): The structure file given to the tool.
        workdir(str): Directory for the output of the tool.
        timeout(float): Maximum run time in seconds.

    Returns:
        Path: The working directory.

    Raises:
        TaggingUnavailable: If the tool is missing, fails or times out.
    """
    if isinstance(command, str):
        args = shlex.split(command)
    else:
        args = list(command)
    if not args:
        raise TaggingUnavailable("No tagging command was given.")
    workdir = Path(workdir)
    workdir.mkdir(parents=True, exist_ok=True)
    args += [str(input_path), str(workdir)]

    logger.info("Running tagging tool: %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise TaggingUnavailable(
            "The tagging tool did not finish within {} s.".format(timeout),
            value=timeout
        )
    except OSError as e:
        raise TaggingUnavailable("Could not run the tagging tool: {}".format(e))
    if result.returncode != 0:
        raise TaggingUnavailable(
            "The tagging tool exited with code {}: {}".format(
                result.returncode, result.stderr.strip()
            ),
            value=result.returncode
        )
    return workdir


def find_fragment_files(directory, fallback_names):
    """Returns the fragment files of one kind. Individual XYZ fragments are
    preferred; otherwise the first existing fallback file is used.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    xyz_files = sorted(directory.glob("*.xyz"))
    if xyz_files:
        return xyz_files
    for name in fallback_names:
        path = directory / name
        if path.is_file():
            return [path]
    return []


def read_fragment_positions(path):
    """Returns the cartesian positions of all atoms in a fragment file."""
    try:
        images = ase.io.read(str(path), index=":")
    except Exception as e:
        raise TaggingUnavailable("Could not read fragment file '{}': {}".format(path, e))
    if not images:
        return np.zeros((0, 3))
    return np.vstack([image.get_positions() for image in images])


def _match(crystal, tree, positions, tolerance):
    """Returns the indices of the crystal atoms that are within tolerance of
    any of the given positions, considering periodic images.
    """
    if len(positions) == 0:
        return set()
    n_atoms = len(crystal)
    matched = set()
    for hits in tree.query_ball_point(positions, r=tolerance):
        for hit in hits:
            matched.add(int(hit) % n_atoms)
    return matched


def _read_fragments(paths):
    """Yields the positions of every readable fragment file. Files that
    cannot be read, e.g. empty auxiliary output of the tool, are skipped.
    """
    for path in paths:
        try:
            positions = read_fragment_positions(path)
        except TaggingUnavailable as e:
            logger.warning("Skipping fragment: %s", e)
            continue
        yield positions


def tag_from_fragments(crystal, node_paths, linker_paths, tolerance=TAG_TOLERANCE):
    """Assigns roles to the atoms of the crystal by matching them with the
    atoms of fragment files.

    An atom matched by a node fragment is never relabeled as a linker.
    Fragment files that cannot be read are skipped with a warning.

    Args:
        crystal(Crystal): The crystal.
        node_paths(list): Paths of node fragment files.
        linker_paths(list): Paths of linker fragment files.
        tolerance(float): Matching distance in angstrom.

    Returns:
        dict: Mapping from atom index to Role for the matched atoms.
    """
    if len(crystal) == 0:
        return {}
    cell = crystal.lattice.matrix
    images = cartesian((range(-1, 2), range(-1, 2), range(-1, 2)))
    positions = crystal.get_positions()
    shifted = (positions[None, :, :] + np.dot(images, cell)[:, None, :]).reshape((-1, 3))
    tree = cKDTree(shifted)

    roles = {}
    for positions in _read_fragments(node_paths):
        for i in _match(crystal, tree, positions, tolerance):
            roles[i] = Role.NODE
    for positions in _read_fragments(linker_paths):
        for i in _match(crystal, tree, positions, tolerance):
            if roles.get(i) != Role.NODE:
                roles[i] = Role.LINKER

    n_nodes = sum(1 for x in roles.values() if x == Role.NODE)
    logger.info(
        "Tagged %d of %d atoms (%d node, %d linker).",
        len(roles), len(crystal), n_nodes, len(roles) - n_nodes
    )
    return roles


def get_roles(crystal, input_path, command, workdir, timeout=TAGGER_TIMEOUT, tolerance=TAG_TOLERANCE):
    """Runs the tagging tool and returns the roles of the atoms.

    Raises:
        TaggingUnavailable: If the tool fails or no atom could be tagged.
    """
    workdir = run_tagger(command, input_path, workdir, timeout=timeout)
    node_paths = find_fragment_files(workdir / NODE_DIRECTORY, NODE_FALLBACKS)
    linker_paths = find_fragment_files(workdir / LINKER_DIRECTORY, LINKER_FALLBACKS)
    roles = tag_from_fragments(crystal, node_paths, linker_paths, tolerance)
    if not roles:
        raise TaggingUnavailable("The tagging tool did not produce any usable fragments.")
    return roles
