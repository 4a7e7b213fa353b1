"""
Command line interface for cutting surface slabs.

Example:
    slabgen generate -i bulk.cif -o slab.extxyz 1 1 1 --thickness 12 --vacuum 15
"""
import argparse
import logging
import sys

from slabgen.core.connectivity import CutoffPolicy
from slabgen.core.system import Role
from slabgen.data.constants import DEFAULT_THICKNESS, DEFAULT_VACUUM, TAGGER_TIMEOUT, BOND_TOLERANCE
from slabgen.exceptions import (
    SlabGenError,
    DegeneratePlane,
    ThicknessTooSmall,
    InvalidVacuum,
    NoSafeOffsetFound,
    LatticeError,
    StructureReadError,
)
from slabgen.io import read_crystal, write_slab
from slabgen.synthesis.ionic import ReconstructionStrategy
from slabgen.tools.surfacegenerator import SurfaceGenerator

logger = logging.getLogger(__name__)

EXIT_CODES = [
    (DegeneratePlane, 3),
    (ThicknessTooSmall, 4),
    (InvalidVacuum, 5),
    (NoSafeOffsetFound, 6),
    (LatticeError, 7),
    (StructureReadError, 8),
]


def get_exit_code(error):
    """Returns the exit status corresponding to an error."""
    for error_type, code in EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return 1


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog="slabgen",
        description="Cut surface slabs from bulk crystal structures.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a slab for one plane.")
    generate.add_argument("-i", "--input", required=True, help="Bulk structure file.")
    generate.add_argument("-o", "--output", required=True, help="Output structure file.")
    generate.add_argument("h", type=int, help="Miller index h.")
    generate.add_argument("k", type=int, help="Miller index k.")
    generate.add_argument("l", type=int, help="Miller index l.")
    generate.add_argument(
        "--thickness", type=float, default=DEFAULT_THICKNESS,
        help="Minimum slab thickness in angstrom (default: %(default)s)."
    )
    generate.add_argument(
        "--vacuum", type=float, default=DEFAULT_VACUUM,
        help="Vacuum thickness in angstrom (default: %(default)s)."
    )
    generate.add_argument(
        "--offset", type=float, default=None,
        help="Explicit cut offset as a fraction of the interplanar spacing."
    )
    generate.add_argument(
        "--bond-tolerance", type=float, default=BOND_TOLERANCE,
        help="Multiplier of the covalent radius sum used for bonds (default: %(default)s)."
    )
    generate.add_argument("--reconstruct", action="store_true", help="Correct the dipole of polar slabs.")
    generate.add_argument(
        "--strategy", choices=["transfer", "scale"], default="transfer",
        help="Dipole correction: transfer terminal ions or scale layer charges."
    )
    generate.add_argument(
        "--guess-charges", action="store_true",
        help="Use common oxidation states when the input has no charges."
    )
    generate.add_argument(
        "--repeat", type=int, nargs=2, default=(1, 1), metavar=("NA", "NB"),
        help="In-plane repetitions of the slab."
    )
    generate.add_argument("--center", action="store_true", help="Center the slab in the cell.")
    generate.add_argument("--with-tagging", action="store_true", help="Run the node/linker tagging tool.")
    generate.add_argument("--tagger-command", default=None, help="Command of the tagging tool.")
    generate.add_argument("--tagger-workdir", default="tagging_work", help="Working directory of the tagging tool.")
    generate.add_argument(
        "--tagger-timeout", type=float, default=TAGGER_TIMEOUT,
        help="Time limit of the tagging tool in seconds (default: %(default)s)."
    )
    exposure = generate.add_mutually_exclusive_group()
    exposure.add_argument("--expose-nodes", action="store_true", help="Prefer cuts exposing nodes.")
    exposure.add_argument("--expose-linkers", action="store_true", help="Prefer cuts exposing linkers.")
    generate.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging output.")

    return parser.parse_args(argv)


def run_generate(args):
    crystal = read_crystal(args.input)

    expose = None
    if args.expose_nodes:
        expose = Role.NODE
    elif args.expose_linkers:
        expose = Role.LINKER
    strategy = {
        "transfer": ReconstructionStrategy.TRANSFER_IONS,
        "scale": ReconstructionStrategy.SCALE_LAYER_CHARGE,
    }[args.strategy]

    generator = SurfaceGenerator(
        cutoff_policy=CutoffPolicy(tolerance=args.bond_tolerance),
        tagger_command=args.tagger_command,
        tagger_timeout=args.tagger_timeout,
    )
    result = generator.generate(
        crystal,
        (args.h, args.k, args.l),
        thickness=args.thickness,
        vacuum=args.vacuum,
        offset=args.offset,
        reconstruct=args.reconstruct,
        strategy=strategy,
        guess_charges=args.guess_charges,
        expose=expose,
        tag=args.with_tagging,
        input_path=args.input,
        tagger_workdir=args.tagger_workdir,
        in_plane_repeats=tuple(args.repeat),
        center=args.center,
    )
    write_slab(result.slab, args.output)
    print(result.get_report())
    return 0


def main(argv=None):
    args = parse_arguments(argv)
    level = logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose == 1 else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return run_generate(args)
    except SlabGenError as e:
        logger.error(str(e))
        print("Error ({}): {}".format(type(e).__name__, e), file=sys.stderr)
        return get_exit_code(e)


if __name__ == "__main__":
    sys.exit(main())
