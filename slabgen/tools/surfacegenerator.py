import logging

import chronic

from slabgen.analysis.voidcrawler import find_safe_offsets, validate_offset
from slabgen.chemistry.tagging import get_roles
from slabgen.core.basis import MillerIndices, find_surface_basis
from slabgen.core.connectivity import build_bonds
from slabgen.core.system import Role
from slabgen.data.constants import DEFAULT_THICKNESS, DEFAULT_VACUUM, TAGGER_TIMEOUT
from slabgen.exceptions import NoSafeOffsetFound, UnsafeOffset, TaggingUnavailable
from slabgen.synthesis.builder import build_slab_cell
from slabgen.synthesis.ionic import reconstruct as reconstruct_slab, ReconstructionStrategy
from slabgen.synthesis.population import populate, center_slab

logger = logging.getLogger(__name__)


class SurfaceResult(object):
    """The outcome of one slab generation.

    Attributes:
        slab(SlabCrystal): The generated slab.
        surface_basis(SurfaceBasis): The surface basis of the plane.
        slab_cell(SlabCell): The cell of the slab before in-plane repeats.
        offset(float): The cut offset that was used.
        candidates(SafeOffsets): The safe offsets found by the crawler.
        advisories(list): Recoverable conditions met during the generation.
        reconstruction(ReconstructionReport): Report of the dipole
            correction, or None if it was not requested.
        roles(dict): The atom roles used for ranking, if any.
    """
    def __init__(self, slab, surface_basis, slab_cell, offset, candidates,
                 advisories, reconstruction=None, roles=None):
        self.slab = slab
        self.surface_basis = surface_basis
        self.slab_cell = slab_cell
        self.offset = offset
        self.candidates = candidates
        self.advisories = advisories
        self.reconstruction = reconstruction
        self.roles = roles

    def get_report(self):
        """Returns a human readable summary of the generation."""
        cell = self.slab_cell
        lines = [
            "Surface generation report",
            "  Plane:              {}".format(self.surface_basis.miller),
            "  d_hkl:              {:.4f} A".format(cell.interplanar_spacing),
            "  Thickness:          requested {:.3f} A -> {} layers".format(
                cell.requested_thickness, cell.repeat_count),
            "  Final thickness:    {:.3f} A (+ {:.3f} A vacuum)".format(cell.thickness, cell.vacuum),
            "  Cut offset:         {:.4f}".format(self.offset),
            "  Safe offsets:       {}".format(len(self.candidates) if self.candidates is not None else "not searched"),
            "  Atoms:              {}".format(len(self.slab)),
        ]
        if self.roles:
            n_nodes = sum(1 for x in self.roles.values() if x == Role.NODE)
            lines.append("  Chemistry:          {} node and {} linker atoms tagged".format(
                n_nodes, len(self.roles) - n_nodes))
        else:
            lines.append("  Chemistry:          no role tags")
        if self.reconstruction is not None:
            lines.append("  Physics:            dipole {:.4f} -> {:.4f} e*A, {}".format(
                self.reconstruction.initial_dipole,
                self.reconstruction.final_dipole,
                self.reconstruction.message,
            ))
        else:
            lines.append("  Physics:            no reconstruction")
        for advisory in self.advisories:
            lines.append("  Warning ({}): {}".format(type(advisory).__name__, advisory))
        return "\n".join(lines)


class SurfaceGenerator():
    """Used to cut surface slabs from a bulk crystal.

    The generator runs the stages in order: surface basis, bond graph,
    safe-offset search, slab cell, population and optionally dipole
    reconstruction. Geometry errors abort the generation, safety and quality
    issues are collected as advisories in the result.
    """
    def __init__(self, cutoff_policy=None, candidate_count=None,
                 tagger_command=None, tagger_timeout=TAGGER_TIMEOUT):
        """
        Args:
            cutoff_policy(CutoffPolicy): Bonding distances. Defaults to the
                covalent radius heuristic.
            candidate_count(int): Maximum number of safe offsets searched.
            tagger_command(str): Command of the external tagging tool.
            tagger_timeout(float): Maximum run time of the tagging tool.
        """
        self.cutoff_policy = cutoff_policy
        self.candidate_count = candidate_count
        self.tagger_command = tagger_command
        self.tagger_timeout = tagger_timeout

    def get_bond_graph(self, crystal):
        """Builds the bond graph of the crystal. The graph can be passed to
        generate() for any number of planes.
        """
        with chronic.Timer("build_bonds"):
            return build_bonds(crystal, self.cutoff_policy)

    def get_roles(self, crystal, input_path, workdir=None):
        """Runs the tagging tool on the given structure file.

        Raises:
            TaggingUnavailable: If no roles could be determined.
        """
        if self.tagger_command is None:
            raise TaggingUnavailable("No tagging command configured.")
        if input_path is None:
            raise TaggingUnavailable("Tagging requires the path of the input structure.")
        workdir = workdir if workdir is not None else "tagging_work"
        with chronic.Timer("tagging"):
            return get_roles(crystal, input_path, self.tagger_command, workdir, timeout=self.tagger_timeout)

    def generate(
            self,
            crystal,
            miller_indices,
            thickness=DEFAULT_THICKNESS,
            vacuum=DEFAULT_VACUUM,
            offset=None,
            reconstruct=False,
            strategy=ReconstructionStrategy.TRANSFER_IONS,
            guess_charges=False,
            expose=None,
            tag=False,
            input_path=None,
            tagger_workdir=None,
            roles=None,
            bond_graph=None,
            in_plane_repeats=(1, 1),
            center=False,
            orient=True):
        """Cuts a slab of the given plane from the crystal.

        Args:
            crystal(Crystal): The bulk crystal.
            miller_indices(sequence of three ints): The plane.
            thickness(float): Minimum slab thickness in angstrom.
            vacuum(float): Vacuum thickness in angstrom.
            offset(float): Explicit cut offset. Bypasses the search but is
                still validated; an unsafe value results in an UnsafeOffset
                advisory.
            reconstruct(bool): Whether to correct the dipole of the slab.
            strategy(ReconstructionStrategy): The dipole correction.
            guess_charges(bool): Use common oxidation states when the
                crystal has no formal charges.
            expose(Role): Preferred role at the cut. Only effective when
                roles are available.
            tag(bool): Run the tagging tool on input_path to get roles.
            input_path(str): Path of the structure file for tagging.
            tagger_workdir(str): Output directory of the tagging tool.
            roles(dict): Precomputed atom roles.
            bond_graph(BondGraph): Precomputed bond graph of the crystal.
            in_plane_repeats(tuple): In-plane supercell of the result.
            center(bool): Move the slab to the middle of the cell.
            orient(bool): Rotate the cell so that the normal is along z.

        Returns:
            SurfaceResult: The slab and the advisories.

        Raises:
            DegeneratePlane, ThicknessTooSmall, InvalidVacuum: For invalid
                geometry requests.
            NoSafeOffsetFound: If every cut breaks bonds and no explicit
                offset was given.
        """
        advisories = []
        miller = MillerIndices(miller_indices)

        with chronic.Timer("find_surface_basis"):
            surface_basis = find_surface_basis(crystal.lattice, miller)
        with chronic.Timer("build_slab_cell"):
            slab_cell = build_slab_cell(
                crystal.lattice, surface_basis, thickness, vacuum, orient=orient
            )

        if tag and roles is None:
            try:
                roles = self.get_roles(crystal, input_path, tagger_workdir)
            except TaggingUnavailable as e:
                logger.warning("Tagging unavailable, continuing without roles: %s", e)
                advisories.append(e)
                roles = None
        if roles:
            crystal = crystal.with_roles(roles)
        preferred_role = None if expose is None else Role(expose)

        if bond_graph is None:
            bond_graph = self.get_bond_graph(crystal)

        with chronic.Timer("find_safe_offsets"):
            candidates = find_safe_offsets(
                crystal,
                bond_graph,
                miller,
                candidate_count=self.candidate_count,
                roles=roles,
                preferred_role=preferred_role,
            )
            if offset is None:
                if len(candidates) == 0:
                    raise NoSafeOffsetFound(
                        "Every cut along {} breaks bonds. Give an explicit offset "
                        "to cut anyway.".format(miller)
                    )
                chosen = candidates[0].value
            else:
                chosen = float(offset) % 1.0
                try:
                    validate_offset(chosen, candidates.forbidden)
                except UnsafeOffset as e:
                    logger.warning(str(e))
                    advisories.append(e)
        logger.info("Cutting %s at offset %.4f.", miller, chosen)

        with chronic.Timer("populate"):
            slab = populate(crystal, slab_cell, chosen)

        na, nb = in_plane_repeats
        if (na, nb) != (1, 1):
            slab = slab.repeat(na, nb)

        report = None
        if reconstruct:
            with chronic.Timer("reconstruct"):
                slab, report = reconstruct_slab(
                    slab,
                    axis=2,
                    strategy=strategy,
                    cutoff_policy=self.cutoff_policy,
                    guess_charges=guess_charges,
                )
            advisories.extend(report.advisories)

        if center:
            slab = center_slab(slab)

        return SurfaceResult(
            slab,
            surface_basis,
            slab_cell,
            chosen,
            candidates,
            advisories,
            reconstruction=report,
            roles=roles,
        )

    def generate_all(self, crystal, miller_list, **kwargs):
        """Generates slabs for several planes, sharing one bond graph.

        Returns:
            dict: Mapping from MillerIndices to SurfaceResult.
        """
        if kwargs.get("bond_graph") is None:
            kwargs["bond_graph"] = self.get_bond_graph(crystal)
        results = {}
        for miller in miller_list:
            miller = MillerIndices(miller)
            results[miller] = self.generate(crystal, miller, **kwargs)
        return results
