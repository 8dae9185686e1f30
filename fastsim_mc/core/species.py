"""
Static species table: PDG code -> (rest mass, charge).

Masses in GeV/c², charges in units of e. Values from the PDG Review of
Particle Physics. The table is built once at import and is read-only.
"""

from enum import IntEnum
from types import MappingProxyType
from typing import Tuple

from fastsim_mc.errors import UnsupportedSpecies


class PDG(IntEnum):
    """Particle Data Group codes for the species the samplers know about."""

    ELECTRON = 11
    POSITRON = -11
    MUON = 13
    ANTIMUON = -13
    PHOTON = 22
    PI_ZERO = 111
    PI_PLUS = 211
    PI_MINUS = -211
    K_LONG = 130
    K_PLUS = 321
    K_MINUS = -321
    NEUTRON = 2112
    ANTINEUTRON = -2112
    PROTON = 2212
    ANTIPROTON = -2212


SPECIES_PROPERTIES = MappingProxyType({
    PDG.ELECTRON: (0.51099895e-3, -1.0),
    PDG.POSITRON: (0.51099895e-3, 1.0),
    PDG.MUON: (0.1056583755, -1.0),
    PDG.ANTIMUON: (0.1056583755, 1.0),
    PDG.PHOTON: (0.0, 0.0),
    PDG.PI_ZERO: (0.1349768, 0.0),
    PDG.PI_PLUS: (0.13957039, 1.0),
    PDG.PI_MINUS: (0.13957039, -1.0),
    PDG.K_LONG: (0.497611, 0.0),
    PDG.K_PLUS: (0.493677, 1.0),
    PDG.K_MINUS: (0.493677, -1.0),
    PDG.NEUTRON: (0.93956542, 0.0),
    PDG.ANTINEUTRON: (0.93956542, 0.0),
    PDG.PROTON: (0.93827209, 1.0),
    PDG.ANTIPROTON: (0.93827209, -1.0),
})


def mass_and_charge(pdg: int) -> Tuple[float, float]:
    """
    Look up rest mass [GeV/c²] and charge [e] for a species.

    Raises:
        UnsupportedSpecies: if the code is not in SPECIES_PROPERTIES
    """
    try:
        return SPECIES_PROPERTIES[pdg]
    except KeyError:
        raise UnsupportedSpecies(pdg, "mass/charge lookup") from None


def is_known_species(pdg: int) -> bool:
    return pdg in SPECIES_PROPERTIES
