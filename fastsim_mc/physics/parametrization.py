"""
Per-species fit coefficients for the parametric hadronic interaction model.

One record per fitted hadron (pi-, pi0, pi+, neutron, proton). The values
below are the reference coefficient set; a refit only has to replace the
numbers, the record layout is fixed.

Coefficient layout (see fastsim_mc.physics.hadronic for the formulas):

    interaction_probability  (c0, c1, c2, c3, c4, c5)
        amplitude c0 + c1 ln p + c2 ln^2 p, path rate c3,
        momentum threshold c4 with logistic width c5
    multiplicity             (m0, m1, m2, m3, m4, m5, m6)
        m0 + m1 ln p + m2 ln^2 p + (m3 + m4 ln p) ln(1 + m5 t), cap m6
    secondary_cdf            ((cumulative, pdg), ...)
    energy_scaling           mean energy fraction of ranks 1..10
    energy_extrapolation     (a, b): mean fraction a + i b for rank i > 10
    polar_angle              (sigma0, k, w, a, b, theta_max)
        core width sigma0 exp(-k f), tail weight w, tail shape (a, b)

The table is built and validated once at import and is read-only.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Tuple

import numpy as np

from fastsim_mc.core.species import PDG, is_known_species
from fastsim_mc.errors import UnsupportedSpecies

N_INTERACTION_COEFFS = 6
N_MULTIPLICITY_COEFFS = 7
N_ENERGY_RANKS = 10
N_POLAR_COEFFS = 6


def _readonly(values, length: int, name: str) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    if arr.shape != (length,):
        raise ValueError(f"{name} needs {length} coefficients, got {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SpeciesParameters:
    """Fitted coefficients for one projectile species."""

    pdg: int
    interaction_probability: np.ndarray
    multiplicity: np.ndarray
    secondary_cdf: Tuple[Tuple[float, int], ...]
    energy_scaling: np.ndarray
    energy_extrapolation: np.ndarray
    polar_angle: np.ndarray

    def __post_init__(self):
        lengths = {
            'interaction_probability': N_INTERACTION_COEFFS,
            'multiplicity': N_MULTIPLICITY_COEFFS,
            'energy_scaling': N_ENERGY_RANKS,
            'energy_extrapolation': 2,
            'polar_angle': N_POLAR_COEFFS,
        }
        for name, length in lengths.items():
            object.__setattr__(self, name, _readonly(getattr(self, name), length, name))
        object.__setattr__(self, 'pdg', int(self.pdg))
        object.__setattr__(self, 'secondary_cdf',
                           tuple((float(c), int(pdg)) for c, pdg in self.secondary_cdf))
        _check_cdf(self.pdg, self.secondary_cdf)

    @property
    def secondary_species(self) -> Tuple[int, ...]:
        return tuple(pdg for _, pdg in self.secondary_cdf)

    @property
    def never_interacts(self) -> bool:
        return not np.any(self.interaction_probability)


def _check_cdf(pdg: int, cdf) -> None:
    if not cdf:
        raise ValueError(f"Empty secondary CDF for species {pdg}")
    previous = 0.0
    for cumulative, _ in cdf:
        if not cumulative > previous:
            raise ValueError(f"Secondary CDF for species {pdg} is not strictly increasing")
        previous = cumulative
    if previous > 1.0:
        raise ValueError(f"Secondary CDF for species {pdg} exceeds 1 ({previous})")


def check_secondary_species(record: SpeciesParameters) -> None:
    """
    Check that every secondary in a record's CDF has a mass/charge entry.

    Raises:
        ValueError: naming the species missing from the mass table
    """
    missing = [pdg for pdg in record.secondary_species if not is_known_species(pdg)]
    if missing:
        raise ValueError(
            f"Secondary CDF for species {record.pdg} lists species without mass/charge: {missing}"
        )


_TABLE = {
    PDG.PI_MINUS: SpeciesParameters(
        pdg=PDG.PI_MINUS,
        interaction_probability=(0.82, 0.02, -0.003, 0.9, 0.20, 0.05),
        multiplicity=(2.6, 1.0, 0.14, 0.7, 0.2, 5.0, 40.0),
        secondary_cdf=((0.32, PDG.PI_MINUS), (0.47, PDG.PI_ZERO), (0.62, PDG.PI_PLUS),
                       (0.66, PDG.K_LONG), (0.84, PDG.NEUTRON), (1.0, PDG.PROTON)),
        energy_scaling=(0.34, 0.19, 0.12, 0.08, 0.06, 0.05, 0.04, 0.035, 0.03, 0.025),
        energy_extrapolation=(0.06, -0.003),
        polar_angle=(0.55, 2.5, 0.18, 0.30, 2.5, math.pi),
    ),
    PDG.PI_ZERO: SpeciesParameters(
        pdg=PDG.PI_ZERO,
        interaction_probability=(0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        multiplicity=(2.6, 1.0, 0.14, 0.7, 0.2, 5.0, 40.0),
        secondary_cdf=((0.25, PDG.PI_MINUS), (0.50, PDG.PI_ZERO), (0.75, PDG.PI_PLUS),
                       (0.88, PDG.NEUTRON), (1.0, PDG.PROTON)),
        energy_scaling=(0.34, 0.19, 0.12, 0.08, 0.06, 0.05, 0.04, 0.035, 0.03, 0.025),
        energy_extrapolation=(0.06, -0.003),
        polar_angle=(0.60, 2.0, 0.20, 0.30, 2.5, math.pi),
    ),
    PDG.PI_PLUS: SpeciesParameters(
        pdg=PDG.PI_PLUS,
        interaction_probability=(0.80, 0.02, -0.003, 0.9, 0.20, 0.05),
        multiplicity=(2.6, 1.0, 0.14, 0.7, 0.2, 5.0, 40.0),
        secondary_cdf=((0.15, PDG.PI_MINUS), (0.30, PDG.PI_ZERO), (0.62, PDG.PI_PLUS),
                       (0.67, PDG.K_PLUS), (0.83, PDG.NEUTRON), (1.0, PDG.PROTON)),
        energy_scaling=(0.34, 0.19, 0.12, 0.08, 0.06, 0.05, 0.04, 0.035, 0.03, 0.025),
        energy_extrapolation=(0.06, -0.003),
        polar_angle=(0.55, 2.5, 0.18, 0.30, 2.5, math.pi),
    ),
    PDG.NEUTRON: SpeciesParameters(
        pdg=PDG.NEUTRON,
        interaction_probability=(0.95, 0.01, -0.002, 1.0, 0.25, 0.08),
        multiplicity=(3.0, 1.1, 0.15, 0.8, 0.2, 5.0, 40.0),
        secondary_cdf=((0.20, PDG.PI_MINUS), (0.25, PDG.K_LONG), (0.38, PDG.PI_PLUS),
                       (0.42, PDG.K_PLUS), (0.72, PDG.NEUTRON), (1.0, PDG.PROTON)),
        energy_scaling=(0.30, 0.18, 0.12, 0.08, 0.06, 0.05, 0.04, 0.035, 0.03, 0.025),
        energy_extrapolation=(0.06, -0.003),
        polar_angle=(0.45, 3.0, 0.12, 0.25, 2.0, math.pi),
    ),
    PDG.PROTON: SpeciesParameters(
        pdg=PDG.PROTON,
        interaction_probability=(0.95, 0.01, -0.002, 1.0, 0.30, 0.08),
        multiplicity=(3.0, 1.1, 0.15, 0.8, 0.2, 5.0, 40.0),
        secondary_cdf=((0.12, PDG.PI_MINUS), (0.17, PDG.K_LONG), (0.42, PDG.PI_PLUS),
                       (0.46, PDG.K_PLUS), (0.70, PDG.NEUTRON), (1.0, PDG.PROTON)),
        energy_scaling=(0.30, 0.18, 0.12, 0.08, 0.06, 0.05, 0.04, 0.035, 0.03, 0.025),
        energy_extrapolation=(0.06, -0.003),
        polar_angle=(0.45, 3.0, 0.12, 0.25, 2.0, math.pi),
    ),
}

for _record in _TABLE.values():
    check_secondary_species(_record)

PARAMETRIZATION = MappingProxyType({int(pdg): record for pdg, record in _TABLE.items()})
del _record, _TABLE


def get_parameters(pdg: int) -> SpeciesParameters:
    """
    Fit record for a species.

    Raises:
        UnsupportedSpecies: if the species was not part of the fit
    """
    try:
        return PARAMETRIZATION[pdg]
    except KeyError:
        raise UnsupportedSpecies(pdg, "parametrization lookup") from None


def is_supported(pdg: int) -> bool:
    return pdg in PARAMETRIZATION


def supported_species() -> Tuple[int, ...]:
    return tuple(sorted(PARAMETRIZATION))
