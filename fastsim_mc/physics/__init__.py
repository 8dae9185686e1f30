"""Physics module: hadronic interactions and multiple scattering."""

from fastsim_mc.physics.parametrization import PARAMETRIZATION, get_parameters
from fastsim_mc.physics.hadronic import HadronicInteraction, interact
from fastsim_mc.physics.scattering import (
    GeneralMixtureScattering,
    HighlandScattering,
    make_scattering,
    scatter_angle,
)

__all__ = [
    "PARAMETRIZATION",
    "get_parameters",
    "HadronicInteraction",
    "interact",
    "GeneralMixtureScattering",
    "HighlandScattering",
    "make_scattering",
    "scatter_angle",
]
