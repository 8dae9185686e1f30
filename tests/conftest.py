"""Pytest configuration and shared fixtures for fastsim_mc tests."""

import math

import pytest

from fastsim_mc.config.loader import reload_defaults
from fastsim_mc.core.material import MaterialSlab
from fastsim_mc.core.particle import Particle
from fastsim_mc.core.rng import make_uniform_source
from fastsim_mc.physics.parametrization import SpeciesParameters, get_parameters


class ReplaySource:
    """Random source that hands out a fixed list of uniforms, then fails."""

    def __init__(self, values):
        self.values = list(values)
        self.index = 0

    def __call__(self):
        if self.index >= len(self.values):
            raise AssertionError(f"random source exhausted after {self.index} draws")
        value = self.values[self.index]
        self.index += 1
        return value

    @property
    def remaining(self):
        return len(self.values) - self.index


def make_params(base_pdg=2212, **overrides):
    """Copy a fitted record with some coefficients replaced."""
    base = get_parameters(base_pdg)
    fields = {
        'pdg': base.pdg,
        'interaction_probability': base.interaction_probability,
        'multiplicity': base.multiplicity,
        'secondary_cdf': base.secondary_cdf,
        'energy_scaling': base.energy_scaling,
        'energy_extrapolation': base.energy_extrapolation,
        'polar_angle': base.polar_angle,
    }
    fields.update(overrides)
    return SpeciesParameters(**fields)


@pytest.fixture
def replay():
    """Factory for replay random sources."""
    return ReplaySource


@pytest.fixture
def rng():
    """Seeded uniform source."""
    return make_uniform_source(12345)


@pytest.fixture
def proton():
    """Proton with 1 GeV/c momentum along +z at the origin."""
    return Particle.from_species(2212, (0.0, 0.0, 1.0))


@pytest.fixture
def electron():
    """Electron with 1 GeV/c momentum along +z."""
    return Particle.from_species(11, (0.0, 0.0, 1.0))


@pytest.fixture
def muon():
    """100 GeV/c muon, beta very close to 1."""
    return Particle.from_species(13, (0.0, 0.0, 100.0))


@pytest.fixture
def beryllium_slab():
    """5 cm of beryllium."""
    return MaterialSlab.from_material('beryllium', 5.0)


@pytest.fixture(autouse=True)
def fresh_defaults():
    """Make sure no test sees another test's cached defaults."""
    reload_defaults()
    yield
    reload_defaults()


def angle_between(a, b):
    cos = sum(x * y for x, y in zip(a, b)) / (
        math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b)))
    return math.acos(max(-1.0, min(1.0, cos)))
