"""Tests for the parametric hadronic interaction sampler."""

import math

import numpy as np
import pytest

from conftest import ReplaySource, angle_between, make_params
from fastsim_mc.analysis import species_chisquare
from fastsim_mc.core.material import MaterialSlab
from fastsim_mc.core.particle import Particle
from fastsim_mc.core.rng import make_uniform_source
from fastsim_mc.core.species import SPECIES_PROPERTIES
from fastsim_mc.errors import SamplingDivergence, UnsupportedSpecies
from fastsim_mc.physics.hadronic import (
    HadronicInteraction,
    assemble_secondaries,
    energy_scale,
    interact,
    interaction_probability,
    sample_energy_fractions,
    sample_multiplicity,
    sample_polar_angle,
    sample_species,
)
from fastsim_mc.physics.parametrization import get_parameters, supported_species


def _interacted(outgoing, parent):
    return not (len(outgoing) == 1 and outgoing[0] is parent)


class TestApplicability:

    def test_unfitted_species_passes_through_without_draws(self, electron):
        rng = ReplaySource([])
        outgoing = interact(rng, 0.5, electron)
        assert outgoing == [electron]
        assert rng.index == 0

    def test_negative_path_rejected(self, proton):
        with pytest.raises(ValueError):
            interact(ReplaySource([0.0]), -0.1, proton)

    @pytest.mark.parametrize("kwargs", [
        {'max_attempts': 0},
        {'max_attempts': -3},
        {'probability_scale': -0.5},
    ])
    def test_invalid_settings_rejected_before_drawing(self, proton, kwargs):
        rng = ReplaySource([])
        with pytest.raises(ValueError):
            interact(rng, 0.1, proton, **kwargs)
        assert rng.index == 0

    def test_no_interaction_returns_parent(self, proton):
        # 0.5 is well above the ~9% interaction probability
        rng = ReplaySource([0.5])
        assert interact(rng, 0.1, proton) == [proton]
        assert rng.remaining == 0


class TestNeutralPion:

    def test_probability_is_zero(self):
        params = get_parameters(111)
        assert params.never_interacts
        for p in [0.1, 1.0, 10.0, 1000.0]:
            for t in [0.0, 0.1, 1.0, 10.0]:
                assert interaction_probability(p, t, params) == 0.0

    def test_zero_draw_still_rejects(self):
        pi0 = Particle.from_species(111, (0.0, 0.0, 5.0))
        rng = ReplaySource([0.0])
        assert interact(rng, 10.0, pi0) == [pi0]

    def test_never_produces_secondaries(self):
        pi0 = Particle.from_species(111, (0.0, 0.0, 5.0))
        rng = make_uniform_source(7)
        for _ in range(2000):
            assert interact(rng, 5.0, pi0) == [pi0]


class TestInteractionProbability:

    @pytest.mark.parametrize("pdg", [-211, 211, 2112, 2212])
    def test_bounded_and_growing_with_path(self, pdg):
        params = get_parameters(pdg)
        for p in [0.5, 1.0, 10.0, 100.0]:
            values = [interaction_probability(p, t, params) for t in [0.0, 0.01, 0.1, 1.0, 5.0]]
            assert values[0] == 0.0
            assert all(0.0 <= v <= 1.0 for v in values)
            assert values == sorted(values)

    def test_scale_clips_to_one(self):
        params = get_parameters(2212)
        assert interaction_probability(10.0, 5.0, params, scale=100.0) == 1.0
        assert interaction_probability(10.0, 5.0, params, scale=0.0) == 0.0

    def test_below_threshold_suppressed(self):
        params = get_parameters(2212)
        above = interaction_probability(1.0, 1.0, params)
        assert interaction_probability(0.01, 1.0, params) < 0.1 * above


class TestMultiplicity:

    def test_reference_value(self):
        # 3.0 + 0.8 ln(1.5) = 3.32
        assert sample_multiplicity(1.0, 0.1, get_parameters(2212)) == 3

    def test_grows_with_momentum(self):
        params = get_parameters(2212)
        counts = [sample_multiplicity(p, 0.1, params) for p in [1.0, 10.0, 100.0, 1000.0]]
        assert counts == sorted(counts)
        assert counts[-1] > 10

    def test_floored_at_one(self):
        params = make_params(multiplicity=(-5.0, 0.0, 0.0, 0.0, 0.0, 0.0, 40.0))
        assert sample_multiplicity(1.0, 0.1, params) == 1

    def test_capped(self):
        params = make_params(multiplicity=(30.0, 0.0, 0.0, 0.0, 0.0, 0.0, 12.0))
        assert sample_multiplicity(1.0, 0.1, params) == 12


class TestSpeciesSampling:

    def test_first_exceeding_entry_wins(self):
        params = get_parameters(2212)
        rng = ReplaySource([0.0, 0.12, 0.1199, 0.17, 0.9999999])
        assert sample_species(rng, params, 5) == [-211, 130, -211, 211, 2212]

    def test_rounding_gap_takes_last_entry(self):
        params = make_params(secondary_cdf=((0.5, 211), (0.9, 2212)))
        assert sample_species(ReplaySource([0.95]), params, 1) == [2212]

    @pytest.mark.parametrize("pdg", [-211, 111, 211, 2112, 2212])
    def test_proportions_match_cdf(self, pdg):
        params = get_parameters(pdg)
        rng = make_uniform_source(2024)
        n = 100_000
        drawn = np.array(sample_species(rng, params, n))
        previous = 0.0
        for cumulative, code in params.secondary_cdf:
            expected = cumulative - previous
            observed = np.mean(drawn == code)
            sigma = math.sqrt(expected * (1.0 - expected) / n)
            assert abs(observed - expected) < 5.0 * sigma
            previous = cumulative
        _, p_value = species_chisquare(drawn, params)
        assert p_value > 1e-4


class TestEnergyFractions:

    def test_rank_scales(self):
        params = get_parameters(2212)
        assert energy_scale(params, 1) == pytest.approx(0.30)
        assert energy_scale(params, 10) == pytest.approx(0.025)
        assert energy_scale(params, 11) == pytest.approx(0.06 - 11 * 0.003)
        assert energy_scale(params, 25) == 0.0

    def test_exponential_transform(self):
        params = get_parameters(2212)
        fractions = sample_energy_fractions(ReplaySource([0.4, 0.6, 0.1]), params, 3, 10)
        expected = [-0.30 * math.log(0.6), -0.18 * math.log(0.4), -0.12 * math.log(0.9)]
        np.testing.assert_allclose(fractions, expected, rtol=1e-12)

    def test_rejected_set_is_redrawn_whole(self):
        params = get_parameters(2212)
        rng = ReplaySource([0.99999, 0.1, 0.1, 0.4, 0.6, 0.1])
        fractions = sample_energy_fractions(rng, params, 3, 10)
        expected = [-0.30 * math.log(0.6), -0.18 * math.log(0.4), -0.12 * math.log(0.9)]
        np.testing.assert_allclose(fractions, expected, rtol=1e-12)
        assert rng.remaining == 0

    def test_divergence_after_cap(self):
        params = get_parameters(2212)
        rng = ReplaySource([0.99999] * 15)
        with pytest.raises(SamplingDivergence) as info:
            sample_energy_fractions(rng, params, 3, 5)
        assert info.value.pdg == 2212
        assert info.value.multiplicity == 3
        assert info.value.attempts == 5
        assert rng.remaining == 0

    def test_sum_never_exceeds_one(self, rng):
        params = get_parameters(211)
        for n in [1, 3, 8, 15, 30]:
            for _ in range(200):
                assert sample_energy_fractions(rng, params, n, 100_000).sum() <= 1.0


class TestPolarAngle:

    def test_core_branch(self):
        params = get_parameters(2212)
        theta = sample_polar_angle(ReplaySource([0.5, 0.5]), params, 0.2)
        expected = 0.45 * math.exp(-3.0 * 0.2) * math.sqrt(-2.0 * math.log(0.5))
        assert theta == pytest.approx(expected, rel=1e-12)

    def test_tail_branch(self):
        params = get_parameters(2212)
        theta = sample_polar_angle(ReplaySource([0.05, 0.5]), params, 0.2)
        a, b = 0.25, 2.0
        assert theta == pytest.approx(a * b * math.sqrt(0.5 / (0.5 * b * b + a * a)), rel=1e-12)

    def test_capped_at_theta_max(self):
        params = make_params(polar_angle=(50.0, 0.0, 0.0, 0.25, 2.0, 1.0))
        assert sample_polar_angle(ReplaySource([0.5, 1e-6]), params, 0.1) == 1.0


class TestEndToEnd:

    def test_proton_reference_sequence(self, proton):
        params = get_parameters(2212)
        assert interaction_probability(1.0, 0.1, params) > 0.05

        draws = [0.05, 0.3, 0.5, 0.2, 0.4, 0.6, 0.1] + [0.5] * 9
        rng = ReplaySource(draws)
        outgoing = interact(rng, 0.1, proton)

        assert rng.remaining == 0
        assert [s.pdg for s in outgoing] == [211, 2112, 211]

        fractions = [-0.30 * math.log(0.6), -0.18 * math.log(0.4), -0.12 * math.log(0.9)]
        energies = [s.energy for s in outgoing]
        np.testing.assert_allclose(energies, np.array(fractions) * proton.energy, rtol=1e-12)
        assert sum(energies) <= proton.energy

        for secondary, fraction in zip(outgoing, fractions):
            assert secondary.pdg in {-211, 130, 211, 321, 2112, 2212}
            assert secondary.p == pytest.approx(fraction * proton.energy, rel=1e-12)
            np.testing.assert_array_equal(secondary.position, proton.position)
            assert secondary.time == proton.time
            mass, charge = SPECIES_PROPERTIES[secondary.pdg]
            assert secondary.mass == mass
            assert secondary.charge == charge
            # phi = 0, core polar branch
            theta = 0.45 * math.exp(-3.0 * fraction) * math.sqrt(-2.0 * math.log(0.5))
            assert angle_between(secondary.momentum, proton.momentum) == \
                pytest.approx(theta, abs=1e-9)

    def test_parent_not_modified(self, proton):
        momentum = proton.momentum.copy()
        energy = proton.energy
        interact(make_uniform_source(3), 2.0, proton, probability_scale=100.0)
        np.testing.assert_array_equal(proton.momentum, momentum)
        assert proton.energy == energy

    def test_divergence_surfaces_from_interact(self, proton):
        rng = ReplaySource([0.0] + [0.99999] * 3 + [0.99999] * 12)
        with pytest.raises(SamplingDivergence):
            interact(rng, 0.1, proton, max_attempts=4)
        assert rng.remaining == 0


class TestInvariants:

    @pytest.mark.parametrize("pdg", [-211, 211, 2112, 2212])
    def test_every_sample_conserves_energy(self, pdg):
        rng = make_uniform_source(99)
        params = get_parameters(pdg)
        n_interactions = 0
        for p in [0.5, 2.0, 20.0, 200.0]:
            parent = Particle.from_species(pdg, (0.3 * p, 0.0, 0.9539392014169456 * p))
            for _ in range(300):
                outgoing = interact(rng, 0.5, parent, probability_scale=3.0)
                if not _interacted(outgoing, parent):
                    continue
                n_interactions += 1
                assert sum(s.energy for s in outgoing) <= parent.energy * (1.0 + 1e-12)
                assert len(outgoing) == sample_multiplicity(parent.p, 0.5, params)
                for secondary in outgoing:
                    assert secondary.pdg in SPECIES_PROPERTIES
                    assert secondary.pdg in params.secondary_species
        assert n_interactions > 100

    def test_determinism(self, beryllium_slab):
        nuclear = HadronicInteraction(probability_scale=5.0)
        parent = Particle.from_species(211, (0.0, 1.0, 10.0))

        def run(seed):
            rng = make_uniform_source(seed)
            records = []
            for _ in range(200):
                for s in nuclear(rng, beryllium_slab, parent):
                    records.append((s.pdg, tuple(s.momentum), s.energy))
            return records

        assert run(11) == run(11)
        assert run(11) != run(12)


class TestFailureModes:

    def test_unknown_secondary_species(self, proton):
        params = make_params(secondary_cdf=((0.5, 999), (1.0, 2212)))
        with pytest.raises(UnsupportedSpecies) as info:
            assemble_secondaries(ReplaySource([]), proton, params, [999], np.array([0.5]))
        assert info.value.pdg == 999
        assert 'mass/charge' in info.value.operation


class TestHadronicInteraction:

    def test_slab_path(self, beryllium_slab, proton):
        nuclear = HadronicInteraction()
        expected = interaction_probability(1.0, beryllium_slab.path_in_l0, get_parameters(2212))
        assert nuclear.probability(beryllium_slab, proton) == pytest.approx(expected)

    def test_unfitted_species_probability(self, beryllium_slab, electron):
        assert HadronicInteraction().probability(beryllium_slab, electron) == 0.0

    def test_zero_scale_never_interacts(self, beryllium_slab, proton):
        nuclear = HadronicInteraction(probability_scale=0.0)
        rng = make_uniform_source(1)
        for _ in range(500):
            assert nuclear(rng, beryllium_slab, proton) == [proton]

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            HadronicInteraction(probability_scale=-1.0)
        with pytest.raises(ValueError):
            HadronicInteraction(max_attempts=0)

    def test_custom_particle_factory(self, proton):
        built = []

        def factory(**kwargs):
            built.append(kwargs)
            return kwargs['pdg']

        slab = MaterialSlab.from_material('iron', 50.0)
        nuclear = HadronicInteraction(probability_scale=100.0, particle_factory=factory)
        outgoing = nuclear(make_uniform_source(5), slab, proton)
        assert outgoing == [k['pdg'] for k in built]
        assert set(built[0]) == {'position', 'momentum', 'mass', 'charge', 'pdg', 'time', 'energy'}

    def test_all_fitted_species_covered(self):
        assert supported_species() == (-211, 111, 211, 2112, 2212)
