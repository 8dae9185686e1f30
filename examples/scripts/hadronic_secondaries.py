"""
Hadronic Secondaries - Example

Runs the parametric nuclear interaction sampler for protons and charged
pions over a momentum scan and plots multiplicity, energy sharing and the
polar angle of the produced secondaries.

Expected behaviour:
    - Multiplicity grows with ln(p)
    - Leading secondary carries the largest mean energy fraction
    - Energy fractions of one interaction never sum above 1
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path

from fastsim_mc.analysis import species_chisquare
from fastsim_mc.core.material import MaterialSlab
from fastsim_mc.core.particle import Particle
from fastsim_mc.core.rng import make_uniform_source
from fastsim_mc.physics.hadronic import HadronicInteraction
from fastsim_mc.physics.parametrization import get_parameters


def run_scan(pdg: int, momenta, n_samples: int = 5000, thickness: float = 20.0):
    """
    Collect interactions for one species at several momenta.

    Returns:
        dict momentum -> (multiplicities, energy fractions, polar angles, species)
    """
    rng = make_uniform_source(42)
    nuclear = HadronicInteraction()
    slab = MaterialSlab.from_material('iron', thickness)
    results = {}

    for momentum in momenta:
        parent = Particle.from_species(pdg, (0.0, 0.0, momentum))
        multiplicities, fractions, angles, species = [], [], [], []
        for _ in range(n_samples):
            outgoing = nuclear(rng, slab, parent)
            if outgoing[0] is parent:
                continue
            multiplicities.append(len(outgoing))
            for secondary in outgoing:
                fractions.append(secondary.energy / parent.energy)
                angles.append(np.arccos(np.clip(secondary.direction[2], -1.0, 1.0)))
                species.append(secondary.pdg)
        results[momentum] = (np.array(multiplicities), np.array(fractions),
                             np.array(angles), species)

        statistic, p_value = species_chisquare(species, get_parameters(pdg))
        print(f"  {momentum:7.1f} GeV/c: {len(multiplicities):5d} interactions, "
              f"<n> = {np.mean(multiplicities):5.2f}, chi2 = {statistic:6.1f} (p = {p_value:.3f})")
    return results


def plot_scan(results, title, save_path=None):
    fig, (ax_n, ax_f, ax_t) = plt.subplots(1, 3, figsize=(15, 4.5))
    for momentum, (multiplicities, fractions, angles, _) in results.items():
        label = f'{momentum:g} GeV/c'
        ax_n.hist(multiplicities, bins=np.arange(0.5, 41.5), histtype='step',
                  linewidth=2, label=label)
        ax_f.hist(fractions, bins=60, range=(0.0, 1.0), histtype='step',
                  linewidth=2, density=True, label=label)
        ax_t.hist(angles, bins=60, range=(0.0, np.pi), histtype='step',
                  linewidth=2, density=True, label=label)

    ax_n.set_xlabel('Multiplicity', fontsize=12)
    ax_f.set_xlabel('E / E_parent', fontsize=12)
    ax_f.set_yscale('log')
    ax_t.set_xlabel('θ [rad]', fontsize=12)
    for ax in (ax_n, ax_f, ax_t):
        ax.grid(True, alpha=0.3, linestyle='--')
        ax.legend(fontsize=9)
    fig.suptitle(title, fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Figure saved: {save_path}")
    return fig


if __name__ == "__main__":
    momenta = [2.0, 20.0, 200.0]
    for pdg, name in [(2212, 'proton'), (211, 'pi+')]:
        print(f"\n{'='*70}")
        print(f"Hadronic secondaries: {name} on 20 cm iron")
        print(f"{'='*70}")
        results = run_scan(pdg, momenta)
        plot_scan(results, f'{name} on iron',
                  save_path=Path(__file__).parent / f'hadronic_secondaries_{name}.png')
