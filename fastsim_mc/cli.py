"""
Command-line sampling driver.

Usage:
    fastsim-mc scatter --pdg 211 --momentum 1.0 --material silicon --thickness 0.03
    fastsim-mc interact --pdg 2212 --momentum 10 --material beryllium --thickness 5
    fastsim-mc interact --pdg 211 --samples 50000 --output secondaries.h5
    python -m fastsim_mc scatter --pdg 11 --thickness 0.1 --log-level DEBUG
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

import h5py
import numpy as np
from tqdm import tqdm

from fastsim_mc import __version__
from fastsim_mc.analysis import angle_summary, species_chisquare, species_composition
from fastsim_mc.config.loader import load_config
from fastsim_mc.core.material import MATERIAL_PROPERTIES, MaterialSlab
from fastsim_mc.core.particle import Particle, ParticleArray
from fastsim_mc.core.rng import make_uniform_source
from fastsim_mc.errors import FastSimError
from fastsim_mc.physics.hadronic import HadronicInteraction
from fastsim_mc.physics.parametrization import get_parameters, is_supported
from fastsim_mc.physics.scattering import make_scattering

logger = logging.getLogger(__name__)


def configure_logging(level: str, fmt: Optional[str] = None) -> None:
    """Attach a stderr handler to the root logger at the given level."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    logging.basicConfig(level=numeric, format=fmt or logging.BASIC_FORMAT, force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fastsim-mc',
        description='Sample hadronic interactions and multiple scattering in a material slab',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fastsim-mc scatter --pdg 13 --momentum 5 --material iron --thickness 1
  fastsim-mc interact --pdg 2212 --momentum 10 --samples 20000 -o out.h5
        """,
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--pdg', type=int, default=211, help='Species code (default: 211)')
    common.add_argument('--momentum', '-p', type=float, default=1.0,
                        help='Momentum along +z [GeV/c] (default: 1.0)')
    common.add_argument('--material', '-m', choices=sorted(MATERIAL_PROPERTIES), default=None,
                        help='Slab material (default: run.material)')
    common.add_argument('--thickness', '-t', type=float, default=None,
                        help='Slab thickness [cm] (default: run.thickness_cm)')
    common.add_argument('--samples', '-n', type=int, default=None,
                        help='Number of samples (default: run.samples)')
    common.add_argument('--seed', type=int, default=None, help='Random seed (default: run.seed)')
    common.add_argument('--config', '-c', type=str, default=None, help='YAML file with overrides')
    common.add_argument('--output', '-o', type=str, default=None, help='HDF5 output file')
    common.add_argument('--log-level', type=str, default=None,
                        help='Logging level (default: logging.level)')
    common.add_argument('--no-progress', action='store_true', help='Hide the progress bar')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('scatter', parents=[common], help='Sample multiple scattering angles')
    sub.add_parser('interact', parents=[common], help='Sample hadronic interactions')
    return parser


def _run_settings(args, config) -> dict:
    run = config['run']
    settings = {
        'material': args.material or run['material'],
        'thickness': run['thickness_cm'] if args.thickness is None else args.thickness,
        'samples': run['samples'] if args.samples is None else args.samples,
        'seed': run['seed'] if args.seed is None else args.seed,
    }
    if settings['samples'] < 1:
        raise ValueError("--samples must be at least 1")
    if args.momentum <= 0:
        raise ValueError("--momentum must be positive")
    return settings


def run_scatter(particle: Particle, slab: MaterialSlab, settings: dict, config: dict,
                output: Optional[str], progress: bool) -> int:
    scattering = make_scattering(config['scattering']['model'],
                                 config['scattering']['mixture_scale'])
    rng = make_uniform_source(settings['seed'])
    angles = np.empty(settings['samples'])
    for i in tqdm(range(settings['samples']), desc='scatter', disable=not progress):
        angles[i] = scattering(rng, slab, particle)

    summary = angle_summary(angles)
    print(f"\n{particle} through {slab.thickness} cm of {settings['material']}")
    print(f"  Path: {slab.path_in_x0:.4g} X0, regime: {scattering.regime(slab, particle)}")
    print(f"  Mean angle: {summary['mean']*1000:.4f} mrad")
    print(f"  RMS angle: {summary['rms']*1000:.4f} mrad")
    print(f"  Median: {summary['median']*1000:.4f} mrad, 95%: {summary['q95']*1000:.4f} mrad")
    print(f"  Excess kurtosis: {summary['kurtosis']:.3f}")

    if output:
        with h5py.File(output, 'w') as f:
            dset = f.create_dataset('angles', data=angles)
            dset.attrs['pdg'] = particle.pdg
            dset.attrs['momentum'] = particle.p
            dset.attrs['path_in_x0'] = slab.path_in_x0
            dset.attrs['Z'] = slab.Z
            dset.attrs['seed'] = settings['seed']
        print(f"\nAngles saved to {output}")
    return 0


def run_interact(particle: Particle, slab: MaterialSlab, settings: dict, config: dict,
                 output: Optional[str], progress: bool) -> int:
    nuclear = HadronicInteraction(config['hadronic']['probability_scale'],
                                  config['hadronic']['max_rejection_attempts'])
    rng = make_uniform_source(settings['seed'])
    secondaries = []
    multiplicities = []
    n_failed = 0
    for i in tqdm(range(settings['samples']), desc='interact', disable=not progress):
        try:
            outgoing = nuclear(rng, slab, particle)
        except FastSimError as exc:
            n_failed += 1
            logger.error("sample %d skipped: %s", i, exc)
            continue
        if len(outgoing) == 1 and outgoing[0] is particle:
            continue
        multiplicities.append(len(outgoing))
        secondaries.extend(outgoing)

    n_interactions = len(multiplicities)
    print(f"\n{particle} through {slab.thickness} cm of {settings['material']}")
    print(f"  Path: {slab.path_in_l0:.4g} L0, "
          f"P(interaction): {nuclear.probability(slab, particle):.4f}")
    print(f"  Interacted: {n_interactions} / {settings['samples']}")
    if n_failed:
        print(f"  Failed samples: {n_failed}")
    if n_interactions:
        pdgs = [s.pdg for s in secondaries]
        print(f"  Mean multiplicity: {np.mean(multiplicities):.3f}")
        print(f"  Mean energy fraction carried: "
              f"{sum(s.energy for s in secondaries) / (n_interactions * particle.energy):.3f}")
        print("  Species composition:")
        for pdg, count in species_composition(pdgs).items():
            print(f"    {pdg:6d}: {count:8d} ({count / len(pdgs):.3f})")
        statistic, p_value = species_chisquare(pdgs, get_parameters(particle.pdg))
        print(f"  Chi-square vs fit: {statistic:.2f} (p = {p_value:.3f})")

    if output:
        batch = ParticleArray.from_particles(secondaries)
        with h5py.File(output, 'w') as f:
            f.create_dataset('secondaries', data=batch.particles)
            f.create_dataset('multiplicity', data=np.asarray(multiplicities, dtype=np.int32))
            f.attrs['pdg'] = particle.pdg
            f.attrs['momentum'] = particle.p
            f.attrs['path_in_l0'] = slab.path_in_l0
            f.attrs['samples'] = settings['samples']
            f.attrs['seed'] = settings['seed']
        print(f"\nSecondaries saved to {output}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        configure_logging(args.log_level or config['logging']['level'],
                          config['logging'].get('format'))
        settings = _run_settings(args, config)
        slab = MaterialSlab.from_material(settings['material'], settings['thickness'])
        particle = Particle.from_species(args.pdg, (0.0, 0.0, args.momentum))
    except (ValueError, FileNotFoundError, FastSimError) as exc:
        print(f"fastsim-mc: error: {exc}", file=sys.stderr)
        return 2

    if args.command == 'interact' and not is_supported(args.pdg):
        logger.warning("species %d is not in the hadronic fit; it will always pass through",
                       args.pdg)

    runner = run_scatter if args.command == 'scatter' else run_interact
    return runner(particle, slab, settings, config, args.output, not args.no_progress)


if __name__ == '__main__':
    sys.exit(main())
