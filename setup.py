"""
Setup script for fastsim_mc package.

Installation:
    pip install -e .
    pip install -e ".[dev]"    # with test tools
"""

from setuptools import setup, find_packages

setup(
    name="fastsim_mc",
    version="0.1.0",
    description="Parametric hadronic interaction and multiple scattering samplers for fast simulation",
    author="William Comaskey",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"fastsim_mc": ["config/defaults.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "matplotlib>=3.7",
        "numba>=0.58",
        "h5py>=3.8",
        "pyyaml>=6.0",
        "tqdm>=4.65",
    ],
    extras_require={
        "dev": ["pytest>=7.3", "black>=23.0", "mypy>=1.3", "ipython>=8.12"],
    },
    entry_points={
        "console_scripts": [
            "fastsim-mc=fastsim_mc.cli:main",
        ],
    },
)
