#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for blast_sim

Blast vibration, damage and scaled-depth-of-burial field engine for
blasthole designs.
"""

from setuptools import setup, find_packages
import os


# Read the README file
def get_long_description():
    """Read README.md for long description."""
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Blast vibration and damage field engine for blasthole designs."


# Define package requirements
REQUIRED_PACKAGES = [
    # Core numerics
    'numpy>=1.20.0',

    # Quick-look raster output
    'matplotlib>=3.4.0',
]

# Optional dependencies for enhanced functionality
OPTIONAL_PACKAGES = {
    'dev': [
        'pytest>=6.0.0',
        'pytest-cov>=2.12.0',
        'black>=21.0.0',
        'flake8>=3.9.0',
        'mypy>=0.910',
    ]
}

setup(
    # Basic package information
    name='blast_sim',
    version='0.1.0',
    description='Blast vibration, damage and SDoB field engine for blasthole designs',
    long_description=get_long_description(),
    long_description_content_type='text/markdown',

    author='blast_sim contributors',

    license='MIT',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Physics',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Operating System :: OS Independent',
    ],

    # Package structure
    packages=find_packages(exclude=['tests', 'tests.*', 'examples']),
    python_requires='>=3.8',

    # Dependencies
    install_requires=REQUIRED_PACKAGES,
    extras_require=OPTIONAL_PACKAGES,

    # Entry points for command-line usage
    entry_points={
        'console_scripts': [
            'blast-sim=blast_sim.cli:main',
        ],
    },

    keywords=[
        'blasting',
        'blast vibration',
        'peak particle velocity',
        'mining',
        'scientific computing',
    ],

    zip_safe=False,
)
