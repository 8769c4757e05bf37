#!/usr/bin/env python

from setuptools import setup, find_packages
from os import path

"""
    Installation script for greedyroi
"""

here = path.abspath(path.dirname(__file__))

with open(path.join(here, 'README.md'), 'r') as rmf:
    readme = rmf.read()

setup(
    name='greedyroi',
    version='1.0',
    description='Greedy correlation based initialization of neurons in microendoscopic calcium imaging data.',
    long_description=readme,
    long_description_content_type='text/markdown',
    license='GPL-2',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: GNU General Public License v2 (GPLv2)',
        'Programming Language :: Python :: 3',
    ],
    keywords='fluorescence calcium ca imaging ROI identification initialization',
    packages=find_packages(exclude=['greedyroi.tests']),
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
        'opencv-python',
        'scikit-image',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
