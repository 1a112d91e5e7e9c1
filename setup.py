#!/usr/bin/env python3

# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

from setuptools import setup


def status_msgs(*msgs):
    print()
    for msg in msgs:
        print(msg)
    print()


def run_setup(packages):
    # populate the version_info dictionary with values stored in the version file
    version_info = {}
    with open('chargetransport/_version.py', 'r') as f:
        exec(f.read(), {}, version_info)

    setup(
        name = 'chargetransport',
        version = version_info['__version__'],
        description = 'Drift-diffusion simulation of semiconductor devices with mobile ions',
        packages = packages,
        python_requires = '>=3.6',
        install_requires = ['numpy', 'scipy'],
        extras_require = {'test': ['pytest']},
        classifiers = [
            'Intended Audience :: Science/Research',
            'Programming Language :: Python :: 3',
        ],
    )


packages = ['chargetransport']
run_setup(packages)
status_msgs("Done")
