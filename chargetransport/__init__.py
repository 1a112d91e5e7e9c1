# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

from ._version import __version__

__all__ = ['mesh', 'statistics', 'fluxes', 'builder', 'solvers', 'analyzer', 'utils']
for module in __all__:
    exec('from . import {0}'.format(module))

available = [('mesh', ['Mesh', 'ConfigurationError']),
             ('statistics', ['Boltzmann', 'Blakemore', 'FermiDiracMinusOne',
                             'FermiDiracOneHalf', 'get_statistics']),
             ('fluxes', ['ScharfetterGummel', 'ExcessChemicalPotential', 'DiffusionEnhanced',
                         'get_scheme', 'bernoulli']),
             ('builder', ['Scaling', 'Carrier', 'Builder', 'Embedding']),
             ('solvers', ['Solver', 'NewtonControl', 'NewtonError', 'NewtonDivergence',
                          'IterationBudgetExceeded', 'SingularSystem', 'logspace_schedule',
                          'equilibrium_solve', 'step_solve', 'continuation', 'IVcurve',
                          'scan']),
             ('analyzer', ['Analyzer', 'testfunction', 'current_through']),
             ('utils', ['save_sim', 'load_sim'])]
for module, names in available:
    exec('from .{0} import {1}'.format(module, ', '.join(names)))
    __all__.extend(names)
