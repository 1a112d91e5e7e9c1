# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np
import gzip
import pickle
from scipy.io import savemat

from .mesh import ConfigurationError


def save_sim(sys, result, filename, fmt='npy'):
    """
    Utility function that saves a system together with simulation results.

    Parameters
    ----------
    sys: Builder
        The discretized system.
    result: numpy array or dictionary
        Solution vector, or dictionary of results (for instance the output of
        :func:`IVcurve`).
    filename: string
        Name of outputfile
    fmt: string
        Format of output file, set to 'mat' for matlab files. With the default
        format, the Builder object is pickled directly.
    """

    if fmt == 'mat':
        if not sys.finalized:
            sys.finalize()
        system = {'xpts': sys.xpts, 'species': [c.name for c in sys.species],
                  'charge': np.array([c.charge for c in sys.species]),
                  'epsilon': sys.eps, 'g': sys.g, 'N': sys.N, 'E': sys.E, 'mu': sys.mu,
                  'C': sys.C, 'tau_n': sys.tau_n, 'tau_p': sys.tau_p, 'B': sys.B,
                  'Cn': sys.Cn, 'Cp': sys.Cp, 'n1': sys.n1, 'p1': sys.p1,
                  'length': sys.scaling.length, 'energy': sys.scaling.energy,
                  'current': sys.scaling.current}
        if isinstance(result, dict):
            results = {k: v for k, v in result.items() if v is not None}
        else:
            results = {'x': np.asarray(result)}
        if 'x' in results:
            x = np.asarray(results['x'])
            fields = sys.unpack(x)
            results['v'] = fields['v']
            for c in sys.species:
                results['phi_' + c.name] = fields[c.name]
            if fields['interfaces']:
                results['interfaces'] = np.array([fields['interfaces'][b]
                                                  for b in sorted(fields['interfaces'])])

        savemat(filename, {'sys': system, 'results': results}, do_compression=True)
    else:
        with gzip.GzipFile(filename, 'wb') as file:
            file.write(pickle.dumps((sys, result)))


def load_sim(filename, reference=None):
    """
    Utility function that loads a system together with simulation results.

    Parameters
    ----------
    filename: string
        Name of inputfile
    reference: Builder
        System the saved one must describe, for instance to restart a
        simulation from a saved state. A ConfigurationError is raised if the
        settings differ.

    Returns
    -------
    system: Builder object
        A discretized system.
    result: numpy array or dictionary
        The results saved with the system.
    """

    with gzip.GzipFile(filename, 'rb') as f:
        data = f.read()
    sys, result = pickle.loads(data)
    if reference is not None and not check_equal_sim_settings(reference, sys):
        raise ConfigurationError("The system saved in {0} differs from the reference "
                                 "system.".format(filename))
    return sys, result


# per-edge parameter arrays fixing the discretized equations, the generation
# profile is left out as it is set per simulation
_settings = ['N', 'E', 'mu', 'C', 'enabled', 'eps', 'tau_n', 'tau_p', 'n1', 'p1',
             'B', 'Cn', 'Cp']


def check_equal_sim_settings(system1, system2):
    """
    Compare the configuration of two systems: mesh, carriers, boundary
    conditions and material parameters.

    Returns
    -------
    equivalent: boolean
    """
    for system in (system1, system2):
        if not system.finalized:
            system.finalize()

    if not np.array_equal(system1.xpts, system2.xpts):
        return False
    if not np.array_equal(system1.mesh.cell_region, system2.mesh.cell_region):
        return False

    species1 = [(c.name, c.charge, c.statistics.name, c.continuous) for c in system1.species]
    species2 = [(c.name, c.charge, c.statistics.name, c.continuous) for c in system2.species]
    if species1 != species2:
        return False

    kinds1 = {b: bc['kind'] for b, bc in system1.boundaries.items()}
    kinds2 = {b: bc['kind'] for b, bc in system2.boundaries.items()}
    if kinds1 != kinds2 or system1.scheme.name != system2.scheme.name:
        return False

    return all(np.array_equal(getattr(system1, attr), getattr(system2, attr))
               for attr in _settings)
