# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

from scipy.optimize import brentq
import numpy as np
import scipy.constants as cts

from .mesh import ConfigurationError
from .statistics import get_statistics
from .fluxes import get_scheme

import logging
logging.basicConfig(level=logging.DEBUG, format='%(levelname)s: %(message)s')


class Scaling():
    r"""
    An object defining the scalings of the drift-diffusion-Poisson equation. The
    temperature of the system and the reference unit for lengths are specified
    when an instance is created. The default unit for length is m, and the
    default temperature is 300 K.

    Parameters
    ----------
    input_length: string
        Reference unit for lengths. Acceptable entries are 'cm' for centimeters
        and 'm' for meters.
    T: float
        Temperature for the simulation.

    Attributes
    ----------
    density: float
        Density scale taken equal to 10\ :sup:`19` cm\ :sup:`-3`.
    energy: float
        Energy scale (thermal voltage).
    mobility: float
        Mobility scale taken equal to 1 cm\ :sup:`2`/(V.s).
    time: float
        Time scale.
    length: float
        Length scale.
    generation: float
        Scale of generation and recombination rates.
    velocity: float
        Velocity scale.
    surface: float
        Scale of the densities of interface species.
    current: float
        Electrical current density scale.
    """
    def __init__(self, input_length='m', T=300):
        if input_length not in ('m', 'cm'):
            raise ConfigurationError("Unknown length unit '{0}'.".format(input_length))
        # densities
        if input_length == "m":
            self.density = 1e19 * 1e6 # [m^-3]
        else:
            self.density = 1e19 # [cm^-3]
        # energies
        self.energy = cts.k * T / cts.e
        # mobilities
        if input_length == "m":
            self.mobility = 1 * 1e-4 # [m^2 / (V.s)]
        else:
            self.mobility = 1 # [cm^2 / (V.s)]
        # permittivity of vacuum in the length unit
        if input_length == "m":
            eps0 = cts.epsilon_0
        else:
            eps0 = cts.epsilon_0 * 1e-2
        # time [s]
        self.time = eps0 / (self.mobility * cts.e * self.density)
        # lengths
        self.length = np.sqrt(eps0 * self.energy / (cts.e * self.density))
        # generation rate [m^-3 s^-1]
        self.generation = (self.density * self.mobility * self.energy) / self.length**2
        # recombination velocities
        self.velocity = self.length / self.time
        # interface densities [m^-2]
        self.surface = self.density * self.length
        # current
        self.current = cts.k * T * self.mobility * self.density / self.length


class Carrier():
    """
    A mobile species of the system.

    Parameters
    ----------
    name: string
        Name of the species, used as key in the material dictionaries.
    charge: integer
        Charge number of the species (-1 for electrons).
    statistics: string or Statistics
        Occupation function of the species. Default is 'Boltzmann'.
    kind: string
        'electron', 'hole' or 'ion'. Electrons and holes take part in the
        recombination processes. Guessed from the name and charge if omitted.
    continuous: boolean
        If False, the electrochemical potentials on both sides of inner
        interfaces are independent unknowns.
    """
    def __init__(self, name, charge, statistics='Boltzmann', kind=None, continuous=True):
        self.name = name
        self.charge = int(charge)
        self.statistics = get_statistics(statistics)
        if kind is None:
            if name == 'n' and self.charge == -1:
                kind = 'electron'
            elif name == 'p' and self.charge == 1:
                kind = 'hole'
            else:
                kind = 'ion'
        if kind not in ('electron', 'hole', 'ion'):
            raise ConfigurationError("Unknown carrier kind '{0}'.".format(kind))
        self.kind = kind
        self.continuous = continuous

    def __repr__(self):
        return "Carrier({0}, z={1}, {2})".format(self.name, self.charge, self.statistics)


class Embedding():
    """
    Continuation parameters scaling the nonlinear terms of the system.

    Parameters
    ----------
    space_charge: float
        Factor multiplying the space charge in the Poisson equation.
    generation: float
        Factor multiplying the generation rate.
    reaction: float
        Factor multiplying the electrochemical reaction rates at ionic
        interfaces.
    """
    fields = ('space_charge', 'generation', 'reaction')

    def __init__(self, space_charge=1., generation=1., reaction=1.):
        self.space_charge = space_charge
        self.generation = generation
        self.reaction = reaction

    def copy(self, **changes):
        for key in changes:
            if key not in self.fields:
                raise ConfigurationError("Unknown embedding parameter '{0}'.".format(key))
        values = {key: getattr(self, key) for key in self.fields}
        values.update(changes)
        return Embedding(**values)

    def __repr__(self):
        return "Embedding({0})".format(', '.join('{0}={1}'.format(k, getattr(self, k))
                                                 for k in self.fields))


# keys of the material dictionaries
_region_keys = ('epsilon', 'radiative', 'trap_energy')
_species_required = ('dos', 'band_edge', 'mobility')
_species_optional = ('doping', 'lifetime', 'trap_density', 'auger')

boundary_kinds = ('ohmic', 'schottky', 'surface_recombination', 'ionic_interface', 'neutral')


class Builder():
    """
    A device discretized on a one-dimensional mesh.

    This type gathers the carriers, the material parameters of each region and
    the boundary conditions, and takes care of all normalizations. All
    physical inputs are given in the unit system selected by `input_length`.

    Parameters
    ----------
    mesh: Mesh
        Mesh of the device with its regions and boundary regions.
    T: float
        Temperature for the simulation.
    input_length: string
        Reference unit for lengths. Acceptable entries are 'cm' for centimeters
        and 'm' for meters.
    scheme: string or FluxScheme
        Discretization of the fluxes. Default is 'ScharfetterGummel'.

    Attributes
    ----------
    species: list of Carrier
        Carriers in the order of their unknowns at each node.
    iv: integer
        Index of the electrostatic potential among the unknowns of a node.
    nunknowns: integer
        Total number of unknowns. Available after :func:`finalize`.
    h: numpy array of floats
        Dimensionless edge lengths.
    N, E, mu, C, enabled: numpy arrays of shape (number of species, number of edges)
        Dimensionless densities of states, band edge energies, mobilities,
        doping densities of each species on each edge, and mask of the edges
        where a species exists.
    g: numpy array of floats
        Dimensionless generation rate at each node.
    """

    def __init__(self, mesh, T=300, input_length='m', scheme='ScharfetterGummel'):
        self.scaling = Scaling(input_length, T)
        self.input_length = input_length
        self.T = T

        self.mesh = mesh
        self.xpts = mesh.xpts
        self.nx = mesh.nx
        self.scheme = get_scheme(scheme)

        self.species = []
        self.materials = {}
        self.boundaries = {}

        self.g = np.zeros(self.nx)
        self.finalized = False

    def add_species(self, name, charge, statistics='Boltzmann', kind=None, continuous=True):
        """
        Add a carrier to the system. See :class:`Carrier` for the parameters.

        Returns
        -------
        index: integer
            Index of the carrier among the unknowns of a node.
        """
        if name in [c.name for c in self.species]:
            raise ConfigurationError("Species '{0}' defined twice.".format(name))
        self.species.append(Carrier(name, charge, statistics, kind, continuous))
        self.finalized = False
        return len(self.species) - 1

    def add_region(self, region, mat):
        r"""
        Add the material of a region of the mesh.

        Parameters
        ----------
        region: integer
            Region id as given to :func:`Mesh.cellmask`.
        mat: dictionary
            Material parameters. Keys are epsilon: relative permittivity,
            radiative: radiative recombination constant [m\ :sup:`3`/s],
            trap_energy: energy level of the bulk recombination centers [eV],
            and one dictionary per carrier present in the region, keyed by the
            carrier name, with keys dos: density of states [m\ :sup:`-3`],
            band_edge: band edge energy [eV], mobility [m\ :sup:`2`/(V s)],
            doping [m\ :sup:`-3`], lifetime: SRH lifetime [s], trap_density:
            SRH trap density [m\ :sup:`-3`], auger: Auger constant [m\
            :sup:`6`/s].
        """
        self.materials[region] = dict(mat)
        self.finalized = False

    def add_boundary(self, bregion, kind, params=None, voltage=0.):
        r"""
        Define the boundary condition of a boundary region.

        Parameters
        ----------
        bregion: integer
            Boundary region id (1 and 2 for the outer nodes).
        kind: string
            'ohmic', 'schottky', 'surface_recombination', 'ionic_interface' or
            'neutral'.
        params: dictionary
            Boundary parameters. Per-carrier dictionaries may contain dos,
            band_edge, doping, velocity: surface recombination velocity [m/s],
            trap_density, and transfer: exchange rate of a discontinuous
            carrier [m\ :sup:`-2` s\ :sup:`-1`]. Schottky contacts need a
            barrier [eV]. Ionic interfaces need species: name of the bulk ionic
            carrier, dos [m\ :sup:`-2`], band_edge [eV], and accept doping [m\
            :sup:`-2`], rate [m\ :sup:`-2` s\ :sup:`-1`], charge and
            statistics.
        voltage: float
            Applied voltage of a contact [V].
        """
        if kind not in boundary_kinds:
            raise ConfigurationError("Unknown boundary condition '{0}', expected one of {1}."\
                                     .format(kind, ', '.join(boundary_kinds)))
        self.boundaries[bregion] = {'kind': kind, 'params': dict(params or {}),
                                    'voltage': voltage}
        self.finalized = False

    def set_voltage(self, bregion, voltage):
        """
        Set the applied voltage [V] of a contact.
        """
        if bregion not in self.boundaries:
            raise ConfigurationError("Boundary region {0} is not defined.".format(bregion))
        self.boundaries[bregion]['voltage'] = voltage

    @property
    def contact_voltages(self):
        return {b: bc['voltage'] for b, bc in self.boundaries.items()
                if bc['kind'] in ('ohmic', 'schottky')}

    def generation(self, f, args=[]):
        r"""
        Distribution of generated carriers.

        Parameters
        ----------
        f: function or array
            Generation rate [m\ :sup:`-3` s\ :sup:`-1`] as a function of
            position, or its values at the nodes.
        args: tuple
            Additional arguments to be passed to the function.
        """
        if callable(f):
            g = [f(x, *args) for x in self.xpts]
        else:
            g = f

        self.g = np.asarray(g, dtype=float) / self.scaling.generation
        if self.g.shape != (self.nx,):
            raise ConfigurationError("The generation profile must have one value per node.")

    def species_index(self, name):
        for a, c in enumerate(self.species):
            if c.name == name:
                return a
        raise ConfigurationError("Unknown species '{0}'.".format(name))

    def _kind_index(self, kind):
        for a, c in enumerate(self.species):
            if c.kind == kind:
                return a
        return None

    def finalize(self):
        """
        Check the configuration and compute the dimensionless parameters and
        the layout of the unknowns.
        """
        mesh = self.mesh
        if mesh.cell_region is None:
            mesh.finalize()
        if len(self.species) == 0:
            raise ConfigurationError("No carrier defined.")

        regions = set(mesh.cell_region.tolist())
        for region in self.materials:
            if region not in regions:
                raise ConfigurationError("Material given for region {0} which "
                                         "is not on the mesh.".format(region))

        ns = len(self.species)
        nc = self.nx - 1
        self.nspecies = ns
        self.ncells = nc
        self.iv = ns
        self.ie = self._kind_index('electron')
        self.ih = self._kind_index('hole')
        self.h = mesh.dx / self.scaling.length

        self.N = np.zeros((ns, nc))
        self.E = np.zeros((ns, nc))
        self.mu = np.zeros((ns, nc))
        self.C = np.zeros((ns, nc))
        self.enabled = np.zeros((ns, nc), dtype=bool)
        self.eps = np.zeros(nc)

        # recombination on each edge
        self.tau_n = np.zeros(nc)
        self.tau_p = np.zeros(nc)
        self.n1 = np.zeros(nc)
        self.p1 = np.zeros(nc)
        self.B = np.zeros(nc)
        self.Cn = np.zeros(nc)
        self.Cp = np.zeros(nc)
        self.srh = np.zeros(nc, dtype=bool)
        self.recombination = np.zeros(nc, dtype=bool)

        for region in sorted(regions):
            if region not in self.materials:
                raise ConfigurationError("No material given for region {0}.".format(region))
            self._set_region(region, self.materials[region])

        self._set_unknowns()
        self._set_boundaries()
        self.finalized = True
        logging.debug("System with {0} unknowns".format(self.nunknowns))

    def _set_region(self, region, mat):
        N = self.scaling.density
        vt = self.scaling.energy
        mu = self.scaling.mobility
        t = self.scaling.time
        s = self.mesh.cell_region == region
        names = [c.name for c in self.species]

        for key in mat:
            if key not in _region_keys and key not in names:
                raise ConfigurationError("Unknown key '{0}' in the material of region {1}."\
                                         .format(key, region))
        if 'epsilon' not in mat:
            raise ConfigurationError("Missing 'epsilon' in the material of region {0}.".format(region))
        self.eps[s] = mat['epsilon']

        params = {}
        for a, c in enumerate(self.species):
            if c.name not in mat:
                continue
            sp = mat[c.name]
            missing = [k for k in _species_required if k not in sp]
            if missing:
                raise ConfigurationError("Missing {0} for species '{1}' in region {2}."\
                                         .format(', '.join(missing), c.name, region))
            for key in sp:
                if key not in _species_required + _species_optional:
                    raise ConfigurationError("Unknown key '{0}' for species '{1}' in region {2}."\
                                             .format(key, c.name, region))
            self.enabled[a, s] = True
            self.N[a, s] = sp['dos'] / N
            self.E[a, s] = sp['band_edge'] / vt
            self.mu[a, s] = sp['mobility'] / mu
            self.C[a, s] = sp.get('doping', 0) / N
            params[a] = sp

        ie, ih = self.ie, self.ih
        if ie not in params or ih not in params:
            return
        pe, ph = params[ie], params[ih]

        # trap densities from the trap level, midgap by default
        Et = mat.get('trap_energy', (pe['band_edge'] + ph['band_edge']) / 2.) / vt
        ze, zh = self.species[ie].charge, self.species[ih].charge
        if 'trap_density' in pe:
            self.n1[s] = pe['trap_density'] / N
        else:
            self.n1[s] = pe['dos'] / N * np.exp(ze * (pe['band_edge'] / vt - Et))
        if 'trap_density' in ph:
            self.p1[s] = ph['trap_density'] / N
        else:
            self.p1[s] = ph['dos'] / N * np.exp(zh * (ph['band_edge'] / vt - Et))

        if 'lifetime' in pe and 'lifetime' in ph:
            self.tau_n[s] = pe['lifetime'] / t
            self.tau_p[s] = ph['lifetime'] / t
            self.srh[s] = True
        self.B[s] = mat.get('radiative', 0) * N * t
        self.Cn[s] = pe.get('auger', 0) * N**2 * t
        self.Cp[s] = ph.get('auger', 0) * N**2 * t
        self.recombination[s] = self.srh[s] | (self.B[s] > 0) | (self.Cn[s] > 0) | (self.Cp[s] > 0)

    def _set_unknowns(self):
        # per-node unknowns are the carriers followed by the electrostatic
        # potential, then the right-side values of discontinuous carriers at
        # inner interfaces, then the interface species
        nb = self.nspecies + 1
        nx, nc = self.nx, self.ncells
        self.nbulk = nb
        cells = np.arange(nc)

        self.idx_left = np.zeros((self.nspecies, nc), dtype=int)
        self.idx_right = np.zeros((self.nspecies, nc), dtype=int)
        for a in range(self.nspecies):
            self.idx_left[a] = cells * nb + a
            self.idx_right[a] = (cells + 1) * nb + a
        self.idx_v = np.arange(nx) * nb + self.iv

        count = nx * nb
        self.right_index = {}
        inner = sorted(self.mesh.inner_nodes.values())
        for a, c in enumerate(self.species):
            if c.continuous:
                continue
            for k in inner:
                self.right_index[(a, k)] = count
                self.idx_left[a, k] = count
                count += 1
        self.nunknowns = count

        self.unknown_node = np.zeros(count, dtype=int)
        self.unknown_charge = np.zeros(count)
        self.unknown_species = -np.ones(count, dtype=int)
        for a, c in enumerate(self.species):
            self.unknown_node[np.arange(nx) * nb + a] = np.arange(nx)
            self.unknown_charge[np.arange(nx) * nb + a] = c.charge
            self.unknown_species[np.arange(nx) * nb + a] = a
        self.unknown_node[self.idx_v] = np.arange(nx)
        for (a, k), i in self.right_index.items():
            self.unknown_node[i] = k
            self.unknown_charge[i] = self.species[a].charge
            self.unknown_species[i] = a

        self.active = np.zeros(count, dtype=bool)
        self.active[self.idx_v] = True
        for a in range(self.nspecies):
            self.active[self.idx_left[a][self.enabled[a]]] = True
            self.active[self.idx_right[a][self.enabled[a]]] = True

    def node_unknown(self, a, k, side='left'):
        """
        Index of the unknown of species `a` at node `k`. At inner interfaces
        of discontinuous carriers, `side` selects the value seen by the edge on
        the left or on the right of the node.
        """
        if side == 'right' and (a, k) in self.right_index:
            return self.right_index[(a, k)]
        return k * self.nbulk + a

    def _boundary_species_params(self, params, cell, a):
        # boundary parameters of a carrier, falling back on the adjacent bulk
        c = self.species[a]
        sp = params.get(c.name, {})
        N = self.scaling.density
        vt = self.scaling.energy
        bN = sp['dos'] / N if 'dos' in sp else self.N[a, cell]
        bE = sp['band_edge'] / vt if 'band_edge' in sp else self.E[a, cell]
        bC = sp['doping'] / N if 'doping' in sp else self.C[a, cell]
        return bN, bE, bC, sp

    def _set_boundaries(self):
        mesh = self.mesh
        nc = self.ncells
        vt = self.scaling.energy
        self.contacts = {}
        self.surface = {}
        self.interfaces = []
        self.transfers = []

        for b in self.boundaries:
            if b not in mesh.bregions:
                raise ConfigurationError("Boundary region {0} is not on the mesh.".format(b))

        count = self.nunknowns
        for b, k in sorted(mesh.bregions.items()):
            bc = self.boundaries.get(b, {'kind': 'neutral', 'params': {}, 'voltage': 0.})
            kind, params = bc['kind'], bc['params']
            outer = mesh.is_outer(b)
            if outer:
                cell = 0 if k == 0 else nc - 1
            else:
                cell = k - 1

            if kind in ('ohmic', 'schottky'):
                if not outer:
                    raise ConfigurationError("Boundary region {0}: {1} contacts must be "
                                             "on the outer boundary.".format(b, kind))
                contacted = [a for a in range(self.nspecies) if self.enabled[a, cell]]
                if len(contacted) == 0:
                    raise ConfigurationError("Boundary region {0}: no carrier at the contact.".format(b))
                data = {'kind': kind, 'node': k, 'species': contacted,
                        'N': [], 'E': [], 'C': [], 'velocity': [],
                        'index': [self.node_unknown(a, k) for a in contacted]}
                for a in contacted:
                    bN, bE, bC, sp = self._boundary_species_params(params, cell, a)
                    data['N'].append(bN)
                    data['E'].append(bE)
                    data['C'].append(bC)
                    data['velocity'].append(sp.get('velocity', 0) / self.scaling.velocity)
                if kind == 'schottky':
                    if 'barrier' not in params:
                        raise ConfigurationError("Boundary region {0}: missing Schottky barrier.".format(b))
                    if self.ie is None or self.ie not in contacted:
                        raise ConfigurationError("Boundary region {0}: Schottky contacts need "
                                                 "electrons.".format(b))
                    data['barrier'] = params['barrier'] / vt
                self.contacts[b] = data

            elif kind == 'surface_recombination':
                ie, ih = self.ie, self.ih
                if ie is None or ih is None:
                    raise ConfigurationError("Boundary region {0}: surface recombination "
                                             "needs electrons and holes.".format(b))
                if not (self.enabled[ie, cell] and self.enabled[ih, cell]):
                    raise ConfigurationError("Boundary region {0}: electrons and holes must "
                                             "exist next to the interface.".format(b))
                Nn, En, _, spn = self._boundary_species_params(params, cell, ie)
                Np, Ep, _, spp = self._boundary_species_params(params, cell, ih)
                Et = params.get('trap_energy', (En + Ep) * vt / 2.) / vt
                N = self.scaling.density
                n1 = spn['trap_density'] / N if 'trap_density' in spn else \
                     Nn * np.exp(self.species[ie].charge * (En - Et))
                p1 = spp['trap_density'] / N if 'trap_density' in spp else \
                     Np * np.exp(self.species[ih].charge * (Ep - Et))
                self.surface[b] = {'node': k,
                                   'index': (self.node_unknown(ie, k), self.node_unknown(ih, k)),
                                   'N': (Nn, Np), 'E': (En, Ep), 'trap': (n1, p1),
                                   'velocity': (spn.get('velocity', 0) / self.scaling.velocity,
                                                spp.get('velocity', 0) / self.scaling.velocity)}

            elif kind == 'ionic_interface':
                if outer:
                    raise ConfigurationError("Boundary region {0}: ionic interfaces must be "
                                             "inner boundaries.".format(b))
                if 'species' not in params:
                    raise ConfigurationError("Boundary region {0}: missing bulk species of "
                                             "the ionic interface.".format(b))
                a = self.species_index(params['species'])
                if self.enabled[a, k-1]:
                    partner = self.node_unknown(a, k, 'left')
                elif self.enabled[a, k]:
                    partner = self.node_unknown(a, k, 'right')
                else:
                    raise ConfigurationError("Boundary region {0}: species '{1}' does not "
                                             "exist next to the interface.".format(b, params['species']))
                for key in ('dos', 'band_edge'):
                    if key not in params:
                        raise ConfigurationError("Boundary region {0}: missing '{1}' for the "
                                                 "ionic interface.".format(b, key))
                surface = self.scaling.surface
                self.interfaces.append({
                    'bregion': b, 'node': k, 'index': count, 'partner': partner,
                    'species': a,
                    'charge': int(params.get('charge', self.species[a].charge)),
                    'statistics': get_statistics(params.get('statistics',
                                                            self.species[a].statistics)),
                    'N': params['dos'] / surface,
                    'E': params['band_edge'] / vt,
                    'C': params.get('doping', 0) / surface,
                    'rate': params.get('rate', 0) / (surface / self.scaling.time)})
                count += 1

            # exchange of discontinuous carriers across inner interfaces
            if not outer:
                for a, c in enumerate(self.species):
                    if c.continuous or (a, k) not in self.right_index:
                        continue
                    sp = params.get(c.name, {})
                    if sp.get('transfer', 0) > 0 and self.enabled[a, k-1] and self.enabled[a, k]:
                        self.transfers.append({
                            'node': k, 'charge': c.charge,
                            'index': (self.node_unknown(a, k, 'left'),
                                      self.node_unknown(a, k, 'right')),
                            'rate': sp['transfer'] / (self.scaling.surface / self.scaling.time)})

        # interface species
        n_iface = count - self.nunknowns
        if n_iface:
            self.nunknowns = count
            self.unknown_node = np.concatenate((self.unknown_node, np.zeros(n_iface, dtype=int)))
            self.unknown_charge = np.concatenate((self.unknown_charge, np.zeros(n_iface)))
            self.unknown_species = np.concatenate((self.unknown_species,
                                                   -np.ones(n_iface, dtype=int)))
            self.active = np.concatenate((self.active, np.ones(n_iface, dtype=bool)))
            for iface in self.interfaces:
                self.unknown_node[iface['index']] = iface['node']
                self.unknown_charge[iface['index']] = iface['charge']

        # carriers without a contact keep their number of particles
        touched = set()
        for data in self.contacts.values():
            touched.update(data['species'])
        self.closed = [a for a in range(self.nspecies)
                       if a not in touched and self.enabled[a].any()]

    def neutral_potential(self, bregion, voltage):
        """
        Dimensionless electrostatic potential of a contact.

        For an ohmic contact this is the charge neutral potential of the
        contacted carriers with all electrochemical potentials equal to the
        applied voltage. For a Schottky contact the potential is set by the
        barrier.

        Parameters
        ----------
        bregion: integer
            Boundary region of the contact.
        voltage: float
            Applied voltage [V].
        """
        data = self.contacts[bregion]
        U = voltage / self.scaling.energy
        if data['kind'] == 'schottky':
            i = data['species'].index(self.ie)
            return U + data['E'][i] - data['barrier']

        z = np.array([self.species[a].charge for a in data['species']])
        stats = [self.species[a].statistics for a in data['species']]
        bN, bE, bC = np.array(data['N']), np.array(data['E']), np.array(data['C'])

        def charge(v):
            eta = z * (U - v) + z * bE
            n = np.array([bN[i] * stats[i].F(eta[i]) for i in range(len(z))])
            return np.sum(z * (n - bC))

        center = U + np.mean(bE)
        width = 50.
        for _ in range(30):
            lo, hi = center - width, center + width
            if charge(lo) > 0 and charge(hi) < 0:
                return brentq(charge, lo, hi, xtol=1e-14, rtol=1e-14)
            width *= 2
        raise ConfigurationError("Boundary region {0}: no charge neutral potential "
                                 "found for the contact.".format(bregion))

    def unpack(self, x):
        """
        Split a solution vector into its components.

        Parameters
        ----------
        x: numpy array of floats
            Dimensionless solution vector.

        Returns
        -------
        result: dictionary
            Values at the nodes keyed by carrier name, the electrostatic
            potential under the key 'v', and the interface species under the
            key 'interfaces' (boundary region mapped to value).
        """
        nb = self.nbulk
        result = {c.name: x[a::nb][:self.nx].copy() for a, c in enumerate(self.species)}
        result['v'] = x[self.idx_v].copy()
        result['interfaces'] = {iface['bregion']: x[iface['index']] for iface in self.interfaces}
        return result
