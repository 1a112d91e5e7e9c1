# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np
import scipy.sparse.linalg as lg
from scipy.sparse import csr_matrix

from .builder import Embedding
from .getFandJ import getFandJ
from .observables import get_density, get_flux, get_bulk_rr


def testfunction(sys, bc0, bc1):
    """
    Solve the discrete Laplace equation with the value 0 on the boundary
    regions bc0 and 1 on the boundary regions bc1.

    Parameters
    ----------
    sys: Builder
        The discretized system.
    bc0, bc1: integer or list of integers
        Boundary regions.

    Returns
    -------
    T: numpy array of floats
        Value of the test function at each node.
    """
    if not sys.finalized:
        sys.finalize()
    bc0 = np.atleast_1d(bc0)
    bc1 = np.atleast_1d(bc1)
    nodes0 = [sys.mesh.bregions[b] for b in bc0]
    nodes1 = [sys.mesh.bregions[b] for b in bc1]

    k = np.arange(sys.ncells)
    a = 1. / sys.h
    rows = np.concatenate((k, k, k+1, k+1))
    columns = np.concatenate((k, k+1, k, k+1))
    data = np.concatenate((a, -a, -a, a))

    pinned = np.array(nodes0 + nodes1)
    keep = ~np.isin(rows, pinned)
    rows = np.concatenate((rows[keep], pinned))
    columns = np.concatenate((columns[keep], pinned))
    data = np.concatenate((data[keep], np.ones(len(pinned))))

    rhs = np.zeros(sys.nx)
    rhs[nodes1] = 1.
    J = csr_matrix((data, (rows, columns)), shape=(sys.nx, sys.nx))
    return lg.spsolve(J, rhs)


def current_through(sys, contact_pair, x, x_old=None, tstep=np.inf, embedding=None):
    r"""
    Compute the terminal current with a test function integral over the
    residual of the continuity equations.

    Parameters
    ----------
    sys: Builder
        The discretized system.
    contact_pair: tuple of boundary regions
        (bc0, bc1): the test function is 0 on bc0 and 1 on bc1.
    x: numpy array of floats
        Solution vector.
    x_old: numpy array of floats
        Solution vector at the previous time step, required if `tstep` is
        finite.
    tstep: float
        Time step [s]. The displacement current is included for finite
        time steps.
    embedding: Embedding
        Continuation parameters used for the solution.

    Returns
    -------
    J: float
        Dimensionless charge current density entering the device through bc1
        and leaving it through bc0. Multiply by sys.scaling.current to obtain the current in A/m\
        :sup:`2` (A/cm\ :sup:`2` with centimeters).
    """
    if embedding is None:
        embedding = Embedding()
    bc0, bc1 = contact_pair
    T = testfunction(sys, bc0, bc1)
    dt = tstep / sys.scaling.time

    f, _, _, _ = getFandJ(sys, x, {}, embedding, x_old, dt, contacts=False)
    weights = T[sys.unknown_node] * sys.unknown_charge * sys.active
    j = np.sum(weights * f)

    if np.isfinite(tstep):
        # displacement current
        f_old, _, _, _ = getFandJ(sys, x_old, {}, embedding, x_old, dt, contacts=False)
        j += np.sum(T * (f[sys.idx_v] - f_old[sys.idx_v])) / dt
    return j


class Analyzer():
    """
    Object that simplifies the extraction of physical data (densities,
    currents, recombination) across the system. All quantities are
    dimensionless.

    Parameters
    ----------
    sys: Builder
        A discretized system.
    x: numpy array of floats
        Solution vector.
    """

    def __init__(self, sys, x):
        if not sys.finalized:
            sys.finalize()
        self.sys = sys
        self.x = np.asarray(x)
        self.result = sys.unpack(self.x)
        self.v = self.result['v']
        # edge whose parameters are used at each node
        self.node_cells = np.concatenate(([0], np.arange(sys.ncells)))

    def _node_indices(self, a):
        sys = self.sys
        return np.concatenate(([sys.idx_left[a, 0]], sys.idx_right[a]))

    def density(self, name):
        """
        Density of a carrier at the nodes, zero where the carrier is absent.
        """
        sys = self.sys
        a = sys.species_index(name)
        cells = self.node_cells
        n, _ = get_density(sys, a, self.x[self._node_indices(a)], self.v, cells)
        return np.where(sys.enabled[a, cells], n, 0.)

    def electron_density(self):
        return self.density(self.sys.species[self.sys.ie].name)

    def hole_density(self):
        return self.density(self.sys.species[self.sys.ih].name)

    def flux(self, name):
        """
        Particle flux of a carrier on each edge, from left to right.
        """
        sys = self.sys
        a = sys.species_index(name)
        j = np.zeros(sys.ncells)
        cells = np.arange(sys.ncells)[sys.enabled[a]]
        j[cells], _ = get_flux(sys, a, self.x, cells)
        return j

    def current(self):
        """
        Charge current density carried by all carriers on each edge.
        """
        return sum(c.charge * self.flux(c.name) for c in self.sys.species)

    def _rr(self, cells, i_n, i_p, iv):
        sys = self.sys
        efn, efp = self.x[i_n], self.x[i_p]
        n, _ = get_density(sys, sys.ie, efn, self.x[iv], cells)
        p, _ = get_density(sys, sys.ih, efp, self.x[iv], cells)
        return get_bulk_rr(sys, cells, n, p, efn, efp)

    def recombination(self):
        """
        Bulk net recombination rate at the nodes.
        """
        sys = self.sys
        cells = self.node_cells
        r = self._rr(cells, self._node_indices(sys.ie), self._node_indices(sys.ih), sys.idx_v)
        mask = sys.enabled[sys.ie, cells] & sys.enabled[sys.ih, cells] & sys.recombination[cells]
        return np.where(mask, r, 0.)

    def integrated_recombination(self):
        """
        Bulk net recombination integrated over the control volumes.
        """
        sys = self.sys
        cells = np.arange(sys.ncells)
        cells = cells[sys.enabled[sys.ie] & sys.enabled[sys.ih] & sys.recombination]
        rl = self._rr(cells, sys.idx_left[sys.ie, cells], sys.idx_left[sys.ih, cells],
                      sys.idx_v[cells])
        rr = self._rr(cells, sys.idx_right[sys.ie, cells], sys.idx_right[sys.ih, cells],
                      sys.idx_v[cells+1])
        return np.sum(sys.h[cells] / 2. * (rl + rr))

    def band_diagram(self):
        """
        Band edges and quasi-Fermi levels in eV.

        Returns
        -------
        bands: dictionary
            For each carrier name, a tuple (band edge, quasi-Fermi level) of
            arrays at the nodes.
        """
        sys = self.sys
        vt = sys.scaling.energy
        cells = self.node_cells
        bands = {}
        for a, c in enumerate(sys.species):
            edge = np.where(sys.enabled[a, cells], (sys.E[a, cells] - self.v) * vt, np.nan)
            efl = np.where(sys.enabled[a, cells], -self.x[self._node_indices(a)] * vt, np.nan)
            bands[c.name] = (edge, efl)
        return bands
