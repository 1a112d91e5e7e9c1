# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np

import logging


class ConfigurationError(ValueError):
    """
    Raised when a device description is inconsistent: overlapping or gapped
    regions, boundary coordinates without a matching node, missing material
    parameters.
    """
    pass


class Mesh():
    r"""
    A one-dimensional mesh partitioned into regions and boundary regions.

    The nodes are given in physical units. Regions are tagged on coordinate
    intervals with :func:`cellmask`, and boundary regions on single nodes with
    :func:`bfacemask`. The outer nodes carry the boundary regions 1 (left) and
    2 (right).

    Parameters
    ----------
    coord: array-like of floats
        Strictly increasing node coordinates.
    tol: float
        Absolute tolerance used to match a requested coordinate with a node.
        Default is 10\ :sup:`-9` times the length of the mesh.

    Attributes
    ----------
    xpts: numpy array of floats
        Node coordinates.
    nx: integer
        Number of nodes.
    dx: numpy array of floats
        Edge lengths.
    volumes: numpy array of floats
        Length of the control volume of each node.
    cell_region, node_region: numpy arrays of integers
        Region id of each edge and node. Available after :func:`finalize`.
    bregions: dictionary
        Boundary region id mapped to its node index.
    """

    def __init__(self, coord, tol=None):
        xpts = np.asarray(coord, dtype=float)
        if xpts.ndim != 1 or xpts.shape[0] < 2:
            raise ConfigurationError("A mesh needs at least two nodes.")
        if np.any(np.diff(xpts) <= 0):
            raise ConfigurationError("Mesh coordinates must be strictly increasing.")

        self.xpts = xpts
        self.nx = xpts.shape[0]
        self.dx = xpts[1:] - xpts[:-1]
        self.volumes = np.zeros(self.nx)
        self.volumes[:-1] += self.dx / 2.
        self.volumes[1:] += self.dx / 2.

        if tol is None:
            tol = 1e-9 * (xpts[-1] - xpts[0])
        self.tol = tol

        self.regions = []
        self.bregions = {1: 0, 2: self.nx-1}
        self.cell_region = None
        self.node_region = None

    def node_index(self, x):
        """
        Return the index of the node located at `x` within the tolerance of
        the mesh.
        """
        s = int(np.argmin(np.abs(self.xpts - x)))
        if abs(self.xpts[s] - x) > self.tol:
            raise ConfigurationError("No mesh node at x = {0} (closest node at "
                                     "{1}, tolerance {2}).".format(x, self.xpts[s], self.tol))
        return s

    def cellmask(self, region, xmin, xmax):
        """
        Assign the interval [xmin, xmax] to a region.

        Parameters
        ----------
        region: integer
            Region id.
        xmin, xmax: floats
            End points of the interval. Both must coincide with mesh nodes.
        """
        if xmax <= xmin:
            raise ConfigurationError("Empty interval [{0}, {1}] for region {2}."\
                                     .format(xmin, xmax, region))
        ia = self.node_index(xmin)
        ib = self.node_index(xmax)
        self.regions.append((region, ia, ib))
        self.cell_region = None

    def bfacemask(self, bregion, x):
        """
        Assign the node located at `x` to a boundary region.
        """
        s = self.node_index(x)
        for b, node in self.bregions.items():
            if node == s and b != bregion:
                raise ConfigurationError("Node at x = {0} already belongs to "
                                         "boundary region {1}.".format(x, b))
        if bregion in self.bregions and self.bregions[bregion] != s:
            raise ConfigurationError("Boundary region {0} is already located "
                                     "at another node.".format(bregion))
        self.bregions[bregion] = s

    def finalize(self):
        """
        Check that the regions cover the mesh without overlaps or gaps, and
        compute the region of each edge and node.
        """
        if len(self.regions) == 0:
            raise ConfigurationError("No region defined on the mesh.")

        regions = sorted(self.regions, key=lambda r: r[1])
        if regions[0][1] != 0 or regions[-1][2] != self.nx-1:
            raise ConfigurationError("Regions do not cover the full mesh.")
        for (ra, _, ia_end), (rb, ib_start, _) in zip(regions[:-1], regions[1:]):
            if ib_start < ia_end:
                raise ConfigurationError("Regions {0} and {1} overlap.".format(ra, rb))
            if ib_start > ia_end:
                raise ConfigurationError("Gap between regions {0} and {1}.".format(ra, rb))

        cell_region = np.zeros(self.nx-1, dtype=int)
        for region, ia, ib in regions:
            cell_region[ia:ib] = region
        self.cell_region = cell_region
        self.node_region = np.concatenate(([cell_region[0]], cell_region))
        logging.debug("Mesh with {0} nodes and {1} regions".format(self.nx, len(regions)))

    @property
    def inner_nodes(self):
        # boundary region id -> node for faces that are not on the outer boundary
        return {b: s for b, s in self.bregions.items() if 0 < s < self.nx-1}

    def is_outer(self, bregion):
        s = self.bregions[bregion]
        return s == 0 or s == self.nx-1
