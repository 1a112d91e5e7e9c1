# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np

from .mesh import ConfigurationError


def bernoulli(x):
    """
    Bernoulli function B(x) = x / (exp(x) - 1) and its derivative.

    Parameters
    ----------
    x: numpy array of floats

    Returns
    -------
    B, dB: numpy arrays of floats
    """
    x = np.asarray(x, dtype=float)
    small = np.abs(x) < 1e-4
    xs = np.where(small, 1., x)
    with np.errstate(over='ignore'):
        B = xs / np.expm1(xs)
    dB = B / xs * (1 - B) - B

    B = np.where(small, 1 - x/2 + x**2/12 - x**4/720, B)
    dB = np.where(small, -0.5 + x/6 - x**3/180, dB)
    return B, dB


class FluxScheme():
    """
    Discretization of the particle flux of one species along an edge.

    The flux from node k to node l is written mu N / h * g(delta, eta_k,
    eta_l) where delta = z (psi_l - psi_k) is the dimensionless field
    parameter and eta the normalized electrochemical potentials at the end
    points. Schemes implement :func:`flux`; derivatives are computed by finite
    differences unless a scheme provides them analytically.
    """
    name = None
    step = 1e-6

    def flux(self, delta, eta_k, eta_l, stats):
        raise NotImplementedError

    def derivatives(self, delta, eta_k, eta_l, stats):
        args = [np.asarray(a, dtype=float) for a in (delta, eta_k, eta_l)]
        derivs = []
        for i in range(3):
            h = self.step * (1 + np.abs(args[i]))
            up = list(args)
            down = list(args)
            up[i] = args[i] + h
            down[i] = args[i] - h
            derivs.append((self.flux(*up, stats) - self.flux(*down, stats)) / (2*h))
        return tuple(derivs)

    def __call__(self, delta, eta_k, eta_l, stats):
        """
        Returns
        -------
        g, dg_ddelta, dg_detak, dg_detal: numpy arrays of floats
        """
        g = self.flux(delta, eta_k, eta_l, stats)
        return (g,) + tuple(self.derivatives(delta, eta_k, eta_l, stats))

    def __repr__(self):
        return self.name


class ScharfetterGummel(FluxScheme):
    """
    Classical Scharfetter-Gummel flux. Thermodynamically consistent for
    Boltzmann statistics only.
    """
    name = 'ScharfetterGummel'

    def flux(self, delta, eta_k, eta_l, stats):
        bp, _ = bernoulli(delta)
        bm, _ = bernoulli(-delta)
        return bp * stats.F(eta_k) - bm * stats.F(eta_l)

    def derivatives(self, delta, eta_k, eta_l, stats):
        bp, dbp = bernoulli(delta)
        bm, dbm = bernoulli(-delta)
        Fk, Fl = stats.F(eta_k), stats.F(eta_l)
        return dbp * Fk + dbm * Fl, bp * stats.dF(eta_k), -bm * stats.dF(eta_l)


class ExcessChemicalPotential(FluxScheme):
    """
    Sedan scheme: the field parameter is corrected by the difference of the
    excess chemical potentials, so that the flux vanishes at equilibrium for
    any statistics.
    """
    name = 'ExcessChemicalPotential'

    def flux(self, delta, eta_k, eta_l, stats):
        gk, _ = stats.excess(eta_k)
        gl, _ = stats.excess(eta_l)
        Q = delta - (gl - gk)
        bp, _ = bernoulli(Q)
        bm, _ = bernoulli(-Q)
        return bp * stats.F(eta_k) - bm * stats.F(eta_l)

    def derivatives(self, delta, eta_k, eta_l, stats):
        gk, dgk = stats.excess(eta_k)
        gl, dgl = stats.excess(eta_l)
        Q = delta - (gl - gk)
        bp, dbp = bernoulli(Q)
        bm, dbm = bernoulli(-Q)
        Fk, Fl = stats.F(eta_k), stats.F(eta_l)
        A = dbp * Fk + dbm * Fl
        return A, A * dgk + bp * stats.dF(eta_k), -A * dgl - bm * stats.dF(eta_l)


class DiffusionEnhanced(FluxScheme):
    """
    Diffusion enhanced scheme: the field parameter is divided by the averaged
    diffusion enhancement (eta_l - eta_k) / (log F_l - log F_k), which also
    multiplies the flux.
    """
    name = 'DiffusionEnhanced'

    def flux(self, delta, eta_k, eta_l, stats):
        gk, dgk = stats.excess(eta_k)
        gl, dgl = stats.excess(eta_l)
        deta = eta_l - eta_k
        dlog = deta + gl - gk
        close = np.abs(deta) < 1e-10
        enhancement = np.where(close, 1. / (1 + (dgk + dgl) / 2),
                               deta / np.where(close, 1., dlog))
        bp, _ = bernoulli(delta / enhancement)
        bm, _ = bernoulli(-delta / enhancement)
        return enhancement * (bp * stats.F(eta_k) - bm * stats.F(eta_l))


available = {cls.name: cls for cls in
             [ScharfetterGummel, ExcessChemicalPotential, DiffusionEnhanced]}


def get_scheme(name):
    """
    Return an instance of the flux scheme called `name`. Instances are passed
    through unchanged.
    """
    if isinstance(name, FluxScheme):
        return name
    try:
        return available[name]()
    except KeyError:
        raise ConfigurationError("Unknown flux scheme '{0}', expected one of {1}."\
                                 .format(name, ', '.join(sorted(available))))
