# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np


def get_density(sys, a, phi, v, cells):
    """
    Compute the density of a carrier with the parameters of the given edges.

    Parameters
    ----------
    sys: Builder
        The discretized system.
    a: integer
        Index of the carrier.
    phi: numpy array of floats
        Values of the electrochemical potential of the carrier.
    v: numpy array of floats
        Values of the electrostatic potential.
    cells: numpy array of integers
        Edges whose parameters are used.

    Returns
    -------
    n: numpy array
        Density.
    dn: numpy array
        Derivative of the density with respect to the electrochemical
        potential. The derivative with respect to the electrostatic potential is
        its opposite.
    """
    c = sys.species[a]
    z = c.charge
    eta = z * (phi - v) + z * sys.E[a, cells]
    N = sys.N[a, cells]
    return N * c.statistics.F(eta), z * N * c.statistics.dF(eta)


def get_flux(sys, a, x, cells):
    """
    Compute the particle flux of a carrier along the given edges, from the
    left to the right node.

    Returns
    -------
    flux: numpy array
    derivs: tuple of numpy arrays
        Derivatives of the flux with respect to the electrostatic potential on
        the left and right nodes, and to the electrochemical potential on the
        left and right nodes.
    """
    c = sys.species[a]
    z = c.charge
    vk = x[sys.idx_v[cells]]
    vl = x[sys.idx_v[cells+1]]
    phik = x[sys.idx_left[a, cells]]
    phil = x[sys.idx_right[a, cells]]
    E = sys.E[a, cells]

    delta = z * (vl - vk)
    eta_k = z * (phik - vk) + z * E
    eta_l = z * (phil - vl) + z * E
    g, gd, gk, gl = sys.scheme(delta, eta_k, eta_l, c.statistics)

    pref = sys.mu[a, cells] * sys.N[a, cells] / sys.h[cells]
    flux = pref * g
    dvk = -z * pref * (gd + gk)
    dvl = z * pref * (gd - gl)
    dphik = z * pref * gk
    dphil = z * pref * gl
    return flux, (dvk, dvl, dphik, dphil)


def get_bulk_rr(sys, cells, n, p, efn, efp):
    # Net recombination for SRH, radiative and Auger mechanisms. The factor
    # 1 - exp(efn - efp) replaces np - ni^2 so that the rate vanishes at
    # equilibrium for any statistics.
    w = np.exp(efn - efp)
    _np = n * p
    D = sys.tau_p[cells] * (n + sys.n1[cells]) + sys.tau_n[cells] * (p + sys.p1[cells])
    srh = sys.srh[cells].astype(float)
    D = np.where(srh, D, 1.)
    K = srh / D + sys.B[cells] + sys.Cn[cells] * n + sys.Cp[cells] * p
    return _np * (1 - w) * K


def get_bulk_rr_derivs(sys, cells, n, p, efn, efp):
    # derivatives with respect to n, p (at fixed potentials), efn and efp
    w = np.exp(efn - efp)
    _np = n * p
    eq = 1 - w
    D = sys.tau_p[cells] * (n + sys.n1[cells]) + sys.tau_n[cells] * (p + sys.p1[cells])
    srh = sys.srh[cells].astype(float)
    D = np.where(srh, D, 1.)
    K = srh / D + sys.B[cells] + sys.Cn[cells] * n + sys.Cp[cells] * p

    drr_dn = p * eq * K + _np * eq * (-srh * sys.tau_p[cells] / D**2 + sys.Cn[cells])
    drr_dp = n * eq * K + _np * eq * (-srh * sys.tau_n[cells] / D**2 + sys.Cp[cells])
    drr_defn = -_np * w * K
    drr_defp = _np * w * K
    return drr_dn, drr_dp, drr_defn, drr_defp


def get_surface_rr(vn, vp, n1, p1, n, p, efn, efp):
    """
    Surface recombination rate with the SRH form where the lifetimes are
    replaced by the inverse of the surface recombination velocities.

    Returns
    -------
    r: float
    derivs: tuple of floats
        Derivatives with respect to n, p, efn and efp.
    """
    w = np.exp(efn - efp)
    _np = n * p
    S = vn * vp
    Dv = vn * (n + n1) + vp * (p + p1)
    r = S * _np * (1 - w) / Dv
    drr_dn = S * p * (1 - w) / Dv - S * _np * (1 - w) * vn / Dv**2
    drr_dp = S * n * (1 - w) / Dv - S * _np * (1 - w) * vp / Dv**2
    return r, (drr_dn, drr_dp, -S * _np * w / Dv, S * _np * w / Dv)


def get_exchange(rate, z, phia, phib):
    """
    Butler-Volmer exchange rate from state a to state b of a carrier with
    charge number z.

    Returns
    -------
    r: float
    derivs: tuple of floats
        Derivatives with respect to phia and phib.
    """
    arg = z * (phia - phib) / 2.
    r = rate * 2 * np.sinh(arg)
    d = rate * z * np.cosh(arg)
    return r, (d, -d)
