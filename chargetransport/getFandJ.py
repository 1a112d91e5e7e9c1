# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import numpy as np

from .observables import get_density, get_flux, get_bulk_rr, get_bulk_rr_derivs,\
                         get_surface_rr, get_exchange


def getFandJ(sys, x, bias, embedding, x_old=None, tstep=np.inf, equilibrium=False,
             contacts=True):
    """
    Compute the residual and the Jacobian of the discretized van Roosbroeck
    system.

    Parameters
    ----------
    sys: Builder
        The discretized system (finalized).
    x: numpy array of floats
        Dimensionless solution vector.
    bias: dictionary
        Applied voltage [V] of each contact. Contacts absent from the
        dictionary use the voltage configured on the system.
    embedding: Embedding
        Continuation parameters.
    x_old: numpy array of floats
        Solution at the previous time step, required for finite time steps.
    tstep: float
        Dimensionless time step, infinite for stationary problems.
    equilibrium: boolean
        Pin all the electrochemical potentials, of the carriers on both sides
        of inner interfaces and of the interface species, to zero.
    contacts: boolean
        Set to False to leave out the contact boundary conditions, as required
        for the computation of terminal currents.

    Returns
    -------
    f: numpy array of floats
        Residual.
    rows, columns, data: numpy arrays
        Coordinates of the entries of the Jacobian. Duplicated coordinates
        must be summed.
    """
    transient = np.isfinite(tstep)
    if transient and x_old is None:
        raise ValueError("The previous solution is required for a finite time step.")

    f = np.zeros(sys.nunknowns)
    rows, columns, data = [], [], []

    def jac(r, c, d):
        r, c, d = np.broadcast_arrays(np.atleast_1d(r), np.atleast_1d(c),
                                      np.atleast_1d(np.asarray(d, dtype=float)))
        rows.append(r)
        columns.append(c)
        data.append(d)

    lam = embedding.space_charge
    cells = np.arange(sys.ncells)
    vol = sys.h / 2.

    ###########################################################################
    #                     Poisson equation: electric flux                     #
    ###########################################################################
    ik, il = sys.idx_v[:-1], sys.idx_v[1:]
    a = sys.eps / sys.h
    D = a * (x[ik] - x[il])
    np.add.at(f, ik, D)
    np.add.at(f, il, -D)
    jac(ik, ik, a)
    jac(ik, il, -a)
    jac(il, ik, -a)
    jac(il, il, a)

    ###########################################################################
    #          continuity equations: fluxes, storage and space charge         #
    ###########################################################################
    for s, c in enumerate(sys.species):
        cs = cells[sys.enabled[s]]
        if cs.size == 0:
            continue
        z = c.charge
        ik, il = sys.idx_left[s, cs], sys.idx_right[s, cs]
        ivk, ivl = sys.idx_v[cs], sys.idx_v[cs+1]

        flux, (dvk, dvl, dphik, dphil) = get_flux(sys, s, x, cs)
        np.add.at(f, ik, flux)
        np.add.at(f, il, -flux)
        for col, d in ((ivk, dvk), (ivl, dvl), (ik, dphik), (il, dphil)):
            jac(ik, col, d)
            jac(il, col, -d)

        for idx, iv in ((ik, ivk), (il, ivl)):
            n, dn = get_density(sys, s, x[idx], x[iv], cs)
            w = lam * vol[cs] * z
            np.add.at(f, iv, -w * (n - sys.C[s, cs]))
            jac(iv, idx, -w * dn)
            jac(iv, iv, w * dn)

            if transient:
                n_old, _ = get_density(sys, s, x_old[idx], x_old[iv], cs)
                w = vol[cs] / tstep
                np.add.at(f, idx, w * (n - n_old))
                jac(idx, idx, w * dn)
                jac(idx, iv, -w * dn)

    ###########################################################################
    #                     bulk recombination and generation                   #
    ###########################################################################
    ie, ih = sys.ie, sys.ih
    if ie is not None and ih is not None:
        cs = cells[sys.enabled[ie] & sys.enabled[ih]]
        for end in (0, 1):
            if end == 0:
                i_n, i_p, iv, nodes = sys.idx_left[ie, cs], sys.idx_left[ih, cs], sys.idx_v[cs], cs
            else:
                i_n, i_p, iv, nodes = sys.idx_right[ie, cs], sys.idx_right[ih, cs], sys.idx_v[cs+1], cs+1
            efn, efp = x[i_n], x[i_p]
            n, dn = get_density(sys, ie, efn, x[iv], cs)
            p, dp = get_density(sys, ih, efp, x[iv], cs)
            # no recombination where no mechanism is configured
            rec = sys.recombination[cs]
            r = np.where(rec, get_bulk_rr(sys, cs, n, p, efn, efp), 0.)
            drr_dn, drr_dp, drr_defn, drr_defp = [np.where(rec, d, 0.) for d in
                                                  get_bulk_rr_derivs(sys, cs, n, p, efn, efp)]

            w = vol[cs]
            src = w * (r - embedding.generation * sys.g[nodes])
            np.add.at(f, i_n, src)
            np.add.at(f, i_p, src)
            for row in (i_n, i_p):
                jac(row, i_n, w * (drr_dn * dn + drr_defn))
                jac(row, i_p, w * (drr_dp * dp + drr_defp))
                jac(row, iv, -w * (drr_dn * dn + drr_dp * dp))

    ###########################################################################
    #                        surface recombination                            #
    ###########################################################################
    for b, srf in sys.surface.items():
        vn, vp = srf['velocity']
        if vn * vp == 0:
            continue
        i_n, i_p = srf['index']
        iv = sys.idx_v[srf['node']]
        (Nn, Np), (En, Ep) = srf['N'], srf['E']
        cn, cp = sys.species[ie], sys.species[ih]
        eta_n = cn.charge * (x[i_n] - x[iv] + En)
        eta_p = cp.charge * (x[i_p] - x[iv] + Ep)
        n, dn = Nn * cn.statistics.F(eta_n), cn.charge * Nn * cn.statistics.dF(eta_n)
        p, dp = Np * cp.statistics.F(eta_p), cp.charge * Np * cp.statistics.dF(eta_p)
        n1, p1 = srf['trap']
        r, (drr_dn, drr_dp, drr_defn, drr_defp) = get_surface_rr(vn, vp, n1, p1, n, p,
                                                                  x[i_n], x[i_p])
        f[i_n] += r
        f[i_p] += r
        for row in (i_n, i_p):
            jac(row, i_n, drr_dn * dn + drr_defn)
            jac(row, i_p, drr_dp * dp + drr_defp)
            jac(row, iv, -drr_dn * dn - drr_dp * dp)

    ###########################################################################
    #             exchange across interfaces of discontinuous carriers        #
    ###########################################################################
    for tr in sys.transfers:
        ia, ib = tr['index']
        r, (da, db) = get_exchange(tr['rate'], tr['charge'], x[ia], x[ib])
        f[ia] += r
        f[ib] -= r
        jac(ia, [ia, ib], [da, db])
        jac(ib, [ia, ib], [-da, -db])

    ###########################################################################
    #                             ionic interfaces                            #
    ###########################################################################
    pins = {}
    for iface in sys.interfaces:
        i, ia = iface['index'], iface['partner']
        iv = sys.idx_v[iface['node']]
        z, stats = iface['charge'], iface['statistics']
        eta = z * (x[i] - x[iv] + iface['E'])
        ns, dns = iface['N'] * stats.F(eta), z * iface['N'] * stats.dF(eta)

        f[iv] -= lam * z * (ns - iface['C'])
        jac(iv, [i, iv], [-lam * z * dns, lam * z * dns])

        if equilibrium:
            pins[i] = 0.
            continue
        r, (da, di) = get_exchange(embedding.reaction * iface['rate'], z, x[ia], x[i])
        f[ia] += r
        f[i] -= r
        jac(ia, [ia, i], [da, di])
        jac(i, [ia, i], [-da, -di])
        if transient:
            eta_old = z * (x_old[i] - x_old[iv] + iface['E'])
            ns_old = iface['N'] * stats.F(eta_old)
            f[i] += (ns - ns_old) / tstep
            jac(i, [i, iv], [dns / tstep, -dns / tstep])

    ###########################################################################
    #                                contacts                                 #
    ###########################################################################
    if contacts:
        for b, cnt in sys.contacts.items():
            U = bias.get(b, sys.boundaries[b]['voltage'])
            k = cnt['node']
            iv = sys.idx_v[k]
            vc = sys.neutral_potential(b, U)
            pins[iv] = vc
            if cnt['kind'] == 'ohmic':
                for idx in cnt['index']:
                    pins[idx] = U / sys.scaling.energy
                continue
            # Schottky: outflow towards the equilibrium density of the contact
            for j, s in enumerate(cnt['species']):
                v = cnt['velocity'][j]
                if v == 0:
                    continue
                c = sys.species[s]
                idx = cnt['index'][j]
                N, E = cnt['N'][j], cnt['E'][j]
                eta = c.charge * (x[idx] - x[iv] + E)
                n, dn = N * c.statistics.F(eta), c.charge * N * c.statistics.dF(eta)
                n_eq = N * c.statistics.F(c.charge * (U / sys.scaling.energy - vc + E))
                f[idx] += v * (n - n_eq)
                jac(idx, [idx, iv], [v * dn, -v * dn])

    if equilibrium:
        # a single Fermi level: only the Poisson equation is left
        for s in range(sys.nspecies):
            for idx in np.unique(np.concatenate((sys.idx_left[s, sys.enabled[s]],
                                                 sys.idx_right[s, sys.enabled[s]]))):
                pins[idx] = 0.

    # unknowns of carriers absent from all the adjacent edges
    for idx in np.where(~sys.active)[0]:
        pins[idx] = 0.

    rows = np.concatenate(rows)
    columns = np.concatenate(columns)
    data = np.concatenate(data)

    if pins:
        pinned = np.array(sorted(pins))
        values = np.array([pins[i] for i in pinned])
        keep = ~np.isin(rows, pinned)
        rows = np.concatenate((rows[keep], pinned))
        columns = np.concatenate((columns[keep], pinned))
        data = np.concatenate((data[keep], np.ones(len(pinned))))
        f[pinned] = x[pinned] - values

    return f, rows, columns, data
