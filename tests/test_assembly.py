import numpy as np
import pytest
from scipy.sparse import csr_matrix

import chargetransport as ct
from chargetransport.getFandJ import getFandJ
from chargetransport.observables import get_bulk_rr, get_bulk_rr_derivs, get_density


def initial_state(sys, seed=0):
    rs = np.random.RandomState(seed)
    contacts = sorted(sys.contacts)
    vl = sys.neutral_potential(contacts[0], sys.boundaries[contacts[0]]['voltage'])
    vr = sys.neutral_potential(contacts[-1], sys.boundaries[contacts[-1]]['voltage'])
    x = rs.uniform(-0.3, 0.3, sys.nunknowns)
    x[sys.idx_v] = np.linspace(vl, vr, sys.nx) + rs.uniform(-0.3, 0.3, sys.nx)
    return x


def check_jacobian(sys, x, **kwargs):
    bias = sys.contact_voltages
    embedding = kwargs.pop('embedding', ct.Embedding())
    f, rows, columns, data = getFandJ(sys, x, bias, embedding, **kwargs)
    n = sys.nunknowns
    J = csr_matrix((data, (rows, columns)), shape=(n, n)).toarray()

    Jfd = np.zeros((n, n))
    for i in range(n):
        h = 1e-6 * (1 + abs(x[i]))
        xp, xm = x.copy(), x.copy()
        xp[i] += h
        xm[i] -= h
        fp = getFandJ(sys, xp, bias, embedding, **kwargs)[0]
        fm = getFandJ(sys, xm, bias, embedding, **kwargs)[0]
        Jfd[:, i] = (fp - fm) / (2*h)

    assert np.all(np.isfinite(f))
    assert np.allclose(J, Jfd, rtol=1e-4, atol=1e-6 * np.max(np.abs(J)))


def test_jacobian_pin_diode(make_diode):
    sys = make_diode(nodes=4, surface=True)
    sys.finalize()
    sys.set_voltage(1, 0.3)
    check_jacobian(sys, initial_state(sys))


def test_jacobian_heterojunction(make_heterojunction):
    sys = make_heterojunction()
    assert sys.nunknowns == 3 * sys.nx + 1
    check_jacobian(sys, initial_state(sys, seed=1))


def test_jacobian_ionic_transient(make_cell):
    sys = make_cell(nodes=4)
    sys.finalize()
    x = initial_state(sys, seed=2)
    x_old = x + np.random.RandomState(5).uniform(-0.1, 0.1, sys.nunknowns)
    embedding = ct.Embedding(space_charge=0.5, reaction=0.1)
    check_jacobian(sys, x, embedding=embedding, x_old=x_old, tstep=1e3)


def test_jacobian_equilibrium(make_cell):
    sys = make_cell(nodes=4)
    sys.finalize()
    check_jacobian(sys, initial_state(sys, seed=3), equilibrium=True)


def test_pinned_rows(make_cell):
    sys = make_cell(nodes=4)
    sys.finalize()
    x = initial_state(sys)
    f, _, _, _ = getFandJ(sys, x, {}, ct.Embedding(), equilibrium=True)
    ia = sys.species_index('a')
    # anions do not exist in the transport layers
    inactive = np.where(~sys.active)[0]
    assert len(inactive) > 0
    assert np.all(sys.unknown_species[inactive] == ia)
    assert np.allclose(f[inactive], x[inactive])
    iface = sys.interfaces[0]['index']
    assert f[iface] == x[iface]


def test_transient_needs_previous_solution(make_diode):
    sys = make_diode(nodes=4)
    sys.finalize()
    with pytest.raises(ValueError):
        getFandJ(sys, np.zeros(sys.nunknowns), {}, ct.Embedding(), tstep=1.)


def test_recombination_vanishes_at_equilibrium(make_diode):
    sys = make_diode(nodes=4)
    sys.finalize()
    cells = np.arange(sys.ncells)
    v = np.linspace(-5, 60, sys.ncells)
    for phi in (-2., 0., 3.):
        efn = np.full(sys.ncells, phi)
        n, _ = get_density(sys, sys.ie, efn, v, cells)
        p, _ = get_density(sys, sys.ih, efn, v, cells)
        assert np.all(get_bulk_rr(sys, cells, n, p, efn, efn) == 0)
        # forward bias recombines, reverse bias generates
        assert np.all(get_bulk_rr(sys, cells, n, p, efn, efn + 1) > 0)
        assert np.all(get_bulk_rr(sys, cells, n, p, efn + 1, efn) < 0)


def test_configuration_errors(make_diode):
    sys = make_diode(nodes=4)
    sys.add_region(4, {'epsilon': 1.})
    with pytest.raises(ct.ConfigurationError):
        sys.finalize()

    sys = make_diode(nodes=4)
    sys.add_region(1, {'epsilon': 1., 'n': {'dos': 1e24}})
    with pytest.raises(ct.ConfigurationError):
        sys.finalize()

    sys = make_diode(nodes=4)
    sys.add_boundary(3, 'ohmic')
    with pytest.raises(ct.ConfigurationError):
        sys.finalize()

    sys = make_diode(nodes=4)
    with pytest.raises(ct.ConfigurationError):
        sys.add_boundary(1, 'floating')


def test_bulk_rate_derivatives(make_diode):
    sys = make_diode(nodes=4)
    sys.finalize()
    cells = np.arange(sys.ncells)
    rs = np.random.RandomState(4)
    n, p = rs.uniform(0.1, 2, sys.ncells), rs.uniform(0.1, 2, sys.ncells)
    efn, efp = rs.uniform(-1, 1, sys.ncells), rs.uniform(-1, 1, sys.ncells)
    derivs = get_bulk_rr_derivs(sys, cells, n, p, efn, efp)

    h = 1e-7
    args = [n, p, efn, efp]
    for i, d in enumerate(derivs):
        up, down = list(args), list(args)
        up[i], down[i] = args[i] + h, args[i] - h
        fd = (get_bulk_rr(sys, cells, *up) - get_bulk_rr(sys, cells, *down)) / (2*h)
        assert np.allclose(d, fd, rtol=1e-5, atol=1e-12 * np.max(np.abs(fd)))


def test_equilibrium_pins_all_carriers(make_heterojunction):
    sys = make_heterojunction()
    x = initial_state(sys, seed=6)
    f, _, _, _ = getFandJ(sys, x, {1: 0., 2: 0.}, ct.Embedding(), equilibrium=True)
    carriers = np.where(sys.unknown_species >= 0)[0]
    # both sides of the junction, and the carriers at the Schottky contact
    assert len(sys.right_index) == 1
    assert list(sys.right_index.values())[0] in carriers
    assert np.array_equal(f[carriers], x[carriers])


def test_recombination_where_configured(make_diode):
    sys = make_diode()
    # no recombination mechanism in the intrinsic layer
    mat = sys.materials[2]
    mat['radiative'] = 0.
    for name in ('n', 'p'):
        mat[name] = {k: v for k, v in mat[name].items() if k not in ('lifetime', 'auger')}
    sys.finalize()
    region2 = sys.mesh.cell_region == 2
    assert not np.any(sys.recombination[region2])
    assert np.all(sys.recombination[~region2])

    x = initial_state(sys, seed=7)
    r = ct.Analyzer(sys, x).recombination()
    # node k takes the parameters of the edge k-1
    assert np.all(r[1:][region2] == 0)
    assert np.any(r[1:][~region2] != 0)
    check_jacobian(sys, x)
