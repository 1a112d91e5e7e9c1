import numpy as np
import pytest
import scipy.constants as cts

import chargetransport as ct


def pin_diode(nodes=6, scheme='ScharfetterGummel', surface=False):
    """
    GaAs p-i-n diode of 6 um with p, intrinsic and n layers of 2 um each. The
    anode (p side) is the boundary region 1, the cathode the boundary region 2.
    """
    L = 2e-6
    x = np.concatenate((np.linspace(0, L, nodes),
                        np.linspace(L, 2*L, nodes)[1:],
                        np.linspace(2*L, 3*L, nodes)[1:]))
    mesh = ct.Mesh(x)
    mesh.cellmask(1, 0, L)
    mesh.cellmask(2, L, 2*L)
    mesh.cellmask(3, 2*L, 3*L)
    mesh.bfacemask(3, L)
    mesh.bfacemask(4, 2*L)

    sys = ct.Builder(mesh, scheme=scheme)
    sys.add_species('n', -1)
    sys.add_species('p', 1)

    Nc = 4.351959895879690e23
    Nv = 9.139615903601645e24
    Eg = 1.424
    vt = cts.k * 300 / cts.e
    ni = np.sqrt(Nc * Nv) * np.exp(-Eg / (2 * vt))
    dopings = {1: (0., 0.46 * Nv), 2: (ni, 0.), 3: (Nc, 0.)}
    for region, (Nd, Na) in dopings.items():
        sys.add_region(region, {
            'epsilon': 12.9, 'radiative': 1e-16,
            'n': {'dos': Nc, 'band_edge': Eg, 'mobility': 0.85, 'doping': Nd,
                  'lifetime': 1e-9, 'trap_density': 1e16, 'auger': 1e-41},
            'p': {'dos': Nv, 'band_edge': 0., 'mobility': 0.04, 'doping': Na,
                  'lifetime': 1e-9, 'trap_density': 1e16, 'auger': 1e-41}})

    sys.add_boundary(1, 'ohmic')
    sys.add_boundary(2, 'ohmic')
    if surface:
        for b in (3, 4):
            sys.add_boundary(b, 'surface_recombination',
                             {'n': {'velocity': 1e3, 'trap_density': 1e10},
                              'p': {'velocity': 1e3, 'trap_density': 1e10}})
    return sys


def perovskite_cell(nodes=7, rate=1e20):
    """
    Perovskite solar cell: electron transport layer (region 1), perovskite
    with mobile anions (region 2), hole transport layer (region 3). The anions
    exchange with an interface species located at the junction between the
    first two layers (boundary region 3).
    """
    x = np.concatenate((np.linspace(0, 0.2e-6, nodes),
                        np.linspace(0.2e-6, 0.6e-6, 2*nodes)[1:],
                        np.linspace(0.6e-6, 0.8e-6, nodes)[1:]))
    mesh = ct.Mesh(x)
    mesh.cellmask(1, 0, 0.2e-6)
    mesh.cellmask(2, 0.2e-6, 0.6e-6)
    mesh.cellmask(3, 0.6e-6, 0.8e-6)
    mesh.bfacemask(3, 0.2e-6)

    sys = ct.Builder(mesh, scheme='ExcessChemicalPotential')
    sys.add_species('n', -1)
    sys.add_species('p', 1)
    sys.add_species('a', -1, statistics='FermiDiracMinusOne')

    N, Nd, Na, C0 = 1e26, 3e23, 3e23, 1e23
    def layer(doping_n, doping_p):
        return {'epsilon': 20., 'radiative': 1e-16,
                'n': {'dos': N, 'band_edge': 1.6, 'mobility': 2e-3,
                      'doping': doping_n, 'lifetime': 1e-9},
                'p': {'dos': N, 'band_edge': 0., 'mobility': 2e-3,
                      'doping': doping_p, 'lifetime': 1e-9}}

    perovskite = layer(0., 0.)
    perovskite['a'] = {'dos': 2*C0, 'band_edge': 0.8, 'mobility': 1e-9, 'doping': C0}
    sys.add_region(1, layer(Nd, 0.))
    sys.add_region(2, perovskite)
    sys.add_region(3, layer(0., Na))

    sys.add_boundary(1, 'ohmic')
    sys.add_boundary(2, 'ohmic')
    sys.add_boundary(3, 'ionic_interface',
                     {'species': 'a', 'dos': 1e15, 'band_edge': 0.8, 'doping': 5e14,
                      'statistics': 'FermiDiracMinusOne', 'rate': rate})
    return sys


def heterojunction():
    """
    Heterojunction of two 0.5 um layers with a Schottky contact on the left.
    The electrons are discontinuous at the junction (boundary region 3) and
    cross it through an exchange reaction.
    """
    x = np.linspace(0, 1e-6, 11)
    mesh = ct.Mesh(x)
    mesh.cellmask(1, 0, 0.5e-6)
    mesh.cellmask(2, 0.5e-6, 1e-6)
    mesh.bfacemask(3, 0.5e-6)

    sys = ct.Builder(mesh, scheme='DiffusionEnhanced')
    sys.add_species('n', -1, statistics='FermiDiracOneHalf', continuous=False)
    sys.add_species('p', 1, statistics='Blakemore')
    for region, Ec, Nd, Na in ((1, 1.4, 1e22, 0.), (2, 1.2, 0., 1e22)):
        sys.add_region(region, {
            'epsilon': 10., 'radiative': 1e-16,
            'n': {'dos': 1e24, 'band_edge': Ec, 'mobility': 0.1, 'doping': Nd, 'lifetime': 1e-8},
            'p': {'dos': 1e25, 'band_edge': 0., 'mobility': 0.01, 'doping': Na, 'lifetime': 1e-8}})
    sys.add_boundary(1, 'schottky', {'barrier': 0.6, 'n': {'velocity': 1e5},
                                     'p': {'velocity': 1e5}}, voltage=0.2)
    sys.add_boundary(2, 'ohmic', voltage=-0.1)
    sys.add_boundary(3, 'surface_recombination', {'n': {'velocity': 10., 'transfer': 1e30},
                                                  'p': {'velocity': 10.}})
    sys.finalize()
    return sys


@pytest.fixture
def make_diode():
    return pin_diode


@pytest.fixture
def make_cell():
    return perovskite_cell


@pytest.fixture
def control():
    return ct.NewtonControl(verbose=False)


@pytest.fixture
def make_heterojunction():
    return heterojunction
