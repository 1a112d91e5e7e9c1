import chargetransport as ct
import numpy as np

def system(rate=1e20):
    # Layers: electron transport layer, perovskite, hole transport layer [m]
    etl, pvk, htl = 0.1e-6, 0.4e-6, 0.1e-6

    # Mesh
    x = np.concatenate((np.linspace(0, etl, 20),
                        np.linspace(etl, etl + pvk, 60)[1:],
                        np.linspace(etl + pvk, etl + pvk + htl, 20)[1:]))
    mesh = ct.Mesh(x)
    mesh.cellmask(1, 0, etl)
    mesh.cellmask(2, etl, etl + pvk)
    mesh.cellmask(3, etl + pvk, etl + pvk + htl)
    mesh.bfacemask(3, etl)

    # Electrons and holes in all layers, anion vacancies in the perovskite only
    sys = ct.Builder(mesh, scheme='ExcessChemicalPotential')
    sys.add_species('n', -1)
    sys.add_species('p', 1)
    sys.add_species('a', -1, statistics='FermiDiracMinusOne')

    def layer(Nd, Na):
        return {'epsilon': 20., 'radiative': 1e-16,
                'n': {'dos': 1e26, 'band_edge': 1.6, 'mobility': 2e-3,
                      'doping': Nd, 'lifetime': 1e-9},
                'p': {'dos': 1e26, 'band_edge': 0., 'mobility': 2e-3,
                      'doping': Na, 'lifetime': 1e-9}}

    C0 = 1e23 # average vacancy density [m^-3]
    perovskite = layer(0., 0.)
    perovskite['a'] = {'dos': 2*C0, 'band_edge': 0.8, 'mobility': 1e-12, 'doping': C0}
    sys.add_region(1, layer(3e23, 0.))
    sys.add_region(2, perovskite)
    sys.add_region(3, layer(0., 3e23))

    sys.add_boundary(1, 'ohmic')
    sys.add_boundary(2, 'ohmic')

    # Vacancies trapped at the ETL/perovskite interface
    sys.add_boundary(3, 'ionic_interface',
                     {'species': 'a', 'dos': 1e15, 'band_edge': 0.8, 'doping': 5e14,
                      'statistics': 'FermiDiracMinusOne', 'rate': rate})
    return sys


if __name__ == '__main__':
    sys = system()
    solver = ct.Solver()
    solution = solver.equilibrium_solve(sys)

    # Switch on the interface reaction while ramping the voltage
    n = 41
    rate = 1. # scan rate [V/s]
    pre = solver.scan(sys, solution, 2, 0., 1.2, rate, n,
                      ramp={'reaction': ct.logspace_schedule(n)})

    # Reverse then forward scan
    reverse = solver.scan(sys, pre['x'], 2, 1.2, 0., rate, n)
    forward = solver.scan(sys, reverse['x'], 2, 0., 1.2, rate, n)

    for name, res in (('reverse', reverse), ('forward', forward)):
        j = np.asarray(res['currents']) * sys.scaling.current
        np.savetxt('scan_{0}.txt'.format(name), (res['times'], res['voltages'], j))
        ct.save_sim(sys, res, 'scan_{0}.gzip'.format(name))
