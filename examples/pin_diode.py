import chargetransport as ct
import numpy as np
import scipy.constants as cts

L = 2e-6 # thickness of each layer [m]

# Mesh with the same number of nodes in the p, i and n layers
x = np.concatenate((np.linspace(0, L, 50),
                    np.linspace(L, 2*L, 50)[1:],
                    np.linspace(2*L, 3*L, 50)[1:]))
mesh = ct.Mesh(x)
mesh.cellmask(1, 0, L)
mesh.cellmask(2, L, 2*L)
mesh.cellmask(3, 2*L, 3*L)

# Create a system with electrons and holes
sys = ct.Builder(mesh)
sys.add_species('n', -1)
sys.add_species('p', 1)

# GaAs parameters
Nc, Nv, Eg = 4.35e23, 9.14e24, 1.424 # [m^-3], [m^-3], [eV]
vt = cts.k * 300 / cts.e
ni = np.sqrt(Nc * Nv) * np.exp(-Eg / (2 * vt))

def GaAs(Nd, Na):
    return {'epsilon': 12.9, 'radiative': 1e-16,
            'n': {'dos': Nc, 'band_edge': Eg, 'mobility': 0.85, 'doping': Nd,
                  'lifetime': 1e-9, 'trap_density': 1e16, 'auger': 1e-41},
            'p': {'dos': Nv, 'band_edge': 0., 'mobility': 0.04, 'doping': Na,
                  'lifetime': 1e-9, 'trap_density': 1e16, 'auger': 1e-41}}

sys.add_region(1, GaAs(0., 0.46 * Nv))
sys.add_region(2, GaAs(ni, 0.))
sys.add_region(3, GaAs(Nc, 0.))

# Ohmic contacts, the anode is the boundary region 1
sys.add_boundary(1, 'ohmic')
sys.add_boundary(2, 'ohmic')

# First find the equilibrium solution
solver = ct.Solver()
solution = solver.equilibrium_solve(sys)

# IV curve measured at the anode
voltages = np.linspace(0, 1.5, 32)
result = solver.IVcurve(sys, voltages, 1, x=solution)
if result['failed'] is not None:
    print("IV curve stopped at {0} V".format(voltages[result['failed']]))

j = np.asarray(result['currents']) * sys.scaling.current # [A/m^2]
np.savetxt('pin_jv.txt', (result['voltages'], j))
ct.save_sim(sys, result, 'pin_jv.mat', fmt='mat')

# Densities at the last voltage
az = ct.Analyzer(sys, result['x'])
n = az.electron_density() * sys.scaling.density
p = az.hole_density() * sys.scaling.density
print("norm of the solution: {0:.6f}".format(np.linalg.norm(result['x'])))
print("electron density at the anode: {0:.3e} m^-3".format(n[0]))
