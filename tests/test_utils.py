import numpy as np
import pytest
import scipy.io

import chargetransport as ct
from chargetransport.utils import check_equal_sim_settings


def test_save_load(make_diode, control, tmp_path):
    sys = make_diode()
    x = ct.Solver().equilibrium_solve(sys, control=control)
    filename = str(tmp_path / 'diode.gzip')
    ct.save_sim(sys, x, filename)

    sys2, x2 = ct.load_sim(filename)
    assert np.array_equal(x, x2)
    assert check_equal_sim_settings(sys, sys2)

    # restarting from the saved state of the same device
    sys3, _ = ct.load_sim(filename, reference=make_diode())
    assert sys3.nunknowns == sys.nunknowns

    other = make_diode(nodes=4)
    assert not check_equal_sim_settings(sys, other)
    with pytest.raises(ct.ConfigurationError):
        ct.load_sim(filename, reference=other)

    doped = make_diode()
    doped.materials[2]['n']['doping'] = 1e20
    assert not check_equal_sim_settings(sys, doped)


def test_save_mat(make_cell, control, tmp_path):
    sys = make_cell()
    solver = ct.Solver()
    x = solver.equilibrium_solve(sys, control=control)
    result = solver.scan(sys, x, 2, 0., 0.2, 1e4, 3, control=control)
    filename = str(tmp_path / 'cell.mat')
    ct.save_sim(sys, result, filename, fmt='mat')

    data = scipy.io.loadmat(filename, squeeze_me=True)
    results = data['results']
    assert np.allclose(results['v'].item(), sys.unpack(result['x'])['v'])
    assert np.allclose(results['voltages'].item(), result['voltages'])
    assert np.isclose(results['interfaces'].item(), result['x'][sys.interfaces[0]['index']])
    assert np.allclose(data['sys']['xpts'].item(), sys.xpts)
