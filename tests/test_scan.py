import numpy as np
import pytest

import chargetransport as ct


def test_ionic_scan_hysteresis(make_cell, control):
    sys = make_cell()
    solver = ct.Solver()
    x = solver.equilibrium_solve(sys, control=control)
    iface = sys.interfaces[0]['index']
    assert x[iface] == 0

    n = 11
    rate = 1e4 # [V/s]
    # pre-conditioning scan that switches on the interface reaction
    pre = solver.scan(sys, x, 2, 0., 1., rate, n,
                      ramp={'reaction': ct.logspace_schedule(n)}, control=control)
    assert pre['failed'] is None
    assert pre['x'][iface] != 0

    reverse = solver.scan(sys, pre['x'], 2, 1., 0., rate, n, control=control)
    forward = solver.scan(sys, reverse['x'], 2, 0., 1., rate, n, control=control)
    for res in (reverse, forward):
        assert res['failed'] is None
        assert len(res['currents']) == n - 1
        assert np.all(np.isfinite(res['currents']))
        assert np.allclose(res['times'], np.linspace(0, 1 / rate, n)[1:])
    assert np.allclose(reverse['voltages'], np.linspace(1, 0, n)[1:])
    assert np.allclose(forward['voltages'], np.linspace(0, 1, n)[1:])

    # forward and reverse scans give distinct curves
    v = np.linspace(0.2, 0.8, 7)
    jr = np.interp(v, reverse['voltages'][::-1], reverse['currents'][::-1])
    jf = np.interp(v, forward['voltages'], forward['currents'])
    assert np.max(np.abs(jf - jr)) > 0.1 * np.max(np.abs(jf))


def test_scan_ramp_length(make_cell, control):
    sys = make_cell()
    x = np.zeros(1)
    with pytest.raises(ct.ConfigurationError):
        ct.Solver().scan(sys, x, 2, 0., 1., 1., 5, ramp={'reaction': [0., 1.]},
                         control=control)


def test_scan_failure_keeps_partial_data(make_cell, control):
    sys = make_cell()
    solver = ct.Solver()
    x = solver.equilibrium_solve(sys, control=control)
    res = solver.scan(sys, x, 2, 0., 1., 1e4, 6, control=control.copy(max_iterations=2))
    assert res['failed'] == 1
    assert len(res['voltages']) == 0
    assert res['x'] is x
