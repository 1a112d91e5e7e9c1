import numpy as np
import pytest

from chargetransport import ConfigurationError
from chargetransport.statistics import get_statistics, available


eta = np.linspace(-30, 15, 91)


def test_boltzmann():
    stats = get_statistics('Boltzmann')
    assert np.allclose(stats.F(eta), np.exp(eta))
    assert np.allclose(stats.dF(eta), np.exp(eta))


def test_saturating_limits():
    fd = get_statistics('FermiDiracMinusOne')
    assert np.isclose(fd.F(0.), 0.5)
    assert np.isclose(fd.F(50.), 1.)
    blakemore = get_statistics('Blakemore')
    assert np.isclose(blakemore.F(50.), 1 / 0.27)


@pytest.mark.parametrize('name', sorted(available))
def test_nondegenerate_limit(name):
    stats = get_statistics(name)
    assert np.allclose(stats.F(-30.), np.exp(-30.), rtol=1e-6)


@pytest.mark.parametrize('name', sorted(available))
def test_derivative(name):
    stats = get_statistics(name)
    h = 1e-6
    fd = (stats.F(eta + h) - stats.F(eta - h)) / (2*h)
    # the difference quotient loses about eps/h of F to cancellation
    assert np.all(np.abs(stats.dF(eta) - fd) <= 1e-5 * np.abs(fd) + 1e-9 * stats.F(eta))


@pytest.mark.parametrize('name, gamma', [('Blakemore', 0.27), ('FermiDiracMinusOne', 1.)])
def test_saturating_derivative(name, gamma):
    stats = get_statistics(name)
    e = np.exp(eta)
    assert np.allclose(stats.F(eta), e / (1 + gamma * e), rtol=1e-12)
    assert np.allclose(stats.dF(eta), e / (1 + gamma * e)**2, rtol=1e-10)


@pytest.mark.parametrize('name', sorted(available))
def test_monotonic(name):
    stats = get_statistics(name)
    assert np.all(np.diff(stats.F(eta)) > 0)


def test_fermi_dirac_one_half_degenerate():
    # F_1/2 grows like eta^(3/2) for large arguments
    stats = get_statistics('FermiDiracOneHalf')
    F = stats.F(np.array([10., 20.]))
    assert F[1] / F[0] == pytest.approx(2**1.5, rel=0.05)


def test_unknown_statistics():
    with pytest.raises(ConfigurationError):
        get_statistics('MaxwellJuttner')
