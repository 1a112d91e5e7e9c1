# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

"""
Occupation functions F(eta) mapping a normalized electrochemical potential to
the fraction of occupied states, n = N F(eta).

Every statistics is written as F(eta) = exp(eta + gamma(eta)) where gamma is
the excess chemical potential. Boltzmann statistics has gamma = 0.
"""

import numpy as np
from scipy.special import expit

from .mesh import ConfigurationError


class Statistics():
    name = None

    def excess(self, eta):
        """
        Excess chemical potential and its derivative.

        Parameters
        ----------
        eta: numpy array of floats
            Normalized electrochemical potential.

        Returns
        -------
        gamma, dgamma: numpy arrays of floats
        """
        raise NotImplementedError

    def F(self, eta):
        gamma, _ = self.excess(eta)
        return np.exp(eta + gamma)

    def dF(self, eta):
        gamma, dgamma = self.excess(eta)
        return np.exp(eta + gamma) * (1 + dgamma)

    def __repr__(self):
        return self.name


class Boltzmann(Statistics):
    name = 'Boltzmann'

    def excess(self, eta):
        eta = np.asarray(eta, dtype=float)
        return np.zeros_like(eta), np.zeros_like(eta)

    def F(self, eta):
        return np.exp(eta)

    def dF(self, eta):
        return np.exp(eta)


class _Saturating(Statistics):
    # F = 1 / (exp(-eta) + gamma_b), written in log form to avoid overflows
    gamma_b = 1.

    def excess(self, eta):
        eta = np.asarray(eta, dtype=float)
        a = eta + np.log(self.gamma_b)
        return -np.logaddexp(0, a), -expit(a)


class Blakemore(_Saturating):
    name = 'Blakemore'
    gamma_b = 0.27


class FermiDiracMinusOne(_Saturating):
    name = 'FermiDiracMinusOne'
    gamma_b = 1.


class FermiDiracOneHalf(Statistics):
    """
    Bednarczyk approximation of the Fermi-Dirac integral of order 1/2.
    """
    name = 'FermiDiracOneHalf'

    def _xi(self, eta):
        e = np.exp(-0.17 * (eta + 1)**2)
        u = eta**4 + 50 + 33.6 * eta * (1 - 0.68 * e)
        du = 4 * eta**3 + 33.6 * (1 - 0.68 * e) + 33.6 * eta * 0.2312 * e * (eta + 1)
        xi = 3 * np.sqrt(np.pi / 2) * u**(-3./8)
        return xi, -3./8 * du / u

    def excess(self, eta):
        eta = np.asarray(eta, dtype=float)
        xi, dlogxi = self._xi(eta)
        a = eta + np.log(xi)
        return -np.logaddexp(0, a), -expit(a) * (1 + dlogxi)


available = {cls.name: cls for cls in
             [Boltzmann, Blakemore, FermiDiracMinusOne, FermiDiracOneHalf]}


def get_statistics(name):
    """
    Return an instance of the statistics called `name`. Instances are passed
    through unchanged.
    """
    if isinstance(name, Statistics):
        return name
    try:
        return available[name]()
    except KeyError:
        raise ConfigurationError("Unknown statistics '{0}', expected one of {1}."\
                                 .format(name, ', '.join(sorted(available))))
