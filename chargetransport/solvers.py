# Copyright 2017 University of Maryland.
#
# This file is part of Chargetransport. It is subject to the license terms in
# the file LICENSE.rst found in the top-level directory of this distribution.

import warnings

import numpy as np
import scipy.sparse.linalg as lg
from scipy.sparse import csr_matrix, diags
from scipy.sparse.linalg import MatrixRankWarning

from .builder import Embedding
from .mesh import ConfigurationError
from .getFandJ import getFandJ
from .analyzer import current_through

import logging
logging.basicConfig(level=logging.DEBUG, format='%(levelname)s: %(message)s')

__all__ = ['NewtonControl', 'Solver', 'NewtonError', 'NewtonDivergence',
           'IterationBudgetExceeded', 'SingularSystem', 'logspace_schedule',
           'equilibrium_solve', 'step_solve', 'continuation', 'IVcurve', 'scan']


class NewtonError(Exception):
    """
    Failure of the Newton-Raphson algorithm.

    Attributes
    ----------
    residual_norm: float
        Last residual norm reached.
    iteration: integer
        Iteration at which the failure occurred.
    point: tuple
        Continuation parameter and value, or bias step, set by the caller
        that was running the solver.
    """
    def __init__(self, msg, residual_norm=np.nan, iteration=0, point=None):
        super().__init__(msg)
        self.residual_norm = residual_norm
        self.iteration = iteration
        self.point = point


class NewtonDivergence(NewtonError):
    pass


class IterationBudgetExceeded(NewtonError):
    pass


class SingularSystem(NewtonError):
    pass


def _banner(msg):
    line = "*" * (len(msg) + 6)
    logging.error("\n" + line + "\n*  " + msg + "  *\n" + line)


class NewtonControl():
    """
    Parameters of the damped Newton-Raphson algorithm.

    Parameters
    ----------
    damp_initial: float
        Damping factor of the first update.
    damp_growth: float
        Factor applied to the damping after each accepted update, until it
        reaches 1.
    damp_min: float
        Smallest damping factor before the iteration is declared divergent.
    tol_absolute: float
        Convergence threshold on the maximum norm of the residual.
    tol_relative: float
        Convergence threshold on the residual norm relative to the residual of
        the initial guess.
    tol_round: float
        An update counts as stagnating if its norm differs from the norm of
        the previous update by less than this fraction.
    max_round: integer
        Number of consecutive stagnating updates after which the solution is
        accepted as converged up to round-off.
    max_iterations: integer
        Maximum number of Newton iterations.
    rejection: float
        An update is rejected (and retried with half the damping) if the
        residual norm grows by more than this factor.
    log_damping: boolean
        Compress the updates larger than the thermal voltage logarithmically
        before damping.
    verbose: boolean
        Log the residual norm at every step.
    """
    def __init__(self, damp_initial=0.5, damp_growth=1.2, damp_min=1e-6,
                 tol_absolute=1e-10, tol_relative=1e-12, tol_round=1e-8,
                 max_round=5, max_iterations=100, rejection=1e10,
                 log_damping=True, verbose=True):
        self.damp_initial = damp_initial
        self.damp_growth = damp_growth
        self.damp_min = damp_min
        self.tol_absolute = tol_absolute
        self.tol_relative = tol_relative
        self.tol_round = tol_round
        self.max_round = max_round
        self.max_iterations = max_iterations
        self.rejection = rejection
        self.log_damping = log_damping
        self.verbose = verbose

    def copy(self, **changes):
        control = NewtonControl(**self.__dict__)
        for key, value in changes.items():
            if not hasattr(control, key):
                raise ConfigurationError("Unknown Newton parameter '{0}'.".format(key))
            setattr(control, key, value)
        return control


def logspace_schedule(steps=20):
    """
    Continuation schedule of `steps` values: 0 followed by decades increasing
    up to 1.
    """
    if steps < 2:
        raise ConfigurationError("A continuation schedule needs at least two steps.")
    return np.concatenate(([0.], 10.**np.arange(-(steps-2), 1)))


class Solver():
    """
    An object that creates an interface for the equilibrium and nonequilibrium
    solvers, and stores the equilibrium solution once computed.

    Parameters
    ----------
    linear_solver: string
        'sparse' (default) to solve the linear systems with a sparse direct
        solver, or 'dense' to use a dense factorization.

    Attributes
    ----------
    equilibrium: numpy array of floats
        Solution vector computed at thermal equilibrium.
    equilibrium_system: Builder
        System the equilibrium solution belongs to. IVcurve reuses the
        equilibrium only for this system.
    history: list of tuples
        Value of the continuation parameter and number of Newton iterations for
        each point of the last continuation.
    iterations: integer
        Number of Newton iterations of the last solve.
    residual_norm: float
        Residual norm reached by the last solve.
    """

    def __init__(self, linear_solver='sparse'):
        if linear_solver not in ('sparse', 'dense'):
            raise ConfigurationError("Unknown linear solver '{0}'.".format(linear_solver))
        self.linear_solver = linear_solver
        self.equilibrium = None
        self.equilibrium_system = None
        self.history = []
        self.iterations = 0
        self.residual_norm = np.nan

    def _damping(self, dx):
        # This damping procedure is inspired from Solid-State Electronics, vol. 19,
        # pp. 991-992 (1976).
        b = np.abs(dx) > 1
        dx[b] = np.log(1+np.abs(dx[b])*1.72)*np.sign(dx[b])

    def _linear_solve(self, J, f):
        # row equilibration: the continuity rows of minority carriers are many
        # orders of magnitude smaller than the Poisson rows
        scale = np.asarray(abs(J).max(axis=1).todense()).ravel()
        scale[scale == 0] = 1.
        D = diags(1. / scale)
        J, f = csr_matrix(D @ J), f / scale
        if self.linear_solver == 'dense':
            try:
                dx = np.linalg.solve(J.toarray(), f)
            except np.linalg.LinAlgError:
                raise SingularSystem("The Jacobian matrix is singular.")
        else:
            with warnings.catch_warnings():
                warnings.simplefilter('error', MatrixRankWarning)
                try:
                    dx = lg.spsolve(J, f)
                except (RuntimeError, MatrixRankWarning):
                    raise SingularSystem("The Jacobian matrix is singular.")
        if not np.all(np.isfinite(dx)):
            raise SingularSystem("The linear system could not be solved.")
        return dx

    def _get_system(self, system, x, bias, embedding, x_old, tstep, equilibrium):
        with np.errstate(over='ignore', invalid='ignore'):
            f, rows, columns, data = getFandJ(system, x, bias, embedding, x_old, tstep,
                                              equilibrium)
        n = system.nunknowns
        J = csr_matrix((data, (rows, columns)), shape=(n, n))
        return f, J

    def _newton(self, system, x, bias, embedding, x_old, tstep, equilibrium, control):
        x = np.array(x, dtype=float)
        f, J = self._get_system(system, x, bias, embedding, x_old, tstep, equilibrium)
        norm = norm0 = np.max(np.abs(f))
        if not np.isfinite(norm):
            raise NewtonDivergence("The residual of the initial guess is not finite.",
                                   norm, 0)

        damp = control.damp_initial
        nround = 0
        unorm_old = None
        x_prev, step_prev = None, None

        for cc in range(1, control.max_iterations + 1):
            if norm <= control.tol_absolute or norm <= control.tol_relative * norm0:
                return x, cc-1, norm

            try:
                dx = self._linear_solve(J, -f)
            except SingularSystem as exc:
                # back off along the previous update
                if x_prev is None:
                    exc.residual_norm, exc.iteration = norm, cc
                    raise
                damp /= 2
                step_prev = step_prev / 2
                if damp < control.damp_min:
                    raise SingularSystem("The Jacobian matrix stays singular after damping.",
                                         norm, cc)
                logging.warning("Singular Jacobian at step {0}, backing off".format(cc))
                x = x_prev + step_prev
                f, J = self._get_system(system, x, bias, embedding, x_old, tstep, equilibrium)
                norm = np.max(np.abs(f))
                continue

            if control.log_damping:
                self._damping(dx)

            unorm = np.max(np.abs(dx))
            if unorm_old is not None and abs(1 - unorm / unorm_old) < control.tol_round:
                nround += 1
            else:
                nround = 0
            unorm_old = unorm

            while True:
                xt = x + damp * dx
                ft, Jt = self._get_system(system, xt, bias, embedding, x_old, tstep, equilibrium)
                nt = np.max(np.abs(ft))
                if np.isfinite(nt) and nt <= control.rejection * norm:
                    break
                damp /= 2
                if damp < control.damp_min:
                    raise NewtonDivergence("The Newton-Raphson algorithm diverged.", norm, cc)

            x_prev, step_prev = x, damp * dx
            x, f, J, norm = xt, ft, Jt, nt
            full = damp == 1.
            damp = min(1., damp * control.damp_growth)

            if control.verbose:
                logging.info('step {0}, residual = {1}, update = {2}'.format(cc, norm, unorm))

            # full updates below the absolute tolerance, or stagnating at round-off
            if (full and unorm <= control.tol_absolute) or nround >= control.max_round:
                return x, cc, norm

        if norm <= control.tol_absolute or norm <= control.tol_relative * norm0:
            return x, control.max_iterations, norm
        raise IterationBudgetExceeded("Maximum number of iterations reached.", norm,
                                      control.max_iterations)

    def _prepare(self, system, bias, embedding, control):
        if not system.finalized:
            system.finalize()
        if bias is None:
            bias = system.contact_voltages
        if embedding is None:
            embedding = Embedding()
        if control is None:
            control = NewtonControl()
        return bias, embedding, control

    def step_solve(self, system, x, bias=None, tstep=np.inf, x_old=None,
                   embedding=None, control=None, equilibrium=False):
        """
        Solve the drift-diffusion-Poisson equations for one set of boundary
        conditions with a damped Newton-Raphson algorithm.

        Parameters
        ----------
        system: Builder
            The discretized system.
        x: numpy array of floats
            Initial guess.
        bias: dictionary
            Applied voltage [V] of the contacts. Defaults to the voltages
            configured on the system.
        tstep: float
            Time step [s] of an implicit Euler step, infinite (default) for a
            stationary solution.
        x_old: numpy array of floats
            Solution at the previous time step. Defaults to `x`.
        embedding: Embedding
            Continuation parameters.
        control: NewtonControl
            Parameters of the Newton-Raphson algorithm.
        equilibrium: boolean
            Solve for thermal equilibrium.

        Returns
        -------
        x: numpy array of floats
            Converged solution vector. A NewtonError is raised otherwise.
        """
        bias, embedding, control = self._prepare(system, bias, embedding, control)
        # interface species exchanging with a contacted carrier settle at a
        # stationary state, the ones exchanging with a closed carrier do not
        isolated = [iface for iface in system.interfaces
                    if iface['species'] in system.closed or iface['rate'] == 0]
        if not equilibrium and not np.isfinite(tstep) and (system.closed or isolated):
            raise ConfigurationError("Carriers without contact or interface species have no "
                                     "stationary state out of equilibrium; use finite time steps.")
        if x_old is None:
            x_old = x
        x, self.iterations, self.residual_norm = self._newton(
            system, x, bias, embedding, x_old, tstep / system.scaling.time, equilibrium, control)
        return x

    def continuation(self, system, x, parameter='space_charge', schedule=None, bias=None,
                     tstep=np.inf, x_old=None, embedding=None, control=None,
                     equilibrium=False):
        """
        Solve the system for increasing values of a continuation parameter,
        each solution being the initial guess of the next.

        Parameters
        ----------
        system: Builder
            The discretized system.
        x: numpy array of floats
            Initial guess for the first value of the schedule.
        parameter: string
            Name of the Embedding parameter to sweep: 'space_charge',
            'generation' or 'reaction'.
        schedule: array-like
            Values of the parameter. Default is :func:`logspace_schedule`.

        The other parameters are the ones of :func:`step_solve`.

        Returns
        -------
        x: numpy array of floats
            Solution for the last value of the schedule.
        """
        bias, embedding, control = self._prepare(system, bias, embedding, control)
        if schedule is None:
            schedule = logspace_schedule()
        if x_old is None:
            x_old = x

        self.history = []
        for lam in schedule:
            emb = embedding.copy(**{parameter: lam})
            if control.verbose:
                logging.info("Continuation: {0} = {1}".format(parameter, lam))
            try:
                x = self.step_solve(system, x, bias, tstep, x_old, emb, control, equilibrium)
            except NewtonError as exc:
                exc.point = (parameter, lam)
                _banner("The continuation failed")
                logging.error("{0} for {1} = {2}, last residual = {3}".format(
                    exc, parameter, lam, exc.residual_norm))
                raise
            self.history.append((lam, self.iterations))
        return x

    def equilibrium_solve(self, system, nonlinear_steps=20, schedule=None, control=None):
        """
        Compute the thermal equilibrium from a zero initial guess, with a
        continuation on the space charge of the Poisson equation.

        Parameters
        ----------
        system: Builder
            The discretized system.
        nonlinear_steps: integer
            Length of the default continuation schedule.
        schedule: array-like
            Values of the space charge factor, overrides `nonlinear_steps`.
        control: NewtonControl
            Parameters of the Newton-Raphson algorithm.

        Returns
        -------
        x: numpy array of floats
            Equilibrium solution vector.
        """
        if not system.finalized:
            system.finalize()
        if schedule is None:
            schedule = logspace_schedule(nonlinear_steps)
        x = np.zeros(system.nunknowns)
        bias = {b: 0. for b in system.contacts}
        embedding = Embedding(generation=0.)
        logging.info("Solving for the equilibrium")
        x = self.continuation(system, x, 'space_charge', schedule, bias,
                              embedding=embedding, control=control, equilibrium=True)
        self.equilibrium = x
        self.equilibrium_system = system
        return x

    def _measured_contacts(self, system, contact, contacts):
        if contacts is not None:
            return contacts
        others = [b for b in system.contacts if b != contact]
        if len(others) == 0:
            raise ConfigurationError("A second contact is needed to compute currents.")
        return (others[0], contact)

    def IVcurve(self, system, voltages, contact, x=None, contacts=None, tstep=np.inf,
                embedding=None, control=None):
        """
        Solve the drift-diffusion-Poisson equations for the voltages provided,
        each solution being the initial guess of the next one, and compute the
        current after each step.

        Parameters
        ----------
        system: Builder
            The discretized system.
        voltages: array-like
            List of voltages [V] applied on `contact`.
        contact: integer
            Boundary region of the contact where the voltage is applied.
        x: numpy array of floats
            Starting point. The equilibrium is computed if not given.
        contacts: tuple
            Pair of boundary regions (bc0, bc1) used to compute the current,
            see :func:`current_through`. Default is (other contact, contact).
        tstep: float
            Time step [s] between two voltages, infinite for steady states.
        embedding: Embedding
            Continuation parameters.
        control: NewtonControl
            Parameters of the Newton-Raphson algorithm.

        Returns
        -------
        result: dictionary
            Keys are 'voltages' and 'currents' (dimensionless) for the converged
            steps, 'x' the last converged solution, 'failed' the index of the
            voltage for which the solver failed (None on success), and
            'residual_norm' the last residual norm of the failed step.
        """
        bias, embedding, control = self._prepare(system, None, embedding, control)
        bias = dict(bias)
        contacts = self._measured_contacts(system, contact, contacts)
        if x is None:
            if self.equilibrium is None or self.equilibrium_system is not system:
                self.equilibrium_solve(system, control=control)
            else:
                logging.info("Equilibrium already computed. Moving on.")
            x = self.equilibrium

        result = {'voltages': [], 'currents': [], 'x': x, 'failed': None,
                  'residual_norm': None}
        for idx, vapp in enumerate(voltages):
            bias[contact] = vapp
            if control.verbose:
                logging.info("Applied voltage: {0} V".format(vapp))
            try:
                xn = self.step_solve(system, x, bias, tstep, x, embedding, control)
            except NewtonError as exc:
                exc.point = ('voltage', vapp)
                _banner("The solver failed to converge for the applied voltage")
                logging.error("Step {0} ({1} V): {2}, last residual = {3}".format(
                    idx, vapp, exc, exc.residual_norm))
                result['failed'] = idx
                result['residual_norm'] = exc.residual_norm
                break
            result['currents'].append(current_through(system, contacts, xn, x, tstep, embedding))
            result['voltages'].append(vapp)
            x = xn
            result['x'] = x

        result['voltages'] = np.asarray(result['voltages'])
        result['currents'] = np.asarray(result['currents'])
        return result

    def scan(self, system, x, contact, v_start, v_end, scan_rate, ntsteps, contacts=None,
             ramp=None, embedding=None, control=None):
        """
        Transient voltage scan: the voltage on `contact` changes linearly in
        time and each time step is solved with an implicit Euler scheme.

        Parameters
        ----------
        system: Builder
            The discretized system.
        x: numpy array of floats
            State at the beginning of the scan.
        contact: integer
            Boundary region of the contact where the voltage is applied.
        v_start, v_end: floats
            Voltages [V] at the beginning and the end of the scan.
        scan_rate: float
            Scan rate [V/s].
        ntsteps: integer
            Number of time points, including the initial one.
        contacts: tuple
            Pair of boundary regions used to compute the current.
        ramp: dictionary
            Embedding parameter names mapped to one value per time point, to
            vary a continuation parameter along the scan.
        embedding: Embedding
            Continuation parameters.
        control: NewtonControl
            Parameters of the Newton-Raphson algorithm.

        Returns
        -------
        result: dictionary
            Same as :func:`IVcurve`, with the additional key 'times'.
        """
        bias, embedding, control = self._prepare(system, None, embedding, control)
        bias = dict(bias)
        contacts = self._measured_contacts(system, contact, contacts)
        tend = abs(v_end - v_start) / scan_rate
        tvalues = np.linspace(0, tend, ntsteps)
        sign = 1. if v_end >= v_start else -1.
        if ramp is not None:
            for key, values in ramp.items():
                if len(values) != ntsteps:
                    raise ConfigurationError("The ramp of '{0}' needs {1} values.".format(key, ntsteps))

        result = {'voltages': [], 'currents': [], 'times': [], 'x': x, 'failed': None,
                  'residual_norm': None}
        for istep in range(1, ntsteps):
            t = tvalues[istep]
            dt = t - tvalues[istep-1]
            vapp = v_start + sign * scan_rate * t
            bias[contact] = vapp
            emb = embedding
            if ramp is not None:
                emb = embedding.copy(**{key: values[istep] for key, values in ramp.items()})
            if control.verbose:
                logging.info("Time step {0}/{1}: t = {2} s, applied voltage: {3} V".format(
                    istep, ntsteps-1, t, vapp))
            try:
                xn = self.step_solve(system, x, bias, dt, x, emb, control)
            except NewtonError as exc:
                exc.point = ('time', t)
                _banner("The solver failed to converge for the time step")
                logging.error("Step {0} (t = {1} s, {2} V): {3}, last residual = {4}".format(
                    istep, t, vapp, exc, exc.residual_norm))
                result['failed'] = istep
                result['residual_norm'] = exc.residual_norm
                break
            result['currents'].append(current_through(system, contacts, xn, x, dt, emb))
            result['voltages'].append(vapp)
            result['times'].append(t)
            x = xn
            result['x'] = x

        for key in ('voltages', 'currents', 'times'):
            result[key] = np.asarray(result[key])
        return result


default = Solver()
step_solve = default.step_solve
continuation = default.continuation
equilibrium_solve = default.equilibrium_solve
IVcurve = default.IVcurve
scan = default.scan
