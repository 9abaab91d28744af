"""
Numerical integration of the TB model.
"""
from typing import Optional

import numpy as np
from scipy.integrate import solve_ivp

from tbdemic.model import CompartmentState, clamp_state, derivatives
from tbdemic.parameters import DiseaseParameters


def integrate_step(
    state: CompartmentState,
    params: DiseaseParameters,
    dt: float,
    force: Optional[float] = None,
) -> CompartmentState:
    """
    Advance ``state`` by one classical 4th-order Runge-Kutta step:

        k1 = f(y)
        k2 = f(y + dt/2 * k1)
        k3 = f(y + dt/2 * k2)
        k4 = f(y + dt * k3)
        y(t + dt) = y + dt/6 * (k1 + 2*k2 + 2*k3 + k4)

    Every compartment of the result is clamped to be non-negative. Steps larger than
    seven days are not rejected, but accuracy degrades.

    :param state:
        Compartment state at time t.

    :param params:
        Disease parameters held constant over the step.

    :param dt:
        Step length in days.

    :param force:
        Optional force of infection held constant over the step (regional mixing).

    :return:
        A new compartment state at time t + dt.
    """
    k1 = derivatives(state, params, force)
    k2 = derivatives(state + k1 * (dt / 2), params, force)
    k3 = derivatives(state + k2 * (dt / 2), params, force)
    k4 = derivatives(state + k3 * dt, params, force)

    increment = (k1 + k2 * 2 + k3 * 2 + k4) * (dt / 6)
    return clamp_state(state + increment)


def solve_reference(
    state: CompartmentState,
    params: DiseaseParameters,
    t_eval,
    t_span=None,
    method: str = "LSODA",
    rtol: float = 1e-8,
    atol: float = 1e-8,
):
    """
    SciPy ODE solver wrapper over the same right-hand side, used as a reference solution.

    :param state:
        Initial compartment state.

    :param params:
        Disease parameters, constant over the whole span.

    :param t_eval:
        Times at which the solution is stored.

    :param t_span:
        Integration interval. Defaults to (min(t_eval), max(t_eval)).

    :param method:
        Any method accepted by ``scipy.integrate.solve_ivp``.

    :return:
        The ``solve_ivp`` solution object; ``solution.y`` has one row per compartment.
    """
    t_eval = np.asarray(t_eval, dtype=float)
    if t_span is None:
        t_span = (t_eval.min(), t_eval.max())

    solution_ODE = solve_ivp(
        fun=lambda t, y: derivatives(CompartmentState.from_array(y), params).as_array(),
        t_span=t_span,
        y0=state.as_array(),
        t_eval=t_eval,
        method=method,
        rtol=rtol,
        atol=atol,
    )
    if not solution_ODE.success:
        raise RuntimeError(f"Reference ODE solver failed: {solution_ODE.message}")

    return solution_ODE
