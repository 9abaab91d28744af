import numpy as np
import pytest
from pytest import fixture

from tbdemic.integrator import integrate_step, solve_reference
from tbdemic.model import CompartmentState, total_population
from tbdemic.parameters import create_disease_parameters


@fixture
def epidemic_params():
    return create_disease_parameters(beta=0.02, rho=0.0005)


@fixture
def initial_state():
    return CompartmentState(S=989900, V=0, E_H=2000, E_L=8000, I=100, R=0, D=0)


def _integrate(state, params, dt, days):
    for _ in range(int(round(days / dt))):
        state = integrate_step(state, params, dt)
    return state


def test_rk4_matches_reference_solver(initial_state, epidemic_params):
    days = 200
    rk4_state = _integrate(initial_state, epidemic_params, 0.1, days)

    solution = solve_reference(initial_state, epidemic_params, t_eval=[0.0, float(days)])
    reference = solution.y[:, -1]

    assert rk4_state.as_array() == pytest.approx(reference, rel=1e-5, abs=1e-3)


def test_rk4_conserves_living_plus_deceased(initial_state, epidemic_params):
    state = _integrate(initial_state, epidemic_params, 1.0, 3650)

    assert total_population(state) + state.D == pytest.approx(1000000, rel=1e-9)


def test_population_does_not_drift_over_ten_years(initial_state):
    params = create_disease_parameters()

    state = _integrate(initial_state, params, 1.0, 3650)

    assert total_population(state) == pytest.approx(1000000 - state.D, rel=1e-4)
    assert state.D > 0


@pytest.mark.parametrize("dt", [0.1, 1.0, 7.0])
def test_rk4_never_returns_negative_compartments(dt):
    params = create_disease_parameters(beta=1.0, rho=1.0, mu_tb=1.0, gamma=1.0)
    state = CompartmentState(S=10, V=0, E_H=0, E_L=0, I=1000, R=0)

    for _ in range(20):
        state = integrate_step(state, params, dt)
        assert np.all(state.as_array() >= 0.0)


def test_rk4_with_fixed_force_of_infection(initial_state):
    params = create_disease_parameters(beta=0.0)

    without_force = integrate_step(initial_state, params, 1.0)
    with_force = integrate_step(initial_state, params, 1.0, force=0.01)

    assert with_force.S < without_force.S
    assert with_force.E_H > without_force.E_H


def test_disease_free_state_is_steady():
    params = create_disease_parameters()
    state = CompartmentState(S=1000000)

    state = _integrate(state, params, 1.0, 365)

    assert state.I == 0
    assert state.E_H == 0
    assert state.E_L == 0
    assert state.D == 0
