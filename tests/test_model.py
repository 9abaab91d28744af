import math

import attr
import numpy as np
import pytest
from pytest import fixture

from tbdemic.model import (
    CompartmentState,
    basic_reproduction_number,
    clamp_state,
    create_initial_state,
    derivatives,
    effective_reproduction_number,
    force_of_infection,
    incidence_rate,
    is_valid_state,
    new_deaths,
    new_infections,
    prevalence,
    total_population,
    transmission_rate_for_r0,
)
from tbdemic.parameters import DiseaseParameters


@fixture
def default_params():
    return DiseaseParameters()


@fixture
def endemic_state():
    return CompartmentState(S=900000, V=50000, E_H=2000, E_L=8000, I=100, R=900, D=10)


def test_total_population_excludes_deceased(endemic_state):
    assert total_population(endemic_state) == pytest.approx(961000)
    assert endemic_state.living == pytest.approx(961000)


def test_state_arithmetic():
    state = CompartmentState(S=1, V=2, E_H=3, E_L=4, I=5, R=6, D=7)

    doubled = state * 2
    assert doubled == CompartmentState(2, 4, 6, 8, 10, 12, 14)
    assert 2 * state == doubled
    assert state + state == doubled
    assert state.as_dict() == {"S": 1, "V": 2, "E_H": 3, "E_L": 4, "I": 5, "R": 6, "D": 7}


def test_from_array_rejects_wrong_shape():
    with pytest.raises(ValueError, match="Expected 7 compartment values"):
        CompartmentState.from_array([1.0, 2.0, 3.0])


def test_derivatives_conserve_population_plus_deaths(default_params, endemic_state):
    rates = derivatives(endemic_state, default_params)

    assert np.sum(rates.as_array()) == pytest.approx(0.0, abs=1e-9)
    living_change = np.sum(rates.as_array()[:-1])
    assert living_change == pytest.approx(-default_params.mu_tb * endemic_state.I)
    assert rates.D == pytest.approx(default_params.mu_tb * endemic_state.I)


def test_disease_free_state_stays_disease_free(default_params):
    state = CompartmentState(S=990000, V=10000, R=0)

    rates = derivatives(state, default_params)

    assert rates.I == 0
    assert rates.E_H == 0
    assert rates.E_L == 0
    assert rates.D == 0


def test_basic_reproduction_number_formula(default_params):
    p = default_params
    leave_high_risk = p.epsilon + p.kappa + p.mu
    expected = (
        p.beta
        * (p.epsilon / leave_high_risk + p.kappa / leave_high_risk * p.omega / (p.omega + p.mu))
        / (p.gamma + p.mu + p.mu_tb)
    )

    r0 = basic_reproduction_number(p)

    assert r0 == pytest.approx(expected)
    assert r0 == pytest.approx(0.01546, rel=1e-3)


def test_basic_reproduction_number_degenerate():
    params = DiseaseParameters(epsilon=0, kappa=0, mu=0)
    assert basic_reproduction_number(params) == 0.0


@pytest.mark.parametrize("target_r0", [1.3, 1.7, 2.2])
def test_transmission_rate_for_r0(default_params, target_r0):
    beta = transmission_rate_for_r0(target_r0, default_params)

    calibrated = attr.evolve(default_params, beta=beta)

    assert basic_reproduction_number(calibrated) == pytest.approx(target_r0)


def test_transmission_rate_for_r0_requires_progression():
    params = DiseaseParameters(epsilon=0, omega=0)
    with pytest.raises(ValueError, match="does not depend on beta"):
        transmission_rate_for_r0(1.7, params)


def test_effective_reproduction_number(default_params):
    fully_susceptible = CompartmentState(S=1000000)
    assert effective_reproduction_number(fully_susceptible, default_params) == pytest.approx(
        basic_reproduction_number(default_params)
    )

    vaccinated = CompartmentState(S=500000, V=500000)
    expected = basic_reproduction_number(default_params) * (0.5 + 0.5 * (1 - default_params.ve))
    assert effective_reproduction_number(vaccinated, default_params) == pytest.approx(expected)


def test_empty_population_gives_zeros(default_params):
    empty = CompartmentState()

    assert force_of_infection(empty, default_params) == 0.0
    assert effective_reproduction_number(empty, default_params) == 0.0
    assert prevalence(empty) == 0.0
    assert incidence_rate(10, 0) == 0.0
    assert np.all(derivatives(empty, default_params).as_array() == 0.0)


def test_new_infections_and_deaths(default_params):
    state = CompartmentState(S=800000, V=100000, I=1000, R=99000)
    force = default_params.beta * 1000 / 1000000
    pool = 800000 + (1 - default_params.ve) * 100000 + default_params.sigma * 99000

    assert new_infections(state, default_params, 0.5) == pytest.approx(force * pool * 0.5)
    assert new_deaths(state, default_params, 1.0) == pytest.approx(default_params.mu_tb * 1000)


def test_incidence_rate_per_100k():
    assert incidence_rate(10, 1000000) == pytest.approx(1.0)
    assert incidence_rate(6700, 67000000) == pytest.approx(10.0)


def test_clamp_and_validity():
    state = CompartmentState(S=10, V=-1e-12, E_H=-3)

    clamped = clamp_state(state)

    assert not is_valid_state(state)
    assert is_valid_state(clamped)
    assert clamped.V == 0.0
    assert clamped.E_H == 0.0
    assert clamped.S == 10
    assert state.clamped() == clamped
    assert not is_valid_state(CompartmentState(S=math.nan))
    assert not is_valid_state(CompartmentState(I=math.inf))


def test_create_initial_state_splits_latent():
    state = create_initial_state(1000000, 100, 10000, 0)

    assert state.E_H == 2000
    assert state.E_L == 8000
    assert state.I == 100
    assert state.S == 989900
    assert state.R == 0
    assert state.D == 0
    assert total_population(state) == pytest.approx(1000000)


def test_create_initial_state_with_vaccinated():
    state = create_initial_state(1000, 10, 100, 50)

    assert state.V == 50
    assert state.S == 840
    assert state.E_H + state.E_L == 100
