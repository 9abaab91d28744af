import itertools

import pytest
from pytest import fixture

from tbdemic.exceptions import ConfigurationError
from tbdemic.parameters import DiseaseParameters
from tbdemic.policy import (
    PolicyIntervention,
    PolicyType,
    active_interventions,
    adjust_parameters,
    combined_effect,
    parameter_multipliers,
    screening_efficacy,
)


@fixture
def base_params():
    return DiseaseParameters()


@fixture
def interventions():
    return [
        PolicyIntervention("screening", PolicyType.PRE_ENTRY_SCREENING, start_day=0),
        PolicyIntervention("finding", PolicyType.ACTIVE_CASE_FINDING, start_day=5, end_day=50),
        PolicyIntervention("dot", PolicyType.DIRECTLY_OBSERVED_THERAPY, effect_on_r0=0.9),
        PolicyIntervention("bcg", PolicyType.UNIVERSAL_BCG, start_day=10, effect_on_r0=0.8),
        PolicyIntervention("hcw", PolicyType.HEALTHCARE_WORKER_BCG, start_day=10),
    ]


@pytest.mark.parametrize(
    "day, expected", [(9, False), (10, True), (15, True), (20, True), (21, False)]
)
def test_timeline_boundaries(day, expected):
    intervention = PolicyIntervention(
        "tracing", PolicyType.CONTACT_TRACING, start_day=10, end_day=20
    )

    assert intervention.is_active(day) is expected


def test_open_ended_intervention():
    intervention = PolicyIntervention("awareness", "public_awareness_campaign", start_day=3)

    assert intervention.type == PolicyType.PUBLIC_AWARENESS_CAMPAIGN
    assert not intervention.is_active(2)
    assert intervention.is_active(100000)


def test_start_after_end_is_rejected():
    with pytest.raises(ConfigurationError, match="start_day 30 after end_day 20"):
        PolicyIntervention("bad", PolicyType.CONTACT_TRACING, start_day=30, end_day=20)


@pytest.mark.parametrize("effect", [0.0, -0.5, 1.2])
def test_effect_on_r0_must_be_in_unit_interval(effect):
    with pytest.raises(ConfigurationError, match="effect_on_r0"):
        PolicyIntervention("bad", PolicyType.CONTACT_TRACING, effect_on_r0=effect)


def test_from_dict_with_camel_case_keys():
    intervention = PolicyIntervention.from_dict(
        {
            "id": "pes",
            "type": "pre_entry_screening",
            "name": "Pre-entry screening",
            "startDay": 0,
            "endDay": 365,
            "effectOnR0": 0.95,
        }
    )

    assert intervention.type == PolicyType.PRE_ENTRY_SCREENING
    assert intervention.end_day == 365
    assert intervention.effect_on_r0 == 0.95
    assert intervention.as_dict()["startDay"] == 0


def test_from_dict_rejects_unknown_type():
    with pytest.raises(ConfigurationError, match="Invalid intervention"):
        PolicyIntervention.from_dict({"id": "x", "type": "lockdown"})


def test_active_interventions(interventions):
    assert [i.id for i in active_interventions(interventions, 0)] == ["screening", "dot"]
    assert [i.id for i in active_interventions(interventions, 60)] == [
        "screening",
        "dot",
        "bcg",
        "hcw",
    ]


def test_combined_effect(interventions):
    assert combined_effect([], 0) == 1.0
    assert combined_effect(interventions, 0) == pytest.approx(0.9)
    assert combined_effect(interventions, 10) == pytest.approx(0.72)


def test_composition_is_commutative(base_params, interventions):
    expected = adjust_parameters(base_params, interventions, 20)

    for permutation in itertools.permutations(interventions):
        adjusted = adjust_parameters(base_params, list(permutation), 20)
        for name in ("beta", "gamma", "rho", "mu_tb", "ve"):
            assert getattr(adjusted, name) == pytest.approx(getattr(expected, name))


def test_no_active_interventions_leaves_parameters_unchanged(base_params, interventions):
    later_only = [i for i in interventions if i.start_day > 0]

    assert adjust_parameters(base_params, later_only, 1) == base_params


def test_adjust_parameters(base_params, interventions):
    adjusted = adjust_parameters(base_params, interventions, 20)

    expected_beta = base_params.beta * (1 - 0.7 * 0.3) * (1 - 0.65 * 0.2) * 0.9 * 0.8
    assert adjusted.beta == pytest.approx(expected_beta)
    assert adjusted.gamma == pytest.approx(base_params.gamma * 1.5 * 1.2)
    assert adjusted.mu_tb == pytest.approx(base_params.mu_tb * 0.7)
    assert adjusted.rho == pytest.approx(base_params.rho * 20)
    assert adjusted.ve == pytest.approx(0.86)
    assert base_params == DiseaseParameters()


def test_rho_is_capped_at_one():
    params = DiseaseParameters(rho=0.5)
    interventions = [PolicyIntervention("bcg", PolicyType.UNIVERSAL_BCG)]

    assert adjust_parameters(params, interventions, 0).rho == 1.0


def test_vaccine_efficacy_override_uses_highest_value():
    interventions = [PolicyIntervention("hcw", PolicyType.HEALTHCARE_WORKER_BCG)]
    params = DiseaseParameters(ve=0.3)

    assert parameter_multipliers(interventions, 0)["ve"] == 0.5
    assert adjust_parameters(params, interventions, 0).ve == 0.5
    assert parameter_multipliers([], 0)["ve"] is None


def test_screening_efficacy(interventions):
    assert screening_efficacy([], 0) == 0.0
    assert screening_efficacy([], 0, base_efficacy=0.5) == 0.5
    assert screening_efficacy(interventions, 0, base_efficacy=0.5) == 0.7
    assert screening_efficacy(interventions, 0, base_efficacy=0.9) == 0.9
