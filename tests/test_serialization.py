import json
from datetime import datetime, timezone

from pytest import fixture

from tbdemic.config import VaccinationPolicy, create_default_config
from tbdemic.engine import SimulationEngine
from tbdemic.serialization import serialize_event, serialize_state


@fixture
def engine():
    config = create_default_config(
        duration=30,
        time_step=1.0,
        total_population=1000000,
        initial_infected=100,
        initial_latent=10000,
        vaccination_policy=VaccinationPolicy.disabled(),
        regions=[
            {"id": "wales", "population": 300000},
            {"id": "england", "population": 600000},
            {"id": "scotland", "population": 100000},
        ],
        population_groups=[{"id": "b", "proportion": 0.5}, {"id": "a", "proportion": 0.5}],
    )
    engine = SimulationEngine(config, clock=lambda: datetime(2025, 1, 1, tzinfo=timezone.utc))
    engine.run(days=3)
    return engine


def test_serialized_state_layout(engine):
    record = serialize_state(engine.state)

    assert record["currentDay"] == 3
    assert record["currentTime"] == "2025-01-04T00:00:00+00:00"
    assert record["status"] == "running"
    assert list(record["regionStates"]) == ["england", "scotland", "wales"]
    assert list(record["groupStates"]) == ["a", "b"]
    assert record["regionStates"]["wales"]["regionId"] == "wales"
    assert set(record["compartments"]) == {"S", "V", "E_H", "E_L", "I", "R", "D"}
    assert len(record["history"]) == 3
    assert record["history"][0]["day"] == 1
    assert "newInfections" in record["history"][0]
    assert record["metrics"]["lowIncidenceStatus"] is True
    assert record["events"][0]["type"] == "policy_change"


def test_serialized_state_is_json_ready(engine):
    text = json.dumps(serialize_state(engine.state))

    assert json.loads(text)["currentDay"] == 3


def test_serialization_is_deterministic(engine):
    assert serialize_state(engine.state) == serialize_state(engine.snapshot())


def test_serialized_state_does_not_alias_state(engine):
    record = serialize_state(engine.state)
    record["events"][0]["details"]["totalPopulation"] = -1
    record["history"].clear()

    assert engine.state.events[0].details["totalPopulation"] == 1000000
    assert len(engine.state.history) == 3


def test_history_can_be_left_out(engine):
    record = serialize_state(engine.state, include_history=False)

    assert "history" not in record
    assert record["currentDay"] == 3


def test_serialize_event(engine):
    event = engine.state.events[0]

    record = serialize_event(event)

    assert record == {
        "id": "evt_0_1",
        "sequence": 1,
        "day": 0,
        "type": "policy_change",
        "description": "Simulation initialized",
        "details": dict(event.details),
    }
