"""
Conversion of engine objects to plain, JSON-ready records for the display layer.

Records use camelCase keys. Region and group mappings are emitted sorted by id so two snapshots of
the same state always serialize identically.
"""
from tbdemic.engine import (
    RegionState,
    SimulationEvent,
    SimulationMetrics,
    SimulationState,
    TimeSeriesPoint,
)
from tbdemic.model import CompartmentState


def serialize_compartments(compartments: CompartmentState) -> dict:
    return compartments.as_dict()


def serialize_point(point: TimeSeriesPoint) -> dict:
    return {
        "day": point.day,
        "timestamp": point.timestamp,
        "compartments": serialize_compartments(point.compartments),
        "newInfections": point.new_infections,
        "newDeaths": point.new_deaths,
        "preventedInfections": point.prevented_infections,
        "effectiveR": point.effective_r,
        "vaccinationsGiven": point.vaccinations_given,
    }


def serialize_event(event: SimulationEvent) -> dict:
    record = {
        "id": event.id,
        "sequence": event.sequence,
        "day": event.day,
        "type": event.type.value,
        "description": event.description,
        "details": dict(event.details),
    }
    if event.location is not None:
        record["location"] = event.location
    return record


def serialize_metrics(metrics: SimulationMetrics) -> dict:
    return {
        "totalInfections": metrics.total_infections,
        "totalDeaths": metrics.total_deaths,
        "totalRecovered": metrics.total_recovered,
        "totalVaccinated": metrics.total_vaccinated,
        "infectionsPrevented": metrics.infections_prevented,
        "deathsPrevented": metrics.deaths_prevented,
        "currentIncidenceRate": metrics.current_incidence_rate,
        "currentPrevalence": metrics.current_prevalence,
        "effectiveR": metrics.effective_r,
        "whoTargetProgress": metrics.who_target_progress,
        "lowIncidenceStatus": metrics.low_incidence_status,
    }


def serialize_region(region: RegionState) -> dict:
    return {
        "regionId": region.region_id,
        "compartments": serialize_compartments(region.compartments),
        "population": region.population,
        "incidenceRate": region.incidence_rate,
    }


def serialize_state(state: SimulationState, include_history: bool = True) -> dict:
    """
    Serialize a simulation state to a fresh plain record. Nothing in the result aliases the state.

    :param state:
        The state to serialize, typically an engine snapshot.

    :param include_history:
        Whether to include the full time series.

    :return:
        A dict with camelCase keys and an ISO-8601 ``currentTime``.
    """
    record = {
        "currentDay": state.current_day,
        "currentTime": state.current_time.isoformat(),
        "status": state.status.value,
        "speed": state.speed,
        "compartments": serialize_compartments(state.compartments),
        "regionStates": {
            region_id: serialize_region(state.region_states[region_id])
            for region_id in sorted(state.region_states)
        },
        "groupStates": {
            group_id: serialize_compartments(state.group_states[group_id])
            for group_id in sorted(state.group_states)
        },
        "metrics": serialize_metrics(state.metrics),
        "events": [serialize_event(event) for event in state.events],
    }
    if include_history:
        record["history"] = [serialize_point(point) for point in state.history]
    return record
