"""
Simulation engine: owns the state of one run and advances it one simulated day at a time.

The engine is single-writer and speed-agnostic. It never sleeps or schedules itself; the execution
host (``tbdemic.host``) decides how often ``step`` is called.
"""
import copy
import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

import attr
import pandas as pd
from tqdm import tqdm

from tbdemic.config import (
    HEALTHCARE_WORKER_PROPORTION,
    RISK_BASED_BIRTH_PROPORTION,
    EligibilityCriteria,
    SimulationConfig,
)
from tbdemic.exceptions import ConfigurationError, SimulationError
from tbdemic.integrator import integrate_step
from tbdemic.model import (
    COMPARTMENTS,
    CompartmentState,
    create_initial_state,
    effective_reproduction_number,
    incidence_rate,
    is_valid_state,
    new_infections,
    prevalence,
    scale_state,
    total_population,
)
from tbdemic.parameters import DAYS_PER_YEAR, DiseaseParameters
from tbdemic.policy import adjust_parameters, screening_efficacy

logger = logging.getLogger(__name__)

WHO_LOW_INCIDENCE_THRESHOLD = 10.0
WHO_2035_TARGET_RATE = 10.0
WHO_BASELINE_RATE = 15.0

MAX_EVENTS = 1000
OUTBREAK_WINDOW = 7
OUTBREAK_MIN_INFECTIONS = 10
DEATH_MILESTONES = (100, 500, 1000, 5000, 10000)
VACCINATION_MILESTONES = (10000, 100000, 1000000, 10000000)

HEALTHCARE_WORKER_CAMPAIGN_DAYS = 30
CATCH_UP_CAMPAIGN_DAYS = 365
MAX_AGE = 80

MIN_SPEED = 0.1
MAX_SPEED = 100.0


class SimulationStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class EventType(Enum):
    INFECTION = "infection"
    RECOVERY = "recovery"
    DEATH = "death"
    VACCINATION = "vaccination"
    POLICY_CHANGE = "policy_change"
    OUTBREAK = "outbreak"


@attr.s(auto_attribs=True, frozen=True)
class TimeSeriesPoint:
    day: int
    timestamp: int
    compartments: CompartmentState
    new_infections: float
    new_deaths: float
    prevented_infections: float
    effective_r: float
    vaccinations_given: float


@attr.s(auto_attribs=True, frozen=True)
class SimulationEvent:
    id: str
    sequence: int
    day: int
    type: EventType
    description: str
    details: dict = attr.ib(factory=dict)
    location: Optional[str] = None


@attr.s(auto_attribs=True)
class SimulationMetrics:
    total_infections: float = 0.0
    total_deaths: float = 0.0
    total_recovered: float = 0.0
    total_vaccinated: float = 0.0
    infections_prevented: float = 0.0
    deaths_prevented: float = 0.0
    current_incidence_rate: float = 0.0
    current_prevalence: float = 0.0
    effective_r: float = 0.0
    who_target_progress: float = 0.0
    low_incidence_status: bool = True


@attr.s(auto_attribs=True)
class RegionState:
    region_id: str
    compartments: CompartmentState
    population: float
    incidence_rate: float


@attr.s(auto_attribs=True)
class SimulationState:
    current_day: int
    current_time: datetime
    compartments: CompartmentState
    region_states: Dict[str, RegionState] = attr.ib(factory=dict)
    group_states: Dict[str, CompartmentState] = attr.ib(factory=dict)
    history: List[TimeSeriesPoint] = attr.ib(factory=list)
    events: List[SimulationEvent] = attr.ib(factory=list)
    metrics: SimulationMetrics = attr.ib(factory=SimulationMetrics)
    status: SimulationStatus = SimulationStatus.IDLE
    speed: float = 1.0


class SimulationEngine:
    """
    Orchestrates a TB simulation run.

    Each ``step`` simulates one day: effective parameters are derived from the interventions
    active on that day, the compartments are integrated with RK4, metrics and history are
    updated and significant events are logged. A counterfactual run without vaccination
    (rho = 0, ve = 0) is advanced alongside to measure infections and deaths prevented.

    :param config:
        A validated SimulationConfig.

    :param clock:
        Callable returning the wall-clock datetime of day 0. Defaults to ``datetime.now``.
    """

    def __init__(self, config: SimulationConfig, clock: Callable[[], datetime] = None):
        self._config = config
        self._clock = clock or datetime.now
        self.initialize()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def status(self) -> SimulationStatus:
        return self.state.status

    @property
    def current_params(self) -> DiseaseParameters:
        return self._params

    @property
    def counterfactual_compartments(self) -> CompartmentState:
        return self._counterfactual

    def initialize(self, config: SimulationConfig = None) -> SimulationState:
        """
        Build the initial state of a run from ``config`` (or the current configuration).

        History, events and the day counter are cleared and the status is ``idle``. No step is
        taken.
        """
        if config is not None:
            self._config = config
        config = self._config

        initial_vaccinated = config.resolved_initial_vaccinated()
        self._compartments = create_initial_state(
            config.total_population,
            config.initial_infected,
            config.initial_latent,
            initial_vaccinated,
        )
        self._counterfactual = create_initial_state(
            config.total_population, config.initial_infected, config.initial_latent, 0.0
        )
        self._params = adjust_parameters(config.disease_params, config.active_interventions, 0)

        seeded = config.initial_infected + config.initial_latent
        self._cumulative_infections = seeded
        self._counterfactual_infections = seeded
        self._cumulative_vaccinations = initial_vaccinated
        self._previous_incidence_rate = 0.0
        self._event_sequence = 0
        self._start_time = self._clock()

        self.state = SimulationState(
            current_day=0,
            current_time=self._start_time,
            compartments=self._compartments,
            region_states=self._initial_region_states(),
            group_states=self._group_states(),
        )
        self.state.metrics = self._compute_metrics()

        self._record_event(
            0,
            EventType.POLICY_CHANGE,
            "Simulation initialized",
            {
                "totalPopulation": config.total_population,
                "initialInfected": config.initial_infected,
                "initialLatent": config.initial_latent,
                "initialVaccinated": initial_vaccinated,
            },
        )
        logger.info(
            "Initialized simulation '%s': population %.0f, %d days, dt %.3g",
            config.id,
            config.total_population,
            config.duration,
            config.time_step,
        )
        return self.state

    # -------------------- lifecycle --------------------

    def start(self) -> SimulationState:
        if self.state.status == SimulationStatus.IDLE:
            self.state.status = SimulationStatus.RUNNING
            logger.info("Simulation '%s' started", self._config.id)
        else:
            logger.warning("Ignoring start while simulation is %s", self.state.status.value)
        return self.state

    def pause(self) -> SimulationState:
        if self.state.status == SimulationStatus.RUNNING:
            self.state.status = SimulationStatus.PAUSED
        else:
            logger.debug("Ignoring pause while simulation is %s", self.state.status.value)
        return self.state

    def resume(self) -> SimulationState:
        if self.state.status == SimulationStatus.PAUSED:
            self.state.status = SimulationStatus.RUNNING
        else:
            logger.debug("Ignoring resume while simulation is %s", self.state.status.value)
        return self.state

    def reset(self) -> SimulationState:
        """
        Discard the run and go back to a fresh ``idle`` state. The speed hint is kept.
        """
        speed = self.state.speed
        self.initialize()
        self.state.speed = speed
        logger.info("Simulation '%s' reset", self._config.id)
        return self.state

    stop = reset

    def set_speed(self, multiplier: float) -> float:
        """
        Store the speed hint read by the execution host. The per-step math does not use it.
        """
        self.state.speed = min(MAX_SPEED, max(MIN_SPEED, float(multiplier)))
        return self.state.speed

    def update_config(self, changes=None, **kwargs) -> SimulationConfig:
        """
        Merge a partial configuration. The change applies from the next ``step``; recorded
        history is never rewritten. Initial conditions only matter for the next ``initialize``.

        :param changes:
            Mapping of field names to new values, or a complete SimulationConfig replacing the
            current one.

        :raises ConfigurationError:
            If the changes are not a mapping or the merged configuration is invalid. The current
            configuration is kept.
        """
        if isinstance(changes, SimulationConfig):
            self._config = changes.merged(kwargs)
            logger.info("Configuration replaced on day %d", self.state.current_day)
            return self._config
        if changes is None:
            changes = {}
        if not isinstance(changes, dict):
            raise ConfigurationError(f"Expected a partial configuration mapping, got {changes!r}.")
        changes = dict(changes, **kwargs)
        self._config = self._config.merged(changes)
        logger.info("Configuration updated on day %d: %s", self.state.current_day, sorted(changes))
        return self._config

    # -------------------- stepping --------------------

    def step(self) -> SimulationState:
        """
        Advance exactly one simulated day. Only valid while ``running``; otherwise the call is a
        no-op returning the current state.

        :raises SimulationError:
            If integration produced a non-finite state.
        """
        if self.state.status != SimulationStatus.RUNNING:
            logger.debug("Ignoring step while simulation is %s", self.state.status.value)
            return self.state

        config = self._config
        day = self.state.current_day + 1

        params = adjust_parameters(config.disease_params, config.active_interventions, day)
        counterfactual_params = attr.evolve(params, rho=0.0, ve=0.0)
        self._params = params

        vaccinations = self._apply_vaccination_programmes(day, params)

        substeps, dt = self._substeps()
        infections = counterfactual_infections = 0.0
        compartments = self._compartments
        counterfactual = self._counterfactual
        for _ in range(substeps):
            infections += new_infections(compartments, params, dt)
            vaccinations += params.rho * compartments.S * dt
            compartments = integrate_step(compartments, params, dt)

            counterfactual_infections += new_infections(counterfactual, counterfactual_params, dt)
            counterfactual = integrate_step(counterfactual, counterfactual_params, dt)

        if not is_valid_state(compartments) or not is_valid_state(counterfactual):
            raise SimulationError(f"Integration produced an invalid state on day {day}.")

        deaths = compartments.D - self._compartments.D
        self._compartments = compartments
        self._counterfactual = counterfactual
        self._apply_imported_cases(day)

        self._cumulative_infections += infections
        self._counterfactual_infections += counterfactual_infections
        self._cumulative_vaccinations += vaccinations

        previous_compartments = self.state.compartments
        self.state.current_day = day
        self.state.current_time = self._start_time + timedelta(days=day)
        self.state.compartments = self._compartments
        self.state.region_states = self._step_region_states(params, substeps, dt)
        self.state.group_states = self._group_states()
        self._record_history_point(day, infections, deaths, vaccinations)
        self.state.metrics = self._compute_metrics()
        self._check_events(day, infections, previous_compartments)
        self._previous_incidence_rate = self.state.metrics.current_incidence_rate

        if day >= config.duration:
            self.state.status = SimulationStatus.COMPLETED
            logger.info("Simulation '%s' completed after %d days", config.id, day)
        else:
            logger.debug(
                "Day %d: I=%.2f new infections=%.2f Rt=%.4f",
                day,
                self._compartments.I,
                infections,
                self.state.metrics.effective_r,
            )
        return self.state

    def run(self, days: Optional[int] = None, progress: bool = False) -> SimulationState:
        """
        Headless loop: step until completion, or for at most ``days`` days.

        :param days:
            Maximum number of days to simulate. Runs to completion when None.

        :param progress:
            Display a tqdm progress bar.

        :return:
            The state after the last step.
        """
        if self.state.status == SimulationStatus.IDLE:
            self.start()
        elif self.state.status == SimulationStatus.PAUSED:
            self.resume()

        remaining = max(0, self._config.duration - self.state.current_day)
        if days is not None:
            remaining = min(remaining, days)

        days_range = range(remaining)
        if progress:
            days_range = tqdm(days_range)
            days_range.set_description(f"Simulating {self._config.name}")
        for _ in days_range:
            if self.step().status != SimulationStatus.RUNNING:
                break
        return self.state

    def _substeps(self):
        """
        Number and length of RK4 substeps covering one day.
        """
        time_step = self._config.time_step
        if time_step >= 1.0:
            return 1, 1.0
        substeps = math.ceil(1.0 / time_step)
        return substeps, 1.0 / substeps

    # -------------------- vaccination and imports --------------------

    def _move_to_vaccinated(self, amount: float) -> float:
        amount = min(max(0.0, amount), self._compartments.S)
        self._compartments = attr.evolve(
            self._compartments,
            S=self._compartments.S - amount,
            V=self._compartments.V + amount,
        )
        return amount

    def _apply_vaccination_programmes(self, day: int, params: DiseaseParameters) -> float:
        """
        Vaccination programmes on top of the background rate rho. Births are mu * N per day, as in
        the model equations.

        :return:
            Vaccinations administered by the programmes on ``day``.
        """
        policy = self._config.vaccination_policy
        N = total_population(self._compartments)
        administered = 0.0

        neonatal = policy.neonatal_bcg
        if neonatal.enabled and neonatal.eligibility_criteria != EligibilityCriteria.NONE:
            eligible = 1.0
            if neonatal.eligibility_criteria == EligibilityCriteria.RISK_BASED:
                eligible = RISK_BASED_BIRTH_PROPORTION
            births = params.mu * N
            administered += self._move_to_vaccinated(births * eligible * neonatal.coverage_target)

        healthcare = policy.healthcare_worker_bcg
        if healthcare.enabled and day <= HEALTHCARE_WORKER_CAMPAIGN_DAYS:
            daily_rate = (
                HEALTHCARE_WORKER_PROPORTION
                * healthcare.coverage_target
                / HEALTHCARE_WORKER_CAMPAIGN_DAYS
            )
            administered += self._move_to_vaccinated(N * daily_rate)

        catch_up = policy.catch_up_vaccination
        if catch_up.enabled and day <= CATCH_UP_CAMPAIGN_DAYS:
            min_age, max_age = catch_up.target_age_group
            target_population = N * min(1.0, (max_age - min_age) / MAX_AGE)
            daily = target_population * catch_up.coverage_target / CATCH_UP_CAMPAIGN_DAYS
            administered += self._move_to_vaccinated(daily)

        return administered

    def _apply_imported_cases(self, day: int) -> float:
        """
        Imported cases enter E_H (latent, high risk), reduced by screening. The counterfactual
        receives the same screened imports so it only differs by vaccination.
        """
        imported = self._config.imported_cases_per_day
        if imported <= 0:
            return 0.0

        screening = self._config.vaccination_policy.immigrant_screening
        base_efficacy = screening.efficacy if screening.enabled else 0.0
        efficacy = screening_efficacy(self._config.active_interventions, day, base_efficacy)
        effective_imports = imported * (1.0 - efficacy)

        self._compartments = attr.evolve(
            self._compartments, E_H=self._compartments.E_H + effective_imports
        )
        self._counterfactual = attr.evolve(
            self._counterfactual, E_H=self._counterfactual.E_H + effective_imports
        )
        self._cumulative_infections += effective_imports
        self._counterfactual_infections += effective_imports
        return effective_imports

    # -------------------- regions and groups --------------------

    def _initial_region_states(self) -> Dict[str, RegionState]:
        """
        Regions get their population share of the aggregate; latent and infectious compartments
        are weighted by the region's incidence relative to the national average.
        """
        regions = self._config.regions
        total = self._config.total_population
        if not regions or total <= 0:
            return {}

        region_population = sum(region.population for region in regions)
        mean_incidence = 0.0
        if region_population > 0:
            mean_incidence = (
                sum(region.population * region.tb_incidence_rate for region in regions)
                / region_population
            )

        region_states = {}
        for region in regions:
            share = region.population / total
            weight = region.tb_incidence_rate / mean_incidence if mean_incidence > 0 else 1.0
            base = scale_state(self._compartments, share)
            E_H, E_L, I = base.E_H * weight, base.E_L * weight, base.I * weight
            S = max(0.0, region.population - base.V - E_H - E_L - I - base.R)
            region_states[region.id] = RegionState(
                region_id=region.id,
                compartments=CompartmentState(S, base.V, E_H, E_L, I, base.R, 0.0),
                population=region.population,
                incidence_rate=region.tb_incidence_rate,
            )
        return region_states

    def _step_region_states(
        self, params: DiseaseParameters, substeps: int, dt: float
    ) -> Dict[str, RegionState]:
        """
        Advance each region with a force of infection mixing local and national prevalence:
        lambda_r = beta * ((1 - m) * I_r / N_r + m * I / N).
        """
        mixing = self._config.inter_region_mixing
        national_prevalence = prevalence(self._compartments)
        region_states = {}
        for region_id, region_state in self.state.region_states.items():
            compartments = region_state.compartments
            infections = 0.0
            for _ in range(substeps):
                force = params.beta * (
                    (1.0 - mixing) * prevalence(compartments) + mixing * national_prevalence
                )
                exposed_pool = (
                    compartments.S
                    + (1.0 - params.ve) * compartments.V
                    + params.sigma * compartments.R
                )
                infections += force * exposed_pool * dt
                compartments = integrate_step(compartments, params, dt, force=force)
            population = total_population(compartments)
            region_states[region_id] = RegionState(
                region_id=region_id,
                compartments=compartments,
                population=population,
                incidence_rate=incidence_rate(infections * DAYS_PER_YEAR, population),
            )
        return region_states

    def _group_states(self) -> Dict[str, CompartmentState]:
        return {
            group.id: scale_state(self._compartments, group.proportion)
            for group in self._config.population_groups
        }

    # -------------------- history, metrics and events --------------------

    def _record_history_point(
        self, day: int, infections: float, deaths: float, vaccinations: float
    ) -> None:
        prevented_infections, _ = self.calculate_prevented()
        point = TimeSeriesPoint(
            day=day,
            timestamp=int(self.state.current_time.timestamp() * 1000),
            compartments=self._compartments,
            new_infections=infections,
            new_deaths=deaths,
            prevented_infections=prevented_infections,
            effective_r=effective_reproduction_number(self._compartments, self._params),
            vaccinations_given=vaccinations,
        )
        self.state.history.append(point)

    def calculate_prevented(self):
        """
        Infections and deaths prevented by vaccination: counterfactual minus actual, floored at 0.

        :return:
            A (infections prevented, deaths prevented) tuple.
        """
        infections = max(0.0, self._counterfactual_infections - self._cumulative_infections)
        deaths = max(0.0, self._counterfactual.D - self._compartments.D)
        return float(round(infections)), float(round(deaths))

    def _annual_incidence_rate(self) -> float:
        """
        Incidence per 100,000 per year, annualised over the last (up to 365) days of history.
        """
        recent = self.state.history[-DAYS_PER_YEAR:]
        if not recent:
            return 0.0
        annualized = sum(point.new_infections for point in recent) / len(recent) * DAYS_PER_YEAR
        return incidence_rate(annualized, total_population(self._compartments))

    def _compute_metrics(self) -> SimulationMetrics:
        incidence = self._annual_incidence_rate()
        target_reduction = WHO_BASELINE_RATE - WHO_2035_TARGET_RATE
        progress = (WHO_BASELINE_RATE - incidence) / target_reduction * 100.0
        infections_prevented, deaths_prevented = self.calculate_prevented()
        return SimulationMetrics(
            total_infections=float(round(self._cumulative_infections)),
            total_deaths=float(round(self._compartments.D)),
            total_recovered=float(round(self._compartments.R)),
            total_vaccinated=float(round(self._cumulative_vaccinations)),
            infections_prevented=infections_prevented,
            deaths_prevented=deaths_prevented,
            current_incidence_rate=incidence,
            current_prevalence=prevalence(self._compartments),
            effective_r=effective_reproduction_number(self._compartments, self._params),
            who_target_progress=min(100.0, max(0.0, progress)),
            low_incidence_status=incidence < WHO_LOW_INCIDENCE_THRESHOLD,
        )

    def _record_event(
        self,
        day: int,
        event_type: EventType,
        description: str,
        details: dict = None,
        location: Optional[str] = None,
    ) -> SimulationEvent:
        self._event_sequence += 1
        event = SimulationEvent(
            id=f"evt_{day}_{self._event_sequence}",
            sequence=self._event_sequence,
            day=day,
            type=event_type,
            description=description,
            details=details or {},
            location=location,
        )
        events = self.state.events
        events.append(event)
        if len(events) > MAX_EVENTS:
            del events[: len(events) - MAX_EVENTS]
        logger.debug("Day %d event: %s", day, description)
        return event

    def _check_events(
        self, day: int, infections: float, previous: CompartmentState
    ) -> None:
        history = self.state.history
        metrics = self.state.metrics

        if len(history) > OUTBREAK_WINDOW:
            window = history[-OUTBREAK_WINDOW - 1 : -1]
            average = sum(point.new_infections for point in window) / OUTBREAK_WINDOW
            if infections > 2 * average and infections > OUTBREAK_MIN_INFECTIONS:
                increase = (infections / average - 1) * 100 if average > 0 else None
                self._record_event(
                    day,
                    EventType.OUTBREAK,
                    "Significant increase in infections detected",
                    {
                        "newInfections": round(infections),
                        "previousAverage": round(average),
                        "increase": None if increase is None else round(increase),
                    },
                )

        was_low = self._previous_incidence_rate < WHO_LOW_INCIDENCE_THRESHOLD
        if was_low and not metrics.low_incidence_status:
            self._record_event(
                day,
                EventType.POLICY_CHANGE,
                "Lost WHO low-incidence status",
                {"incidenceRate": metrics.current_incidence_rate},
            )
        elif not was_low and metrics.low_incidence_status:
            self._record_event(
                day,
                EventType.POLICY_CHANGE,
                "Achieved WHO low-incidence status",
                {"incidenceRate": metrics.current_incidence_rate},
            )

        for intervention in self._config.active_interventions:
            if intervention.start_day == day:
                self._record_event(
                    day,
                    EventType.POLICY_CHANGE,
                    f"Policy started: {intervention.name or intervention.id}",
                    {
                        "policyId": intervention.id,
                        "policyType": intervention.type.value,
                        "effectOnR0": intervention.effect_on_r0,
                    },
                )
            if intervention.end_day == day:
                self._record_event(
                    day,
                    EventType.POLICY_CHANGE,
                    f"Policy ended: {intervention.name or intervention.id}",
                    {"policyId": intervention.id, "policyType": intervention.type.value},
                )

        for milestone in DEATH_MILESTONES:
            if previous.D < milestone <= self._compartments.D:
                self._record_event(
                    day,
                    EventType.DEATH,
                    f"{milestone} cumulative TB deaths",
                    {"totalDeaths": round(self._compartments.D)},
                )

        vaccinated_before = self._cumulative_vaccinations - history[-1].vaccinations_given
        for milestone in VACCINATION_MILESTONES:
            if vaccinated_before < milestone <= self._cumulative_vaccinations:
                self._record_event(
                    day,
                    EventType.VACCINATION,
                    f"{milestone} BCG vaccinations administered",
                    {"totalVaccinated": round(self._cumulative_vaccinations)},
                )

        if previous.I >= 1.0 > self._compartments.I:
            self._record_event(
                day,
                EventType.RECOVERY,
                "No active TB cases remaining",
                {"infectious": self._compartments.I},
            )

    # -------------------- outward views --------------------

    def snapshot(self) -> SimulationState:
        """
        A structurally independent copy of the state. Immutable records (compartments, history
        points) are shared, every mutable container is copied.
        """
        state = self.state
        return SimulationState(
            current_day=state.current_day,
            current_time=state.current_time,
            compartments=state.compartments,
            region_states={key: attr.evolve(value) for key, value in state.region_states.items()},
            group_states=dict(state.group_states),
            history=list(state.history),
            events=copy.deepcopy(state.events),
            metrics=attr.evolve(state.metrics),
            status=state.status,
            speed=state.speed,
        )

    def events_since(self, sequence: int) -> List[SimulationEvent]:
        """
        Events appended after the event numbered ``sequence``, in the order they were appended.
        """
        return [event for event in self.state.events if event.sequence > sequence]

    @property
    def last_event_sequence(self) -> int:
        return self._event_sequence

    @property
    def history_data_frame(self) -> pd.DataFrame:
        """
        History as a DataFrame, one row per simulated day.

        :return:
            DataFrame with day, date, the seven compartments and the daily quantities.
        """
        records = []
        for point in self.state.history:
            record = {"day": point.day, "timestamp": point.timestamp}
            record.update(point.compartments.as_dict())
            record.update(
                {
                    "new_infections": point.new_infections,
                    "new_deaths": point.new_deaths,
                    "prevented_infections": point.prevented_infections,
                    "effective_r": point.effective_r,
                    "vaccinations_given": point.vaccinations_given,
                }
            )
            records.append(record)

        columns = ["day", "timestamp", *COMPARTMENTS, "new_infections", "new_deaths"]
        columns += ["prevented_infections", "effective_r", "vaccinations_given"]
        df_history = pd.DataFrame(records, columns=columns)
        df_history["date"] = pd.to_datetime(df_history["timestamp"], unit="ms")
        return df_history
