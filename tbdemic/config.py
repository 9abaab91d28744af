"""
Configuration consumed by the simulation engine.

Configuration objects are validated when they are built, so the engine can assume pre-validated
input. Records coming from the display layer may use camelCase keys, ``from_dict`` accepts both
camelCase and snake_case.
"""
import re
from enum import Enum
from typing import List, Optional, Tuple

import attr

from tbdemic.exceptions import ConfigurationError
from tbdemic.parameters import DiseaseParameters, create_disease_parameters
from tbdemic.policy import PolicyIntervention

MAX_TIME_STEP = 7.0

HEALTHCARE_WORKER_PROPORTION = 0.05
UNDER_40_PROPORTION = 0.3
RISK_BASED_BIRTH_PROPORTION = 0.15


class EligibilityCriteria(Enum):
    UNIVERSAL = "universal"
    RISK_BASED = "risk-based"
    NONE = "none"


class VisualizationMode(Enum):
    AGGREGATE = "aggregate"
    AGENT_BASED = "agent-based"
    MAP = "map"


def _snake_case(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


def _snake_case_keys(values: dict) -> dict:
    return {_snake_case(key): value for key, value in values.items()}


def _non_negative(instance, attribute, value):
    if value is None:
        return
    if not value >= 0:
        raise ConfigurationError(f"'{attribute.name}' must be non-negative, got {value}.")


def _probability(instance, attribute, value):
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"'{attribute.name}' must lie in [0, 1], got {value}.")


def _build(cls, values):
    """
    Build an attrs configuration class from a plain record, reporting bad records as
    ConfigurationError.
    """
    if isinstance(values, cls):
        return values
    if not isinstance(values, dict):
        raise ConfigurationError(f"Expected a mapping to build {cls.__name__}, got {values!r}.")
    kwargs = _snake_case_keys(values)
    known = {field.name for field in attr.fields(cls)}
    unknown = set(kwargs) - known
    if unknown:
        raise ConfigurationError(f"Unknown {cls.__name__} fields: {sorted(unknown)}.")
    try:
        return cls(**kwargs)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"Invalid {cls.__name__}: {error}") from error


@attr.s(auto_attribs=True, frozen=True)
class NeonatalBCG:
    enabled: bool = True
    coverage_target: float = attr.ib(default=0.89, converter=float, validator=_probability)
    eligibility_criteria: EligibilityCriteria = attr.ib(
        default=EligibilityCriteria.RISK_BASED, converter=EligibilityCriteria
    )
    risk_based_threshold: float = attr.ib(default=40.0, converter=float, validator=_non_negative)


@attr.s(auto_attribs=True, frozen=True)
class HealthcareWorkerBCG:
    enabled: bool = True
    coverage_target: float = attr.ib(default=0.95, converter=float, validator=_probability)


@attr.s(auto_attribs=True, frozen=True)
class ImmigrantScreening:
    enabled: bool = True
    screening_country_threshold: float = attr.ib(
        default=150.0, converter=float, validator=_non_negative
    )
    efficacy: float = attr.ib(default=0.7, converter=float, validator=_probability)


@attr.s(auto_attribs=True, frozen=True)
class CatchUpVaccination:
    enabled: bool = False
    target_age_group: Tuple[float, float] = attr.ib(default=(0, 16), converter=tuple)
    coverage_target: float = attr.ib(default=0.8, converter=float, validator=_probability)

    def __attrs_post_init__(self):
        if len(self.target_age_group) != 2:
            raise ConfigurationError("Catch-up target age group must be a (min, max) pair.")
        min_age, max_age = self.target_age_group
        if min_age < 0 or min_age > max_age:
            raise ConfigurationError(f"Invalid catch-up target age group {self.target_age_group}.")


@attr.s(auto_attribs=True, frozen=True)
class VaccinationPolicy:
    """
    BCG vaccination and screening policy.

    Attributes:
    ------------
    * neonatal_bcg: BCG at birth, universal or restricted to high-risk births.

    * healthcare_worker_bcg: One-off vaccination of healthcare workers during the first 30 days.

    * immigrant_screening: Screening of imported cases.

    * catch_up_vaccination: One-year campaign over an age band.
    """

    neonatal_bcg: NeonatalBCG = attr.ib(
        factory=NeonatalBCG, converter=lambda value: _build(NeonatalBCG, value)
    )
    healthcare_worker_bcg: HealthcareWorkerBCG = attr.ib(
        factory=HealthcareWorkerBCG, converter=lambda value: _build(HealthcareWorkerBCG, value)
    )
    immigrant_screening: ImmigrantScreening = attr.ib(
        factory=ImmigrantScreening, converter=lambda value: _build(ImmigrantScreening, value)
    )
    catch_up_vaccination: CatchUpVaccination = attr.ib(
        factory=CatchUpVaccination, converter=lambda value: _build(CatchUpVaccination, value)
    )

    @classmethod
    def disabled(cls) -> "VaccinationPolicy":
        """
        A policy with every vaccination programme and screening switched off.
        """
        return cls(
            neonatal_bcg=NeonatalBCG(enabled=False),
            healthcare_worker_bcg=HealthcareWorkerBCG(enabled=False),
            immigrant_screening=ImmigrantScreening(enabled=False),
            catch_up_vaccination=CatchUpVaccination(enabled=False),
        )

    def initial_vaccinated(self, total_population: float) -> float:
        """
        Vaccinated individuals at the start of a run, estimated from historical coverage.
        """
        vaccinated = 0.0
        if self.neonatal_bcg.enabled:
            vaccinated += total_population * UNDER_40_PROPORTION * self.neonatal_bcg.coverage_target
        if self.healthcare_worker_bcg.enabled:
            vaccinated += (
                total_population
                * HEALTHCARE_WORKER_PROPORTION
                * self.healthcare_worker_bcg.coverage_target
            )
        return float(round(vaccinated))


@attr.s(auto_attribs=True, frozen=True)
class RegionConfig:
    id: str
    name: str = ""
    population: float = attr.ib(default=0.0, converter=float, validator=_non_negative)
    area: float = attr.ib(default=0.0, converter=float, validator=_non_negative)
    density: float = attr.ib(default=0.0, converter=float, validator=_non_negative)
    urbanization: float = attr.ib(default=0.0, converter=float, validator=_probability)
    deprivation_index: float = attr.ib(default=5.0, converter=float, validator=_non_negative)
    tb_incidence_rate: float = attr.ib(default=10.0, converter=float, validator=_non_negative)
    vaccination_coverage: float = attr.ib(default=0.0, converter=float, validator=_probability)
    healthcare_capacity: float = attr.ib(default=0.0, converter=float, validator=_non_negative)


@attr.s(auto_attribs=True, frozen=True)
class PopulationGroupConfig:
    id: str
    label: str = ""
    proportion: float = attr.ib(default=0.0, converter=float, validator=_probability)
    characteristics: dict = attr.ib(factory=dict, converter=dict)
    vaccination_coverage: float = attr.ib(default=0.0, converter=float, validator=_probability)
    contact_pattern: dict = attr.ib(factory=dict, converter=dict)


def _interventions(values) -> List[PolicyIntervention]:
    result = []
    for value in values or ():
        if isinstance(value, PolicyIntervention):
            result.append(value)
        else:
            result.append(PolicyIntervention.from_dict(value))
    return result


def _disease_params(value) -> DiseaseParameters:
    if isinstance(value, DiseaseParameters):
        return value
    if not isinstance(value, dict):
        raise ConfigurationError(f"Invalid disease parameters {value!r}.")
    return DiseaseParameters.from_dict(value)


REQUIRED_FIELDS = (
    "duration",
    "time_step",
    "total_population",
    "disease_params",
    "initial_infected",
    "initial_latent",
)

DEFAULT_AGE_DISTRIBUTION = {
    "0-4": 0.056,
    "5-14": 0.115,
    "15-24": 0.116,
    "25-44": 0.264,
    "45-64": 0.256,
    "65+": 0.193,
}


@attr.s(auto_attribs=True, frozen=True)
class SimulationConfig:
    """
    Complete configuration of one simulation run.

    Attributes:
    ------------
    * duration: Number of simulated days.

    * time_step: Integration step in days, 0 < time_step <= 7.

    * display_interval: Display update interval in milliseconds.

    * total_population: Population size at day 0.

    * disease_params: Base DiseaseParameters (never mutated by the engine).

    * vaccination_policy: BCG programmes and screening.

    * active_interventions: PolicyIntervention timeline.

    * initial_infected / initial_latent: Initial infectious and latent cases.

    * initial_vaccinated: Initial vaccinated count. When None it is derived from the
      vaccination policy.

    * imported_cases_per_day: Imported latent infections per day (before screening).
    """

    id: str = "simulation"
    name: str = "UK TB Simulation"
    description: str = ""
    duration: int = attr.ib(default=3650, converter=int, validator=_non_negative)
    time_step: float = attr.ib(default=0.1, converter=float)
    display_interval: float = attr.ib(default=100.0, converter=float, validator=_non_negative)
    total_population: float = attr.ib(default=67000000.0, converter=float, validator=_non_negative)
    population_groups: List[PopulationGroupConfig] = attr.ib(
        factory=list,
        converter=lambda values: [_build(PopulationGroupConfig, value) for value in values or ()],
    )
    age_distribution: dict = attr.ib(factory=lambda: dict(DEFAULT_AGE_DISTRIBUTION), converter=dict)
    regions: List[RegionConfig] = attr.ib(
        factory=list,
        converter=lambda values: [_build(RegionConfig, value) for value in values or ()],
    )
    inter_region_mixing: float = attr.ib(default=0.1, converter=float, validator=_probability)
    disease_params: DiseaseParameters = attr.ib(
        factory=create_disease_parameters, converter=_disease_params
    )
    vaccination_policy: VaccinationPolicy = attr.ib(
        factory=VaccinationPolicy, converter=lambda value: _build(VaccinationPolicy, value)
    )
    active_interventions: List[PolicyIntervention] = attr.ib(
        factory=list, converter=_interventions
    )
    initial_infected: float = attr.ib(default=5480.0, converter=float, validator=_non_negative)
    initial_latent: float = attr.ib(default=500000.0, converter=float, validator=_non_negative)
    initial_vaccinated: Optional[float] = attr.ib(
        default=None,
        converter=attr.converters.optional(float),
        validator=_non_negative,
    )
    imported_cases_per_day: float = attr.ib(default=15.0, converter=float, validator=_non_negative)
    visualization_mode: VisualizationMode = attr.ib(
        default=VisualizationMode.AGGREGATE, converter=VisualizationMode
    )
    show_transmission_events: bool = True

    def __attrs_post_init__(self):
        if not 0.0 < self.time_step <= MAX_TIME_STEP:
            raise ConfigurationError(
                f"time_step must lie in (0, {MAX_TIME_STEP}] days, got {self.time_step}."
            )
        seeded = self.initial_infected + self.initial_latent + self.resolved_initial_vaccinated()
        if seeded > self.total_population:
            raise ConfigurationError(
                "Initial infected, latent and vaccinated individuals exceed the total population."
            )
        if any(value < 0 for value in self.age_distribution.values()):
            raise ConfigurationError("'age_distribution' entries must be non-negative.")

    @classmethod
    def from_dict(cls, values: dict) -> "SimulationConfig":
        """
        Build a configuration from a plain record (camelCase or snake_case keys).

        :raises ConfigurationError:
            For missing, unknown or invalid fields.
        """
        if not isinstance(values, dict):
            raise ConfigurationError(f"Expected a configuration mapping, got {values!r}.")
        missing = [name for name in REQUIRED_FIELDS if name not in _snake_case_keys(values)]
        if missing:
            raise ConfigurationError(f"Missing required configuration fields: {missing}.")
        return _build(cls, values)

    def resolved_initial_vaccinated(self) -> float:
        if self.initial_vaccinated is not None:
            return self.initial_vaccinated
        return self.vaccination_policy.initial_vaccinated(self.total_population)

    def merged(self, changes) -> "SimulationConfig":
        """
        A new configuration with ``changes`` (a partial record) applied.

        :param changes:
            Mapping of field names (camelCase or snake_case) to new values.

        :return:
            A validated SimulationConfig. The current one is left untouched.
        """
        if isinstance(changes, SimulationConfig):
            return changes
        if not isinstance(changes, dict):
            raise ConfigurationError(f"Expected a partial configuration mapping, got {changes!r}.")
        kwargs = _snake_case_keys(changes)
        known = {field.name for field in attr.fields(SimulationConfig)}
        unknown = set(kwargs) - known
        if unknown:
            raise ConfigurationError(f"Unknown SimulationConfig fields: {sorted(unknown)}.")
        try:
            return attr.evolve(self, **kwargs)
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as error:
            raise ConfigurationError(f"Invalid configuration update: {error}") from error


def create_default_config(**overrides) -> SimulationConfig:
    """
    Default UK configuration: 67 million people, ten years, current BCG policy.

    :param overrides:
        Any SimulationConfig field.

    :return:
        A validated SimulationConfig.
    """
    return SimulationConfig().merged(overrides)
