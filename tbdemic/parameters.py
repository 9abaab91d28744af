"""
Disease parameters for the TB model and the reference values they are derived from.

All rates are per day. Reference values follow UKHSA TB reports, the WHO Global TB Report and
BCG efficacy studies.
"""
import attr

from tbdemic.exceptions import ConfigurationError

DAYS_PER_YEAR = 365

TB_PARAMETERS = {
    "r0": {"min": 1.3, "max": 2.2, "default": 1.7},
    "transmission_rate": {"baseline": 0.0001, "household": 0.001},
    "latency": {
        "fast_progression_rate": 0.0014,
        "stabilization_rate": 0.001,
        "reactivation_rate": 0.0001,
    },
    "infectious_period": {"untreated": 730, "treated": 180},
    "treatment_rate": 0.85,
    "case_fatality_rate": {"untreated": 0.45, "treated": 0.04},
    "bcg_efficacy": {"neonatal": 0.86, "childhood": 0.7, "adult": 0.5},
    "contact_rates": {"general": 10, "household": 4, "workplace": 6, "healthcare": 15},
    "uk_specific": {"pre_entry_screening_efficacy": 0.7, "active_case_finding": 0.65},
}

NATURAL_MORTALITY_RATE = 1 / (80 * DAYS_PER_YEAR)
TB_MORTALITY_RATE = TB_PARAMETERS["case_fatality_rate"]["treated"] / DAYS_PER_YEAR
DEFAULT_VACCINATION_RATE = 0.001
DEFAULT_REINFECTION_SUSCEPTIBILITY = 0.5
DEFAULT_VACCINE_EFFICACY = 0.7


def _unit_interval(instance, attribute, value):
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(
            f"Disease parameter '{attribute.name}' must lie in [0, 1], got {value}."
        )


@attr.s(auto_attribs=True, frozen=True)
class DiseaseParameters:
    """
    Per-day rates and probabilities of the TB model.

    Attributes:
    ------------
    * beta: transmission rate;

    * epsilon: fast progression rate (E_H -> I);

    * kappa: stabilization rate (E_H -> E_L);

    * omega: reactivation rate (E_L -> I);

    * gamma: recovery rate;

    * mu: natural mortality rate (also the birth rate, births replace deaths);

    * mu_tb: TB-specific mortality rate;

    * rho: background vaccination rate (S -> V);

    * ve: vaccine efficacy, BCG protection against childhood pulmonary TB (the higher neonatal
      efficacy only applies through the universal BCG intervention);

    * sigma: reinfection susceptibility of recovered individuals.
    """

    beta: float = attr.ib(
        default=TB_PARAMETERS["transmission_rate"]["baseline"],
        converter=float,
        validator=_unit_interval,
    )
    epsilon: float = attr.ib(
        default=TB_PARAMETERS["latency"]["fast_progression_rate"],
        converter=float,
        validator=_unit_interval,
    )
    kappa: float = attr.ib(
        default=TB_PARAMETERS["latency"]["stabilization_rate"],
        converter=float,
        validator=_unit_interval,
    )
    omega: float = attr.ib(
        default=TB_PARAMETERS["latency"]["reactivation_rate"],
        converter=float,
        validator=_unit_interval,
    )
    gamma: float = attr.ib(
        default=1 / TB_PARAMETERS["infectious_period"]["treated"],
        converter=float,
        validator=_unit_interval,
    )
    mu: float = attr.ib(default=NATURAL_MORTALITY_RATE, converter=float, validator=_unit_interval)
    mu_tb: float = attr.ib(default=TB_MORTALITY_RATE, converter=float, validator=_unit_interval)
    rho: float = attr.ib(
        default=DEFAULT_VACCINATION_RATE, converter=float, validator=_unit_interval
    )
    ve: float = attr.ib(
        default=DEFAULT_VACCINE_EFFICACY, converter=float, validator=_unit_interval
    )
    sigma: float = attr.ib(
        default=DEFAULT_REINFECTION_SUSCEPTIBILITY, converter=float, validator=_unit_interval
    )

    @classmethod
    def from_dict(cls, values: dict) -> "DiseaseParameters":
        """
        Build parameters from a plain record. ``muTb`` is accepted as an alias of ``mu_tb``.
        """
        values = dict(values)
        if "muTb" in values:
            values["mu_tb"] = values.pop("muTb")
        known = {field.name for field in attr.fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown disease parameters: {sorted(unknown)}.")
        return cls(**values)

    def as_dict(self) -> dict:
        return attr.asdict(self)


def create_disease_parameters(**overrides) -> DiseaseParameters:
    """
    Default UK disease parameters with optional overrides.

    :param overrides:
        Any DiseaseParameters field.

    :return:
        A validated DiseaseParameters instance.
    """
    return attr.evolve(DiseaseParameters(), **overrides)
