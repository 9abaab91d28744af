"""
Time-indexed policy interventions and the effective disease parameters they produce.

Interventions compose multiplicatively (vaccine efficacy overrides compose through ``max``), so
the order in which they are listed never changes the result.
"""
from enum import Enum
from typing import Iterable, List, Optional

import attr
import numpy as np

from tbdemic.exceptions import ConfigurationError
from tbdemic.parameters import TB_PARAMETERS, DiseaseParameters


class PolicyType(Enum):
    """
    Supported intervention types.
    """

    PRE_ENTRY_SCREENING = "pre_entry_screening"
    ACTIVE_CASE_FINDING = "active_case_finding"
    CONTACT_TRACING = "contact_tracing"
    DIRECTLY_OBSERVED_THERAPY = "directly_observed_therapy"
    LATENT_TB_TREATMENT = "latent_tb_treatment"
    UNIVERSAL_BCG = "universal_bcg"
    HEALTHCARE_WORKER_BCG = "healthcare_worker_bcg"
    BORDER_HEALTH_CHECKS = "border_health_checks"
    PUBLIC_AWARENESS_CAMPAIGN = "public_awareness_campaign"


_uk = TB_PARAMETERS["uk_specific"]
_bcg = TB_PARAMETERS["bcg_efficacy"]

POLICY_EFFECTS = {
    PolicyType.PRE_ENTRY_SCREENING: {
        "beta": 1 - _uk["pre_entry_screening_efficacy"] * 0.3,
    },
    PolicyType.ACTIVE_CASE_FINDING: {
        "gamma": 1.5,
        "beta": 1 - _uk["active_case_finding"] * 0.2,
    },
    PolicyType.CONTACT_TRACING: {"beta": 0.85, "gamma": 1.1},
    PolicyType.DIRECTLY_OBSERVED_THERAPY: {"gamma": 1.2, "mu_tb": 0.7},
    PolicyType.LATENT_TB_TREATMENT: {"beta": 0.8},
    PolicyType.UNIVERSAL_BCG: {"rho": 10.0, "ve": _bcg["neonatal"]},
    PolicyType.HEALTHCARE_WORKER_BCG: {"rho": 2.0, "ve": _bcg["adult"]},
    PolicyType.BORDER_HEALTH_CHECKS: {"beta": 0.9},
    PolicyType.PUBLIC_AWARENESS_CAMPAIGN: {"beta": 0.95, "gamma": 1.05},
}

MULTIPLIED_PARAMETERS = ("beta", "gamma", "rho", "mu_tb")

PRE_ENTRY_SCREENING_EFFICACY = _uk["pre_entry_screening_efficacy"]


def _optional_day(value):
    if value is None:
        return None
    return int(value)


@attr.s(auto_attribs=True, frozen=True)
class PolicyIntervention:
    """
    A named modifier active from ``start_day`` to ``end_day`` (inclusive, ``None`` means
    indefinitely).

    Attributes:
    ------------
    * id: Unique identifier of the intervention.

    * type: The PolicyType, which selects the per-parameter effects.

    * name: Human-readable name.

    * start_day: First simulation day on which the intervention is active.

    * end_day: Last active day, or None.

    * parameters: Intervention-specific settings.

    * effect_on_r0: Multiplicative effect on transmission, in (0, 1].
    """

    id: str
    type: PolicyType = attr.ib(converter=PolicyType)
    name: str = ""
    description: str = ""
    start_day: int = attr.ib(default=0, converter=int)
    end_day: Optional[int] = attr.ib(default=None, converter=_optional_day)
    parameters: dict = attr.ib(factory=dict, converter=dict)
    effect_on_r0: float = attr.ib(default=1.0, converter=float)

    def __attrs_post_init__(self):
        if self.start_day < 0:
            raise ConfigurationError(f"Intervention '{self.id}' starts before day 0.")
        if self.end_day is not None and self.start_day > self.end_day:
            raise ConfigurationError(
                f"Intervention '{self.id}' has start_day {self.start_day} after "
                f"end_day {self.end_day}."
            )
        if not 0.0 < self.effect_on_r0 <= 1.0:
            raise ConfigurationError(
                f"Intervention '{self.id}' must have effect_on_r0 in (0, 1], "
                f"got {self.effect_on_r0}."
            )

    @classmethod
    def from_dict(cls, values: dict) -> "PolicyIntervention":
        aliases = {"startDay": "start_day", "endDay": "end_day", "effectOnR0": "effect_on_r0"}
        kwargs = {aliases.get(key, key): value for key, value in values.items()}
        try:
            return cls(**kwargs)
        except (TypeError, ValueError) as error:
            if isinstance(error, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid intervention {values!r}: {error}") from error

    def is_active(self, day: int) -> bool:
        return self.start_day <= day and (self.end_day is None or day <= self.end_day)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "startDay": self.start_day,
            "endDay": self.end_day,
            "parameters": dict(self.parameters),
            "effectOnR0": self.effect_on_r0,
        }


def active_interventions(
    interventions: Iterable[PolicyIntervention], day: int
) -> List[PolicyIntervention]:
    return [intervention for intervention in interventions if intervention.is_active(day)]


def combined_effect(interventions: Iterable[PolicyIntervention], day: int) -> float:
    """
    Product of ``effect_on_r0`` over the interventions active on ``day``; 1.0 when none is.
    """
    active = active_interventions(interventions, day)
    effects = [intervention.effect_on_r0 for intervention in active]
    return float(np.prod(effects)) if effects else 1.0


def parameter_multipliers(interventions: Iterable[PolicyIntervention], day: int) -> dict:
    """
    Combined multiplier of each rate parameter plus the vaccine efficacy override (or None).

    :param interventions:
        All configured interventions.

    :param day:
        Simulation day.

    :return:
        A dict mapping "beta", "gamma", "rho", "mu_tb" to multipliers and "ve" to an override.
    """
    active = active_interventions(interventions, day)
    effects = [POLICY_EFFECTS[intervention.type] for intervention in active]

    multipliers = {}
    for name in MULTIPLIED_PARAMETERS:
        factors = [effect[name] for effect in effects if name in effect]
        multipliers[name] = float(np.prod(factors)) if factors else 1.0
    multipliers["beta"] *= combined_effect(active, day)

    ve_overrides = [effect["ve"] for effect in effects if "ve" in effect]
    multipliers["ve"] = max(ve_overrides) if ve_overrides else None
    return multipliers


def adjust_parameters(
    params: DiseaseParameters, interventions: Iterable[PolicyIntervention], day: int
) -> DiseaseParameters:
    """
    Derive the effective disease parameters for ``day``. ``params`` itself is never modified.

    :param params:
        Base disease parameters.

    :param interventions:
        All configured interventions; inactive ones are ignored.

    :param day:
        Simulation day.

    :return:
        A new DiseaseParameters with scaled beta, gamma, rho (capped at 1), mu_tb and, when an
        active intervention sets one, the highest vaccine efficacy override.
    """
    multipliers = parameter_multipliers(list(interventions), day)
    changes = {
        "beta": min(params.beta * multipliers["beta"], 1.0),
        "gamma": min(params.gamma * multipliers["gamma"], 1.0),
        "rho": min(params.rho * multipliers["rho"], 1.0),
        "mu_tb": min(params.mu_tb * multipliers["mu_tb"], 1.0),
    }
    if multipliers["ve"] is not None:
        changes["ve"] = multipliers["ve"]
    return attr.evolve(params, **changes)


def screening_efficacy(
    interventions: Iterable[PolicyIntervention], day: int, base_efficacy: float = 0.0
) -> float:
    """
    Fraction of imported cases removed by screening on ``day``.
    """
    efficacy = base_efficacy
    for intervention in active_interventions(interventions, day):
        if intervention.type == PolicyType.PRE_ENTRY_SCREENING:
            efficacy = max(efficacy, PRE_ENTRY_SCREENING_EFFICACY)
    return efficacy
