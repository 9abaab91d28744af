"""
Extended SEIR compartmental model for tuberculosis.

Compartments:

* S: Susceptible (unvaccinated, never infected);

* V: Vaccinated (BCG, leaky protection);

* E_H: Exposed high-risk (recent infection, fast progression);

* E_L: Exposed low-risk (stable latent infection, slow reactivation);

* I: Infectious (active TB);

* R: Recovered (partially susceptible to reinfection);

* D: Deceased (cumulative TB deaths only).

All functions in this module are pure: they never mutate their inputs and always return new values.
"""
from typing import Optional

import attr
import numpy as np

from tbdemic.parameters import DiseaseParameters

COMPARTMENTS = ("S", "V", "E_H", "E_L", "I", "R", "D")

LATENT_HIGH_RISK_FRACTION = 0.2

PER_100K = 100000.0


@attr.s(auto_attribs=True, frozen=True)
class CompartmentState:
    """
    Aggregate compartment counts. The same type is used to carry derivatives (rates of change).
    """

    S: float = 0.0
    V: float = 0.0
    E_H: float = 0.0
    E_L: float = 0.0
    I: float = 0.0
    R: float = 0.0
    D: float = 0.0

    def __add__(self, other: "CompartmentState") -> "CompartmentState":
        if not isinstance(other, CompartmentState):
            return NotImplemented
        return add_states(self, other)

    def __mul__(self, factor: float) -> "CompartmentState":
        return scale_state(self, factor)

    __rmul__ = __mul__

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in COMPARTMENTS], dtype=float)

    @classmethod
    def from_array(cls, values) -> "CompartmentState":
        values = np.asarray(values, dtype=float)
        if values.shape != (len(COMPARTMENTS),):
            raise ValueError(
                f"Expected {len(COMPARTMENTS)} compartment values, got {values.shape}."
            )
        return cls(*(float(value) for value in values))

    def as_dict(self) -> dict:
        return {name: float(getattr(self, name)) for name in COMPARTMENTS}

    def clamped(self) -> "CompartmentState":
        return clamp_state(self)

    @property
    def living(self) -> float:
        return total_population(self)


def total_population(state: CompartmentState) -> float:
    """
    Total living population, N = S + V + E_H + E_L + I + R. Deceased individuals are excluded.
    """
    return state.S + state.V + state.E_H + state.E_L + state.I + state.R


def add_states(a: CompartmentState, b: CompartmentState) -> CompartmentState:
    return CompartmentState.from_array(a.as_array() + b.as_array())


def scale_state(state: CompartmentState, factor: float) -> CompartmentState:
    return CompartmentState.from_array(state.as_array() * factor)


def clamp_state(state: CompartmentState) -> CompartmentState:
    """
    Clamp every compartment to be non-negative, absorbing floating-point undershoot near zero.
    """
    return CompartmentState.from_array(np.maximum(state.as_array(), 0.0))


def is_valid_state(state: CompartmentState) -> bool:
    values = state.as_array()
    return bool(np.all(np.isfinite(values)) and np.all(values >= 0.0))


def force_of_infection(state: CompartmentState, params: DiseaseParameters) -> float:
    """
    Per-capita rate at which susceptible individuals become infected.

    :param state:
        Current compartment state.

    :param params:
        Disease parameters (only beta is used).

    :return:
        lambda = beta * I / N, or 0 for an empty population.
    """
    N = total_population(state)
    if N == 0:
        return 0.0
    return params.beta * state.I / N


def derivatives(
    state: CompartmentState, params: DiseaseParameters, force: Optional[float] = None
) -> CompartmentState:
    """
    Right-hand side of the TB model:

        dS/dt   = -lambda*S - rho*S + mu*N - mu*S + sigma*lambda*R
        dV/dt   = rho*S - (1 - ve)*lambda*V - mu*V
        dE_H/dt = lambda*S + (1 - ve)*lambda*V - (epsilon + kappa + mu)*E_H
        dE_L/dt = kappa*E_H - (omega + mu)*E_L
        dI/dt   = epsilon*E_H + omega*E_L - (gamma + mu + mu_tb)*I
        dR/dt   = gamma*I - sigma*lambda*R - mu*R
        dD/dt   = mu_tb*I

    :param state:
        Current compartment state.

    :param params:
        Disease parameters for the current day.

    :param force:
        Optional force of infection overriding beta * I / N.

    :return:
        The rates of change packed as a CompartmentState.
    """
    N = total_population(state)
    lambda_ = force_of_infection(state, params) if force is None else force

    S, V, E_H, E_L, I, R = state.S, state.V, state.E_H, state.E_L, state.I, state.R
    leakiness = 1.0 - params.ve

    dS = -lambda_ * S - params.rho * S + params.mu * N - params.mu * S + params.sigma * lambda_ * R
    dV = params.rho * S - leakiness * lambda_ * V - params.mu * V
    dE_H = lambda_ * S + leakiness * lambda_ * V - (params.epsilon + params.kappa + params.mu) * E_H
    dE_L = params.kappa * E_H - (params.omega + params.mu) * E_L
    dI = params.epsilon * E_H + params.omega * E_L - (params.gamma + params.mu + params.mu_tb) * I
    dR = params.gamma * I - params.sigma * lambda_ * R - params.mu * R
    dD = params.mu_tb * I

    return CompartmentState(dS, dV, dE_H, dE_L, dI, dR, dD)


def basic_reproduction_number(params: DiseaseParameters) -> float:
    """
    R0 for the two-stage latency model:

        R0 = beta * [eps/(eps + kappa + mu) + kappa/(eps + kappa + mu) * omega/(omega + mu)]
             / (gamma + mu + mu_tb)

    Degenerate parameter sets (a zero exit rate) give R0 = 0.
    """
    leave_high_risk = params.epsilon + params.kappa + params.mu
    leave_low_risk = params.omega + params.mu
    leave_infectious = params.gamma + params.mu + params.mu_tb
    if leave_high_risk == 0 or leave_low_risk == 0 or leave_infectious == 0:
        return 0.0

    fast_progression = params.epsilon / leave_high_risk
    slow_progression = (params.kappa / leave_high_risk) * (params.omega / leave_low_risk)
    return params.beta * (fast_progression + slow_progression) / leave_infectious


def effective_reproduction_number(state: CompartmentState, params: DiseaseParameters) -> float:
    """
    Rt = R0 * (S + (1 - ve)*V + sigma*R) / N, or 0 for an empty population.
    """
    N = total_population(state)
    if N == 0:
        return 0.0
    effective_susceptible = state.S + (1.0 - params.ve) * state.V + params.sigma * state.R
    return basic_reproduction_number(params) * effective_susceptible / N


def transmission_rate_for_r0(target_r0: float, params: DiseaseParameters) -> float:
    """
    Invert the R0 formula: the beta that yields ``target_r0`` with the other rates of ``params``.

    :raises ValueError:
        If the progression/infectious period rates make R0 identically zero.
    """
    r0_per_unit_beta = basic_reproduction_number(attr.evolve(params, beta=1.0))
    if r0_per_unit_beta == 0:
        raise ValueError("R0 does not depend on beta for the given parameters.")
    return target_r0 / r0_per_unit_beta


def new_infections(state: CompartmentState, params: DiseaseParameters, dt: float) -> float:
    """
    Infections over a step of length dt: susceptible, breakthrough (vaccinated) and reinfection.
    """
    lambda_ = force_of_infection(state, params)
    exposed_pool = state.S + (1.0 - params.ve) * state.V + params.sigma * state.R
    return lambda_ * exposed_pool * dt


def new_deaths(state: CompartmentState, params: DiseaseParameters, dt: float) -> float:
    return params.mu_tb * state.I * dt


def incidence_rate(new_cases: float, population: float) -> float:
    """
    New cases per 100,000 population.
    """
    if population == 0:
        return 0.0
    return new_cases / population * PER_100K


def prevalence(state: CompartmentState) -> float:
    N = total_population(state)
    if N == 0:
        return 0.0
    return state.I / N


def create_initial_state(
    total: float, infected: float, latent: float, vaccinated: float
) -> CompartmentState:
    """
    Build the initial state of a run. Latent infections are split 20% high-risk (recent) and 80%
    low-risk (stable); the remaining population is susceptible.

    :param total:
        Total population size.

    :param infected:
        Initial infectious cases.

    :param latent:
        Initial latent infections.

    :param vaccinated:
        Initial vaccinated individuals.

    :return:
        The initial compartment state.
    """
    latent_high_risk = float(round(latent * LATENT_HIGH_RISK_FRACTION))
    latent_low_risk = latent - latent_high_risk
    susceptible = total - infected - latent - vaccinated
    return CompartmentState(
        S=max(0.0, susceptible),
        V=float(vaccinated),
        E_H=latent_high_risk,
        E_L=float(latent_low_risk),
        I=float(infected),
        R=0.0,
        D=0.0,
    )
