"""
Errors raised by tbdemic.
"""


class TbdemicError(Exception):
    """
    Base class for all errors raised by this package.
    """


class ConfigurationError(TbdemicError, ValueError):
    """
    Raised when a configuration object, a disease parameter set or an intervention timeline is
    invalid. A run is never started from an invalid configuration.
    """


class SimulationError(TbdemicError, RuntimeError):
    """
    Raised when a simulation step can not produce a valid state.
    """


class CommandError(TbdemicError):
    """
    Raised when a command sent to the execution host is unknown or malformed.
    """
