"""Exceptions raised by the simulation core."""


class EvoDriveError(Exception):
    """Base class for simulation errors."""
    pass


class ShapeMismatch(EvoDriveError, ValueError):
    """Controller input vector has the wrong length."""
    pass


class IncompatibleTopology(EvoDriveError, ValueError):
    """Crossover attempted between networks with different layer sizes."""
    pass


class InvalidConfiguration(EvoDriveError, ValueError):
    """Configuration values are out of range."""
    pass


class InvalidGeometry(InvalidConfiguration):
    """Rectangle with a non-positive width or height."""
    pass


class AlreadyRunning(EvoDriveError, RuntimeError):
    """Configuration attempted while a generation is being simulated."""
    pass
