"""Exceptions raised by the SPH interaction engine."""


class SPHError(Exception):
    """Base class for all engine errors."""


class DomainViolation(SPHError, ValueError):
    """A state value left its physical domain (e.g. density <= 0).

    Usually means the time step was too large for the current state.
    """


class ShapeMismatch(SPHError, ValueError):
    """Per-particle arrays or the pair list disagree with the particle count."""
