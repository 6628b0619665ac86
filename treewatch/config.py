"""
Engine configuration.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for an ObservationRegistry.

    Attributes:
        default_delay: Seconds used when a context is created with delay=True.
        grace_window: Seconds to wait before reclaiming the bookkeeping of a
            container that was overwritten or deleted and is no longer
            reachable from the context root.
    """

    default_delay: float = 0.010
    grace_window: float = 10.0

    def resolve_delay(self, delay) -> float:
        """
        Normalize a create() delay argument to seconds.

        None and False mean synchronous delivery (0.0). True, or a number
        that is not positive, selects default_delay; a positive number is
        used as-is.
        """
        if delay is None or delay is False:
            return 0.0
        if delay is True:
            return self.default_delay
        if isinstance(delay, (int, float)):
            return float(delay) if delay > 0 else self.default_delay
        raise TypeError(f"delay must be a bool or a number of seconds, got {delay!r}")


DEFAULT_CONFIG = EngineConfig()
