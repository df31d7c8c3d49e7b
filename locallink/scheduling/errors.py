"""Errors raised by the scheduling core."""


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class InvalidInterval(SchedulingError, ValueError):
    """An interval whose end is not after its start."""

    def __init__(self, start, end):
        super().__init__(f'Interval end ({end}) must be after its start ({start}).')
        self.start = start
        self.end = end


class InvalidDuration(SchedulingError, ValueError):
    """A requested duration that is not a positive number of minutes."""

    def __init__(self, duration_minutes):
        super().__init__(f'Duration must be a positive number of minutes, got {duration_minutes}.')
        self.duration_minutes = duration_minutes


class DependencyFailure(SchedulingError):
    """A collaborator (the event store, the schedule store) failed to answer."""


class ConflictDetected(SchedulingError):
    """A reservation was refused because the interval is already taken."""

    def __init__(self, conflicts):
        super().__init__(f'Interval overlaps {len(conflicts)} existing event(s).')
        self.conflicts = conflicts


class InvalidStatusTransition(SchedulingError):
    def __init__(self, current: str, requested: str):
        super().__init__(f'Cannot move from {current!r} to {requested!r}.')
        self.current = current
        self.requested = requested
