"""Booking lifecycle: pending -> confirmed -> in_progress -> completed.

``cancelled`` can be reached from ``pending`` or ``confirmed``. ``completed``
and ``cancelled`` are terminal.
"""

from locallink.scheduling.errors import InvalidStatusTransition

BOOKING_STATUSES = ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled')

BOOKING_TRANSITIONS: dict[str, frozenset[str]] = {
    'pending': frozenset({'confirmed', 'cancelled'}),
    'confirmed': frozenset({'in_progress', 'cancelled'}),
    'in_progress': frozenset({'completed'}),
    'completed': frozenset(),
    'cancelled': frozenset(),
}


def can_transition(current: str, requested: str) -> bool:
    if current == requested:
        return True
    return requested in BOOKING_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, requested: str) -> str:
    if requested not in BOOKING_TRANSITIONS or not can_transition(current, requested):
        raise InvalidStatusTransition(current, requested)
    return requested
