"""Appointment state machine."""

from enum import Enum

from app.core.exceptions import InvalidStatusTransitionException
from app.schemas.appointments import AppointmentStatus


class TransitionPolicy(str, Enum):
    """Whether status changes are checked against the transition table."""

    PERMISSIVE = "permissive"
    STRICT = "strict"


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatus | str, requested: AppointmentStatus | str) -> bool:
    """Check a move against the transition table."""
    return AppointmentStatus(requested) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def check_transition(
    current: AppointmentStatus | str,
    requested: AppointmentStatus | str,
    policy: TransitionPolicy | str,
) -> None:
    """
    Reject a status change that the policy does not allow.

    The permissive policy accepts any change.

    Raises:
        InvalidStatusTransitionException: Under the strict policy, for moves
            missing from the transition table
    """
    if TransitionPolicy(policy) is TransitionPolicy.PERMISSIVE:
        return

    if not can_transition(current, requested):
        raise InvalidStatusTransitionException(
            AppointmentStatus(current).value, AppointmentStatus(requested).value
        )
