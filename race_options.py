"""
race_options.py — Scheduling options and criterion weights

Validates the inputs handed to the heat scheduler and turns the caller's
priority preference into one numeric weight per scheduling criterion.

Criteria:
    - "lanes":     lane diversity (each racer tries different lanes)
    - "opponents": opponent diversity (each racer meets different racers)
    - "turnover":  avoid racing in back-to-back heats
"""

from dataclasses import dataclass
from numbers import Integral

LANES = "lanes"
OPPONENTS = "opponents"
TURNOVER = "turnover"

CRITERIA = (LANES, OPPONENTS, TURNOVER)

DEFAULT_PRIORITY = (LANES, TURNOVER, OPPONENTS)

# Single-tag values expand to one fixed full ordering
LEGACY_PRIORITY = {
    LANES: (LANES, OPPONENTS, TURNOVER),
    OPPONENTS: (OPPONENTS, TURNOVER, LANES),
    TURNOVER: (TURNOVER, LANES, OPPONENTS),
}

# Weight by position in the priority order
PRIORITY_WEIGHTS = (1000, 100, 10)
OMITTED_WEIGHT = 1


class InvalidInputError(ValueError):
    """Raised when racers or scheduling options are rejected."""


@dataclass(frozen=True)
class ScheduleOptions:
    """Validated scheduling parameters for one scheduling call."""

    racer_count: int
    num_lanes: int
    heats_per_racer: int
    priority: tuple
    weights: dict

    @property
    def total_slots(self) -> int:
        return self.racer_count * self.heats_per_racer


def _is_positive_int(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool) and value >= 1


def expand_priority(prioritize=None) -> tuple:
    """
    Normalize a priority setting into an ordered tuple of criteria.

    Parameters:
    ----------
    prioritize : str | list | tuple | None
        A single criterion tag (legacy form), an ordered list of tags, or None
        for the default order. A list need not name every criterion.

    Returns:
    -------
    tuple
        Criteria in priority order, first occurrence of each tag only.

    Raises:
    -------
    InvalidInputError: If a tag is unknown or the value has the wrong type.

    Example:
    --------
    >>> expand_priority("opponents")
    ('opponents', 'turnover', 'lanes')
    >>> expand_priority(["turnover", "turnover", "lanes"])
    ('turnover', 'lanes')
    """
    if prioritize is None:
        return DEFAULT_PRIORITY

    if isinstance(prioritize, str):
        if prioritize not in LEGACY_PRIORITY:
            raise InvalidInputError(f"unknown priority criterion: {prioritize!r}")
        return LEGACY_PRIORITY[prioritize]

    if not isinstance(prioritize, (list, tuple)):
        raise InvalidInputError(
            "prioritize must be a criterion name or a list of criterion names"
        )

    order = []
    for criterion in prioritize:
        if criterion not in CRITERIA:
            raise InvalidInputError(f"unknown priority criterion: {criterion!r}")
        if criterion not in order:
            order.append(criterion)
    return tuple(order)


def resolve_weights(priority) -> dict:
    """
    Map every criterion to its weight for the given priority order.

    Position 0 gets 1000, position 1 gets 100, position 2 gets 10. Criteria
    left out of the order get 1.

    >>> resolve_weights(("opponents", "turnover"))
    {'lanes': 1, 'opponents': 1000, 'turnover': 100}
    """
    weights = {criterion: OMITTED_WEIGHT for criterion in CRITERIA}
    for rank, criterion in enumerate(priority[: len(PRIORITY_WEIGHTS)]):
        weights[criterion] = PRIORITY_WEIGHTS[rank]
    return weights


def resolve_options(racers, num_lanes, heats_per_racer, prioritize=None):
    """
    Validate scheduling inputs and resolve criterion weights.

    All checks run before any scheduling work starts, so a rejected call
    never builds a partial grid.

    Parameters:
    ----------
    racers : list | tuple
        The racer entries. Only the count is used here.

    num_lanes : int
        Number of lanes on the track (>= 1).

    heats_per_racer : int
        Number of heats each racer must run (>= 1).

    prioritize : str | list | tuple | None
        Criterion priority; see `expand_priority`.

    Returns:
    -------
    ScheduleOptions

    Raises:
    -------
    InvalidInputError: With a message naming the rejected input.
    """
    if not isinstance(racers, (list, tuple)):
        raise InvalidInputError("racers must be a list")
    if len(racers) == 0:
        raise InvalidInputError("racers list cannot be empty")
    if not _is_positive_int(num_lanes):
        raise InvalidInputError("num_lanes must be a positive integer")
    if not _is_positive_int(heats_per_racer):
        raise InvalidInputError("heats_per_racer must be a positive integer")

    priority = expand_priority(prioritize)

    return ScheduleOptions(
        racer_count=len(racers),
        num_lanes=int(num_lanes),
        heats_per_racer=int(heats_per_racer),
        priority=priority,
        weights=resolve_weights(priority),
    )
