"""
heats_scheduler.py — Pinewood Derby Heat Scheduler (Weighted Greedy)

Assigns racers to lanes across a sequence of heats so that:
- Each racer runs exactly `heats_per_racer` times
- No racer appears twice in the same heat
- Lanes, opponents and back-to-back heats are balanced according to a
  caller-supplied priority order

Pipeline:
    resolve_options -> compute_num_heats -> place_byes -> assign_racers -> Schedule

The result is deterministic: the same racers and options always produce the
same schedule.

Example:
    >>> result = schedule(["Red", "Blue", "Green", "Gold", "Jet"], num_lanes=4, heats_per_racer=3)
    >>> result.num_heats
    4
    >>> result[0]
    ('Red', 'Blue', 'Green', 'Gold')
"""

from dataclasses import dataclass, field
from itertools import combinations
from types import MappingProxyType

from race_options import LANES, OPPONENTS, TURNOVER, resolve_options
from race_utils import schedule_to_dataframe

# Internal slot markers; racers are referenced by their input index (>= 0)
BYE = -1
UNFILLED = -2

NEW_LANE_SCORE = 10
NEW_OPPONENT_SCORE = 2
REPEAT_OPPONENT_SCORE = -5
FRESH_RACER_SCORE = 1
BACK_TO_BACK_SCORE = -1


def compute_num_heats(racer_count: int, num_lanes: int, heats_per_racer: int) -> int:
    """
    Number of heats needed to seat every required run.

    A racer cannot run twice in one heat, so there are never fewer heats than
    `heats_per_racer`; the grid must also hold all `racer_count * heats_per_racer`
    runs.

    >>> compute_num_heats(5, 4, 3)
    4
    >>> compute_num_heats(1, 4, 3)
    3
    """
    total_slots = racer_count * heats_per_racer
    return max(heats_per_racer, -(-total_slots // num_lanes))


def allocate_grid(num_heats: int, num_lanes: int) -> list:
    """Build an empty heats x lanes grid with every slot UNFILLED."""
    return [[UNFILLED] * num_lanes for _ in range(num_heats)]


def get_lane_priority(num_lanes: int) -> list:
    """
    Lane indexes ordered outermost first, working inward.

    >>> get_lane_priority(5)
    [0, 4, 1, 3, 2]
    """
    priority = []
    left, right = 0, num_lanes - 1
    while left <= right:
        if left == right:
            priority.append(left)
        else:
            priority.extend((left, right))
        left += 1
        right -= 1
    return priority


def place_byes(num_heats: int, num_lanes: int, necessary_byes: int) -> list:
    """
    Choose which slots stay empty before any racer is seated.

    BYEs go to the track edges first and to the latest heats first. Placement
    walks backward from the last heat, wrapping to the last heat again when
    more BYEs remain. At each step the edge (first or last lane) holding fewer
    BYEs so far is tried, alternating on ties. If that lane is already a BYE
    in the current heat, the first free lane in outermost-first order is used.

    Parameters:
    ----------
    num_heats : int
        Number of heats in the grid.

    num_lanes : int
        Number of lanes per heat.

    necessary_byes : int
        How many slots must stay empty (grid size minus required runs).

    Returns:
    -------
    list[list[bool]]
        A heats x lanes grid where True marks a BYE.

    Notes:
    ------
    Because the grid is sized from the required runs, every heat keeps at
    least one open lane.
    """
    byes = [[False] * num_lanes for _ in range(num_heats)]
    if necessary_byes <= 0:
        return byes

    lane_left, lane_right = 0, num_lanes - 1
    lane_order = get_lane_priority(num_lanes)
    left_byes = right_byes = 0

    heat_idx = num_heats - 1
    byes_placed = 0
    while byes_placed < necessary_byes:
        if left_byes < right_byes:
            edge = lane_left
        elif right_byes < left_byes:
            edge = lane_right
        else:
            edge = lane_left if byes_placed % 2 == 0 else lane_right

        lane = edge
        if byes[heat_idx][edge]:
            for candidate in lane_order:
                if not byes[heat_idx][candidate]:
                    lane = candidate
                    break

        byes[heat_idx][lane] = True
        if lane == lane_left:
            left_byes += 1
        if lane == lane_right:
            right_byes += 1
        byes_placed += 1

        heat_idx -= 1
        if heat_idx < 0:
            heat_idx = num_heats - 1

    return byes


@dataclass
class AssignmentState:
    """Per-racer bookkeeping for one scheduling call."""

    remaining: list
    lanes_used: list
    raced_together: set = field(default_factory=set)
    previous_heat: set = field(default_factory=set)

    @classmethod
    def start(cls, racer_count, heats_per_racer):
        return cls(
            remaining=[heats_per_racer] * racer_count,
            lanes_used=[set() for _ in range(racer_count)],
        )

    def record_heat(self, placed):
        for pair in combinations(sorted(placed), 2):
            self.raced_together.add(pair)
        self.previous_heat = set(placed)


def score_candidate(state, racer, lane, placed, weights) -> int:
    """
    Score a racer for one lane of the heat being filled.

    The score is the weighted sum of three terms, kept in tenths so equal
    scores compare exactly:
    - lane:      10 if the racer has never run this lane
    - opponents: +2 per racer already in the heat never met before, -5 per repeat
    - turnover:  +1 if the racer sat out the previous heat, -1 if it ran
    A nudge of 0.1 per remaining run favors racers who still need more heats.
    """
    lane_term = NEW_LANE_SCORE if lane not in state.lanes_used[racer] else 0

    opponent_term = 0
    for other in placed:
        pair = (racer, other) if racer < other else (other, racer)
        if pair in state.raced_together:
            opponent_term += REPEAT_OPPONENT_SCORE
        else:
            opponent_term += NEW_OPPONENT_SCORE

    turnover_term = (
        BACK_TO_BACK_SCORE if racer in state.previous_heat else FRESH_RACER_SCORE
    )

    weighted = (
        weights[LANES] * lane_term
        + weights[OPPONENTS] * opponent_term
        + weights[TURNOVER] * turnover_term
    )
    return weighted * 10 + state.remaining[racer]


def assign_racers(grid, options) -> list:
    """
    Fill every open slot of the grid, heat by heat and lane by lane.

    For each heat the open lanes are rotated by the heat index so no lane is
    always filled first. Each lane goes to the highest scoring racer that
    still needs runs and is not already in the heat; ties go to the lowest
    input index. Racers who must run in every remaining heat to reach their
    count are seated first once they would otherwise run out of room.

    Parameters:
    ----------
    grid : list[list[int]]
        Heats x lanes grid holding BYE or UNFILLED markers. Modified in place:
        filled slots receive the racer's input index.

    options : ScheduleOptions
        Validated options from `resolve_options`.

    Returns:
    -------
    list[tuple[int, int]]
        (heat, lane) coordinates left unfilled because no racer was eligible.
        Empty for any grid sized by `compute_num_heats`.
    """
    num_heats = len(grid)
    weights = options.weights
    state = AssignmentState.start(options.racer_count, options.heats_per_racer)
    unfilled = []

    for heat_idx, heat in enumerate(grid):
        open_lanes = [lane for lane, slot in enumerate(heat) if slot != BYE]
        if not open_lanes:
            state.record_heat([])
            continue

        shift = heat_idx % len(open_lanes)
        lane_order = open_lanes[shift:] + open_lanes[:shift]
        heats_left = num_heats - heat_idx
        placed = []

        for position, lane in enumerate(lane_order):
            candidates = [
                racer
                for racer in range(options.racer_count)
                if state.remaining[racer] > 0 and racer not in placed
            ]
            if not candidates:
                break

            must_race = [r for r in candidates if state.remaining[r] >= heats_left]
            if len(must_race) >= len(lane_order) - position:
                candidates = must_race

            best = max(
                candidates,
                key=lambda r: (score_candidate(state, r, lane, placed, weights), -r),
            )

            heat[lane] = best
            placed.append(best)
            state.remaining[best] -= 1
            state.lanes_used[best].add(lane)

        for lane in lane_order:
            if heat[lane] == UNFILLED:
                print(f"[WARN] Heat {heat_idx + 1}, lane {lane + 1} left unfilled")
                unfilled.append((heat_idx, lane))

        state.record_heat(placed)

    return unfilled


@dataclass(frozen=True)
class Schedule:
    """
    A finished heat schedule.

    `heats[h][l]` is the racer in heat `h`, lane `l` (0-based), using the
    exact objects the caller passed in, or None for an empty slot.
    `assignments` is the same grid by racer input index.

    Schedules compare by value but are not hashable: racer objects and the
    weights mapping may be unhashable.
    """

    __hash__ = None

    heats: tuple
    assignments: tuple
    num_lanes: int
    heats_per_racer: int
    priority: tuple
    weights: MappingProxyType
    byes: frozenset
    unfilled: tuple

    @classmethod
    def from_grid(cls, racers, grid, options, unfilled=()):
        assignments = tuple(
            tuple(slot if slot >= 0 else None for slot in heat) for heat in grid
        )
        heats = tuple(
            tuple(racers[slot] if slot is not None else None for slot in heat)
            for heat in assignments
        )
        byes = frozenset(
            (heat_idx, lane)
            for heat_idx, heat in enumerate(grid)
            for lane, slot in enumerate(heat)
            if slot == BYE
        )
        return cls(
            heats=heats,
            assignments=assignments,
            num_lanes=options.num_lanes,
            heats_per_racer=options.heats_per_racer,
            priority=options.priority,
            weights=MappingProxyType(dict(options.weights)),
            byes=byes,
            unfilled=tuple(unfilled),
        )

    @property
    def num_heats(self) -> int:
        return len(self.heats)

    def __len__(self):
        return len(self.heats)

    def __iter__(self):
        return iter(self.heats)

    def __getitem__(self, index):
        return self.heats[index]

    def to_dataframe(self):
        return schedule_to_dataframe(self)


def schedule(racers, num_lanes, heats_per_racer, prioritize=None) -> Schedule:
    """
    Generate a heat schedule assigning racers to lanes.

    Parameters:
    ----------
    racers : list | tuple
        Racer entries of any type. They are never inspected or copied; the
        schedule refers back to these same objects.

    num_lanes : int
        Number of lanes on the track (>= 1).

    heats_per_racer : int
        Number of heats each racer runs (>= 1).

    prioritize : str | list | tuple | None, optional
        Criterion order among "lanes", "opponents" and "turnover". A single
        name is expanded to a fixed full order; a list may name a subset.
        Defaults to lanes, turnover, opponents.

    Returns:
    -------
    Schedule
        `num_heats x num_lanes` grid of racers and empty (None) slots.

    Raises:
    -------
    InvalidInputError: If racers is not a non-empty list, or a count is not a
    positive integer, or a priority name is unknown.

    Example:
    --------
    >>> result = schedule(["A", "B"], num_lanes=4, heats_per_racer=2)
    >>> [list(heat) for heat in result]
    [[None, 'A', 'B', None], [None, 'B', 'A', None]]
    """
    options = resolve_options(racers, num_lanes, heats_per_racer, prioritize)
    entries = tuple(racers)

    num_heats = compute_num_heats(
        options.racer_count, options.num_lanes, options.heats_per_racer
    )
    necessary_byes = num_heats * options.num_lanes - options.total_slots

    grid = allocate_grid(num_heats, options.num_lanes)
    bye_grid = place_byes(num_heats, options.num_lanes, necessary_byes)
    for heat_idx, heat in enumerate(bye_grid):
        for lane, is_bye in enumerate(heat):
            if is_bye:
                grid[heat_idx][lane] = BYE

    unfilled = assign_racers(grid, options)
    return Schedule.from_grid(entries, grid, options, unfilled)
