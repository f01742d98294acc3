"""Shared fixtures for heat scheduler tests."""

import pandas as pd
import pytest

from heats_scheduler import schedule


def _make_racers(count):
    return [{"id": i + 1, "name": f"Racer {i + 1}"} for i in range(count)]


@pytest.fixture
def make_racers():
    """Factory for racer dicts shaped like a sign-up sheet: id and name."""
    return _make_racers


@pytest.fixture
def five_racer_schedule():
    """5 racers, 4 lanes, 3 heats each: 4 heats with a single BYE."""
    return schedule(_make_racers(5), num_lanes=4, heats_per_racer=3)


@pytest.fixture
def three_racer_schedule():
    """Racers A, B, C on 2 lanes, 2 heats each (3 full heats)."""
    return schedule(["A", "B", "C"], num_lanes=2, heats_per_racer=2)


@pytest.fixture
def sample_heats_df():
    """A simple heats DataFrame with 3 heats, 3 lanes and 4 racers."""
    return pd.DataFrame(
        {
            "Heat": [1, 1, 1, 2, 2, 2, 3, 3, 3],
            "Lane": [1, 2, 3, 1, 2, 3, 1, 2, 3],
            "Racer": [0, 1, 2, 3, 0, 1, 2, 3, 0],
        }
    )
