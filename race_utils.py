"""
Shared analysis helpers for generated heat schedules.
Converts a schedule to the long Heat/Lane/Racer table and measures how fair
it is: race counts, opponent spread, back-to-back runs and lane variety.
"""

from collections import Counter
from itertools import combinations

import numpy as np
import pandas as pd

HEAT_COLUMNS = ["Heat", "Lane", "Racer", "Entry"]


def schedule_to_dataframe(result):
    """
    Flatten a schedule into one row per occupied slot.

    Parameters:
        result (Schedule): A schedule produced by `heats_scheduler.schedule`.

    Returns:
        pd.DataFrame: Columns "Heat" and "Lane" (1-based), "Racer" (input
        index of the racer) and "Entry" (the racer object itself).
    """
    rows = []
    for heat_idx, heat in enumerate(result.assignments):
        for lane, racer in enumerate(heat):
            if racer is None:
                continue
            rows.append(
                {
                    "Heat": heat_idx + 1,
                    "Lane": lane + 1,
                    "Racer": racer,
                    "Entry": result.heats[heat_idx][lane],
                }
            )
    return pd.DataFrame(rows, columns=HEAT_COLUMNS)


def get_racer_heats(result):
    """
    Map each racer to the heat numbers it is scheduled in.

    Parameters:
    ----------
    result : Schedule
        The generated schedule.

    Returns:
    -------
    dict
        Racer input index -> sorted list of 1-based heat numbers.

    Example:
    --------
    Racers "A", "B", "C" on 2 lanes, 2 heats each:

    >>> get_racer_heats(result)
    {0: [1, 3], 1: [1, 2], 2: [2, 3]}
    """
    heats_data = {}
    for heat_idx, heat in enumerate(result.assignments):
        for racer in heat:
            if racer is None:
                continue
            heats_data.setdefault(racer, []).append(heat_idx + 1)
    return dict(sorted(heats_data.items()))


def validate_heats(
    heat_df: pd.DataFrame,
    expected_races_per_car: int,
    all_racers: set | list | None = None,
    min_racers_per_heat: int = 1,
) -> bool:
    """
    Validates a set of heats for consistency and completeness.

    This function checks the following:
    - Each racer appears in the correct number of heats (expected_races_per_car).
    - No racer appears more than once in a single heat.
    - No lane is assigned to more than one racer in a single heat.
    - Each heat has at least the minimum required number of racers.
    - All expected racers (if provided) appear in the heat data.

    Lane repeats for one racer are allowed: with more heats than lanes they
    cannot be avoided.

    Parameters:
    ----------
    heat_df : pd.DataFrame
        Heat assignments with columns "Heat", "Lane" and "Racer", as built by
        `schedule_to_dataframe`.

    expected_races_per_car : int
        The number of heats every racer should run.

    all_racers : set | list | None, optional
        Every racer index that should appear. If provided, missing racers are
        reported.

    min_racers_per_heat : int, optional (default=1)
        The minimum number of racers required in each heat.

    Returns:
    -------
    bool
        True if all validations pass; False otherwise.

    Notes:
    ------
    - Prints an [ERROR] line for each failed rule and [OK] when all pass.
    - Every rule is checked; failures do not stop the remaining checks.
    """
    valid = True

    total_races = heat_df.groupby("Racer").size()
    invalid_race_counts = total_races[total_races != expected_races_per_car]
    if not invalid_race_counts.empty:
        print("[ERROR] Incorrect race counts:")
        for racer, count in invalid_race_counts.items():
            print(f"  Racer {racer} raced {count} times")
        valid = False

    if all_racers is not None:
        missing_racers = set(all_racers) - set(heat_df["Racer"].tolist())
        if missing_racers:
            print("[ERROR] Missing racers from heats:")
            for racer in sorted(missing_racers):
                print(f"  Racer {racer}")
            valid = False

    if heat_df.groupby(["Heat", "Racer"]).size().gt(1).any():
        print("[ERROR] Duplicate racers found within heats")
        valid = False
    if heat_df.groupby(["Heat", "Lane"]).size().gt(1).any():
        print("[ERROR] Duplicate lanes found within heats")
        valid = False

    if heat_df.groupby("Heat").size().lt(min_racers_per_heat).any():
        print(f"[ERROR] Some heats have fewer than {min_racers_per_heat} racers")
        valid = False

    if valid:
        print("[OK] All heat validations passed.")
    return valid


def analyze_opponents(heat_df):
    """
    Counts, for each racer, how many times it shared a heat with every other racer.

    Parameters:
    ----------
    heat_df : pd.DataFrame
        Heat assignments with "Heat" and "Racer" columns.

    Returns:
    -------
    dict
        Racer -> Counter of opponent -> number of shared heats. Racers that
        never met anyone map to an empty Counter.

    Example:
    --------
    Input heats:
        Heat | Racer
        -----|------
         1   | 0
         1   | 1
         2   | 0
         2   | 1
         2   | 2

    Output:
        {
            0: Counter({1: 2, 2: 1}),
            1: Counter({0: 2, 2: 1}),
            2: Counter({0: 1, 1: 1}),
        }
    """
    opponents = {racer: Counter() for racer in heat_df["Racer"].drop_duplicates().tolist()}
    for _, heat in heat_df.groupby("Heat"):
        for a, b in combinations(heat["Racer"].tolist(), 2):
            opponents[a][b] += 1
            opponents[b][a] += 1
    return opponents


def opponent_fairness_score(opponents):
    """
    Variance of the number of unique opponents per racer.

    Lower values mean every racer met a similar number of different racers.

    Parameters:
        opponents (dict): Output of `analyze_opponents()`.

    Returns:
        float: Population variance of unique-opponent counts (0.0 if empty).
    """
    counts = [len(opp) for opp in opponents.values()]
    if not counts:
        return 0.0
    return float(np.var(counts))


def calculate_opponent_uniqueness(heat_df, racer_count):
    """
    Calculates the percentage of possible opponents each racer actually faced.

    Parameters:
    ----------
    heat_df : pd.DataFrame
        Heat assignments with "Heat" and "Racer" columns.

    racer_count : int
        Total number of racers in the group.

    Returns:
    -------
    pd.DataFrame
        Columns "Racer" and "Opponent_Uniqueness_Pct" (0-100, one decimal).
        A lone racer has no possible opponents and receives 0%.
    """
    opponents = analyze_opponents(heat_df)
    possible = racer_count - 1
    rows = []
    for racer in range(racer_count):
        faced = len(opponents.get(racer, ()))
        percentage = (faced / possible) * 100 if possible else 0.0
        rows.append({"Racer": racer, "Opponent_Uniqueness_Pct": round(percentage, 1)})
    return pd.DataFrame(rows, columns=["Racer", "Opponent_Uniqueness_Pct"])


def analyze_turnover(result):
    """
    Measure back-to-back runs between consecutive heats.

    The turnover of heat h is the number of its racers that also ran in heat
    h - 1. Lower turnover means less shuffling of cars at the starting line.

    Parameters:
        result (Schedule): The generated schedule.

    Returns:
        dict: "per_heat" (list, one entry per heat after the first),
        "total", "avg", "max" and "min". All zero for a single heat.
    """
    per_heat = []
    for prev, current in zip(result.assignments, result.assignments[1:]):
        prev_racers = {racer for racer in prev if racer is not None}
        per_heat.append(sum(1 for racer in current if racer in prev_racers))

    if not per_heat:
        return {"per_heat": [], "total": 0, "avg": 0.0, "max": 0, "min": 0}

    return {
        "per_heat": per_heat,
        "total": sum(per_heat),
        "avg": sum(per_heat) / len(per_heat),
        "max": max(per_heat),
        "min": min(per_heat),
    }


def analyze_lane_diversity(result):
    """
    Per-racer lane usage.

    Parameters:
        result (Schedule): The generated schedule.

    Returns:
        pd.DataFrame: Columns "Racer", "Races", "Unique_Lanes" and
        "Repeat_Lanes", sorted by racer.
    """
    heat_df = schedule_to_dataframe(result)
    stats = (
        heat_df.groupby("Racer")["Lane"]
        .agg(Races="size", Unique_Lanes="nunique")
        .reset_index()
    )
    stats["Repeat_Lanes"] = stats["Races"] - stats["Unique_Lanes"]
    return stats


def summarize_schedule(result):
    """
    Collect the fairness statistics of a schedule in one dict.

    Keys:
    - min/max/avg_unique_opponents: unique opponents per racer
    - pairing_variance: variance of how often each met pair shared a heat
    - opponent_fairness: `opponent_fairness_score`
    - turnover_total, turnover_avg: from `analyze_turnover`
    - avg_unique_lanes: mean of "Unique_Lanes" from `analyze_lane_diversity`
    - byes, unfilled: counts of empty slots by kind
    """
    heat_df = schedule_to_dataframe(result)
    opponents = analyze_opponents(heat_df)
    unique_counts = np.array([len(opp) for opp in opponents.values()])
    pair_counts = np.array(
        [times for opp in opponents.values() for times in opp.values()]
    )
    turnover = analyze_turnover(result)
    lanes = analyze_lane_diversity(result)

    return {
        "min_unique_opponents": int(unique_counts.min()),
        "max_unique_opponents": int(unique_counts.max()),
        "avg_unique_opponents": float(unique_counts.mean()),
        "pairing_variance": float(pair_counts.var()) if pair_counts.size else 0.0,
        "opponent_fairness": opponent_fairness_score(opponents),
        "turnover_total": turnover["total"],
        "turnover_avg": turnover["avg"],
        "avg_unique_lanes": float(lanes["Unique_Lanes"].mean()),
        "byes": len(result.byes),
        "unfilled": len(result.unfilled),
    }
