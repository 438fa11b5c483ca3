"""
Environmental recommendations derived from the occupant set.

Temperature: the admissible range is the intersection of every occupant's
tolerance interval (max of mins, min of maxes); an empty intersection is a
conflict. Oxygen: a categorical vote over occupant needs mapped onto fixed,
overlapping percentage bands.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .constants import OXYGEN_BANDS
from .data_types import (
    OxygenRecommendation,
    Species,
    TankSummary,
    TemperatureRecommendation,
)

# Operating point verdicts
OK = 'ok'
TOO_LOW = 'too_low'
TOO_HIGH = 'too_high'
CONFLICT = 'conflict'
NO_DATA = 'no_data'

_VERDICT_TEXT = {OK: 'OK', TOO_LOW: 'Too low', TOO_HIGH: 'Too high'}


def recommend_temperature(occupants: Sequence[Species]) -> Optional[TemperatureRecommendation]:
    """
    Widest temperature range satisfying every occupant.

    Returns None when no occupant carries a temperature range.
    """
    ranges = [o.temp_range for o in occupants if o.temp_range is not None]
    if not ranges:
        return None

    mins = np.array([r.min for r in ranges], dtype=np.float64)
    maxs = np.array([r.max for r in ranges], dtype=np.float64)
    rec_min = float(np.max(mins))
    rec_max = float(np.min(maxs))
    return TemperatureRecommendation(min=rec_min, max=rec_max, conflict=rec_min > rec_max)


def oxygen_vote(needs: Sequence[str]) -> str:
    """
    Categorical oxygen vote.

    high + low together -> conflict; any high -> high; all (non-empty) low -> low;
    anything else -> medium.
    """
    if 'high' in needs and 'low' in needs:
        return CONFLICT
    if 'high' in needs:
        return 'high'
    if needs and all(n == 'low' for n in needs):
        return 'low'
    return 'medium'


def recommend_oxygen(
    occupants: Sequence[Species],
    bands: Dict[str, Tuple[float, float]] = OXYGEN_BANDS
) -> OxygenRecommendation:
    """
    Oxygen label and admissible percentage band for the occupant set.

    Occupants without a declared need still vote (as "unknown"), so a tank is
    only "low" when every occupant explicitly needs low oxygen.
    """
    needs = [o.oxygen_need.value if o.oxygen_need is not None else '' for o in occupants]
    label = oxygen_vote(needs)
    if label == CONFLICT:
        return OxygenRecommendation(label=label, range=None)
    low, high = bands[label]
    return OxygenRecommendation(label=label, range=(float(low), float(high)))


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return float(np.mean(np.array(values, dtype=np.float64)))


def summarize(occupants: Sequence[Species]) -> TankSummary:
    """
    Aggregate statistics for the stats panel.

    Averages the midpoint of each occupant's temperature and pH range,
    excluding occupants without data. The oxygen status votes over the
    occupants that declare a need.
    """
    temps = [o.temp_range.midpoint for o in occupants if o.temp_range is not None]
    phs = [o.ph_range.midpoint for o in occupants if o.ph_range is not None]
    needs = [o.oxygen_need.value for o in occupants if o.oxygen_need is not None]

    return TankSummary(
        species_count=len(occupants),
        avg_temp=_mean(temps),
        avg_ph=_mean(phs),
        oxygen_status=oxygen_vote(needs),
    )


# ============================================================================
# Operating point verdicts
# ============================================================================

def _position(point: float, low: float, high: float) -> str:
    if point < low:
        return TOO_LOW
    if point > high:
        return TOO_HIGH
    return OK


def temperature_verdict(rec: Optional[TemperatureRecommendation], point: float) -> str:
    if rec is None:
        return NO_DATA
    if rec.conflict:
        return CONFLICT
    return _position(point, rec.min, rec.max)


def oxygen_verdict(rec: OxygenRecommendation, point: float) -> str:
    if rec.range is None:
        return CONFLICT
    return _position(point, rec.range[0], rec.range[1])


def temperature_hint(rec: Optional[TemperatureRecommendation], point: float) -> str:
    """Hint line shown under the temperature control"""
    verdict = temperature_verdict(rec, point)
    if verdict == NO_DATA:
        return 'No temperature data.'
    if verdict == CONFLICT:
        return 'Conflict: no single temperature fits all species.'
    return f"Recommended: {rec.min:.1f}-{rec.max:.1f}°C, {_VERDICT_TEXT[verdict]}"


def oxygen_hint(rec: OxygenRecommendation, point: float) -> str:
    """Hint line shown under the oxygen control"""
    verdict = oxygen_verdict(rec, point)
    if verdict == CONFLICT:
        return 'Conflict: species need different oxygen levels.'
    low, high = rec.range
    return f"Recommended: {low:g}-{high:g}%, {_VERDICT_TEXT[verdict]}"
