"""
Environmental recommendations

Temperature intersection, oxygen vote and the stats panel summary.
"""

import numpy as np

from thinktank.data_types import Range, Species
from thinktank.environment import (
    CONFLICT,
    NO_DATA,
    OK,
    TOO_HIGH,
    TOO_LOW,
    oxygen_hint,
    oxygen_verdict,
    oxygen_vote,
    recommend_oxygen,
    recommend_temperature,
    summarize,
    temperature_hint,
    temperature_verdict,
)


def _with_temp(low, high):
    return Species(id=f"t{low}-{high}", name='T', temp_range=Range(low, high))


def test_temperature_intersection():
    rec = recommend_temperature([_with_temp(24, 28), _with_temp(26, 30)])

    assert rec.min == 26.0
    assert rec.max == 28.0
    assert not rec.conflict


def test_temperature_conflict():
    rec = recommend_temperature([_with_temp(24, 26), _with_temp(28, 30)])

    assert rec.min == 28.0
    assert rec.max == 26.0
    assert rec.conflict
    assert temperature_verdict(rec, 27) == CONFLICT


def test_temperature_touching_ranges_are_not_a_conflict():
    rec = recommend_temperature([_with_temp(24, 26), _with_temp(26, 30)])
    assert rec.min == rec.max == 26.0
    assert not rec.conflict


def test_temperature_no_data():
    assert recommend_temperature([]) is None
    assert recommend_temperature([Species(id='x', name='X')]) is None
    assert temperature_verdict(None, 26) == NO_DATA
    assert temperature_hint(None, 26) == 'No temperature data.'


def test_temperature_verdicts():
    rec = recommend_temperature([_with_temp(24, 28), _with_temp(26, 30)])

    assert temperature_verdict(rec, 25) == TOO_LOW
    assert temperature_verdict(rec, 26) == OK
    assert temperature_verdict(rec, 28.5) == TOO_HIGH
    assert temperature_hint(rec, 27) == 'Recommended: 26.0-28.0°C, OK'


def test_oxygen_vote():
    assert oxygen_vote([]) == 'medium'
    assert oxygen_vote(['low', 'low']) == 'low'
    assert oxygen_vote(['low', 'medium']) == 'medium'
    assert oxygen_vote(['medium', 'high']) == 'high'
    assert oxygen_vote(['low', 'high']) == CONFLICT


def test_oxygen_all_low(catalog):
    rec = recommend_oxygen([catalog['betta'], catalog['java-fern']])

    assert rec.label == 'low'
    assert rec.range == (30.0, 55.0)
    assert oxygen_verdict(rec, 40) == OK
    assert oxygen_hint(rec, 60) == 'Recommended: 30-55%, Too high'


def test_oxygen_low_and_high_conflict(catalog):
    rec = recommend_oxygen([catalog['betta'], catalog['clownfish']])

    assert rec.label == CONFLICT
    assert rec.range is None
    assert rec.conflict
    assert oxygen_hint(rec, 50) == 'Conflict: species need different oxygen levels.'


def test_oxygen_undeclared_need_blocks_low(catalog):
    """An occupant without a declared need keeps the tank out of the low band"""
    rec = recommend_oxygen([catalog['betta'], Species(id='x', name='X')])
    assert rec.label == 'medium'
    assert rec.range == (45.0, 75.0)


def test_oxygen_custom_bands(catalog):
    rec = recommend_oxygen([catalog['clownfish']], bands={'low': (1, 2), 'medium': (3, 4), 'high': (70, 95)})
    assert rec.range == (70.0, 95.0)


def test_summary(catalog):
    summary = summarize([catalog['betta'], catalog['guppy']])

    assert summary.species_count == 2
    assert np.isclose(summary.avg_temp, 27.0)
    assert np.isclose(summary.avg_ph, (7.0 + 7.3) / 2)
    assert summary.oxygen_status == 'medium'
    assert summary.avg_temp_text == '27.0'


def test_summary_skips_missing_data(catalog):
    summary = summarize([catalog['betta'], Species(id='x', name='X')])

    assert summary.species_count == 2
    assert np.isclose(summary.avg_temp, 26.0)
    assert summary.oxygen_status == 'low'


def test_summary_empty_tank():
    summary = summarize([])

    assert summary.species_count == 0
    assert summary.avg_temp is None
    assert summary.avg_ph is None
    assert summary.avg_temp_text == '—'
    assert summary.avg_ph_text == 'No pH data'
    assert dict(summary.lines())['Species Count'] == '0'
