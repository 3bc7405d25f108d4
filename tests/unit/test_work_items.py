"""
Unit tests for static work-item lists
"""

import pytest

from core.exceptions import UnresolvableCheckpointError
from ingestion.work_items import (
    TEXAS_COUNTIES,
    County,
    county_work_items,
    resume_index,
)


class TestTexasCounties:

    def test_has_every_county_once(self):
        fips = [c.fips for c in TEXAS_COUNTIES]
        assert len(fips) == 254
        assert len(set(fips)) == 254

    def test_order_is_stable_by_fips(self):
        fips = [c.fips for c in TEXAS_COUNTIES]
        assert fips == sorted(fips)
        assert TEXAS_COUNTIES[0] == County("001", "Anderson")
        assert TEXAS_COUNTIES[-1] == County("507", "Zavala")


class TestCountyWorkItems:

    def test_items_carry_index_key_and_label(self):
        items = county_work_items(TEXAS_COUNTIES[:3])

        assert [i.index for i in items] == [0, 1, 2]
        assert items[0].key == "001"
        assert items[0].label == "Anderson County"
        assert items[0].payload == TEXAS_COUNTIES[0]

    def test_start_index_keeps_absolute_positions(self):
        items = county_work_items(TEXAS_COUNTIES[:5], start_index=3)

        assert [i.index for i in items] == [3, 4]


class TestResumeIndex:

    def test_no_checkpoint_starts_at_zero(self):
        assert resume_index(TEXAS_COUNTIES, None) == 0

    def test_resumes_after_last_completed(self):
        assert resume_index(TEXAS_COUNTIES, "001") == 1
        assert resume_index(TEXAS_COUNTIES, "507") == len(TEXAS_COUNTIES)

    def test_unknown_key_is_unresolvable(self):
        with pytest.raises(UnresolvableCheckpointError):
            resume_index(TEXAS_COUNTIES, "999")
