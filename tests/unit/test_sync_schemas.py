"""
Unit tests for sync request/result schemas and settings checks
"""

import pytest
from pydantic import ValidationError

from core.config import Settings
from core.exceptions import ConfigurationError
from schemas.sync import SyncRequest, SyncResult, SyncStatus, parse_sources


class TestParseSources:

    def test_comma_separated(self):
        assert parse_sources("bls, Census") == ["bls", "census"]

    def test_all_wins(self):
        assert parse_sources("hud,all") == ["all"]

    def test_unknown_names_dropped(self):
        assert parse_sources(["zillow", "hud", "hud"]) == ["hud"]

    def test_empty_selection_means_all(self):
        assert parse_sources("") == ["all"]
        assert parse_sources(None) == ["all"]
        assert parse_sources("zillow") == ["all"]


class TestSyncRequest:

    def test_defaults(self):
        request = SyncRequest()

        assert request.sources == ["all"]
        assert request.state_code == "TX"
        assert request.max_concurrent is None
        assert request.dry_run is None

    def test_normalizes_inputs(self):
        request = SyncRequest(sources="bls", state_code=" ca ")

        assert request.sources == ["bls"]
        assert request.state_code == "CA"

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValidationError):
            SyncRequest(max_concurrent=0)

    def test_rejects_negative_retries(self):
        with pytest.raises(ValidationError):
            SyncRequest(max_retries=-1)


class TestSyncResult:

    def test_display_errors_caps_and_notes_the_rest(self):
        result = SyncResult(source="BLS LAUS", errors=[f"County {i}: timeout" for i in range(13)])

        shown = result.display_errors(10)

        assert len(shown) == 11
        assert shown[:10] == result.errors[:10]
        assert shown[-1] == "... and 3 more errors"

    def test_display_errors_under_limit(self):
        result = SyncResult(source="HUD FMR", errors=["a", "b"])

        assert result.display_errors(10) == ["a", "b"]

    def test_summary_lines(self):
        result = SyncResult(
            source="BLS LAUS",
            status=SyncStatus.PARTIAL,
            successful=360,
            failed=1,
            skipped=3,
            duration_seconds=12.34,
            errors=["BLS API daily rate limit reached - sync stopped early. Resume with: --resume=bls_1"],
        )

        lines = result.summary_lines()

        assert lines[:4] == ["BLS LAUS:", "  Status: partial", "  Successful: 360", "  Failed: 1"]
        assert "  Skipped: 3" in lines
        assert "  Duration: 12.3s" in lines
        assert lines[-1].startswith("    - BLS API daily rate limit reached")

    def test_summary_omits_empty_sections(self):
        lines = SyncResult(source="Census ACS", successful=254).summary_lines()

        assert not any("Skipped" in line for line in lines)
        assert "  Errors:" not in lines


class TestSettingsValidation:

    def test_hud_requires_key(self):
        settings = Settings(HUD_API_KEY=None)

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_for_sources(["hud"])
        assert exc_info.value.context["setting"] == "HUD_API_KEY"

    def test_all_includes_hud(self):
        with pytest.raises(ConfigurationError):
            Settings(HUD_API_KEY=None).validate_for_sources(["all"])

    def test_census_and_bls_run_without_keys(self):
        settings = Settings(HUD_API_KEY=None, CENSUS_API_KEY=None, BLS_API_KEY=None)

        settings.validate_for_sources(["census", "bls"])

    def test_hud_with_key(self):
        Settings(HUD_API_KEY="hud-key").validate_for_sources(["hud"])
