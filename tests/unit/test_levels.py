"""
Unit tests for log level resolution.
"""

import logging

from models.options import StatusLevels
from reqlog.capture import CapturedResponse
from reqlog.levels import level_from_status, resolve_level, to_logging_level


class TestLevelFromStatus:
    """Test status-code tiers."""

    def test_default_tiers(self):
        assert level_from_status(200) == "info"
        assert level_from_status(302) == "info"
        assert level_from_status(403) == "warn"
        assert level_from_status(500) == "error"
        assert level_from_status(503) == "error"

    def test_below_informational_uses_success_tier(self):
        assert level_from_status(0) == "info"

    def test_custom_tiers(self):
        levels = StatusLevels(success="debug", warn="notice", error="critical")
        assert level_from_status(204, levels) == "debug"
        assert level_from_status(404, levels) == "notice"
        assert level_from_status(502, levels) == "critical"

    def test_mapping_tiers_fall_back_to_defaults(self):
        assert level_from_status(404, {"error": "critical"}) == "warn"
        assert level_from_status(500, {"error": "critical"}) == "critical"


class TestResolveLevel:
    """Test precedence between callables, status levels and static levels."""

    def test_callable_wins(self):
        response = CapturedResponse(status_code=500)
        assert resolve_level(lambda req, res: "debug", True, None, response) == "debug"

    def test_callable_receives_exception_on_error_path(self):
        seen = []

        def level(req, res, exc):
            seen.append((res, exc))
            return "critical"

        exc = RuntimeError("x")
        assert resolve_level(level, False, None, None, exc) == "critical"
        assert seen == [(None, exc)]

    def test_status_levels(self):
        assert resolve_level("info", True, None, CapturedResponse(status_code=404)) == "warn"

    def test_static_level(self):
        assert resolve_level("debug", False, None, CapturedResponse(status_code=500)) == "debug"

    def test_default(self):
        assert resolve_level(None, False, None, None, default="error") == "error"


class TestToLoggingLevel:
    def test_known_names(self):
        assert to_logging_level("warn") == logging.WARNING
        assert to_logging_level("ERROR") == logging.ERROR
        assert to_logging_level("silly") == 5

    def test_unknown_name_is_info(self):
        assert to_logging_level("nonsense") == logging.INFO

    def test_int_passes_through(self):
        assert to_logging_level(42) == 42
