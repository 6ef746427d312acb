"""
Unit tests for Slack input validation.
"""
import pytest
import sys
import os

# Add repo root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from iga_bridge.validators import (
    validate_slack_user_id,
    validate_search_query,
    validate_justification,
    validate_home_event,
    MAX_JUSTIFICATION_LENGTH,
)


class TestSlackUserIDValidation:

    def test_valid_user_ids(self):
        assert validate_slack_user_id("U12345678") == "U12345678"
        assert validate_slack_user_id("W0123456789AB") == "W0123456789AB"

    def test_empty_user_id_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_slack_user_id("")

    def test_none_user_id_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_slack_user_id(None)

    def test_lowercase_user_id_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_slack_user_id("u12345678")

    def test_channel_id_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_slack_user_id("C12345678")

    def test_injection_attempt_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_slack_user_id("U1234&user=U9999")


class TestSearchQueryValidation:

    def test_query_is_trimmed(self):
        assert validate_search_query("  sales ") == "sales"

    def test_missing_query_becomes_empty(self):
        assert validate_search_query(None) == ""
        assert validate_search_query("") == ""

    def test_oversized_query_rejected(self):
        with pytest.raises(ValueError, match="exceeds maximum"):
            validate_search_query("x" * 201)


class TestJustificationValidation:

    def test_none_passes_through(self):
        assert validate_justification(None) is None

    def test_blank_becomes_none(self):
        assert validate_justification("   ") is None

    def test_valid_justification(self):
        assert validate_justification(" Quarterly close ") == "Quarterly close"

    def test_oversized_justification_rejected(self):
        with pytest.raises(ValueError, match="exceeds maximum"):
            validate_justification("x" * (MAX_JUSTIFICATION_LENGTH + 1))


class TestHomeEventValidation:

    def test_valid_event(self):
        assert validate_home_event({"user_id": "U12345678"}) == "U12345678"

    def test_non_dict_rejected(self):
        with pytest.raises(ValueError, match="must be an object"):
            validate_home_event(["U12345678"])

    def test_missing_user_rejected(self):
        with pytest.raises(ValueError, match="Invalid Slack user ID"):
            validate_home_event({})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
