"""
Tests for rate-limited logging and collaborator failure policies.
"""
import threading
from unittest.mock import MagicMock

import pytest

from txintent._rate_limited_log import rate_limited_log
from txintent.config import CollaboratorPolicy
from txintent.exceptions import PermanentUpstreamError, TransientUpstreamError
from txintent.providers.base import call_with_policy


class TestRateLimitedLog:
    """Tests for rate_limited_log."""

    def test_first_message_logged(self):
        mock_logger = MagicMock()
        assert rate_limited_log("Test message", level="warning", logger_instance=mock_logger)
        mock_logger.warning.assert_called_once_with("Test message")

    def test_repeated_message_suppressed(self):
        mock_logger = MagicMock()
        rate_limited_log("Test message", logger_instance=mock_logger)
        assert not rate_limited_log("Test message", logger_instance=mock_logger)
        assert mock_logger.warning.call_count == 1

    def test_levels_are_separate_keys(self):
        mock_logger = MagicMock()
        rate_limited_log("Same", level="warning", logger_instance=mock_logger)
        rate_limited_log("Same", level="error", logger_instance=mock_logger)
        mock_logger.warning.assert_called_once_with("Same")
        mock_logger.error.assert_called_once_with("Same")

    def test_concurrent_callers_log_once(self):
        mock_logger = MagicMock()
        results = []

        def worker():
            results.append(rate_limited_log("Concurrent", logger_instance=mock_logger))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert mock_logger.warning.call_count == 1


class TestCallWithPolicy:
    """Tests for call_with_policy."""

    def test_success_passes_through(self):
        assert call_with_policy(CollaboratorPolicy.RAISE, "gas_estimate", lambda: 5, 0) == 5

    def test_raise_policy_propagates(self):
        def fail():
            raise PermanentUpstreamError("node down")

        with pytest.raises(PermanentUpstreamError):
            call_with_policy(CollaboratorPolicy.RAISE, "balance_check", fail, None)

    def test_log_policy_returns_default_and_warns(self):
        mock_logger = MagicMock()

        def fail():
            raise TransientUpstreamError("timeout")

        result = call_with_policy(CollaboratorPolicy.LOG, "gas_estimate", fail, 21000, mock_logger)

        assert result == 21000
        mock_logger.warning.assert_called_once()
        assert "gas_estimate" in mock_logger.warning.call_args.args[0]

    def test_log_policy_does_not_swallow_other_errors(self):
        def fail():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            call_with_policy(CollaboratorPolicy.LOG, "gas_estimate", fail, 0)
