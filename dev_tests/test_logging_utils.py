"""Tests for logging_utils.py - phase tracking and verbosity gates."""

import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logging_utils import Phase, PhaseLogger, create_phase_logger, setup_logging  # noqa: E402


class TestPhaseLogger:
    """Tests for PhaseLogger."""

    def test_phase_nesting_and_timing(self, caplog):
        caplog.set_level(logging.INFO)
        phase_logger = PhaseLogger("req-1", logger=logging.getLogger("test.phase"))

        with phase_logger.phase(Phase.GENERATION, sub_label="ModelA"):
            assert phase_logger.current_phase == Phase.GENERATION
            with phase_logger.phase(Phase.FALLBACK):
                assert phase_logger.current_phase == Phase.FALLBACK
            assert phase_logger.current_phase == Phase.GENERATION

        assert phase_logger.current_phase is None
        assert phase_logger.timing_tracker.get(Phase.GENERATION) is not None
        assert "req-1" in caplog.text
        assert "ModelA" in caplog.text

    def test_prompt_logged_only_when_extra_verbose(self, caplog):
        caplog.set_level(logging.INFO)
        quiet = create_phase_logger("q")
        quiet.log_prompt("gpt-5", [{"role": "user", "content": "secret question"}])
        assert "secret question" not in caplog.text

        loud = create_phase_logger("l", extra_verbose=True)
        loud.log_prompt("gpt-5", [{"role": "user", "content": "visible question"}], max_tokens=5)
        assert "visible question" in caplog.text
        assert "max_tokens: 5" in caplog.text

    def test_decision(self, caplog):
        caplog.set_level(logging.INFO)
        create_phase_logger("d").log_decision("ADVANCE", "rate limited")

        assert "DECISION: ADVANCE" in caplog.text
        assert "Reason: rate limited" in caplog.text

    def test_debug_only_when_verbose(self, caplog):
        caplog.set_level(logging.DEBUG)
        create_phase_logger("quiet").debug("hidden detail")
        assert "hidden detail" not in caplog.text

        create_phase_logger("loud", verbose=True).debug("shown detail")
        assert "shown detail" in caplog.text

    def test_error_tagged(self, caplog):
        caplog.set_level(logging.INFO)
        create_phase_logger("e").error("chain exhausted")

        assert "[ERROR] chain exhausted" in caplog.text
        assert caplog.records[-1].levelno == logging.ERROR


def test_setup_logging_sets_level():
    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    setup_logging("not-a-level")
    assert logging.getLogger().level == logging.INFO
