"""
Phase Logging for the Completion Orchestration Core
===================================================

Colored, structured logging that frames each chat request in phases.
IMPORTANT: No emojis in console output (Windows encoding issues).
"""

import logging
import time
from typing import Optional, Dict, Any, List
from contextlib import contextmanager
from datetime import datetime
from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class Phase:
    """Phase constants for one chat request"""
    SELECTION = "MODEL_SELECTION"
    GENERATION = "CANDIDATE_GENERATION"
    FALLBACK = "FALLBACK"
    COMPLETION = "COMPLETION"


PHASE_COLORS = {
    Phase.SELECTION: Fore.CYAN,
    Phase.GENERATION: Fore.GREEN,
    Phase.FALLBACK: Fore.YELLOW,
    Phase.COMPLETION: Fore.GREEN + Style.BRIGHT,
}

# Text-based, no emojis for Windows
PHASE_ICONS = {
    Phase.SELECTION: "[SEL]",
    Phase.GENERATION: "[GEN]",
    Phase.FALLBACK: "[FBK]",
    Phase.COMPLETION: "[OK ]",
}


def setup_logging(level: str = "INFO") -> None:
    """Configure the root handler once; later calls only adjust the level."""
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    root.setLevel(numeric_level)


class TimingTracker:
    """Track timing for phases"""

    def __init__(self):
        self._timings: Dict[str, float] = {}
        self._start_times: Dict[str, float] = {}

    def start(self, key: str):
        self._start_times[key] = time.monotonic()

    def end(self, key: str) -> float:
        """End timing and return elapsed seconds"""
        if key not in self._start_times:
            return 0.0
        elapsed = time.monotonic() - self._start_times.pop(key)
        self._timings[key] = self._timings.get(key, 0.0) + elapsed
        return elapsed

    def get(self, key: str) -> Optional[float]:
        return self._timings.get(key)

    def get_all(self) -> Dict[str, float]:
        return self._timings.copy()


class PhaseLogger:
    """
    Logger that tracks the current request phase and its timing

    Usage:
        phase_logger = PhaseLogger(request_id="abc123", extra_verbose=True)

        with phase_logger.phase(Phase.GENERATION, sub_label="reasoning"):
            phase_logger.info("Trying candidate 1/3")
            phase_logger.log_prompt("gpt-5", messages)
    """

    def __init__(
        self,
        request_id: str,
        verbose: bool = False,
        extra_verbose: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.request_id = request_id
        self.verbose = verbose
        self.extra_verbose = extra_verbose
        self.logger = logger or logging.getLogger(__name__)
        self.timing_tracker = TimingTracker()
        self._current_phase: Optional[str] = None
        self._phase_stack: List[Optional[str]] = []

    @property
    def current_phase(self) -> Optional[str]:
        return self._current_phase

    @contextmanager
    def phase(self, phase_name: str, sub_label: Optional[str] = None):
        """Context manager for phase tracking with automatic timing"""
        self._phase_stack.append(self._current_phase)
        self._current_phase = phase_name
        self.timing_tracker.start(phase_name)
        self._print_phase_header(phase_name, sub_label)
        try:
            yield self
        finally:
            elapsed = self.timing_tracker.end(phase_name)
            self._print_phase_footer(phase_name, elapsed)
            self._current_phase = self._phase_stack.pop() if self._phase_stack else None

    def _print_phase_header(self, phase_name: str, sub_label: Optional[str] = None):
        color = PHASE_COLORS.get(phase_name, Fore.WHITE)
        icon = PHASE_ICONS.get(phase_name, "[???]")
        timestamp = datetime.now().strftime("%H:%M:%S")
        sub_str = f" - {sub_label}" if sub_label else ""

        self.logger.info(
            f"{color}{icon} {phase_name}{sub_str} [{self.request_id}] [{timestamp}]{Style.RESET_ALL}"
        )

    def _print_phase_footer(self, phase_name: str, elapsed: float):
        color = PHASE_COLORS.get(phase_name, Fore.WHITE)
        icon = PHASE_ICONS.get(phase_name, "[???]")
        elapsed_str = f"{elapsed:.2f}s" if elapsed > 0 else "N/A"

        self.logger.info(f"{color}{icon} {phase_name} done (Elapsed: {elapsed_str}){Style.RESET_ALL}")

    def info(self, message: str):
        """Log info message with current phase context"""
        if self._current_phase:
            color = PHASE_COLORS.get(self._current_phase, Fore.WHITE)
            icon = PHASE_ICONS.get(self._current_phase, "[???]")
            self.logger.info(f"{color}{icon}{Style.RESET_ALL} {message}")
        else:
            self.logger.info(message)

    def debug(self, message: str):
        """Log debug message (only if verbose)"""
        if self.verbose:
            self.logger.debug(f"{Fore.WHITE}{Style.DIM}{message}{Style.RESET_ALL}")

    def warning(self, message: str):
        self.logger.warning(f"{Fore.YELLOW}[WARN] {message}{Style.RESET_ALL}")

    def error(self, message: str):
        self.logger.error(f"{Fore.RED}{Style.BRIGHT}[ERROR] {message}{Style.RESET_ALL}")

    def log_prompt(self, model: str, messages: List[Dict[str, str]], **params):
        """
        Log the outgoing messages (only if extra_verbose)

        Args:
            model: Concrete model identifier
            messages: Provider-shaped role/content dicts
            **params: Generation parameters (temperature, token limit, etc.)
        """
        if not self.extra_verbose:
            return

        color = PHASE_COLORS.get(self._current_phase, Fore.WHITE)
        separator = "~" * 60

        self.logger.info(f"{color}{separator}{Style.RESET_ALL}")
        self.logger.info(f"{color}[EXTRA_VERBOSE] PROMPT TO {model}{Style.RESET_ALL}")
        for message in messages:
            self.logger.info(f"{Fore.CYAN}[{message.get('role', '?').upper()}]{Style.RESET_ALL}")
            self.logger.info(message.get("content", ""))

        if params:
            self.logger.info(f"{Fore.YELLOW}[PARAMETERS]{Style.RESET_ALL}")
            for key, value in params.items():
                self.logger.info(f"  {key}: {value}")

        self.logger.info(f"{color}{separator}{Style.RESET_ALL}")

    def log_response(self, model: str, response: str, metadata: Optional[Dict[str, Any]] = None):
        """Log the assembled answer (only if extra_verbose)"""
        if not self.extra_verbose:
            return

        color = PHASE_COLORS.get(self._current_phase, Fore.WHITE)
        separator = "~" * 60

        self.logger.info(f"{color}{separator}{Style.RESET_ALL}")
        self.logger.info(f"{color}[EXTRA_VERBOSE] RESPONSE FROM {model}{Style.RESET_ALL}")

        if metadata:
            self.logger.info(f"{Fore.YELLOW}[METADATA]{Style.RESET_ALL}")
            for key, value in metadata.items():
                self.logger.info(f"  {key}: {value}")

        self.logger.info(f"{Fore.GREEN}[RESPONSE]{Style.RESET_ALL}")
        self.logger.info(response)
        self.logger.info(f"{color}{separator}{Style.RESET_ALL}")

    def log_decision(self, decision: str, reason: Optional[str] = None):
        """
        Log the verdict on a candidate attempt

        Args:
            decision: "SUCCEEDED", "ADVANCE" or "FAILED"
            reason: Optional failure reason
        """
        if decision.upper() == "SUCCEEDED":
            color = Fore.GREEN + Style.BRIGHT
            icon = "[OK]"
        elif decision.upper() == "ADVANCE":
            color = Fore.YELLOW + Style.BRIGHT
            icon = "[>>]"
        else:
            color = Fore.RED + Style.BRIGHT
            icon = "[X]"

        self.logger.info(f"{color}{icon} DECISION: {decision}{Style.RESET_ALL}")
        if reason:
            self.logger.info(f"  Reason: {reason}")

    def log_timing_summary(self):
        """Log timing summary for all phases (only if extra_verbose)"""
        if not self.extra_verbose:
            return

        timings = self.timing_tracker.get_all()
        if not timings:
            return

        separator = "=" * 60
        self.logger.info(f"{Fore.WHITE}{Style.BRIGHT}{separator}{Style.RESET_ALL}")
        self.logger.info(f"{Fore.WHITE}{Style.BRIGHT}TIMING SUMMARY [{self.request_id}]{Style.RESET_ALL}")

        total_time = 0.0
        for phase_name, elapsed in timings.items():
            color = PHASE_COLORS.get(phase_name, Fore.WHITE)
            self.logger.info(f"{color}{phase_name:30s} {elapsed:8.2f}s{Style.RESET_ALL}")
            total_time += elapsed

        self.logger.info(f"{Fore.WHITE}{Style.BRIGHT}TOTAL TIME: {total_time:.2f}s{Style.RESET_ALL}")
        self.logger.info(f"{Fore.WHITE}{Style.BRIGHT}{separator}{Style.RESET_ALL}")


def create_phase_logger(request_id: str, verbose: bool = False, extra_verbose: bool = False) -> PhaseLogger:
    """Create a new PhaseLogger instance"""
    return PhaseLogger(
        request_id=request_id,
        verbose=verbose,
        extra_verbose=extra_verbose
    )
