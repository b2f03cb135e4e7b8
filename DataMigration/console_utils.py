"""
Shared console utilities for colored terminal output.

This module provides ANSI color codes and helper functions for printing
colored messages (success, warning, error) to the terminal. Databases and
collections are copied from several threads at once, so every write goes
through a single lock to keep lines from interleaving.
"""
import threading
from datetime import datetime

_print_lock = threading.RLock()
_prompting = threading.Event()


# ANSI color codes for terminal output
class Colors:
    YELLOW = '\033[93m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    RESET = '\033[0m'


def _print(message: str) -> None:
    with _print_lock:
        print(message, flush=True)


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    _print(f"{Colors.YELLOW}{message}{Colors.RESET}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    _print(f"{Colors.RED}{message}{Colors.RESET}")


def print_success(message: str) -> None:
    """Print a success/milestone message in green."""
    _print(f"{Colors.GREEN}{message}{Colors.RESET}")


def print_verbose(verbose: bool, message: str) -> None:
    """Print a timestamped message if verbose mode is enabled."""
    if verbose:
        _print(f"{datetime.now().strftime('%Y/%m/%d %H:%M:%S')} {message}")


def prompt_active() -> bool:
    """Whether the main thread is currently waiting in ``ask_confirmation``."""
    return _prompting.is_set()


def ask_confirmation(message: str) -> bool:
    """
    Ask the user a yes/no question on the terminal. Anything but an explicit
    yes counts as a no, including end of input and an interrupt.
    """
    with _print_lock:
        print()
        try:
            _prompting.set()
            answer = input(f"{message} (y/N) ")
        except (EOFError, KeyboardInterrupt):
            print()
            return False
        finally:
            _prompting.clear()
    return answer.strip().lower() in ("y", "yes")
