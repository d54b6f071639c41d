"""Exceptions raised by the mortgage simulator."""

from __future__ import annotations

from typing import Iterable, List


class MortgageSimError(Exception):
    """Base class for simulator errors."""


class InvalidParameters(MortgageSimError, ValueError):
    """The simulation parameters cannot describe a real loan.

    ``errors`` holds one message per rejected field so callers can show all
    problems at once instead of the first one only.
    """

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "invalid parameters")


class DegenerateTermError(MortgageSimError, ValueError):
    """The payment never amortizes the principal at the given rate."""
