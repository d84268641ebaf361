"""Confirmation guard for mutating calls."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

Confirmer = Callable[[str], bool]


class ConfirmationGate:
    """Asks before a mutation unless confirmations are suppressed.

    Without a confirmer the gate approves everything, which is the
    non-interactive behavior.
    """

    def __init__(self, confirmer: Confirmer | None = None, *, assume_yes: bool = False) -> None:
        self._confirmer = confirmer
        self.assume_yes = assume_yes
        self.declined: list[str] = []

    def should_process(self, target: str, action: str) -> bool:
        """Return True when ``action`` on ``target`` may proceed."""
        if self.assume_yes or self._confirmer is None:
            return True
        prompt = f"{action} on '{target}'?"
        if self._confirmer(prompt):
            return True
        logger.info("Declined: %s", prompt)
        self.declined.append(prompt)
        return False
