"""
Decision store.

Keeps at most one live Decision per symbol; a later Decision replaces the
earlier one. Every write goes through ``transaction``: the mutation runs on
a working copy that is swapped in only when it completes, so a failing
batch leaves the store untouched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from apex.core.models import Decision

logger = logging.getLogger(__name__)


@dataclass
class StoreResult:
    """Outcome of a store transaction."""

    ok: bool
    value: Any = None
    error: Optional[str] = None


class DecisionStore:
    """In-memory Decision persistence keyed by symbol."""

    def __init__(self):
        self._decisions: Dict[str, Decision] = {}

    def transaction(self, mutation: Callable[[Dict[str, Decision]], Any]) -> StoreResult:
        """
        Apply ``mutation`` atomically.

        Args:
            mutation: Receives a working copy of the symbol -> Decision map
                and may modify it; its return value becomes
                ``StoreResult.value``.

        Returns:
            StoreResult with ok=False and the error message when the
            mutation raised (nothing is committed).
        """
        working = dict(self._decisions)
        try:
            value = mutation(working)
        except Exception as e:
            logger.error(f"Decision store transaction rolled back: {e}")
            return StoreResult(ok=False, error=str(e))
        self._decisions = working
        return StoreResult(ok=True, value=value)

    def upsert(self, decision: Decision) -> StoreResult:
        def _write(decisions: Dict[str, Decision]) -> str:
            decisions[decision.symbol.upper()] = decision
            return decision.symbol.upper()

        return self.transaction(_write)

    def upsert_many(self, decisions: Iterable[Decision]) -> StoreResult:
        """Write a batch; either every Decision lands or none does."""
        batch = list(decisions)

        def _write(current: Dict[str, Decision]) -> int:
            for decision in batch:
                current[decision.symbol.upper()] = decision
            return len(batch)

        return self.transaction(_write)

    def delete(self, symbol: str) -> StoreResult:
        return self.transaction(lambda current: current.pop(symbol.upper(), None) is not None)

    def get(self, symbol: str) -> Optional[Decision]:
        return self._decisions.get(symbol.upper())

    def all(self) -> List[Decision]:
        """Every live Decision, highest final score first."""
        return sorted(self._decisions.values(), key=lambda d: (-d.final_score, d.symbol))

    def __len__(self) -> int:
        return len(self._decisions)
