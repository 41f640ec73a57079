"""APEX Storage Layer - live Decision persistence."""

from apex.storage.decisions import DecisionStore, StoreResult

__all__ = [
    "DecisionStore",
    "StoreResult",
]
