"""
Abstract base class for market data repositories.
Defines the contract the import pipeline writes through.
"""
from abc import ABC, abstractmethod
from typing import List, Tuple
from src.models.market_data import MarketData


class BatchResult:
    """Outcome of one write_batch call."""

    def __init__(self, success_count: int = 0, failures: List[Tuple[MarketData, str]] = None):
        self.success_count = success_count
        self.failures = failures or []

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def __repr__(self):
        return f"BatchResult(success_count={self.success_count}, failures={self.failure_count})"


class DBRepository(ABC):
    """Abstract repository interface for market data writes."""

    @abstractmethod
    def write_batch(self, entities: List[MarketData], overwrite: bool) -> BatchResult:
        """
        Persist a group of drafts.

        A row that cannot be stored is reported in BatchResult.failures and
        never stops the remaining rows.
        """
        pass
