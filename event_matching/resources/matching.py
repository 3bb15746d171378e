"""Matching engine resource: hands Dagster ops a MatchingEngine over the SQL store."""

from dagster import ConfigurableResource

from event_matching.config import Settings
from event_matching.engine import MatchingEngine
from event_matching.store.base import MatchingStore
from event_matching.store.sql import SqlStore


class MatchingEngineResource(ConfigurableResource):
    """Builds a MatchingEngine per op invocation.

    Field values override the environment; unset fields fall back to
    ``Settings.from_env()``.
    """

    tables_path: str | None = None
    learning_interval: int | None = None
    feedback_window: int | None = None

    def build_settings(self) -> Settings:
        base = Settings.from_env()
        return Settings(
            tables_path=self.tables_path or base.tables_path,
            default_limit=base.default_limit,
            learning_interval=self.learning_interval or base.learning_interval,
            feedback_window=self.feedback_window or base.feedback_window,
            history_drift=base.history_drift,
        )

    def _get_store(self) -> MatchingStore:
        return SqlStore()

    def get_engine(self) -> MatchingEngine:
        return MatchingEngine(self._get_store(), settings=self.build_settings())
