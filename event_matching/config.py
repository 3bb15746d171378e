"""Runtime settings read from the environment.

Entry points (CLI, Dagster definitions) call ``load_dotenv()`` before
``Settings.from_env()``; library code only reads what it is given.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    tables_path: str | None = None
    default_limit: int = 10
    learning_interval: int = 5  # weight update every N explicit feedbacks
    feedback_window: int = 100  # records pulled for weight adaptation
    history_drift: float = 0.05  # min |Δscore| before a stored match row is rewritten

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            tables_path=os.getenv("MATCHING_TABLES_PATH") or None,
            default_limit=int(os.getenv("MATCHING_DEFAULT_LIMIT", "10")),
            learning_interval=int(os.getenv("MATCHING_LEARNING_INTERVAL", "5")),
            feedback_window=int(os.getenv("MATCHING_FEEDBACK_WINDOW", "100")),
            history_drift=float(os.getenv("MATCHING_HISTORY_DRIFT", "0.05")),
        )
