"""Stated matching preferences: read, replace, delete."""

import logging
from typing import Any

from event_matching.domain import Preferences
from event_matching.errors import NotFoundError
from event_matching.schemas import PreferencesRequest, parse_request
from event_matching.store.base import MatchingStore

logger = logging.getLogger(__name__)


class PreferencesService:
    def __init__(self, store: MatchingStore):
        self.store = store

    def get(self, user_id: str) -> Preferences | None:
        return self.store.get_preferences(user_id)

    def set(self, user_id: str, request: PreferencesRequest | dict[str, Any]) -> Preferences:
        """Validate and fully replace the user's preferences.

        Raises:
            ValidationError: If any list holds a non-string or an unknown enum value
            NotFoundError: If the user doesn't exist
        """
        request = parse_request(PreferencesRequest, request)
        if self.store.get_profile(user_id) is None:
            raise NotFoundError("User", user_id)

        saved = self.store.upsert_preferences(
            Preferences(
                user_id=user_id,
                target_positions=request.target_positions,
                target_industries=request.target_industries,
                company_size_preference=request.company_size_preference,
                experience_level_preference=request.experience_level_preference,
                business_goal_alignment=request.business_goal_alignment,
                geographic_preference=request.geographic_preference or [],
            )
        )
        logger.info("Saved matching preferences for user %s", user_id)
        return saved

    def delete(self, user_id: str) -> bool:
        return self.store.delete_preferences(user_id)
