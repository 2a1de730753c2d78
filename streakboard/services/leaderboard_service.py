"""
Leaderboard Service

Ranks challenge members from their stored metrics. Results are cached per
(challenge, sort) pair and dropped whenever a member's metrics change.
"""

from typing import Any, Dict, List, Union

from streakboard.core.cache import response_cache
from streakboard.core.config import settings
from streakboard.core.errors import StoreError, ValidationError
from streakboard.models.streaks import AchievementSummary, LeaderboardEntry, SortBy
from streakboard.services.checkin_store import get_checkin_store
from streakboard.services.logger import logger


def leaderboard_cache_key(challenge_id: str, sort_by: SortBy) -> str:
    return f"leaderboard:{challenge_id}:{sort_by.value}"


def invalidate_leaderboards(challenge_id: str) -> None:
    response_cache.invalidate_pattern(f"leaderboard:{challenge_id}:*")


class LeaderboardService:
    def __init__(self, store=None, cache=None):
        self._store = store
        self.cache = cache or response_cache

    @property
    def store(self):
        if self._store is None:
            self._store = get_checkin_store()
        return self._store

    async def get_leaderboard(
        self,
        challenge_id: str,
        sort_by: Union[SortBy, str] = SortBy.CURRENT_STREAK,
    ) -> List[LeaderboardEntry]:
        """
        Get the top members of a challenge ordered by one metric.

        Sorting is descending and stable: members with equal values keep the
        order the store returned them in and still get distinct ranks.
        """
        try:
            sort = SortBy(sort_by)
        except ValueError:
            valid = ", ".join(s.value for s in SortBy)
            raise ValidationError(f"Invalid sort '{sort_by}'. Must be one of: {valid}")

        return await self.cache.get_or_fetch(
            leaderboard_cache_key(challenge_id, sort),
            lambda: self._build_leaderboard(challenge_id, sort),
            ttl=settings.LEADERBOARD_CACHE_TTL_SECONDS,
        )

    async def _build_leaderboard(
        self, challenge_id: str, sort: SortBy
    ) -> List[LeaderboardEntry]:
        rows = self.store.list_metrics(challenge_id)

        field = sort.metric_field
        ranked = sorted(rows, key=lambda row: row.get(field) or 0, reverse=True)
        ranked = ranked[: settings.LEADERBOARD_LIMIT]

        user_ids = [row["user_id"] for row in ranked]
        profiles = self.store.get_user_profiles(user_ids)
        achievements = self._load_achievements(user_ids)

        entries = []
        for rank, row in enumerate(ranked, start=1):
            profile = profiles.get(row["user_id"], {})
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    user_id=row["user_id"],
                    username=profile.get("username") or "Unknown",
                    avatar_url=profile.get("avatar_url"),
                    current_streak=row.get("current_streak") or 0,
                    best_streak=row.get("best_streak") or 0,
                    completion_rate=float(row.get("completion_rate") or 0),
                    total_completions=row.get("total_completions") or 0,
                    missed_days=row.get("missed_days_count") or 0,
                    achievements=[
                        AchievementSummary(**a) for a in achievements.get(row["user_id"], [])
                    ],
                )
            )

        logger.info(
            f"Built leaderboard for challenge {challenge_id}",
            {"challenge_id": challenge_id, "sort_by": sort.value, "entries": len(entries)},
        )
        return entries

    def _load_achievements(self, user_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fetch achievements for all members in one query. If that fails, fall
        back to one lookup per member so a single bad lookup only empties that
        member's list.
        """
        if not user_ids:
            return {}

        try:
            return self.store.list_achievements(user_ids)
        except StoreError as e:
            logger.warning(f"Batch achievement lookup failed, retrying per user: {e.message}")

        by_user: Dict[str, List[Dict[str, Any]]] = {}
        for user_id in user_ids:
            try:
                by_user[user_id] = self.store.get_user_achievements(user_id)
            except StoreError as e:
                logger.warning(
                    f"Achievement lookup failed for user {user_id}: {e.message}"
                )
                by_user[user_id] = []
        return by_user


# Global instance
leaderboard_service = LeaderboardService()
