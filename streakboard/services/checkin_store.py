"""
Check-in Record Store

Thin query layer over the Supabase tables the check-in core depends on.
Every PostgREST or transport failure is re-raised as StoreError so the
services above never see client-library exceptions.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx
from postgrest.exceptions import APIError

from streakboard.core.database import get_supabase_client
from streakboard.core.errors import StoreError
from streakboard.services.logger import logger

CHECKIN_CONFLICT_KEY = "challenge_id,user_id,check_in_date"
METRICS_CONFLICT_KEY = "challenge_id,user_id"


class SupabaseCheckInStore:
    """Record store backed by the Supabase REST API."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def _execute(self, query, action: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Store call failed while trying to {action}: {e}")
            raise StoreError(f"Failed to {action}") from e
        return result.data or []

    # Challenges and membership

    def get_challenge(self, challenge_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("challenges")
            .select("id, name, is_archived")
            .eq("id", challenge_id)
            .limit(1),
            "load challenge",
        )
        return rows[0] if rows else None

    def list_active_challenge_ids(self) -> List[str]:
        rows = self._execute(
            self.client.table("challenges").select("id").eq("is_archived", False),
            "list challenges",
        )
        return [row["id"] for row in rows]

    def get_membership(self, challenge_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("challenge_members")
            .select("id, challenge_id, user_id")
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
            .limit(1),
            "check challenge membership",
        )
        return rows[0] if rows else None

    def list_memberships(self, challenge_id: str) -> List[Dict[str, Any]]:
        return self._execute(
            self.client.table("challenge_members")
            .select("id, challenge_id, user_id")
            .eq("challenge_id", challenge_id)
            .order("joined_at"),
            "list challenge members",
        )

    # Users

    def ensure_user_profile(self, user_id: str) -> bool:
        """Create a minimal profile row when none exists. Returns True if created."""
        rows = self._execute(
            self.client.table("users").select("id").eq("id", user_id).limit(1),
            "load user profile",
        )
        if rows:
            return False

        self._execute(
            self.client.table("users").upsert(
                {
                    "id": user_id,
                    "username": f"user_{user_id[:8]}",
                    "display_name": "User",
                    "is_admin": False,
                },
                on_conflict="id",
            ),
            "create user profile",
        )
        return True

    def is_admin(self, user_id: str) -> bool:
        rows = self._execute(
            self.client.table("users").select("is_admin").eq("id", user_id).limit(1),
            "load user role",
        )
        return bool(rows and rows[0].get("is_admin"))

    def get_user_profiles(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(user_ids)
        if not ids:
            return {}
        rows = self._execute(
            self.client.table("users")
            .select("id, username, avatar_url")
            .in_("id", ids),
            "load user profiles",
        )
        return {row["id"]: row for row in rows}

    # Achievements

    def list_achievements(self, user_ids: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        ids = list(user_ids)
        if not ids:
            return {}
        rows = self._execute(
            self.client.table("user_achievements")
            .select(
                "user_id, achievement_id, earned_at, "
                "achievements(name, description, criteria, icon)"
            )
            .in_("user_id", ids)
            .order("earned_at", desc=True),
            "load achievements",
        )
        by_user: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            by_user.setdefault(row["user_id"], []).append(_flatten_achievement(row))
        return by_user

    def get_user_achievements(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("user_achievements")
            .select(
                "user_id, achievement_id, earned_at, "
                "achievements(name, description, criteria, icon)"
            )
            .eq("user_id", user_id)
            .order("earned_at", desc=True),
            f"load achievements for user {user_id}",
        )
        return [_flatten_achievement(row) for row in rows]

    # Check-ins

    def get_history(
        self,
        challenge_id: str,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """All check-ins for a member, oldest first."""
        query = (
            self.client.table("checkins")
            .select("id, challenge_id, user_id, check_in_date, status, notes, created_at")
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
        )
        if start_date:
            query = query.gte("check_in_date", start_date.isoformat())
        if end_date:
            query = query.lte("check_in_date", end_date.isoformat())
        return self._execute(query.order("check_in_date"), "load check-in history")

    def get_checkins_on_dates(
        self, challenge_id: str, user_id: str, dates: Iterable[date]
    ) -> List[Dict[str, Any]]:
        days = [d.isoformat() for d in dates]
        if not days:
            return []
        return self._execute(
            self.client.table("checkins")
            .select("id, check_in_date, status")
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
            .in_("check_in_date", days),
            "load check-ins",
        )

    def upsert_checkin(self, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._execute(
            self.client.table("checkins").upsert(row, on_conflict=CHECKIN_CONFLICT_KEY),
            "record check-in",
        )
        return rows[0] if rows else row

    def insert_checkins(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert several rows in one request (all or nothing)."""
        return self._execute(
            self.client.table("checkins").insert(rows), "create check-ins"
        )

    # Metrics

    def get_metrics(self, challenge_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self.client.table("leaderboard_metrics")
            .select("*")
            .eq("challenge_id", challenge_id)
            .eq("user_id", user_id)
            .limit(1),
            "load metrics",
        )
        return rows[0] if rows else None

    def put_metrics(self, row: Dict[str, Any]) -> Dict[str, Any]:
        payload = {**row, "updated_at": datetime.now(timezone.utc).isoformat()}
        rows = self._execute(
            self.client.table("leaderboard_metrics").upsert(
                payload, on_conflict=METRICS_CONFLICT_KEY
            ),
            "save metrics",
        )
        return rows[0] if rows else payload

    def list_metrics(self, challenge_id: str) -> List[Dict[str, Any]]:
        """Metrics rows for a challenge in insertion order."""
        return self._execute(
            self.client.table("leaderboard_metrics")
            .select(
                "user_id, current_streak, best_streak, completion_rate, "
                "total_completions, missed_days_count"
            )
            .eq("challenge_id", challenge_id)
            .order("created_at"),
            "load leaderboard metrics",
        )


def _flatten_achievement(row: Dict[str, Any]) -> Dict[str, Any]:
    details = row.get("achievements") or {}
    return {
        "id": row.get("achievement_id"),
        "name": details.get("name"),
        "description": details.get("description"),
        "criteria": details.get("criteria"),
        "icon": details.get("icon"),
    }


_store: Optional[SupabaseCheckInStore] = None


def get_checkin_store() -> SupabaseCheckInStore:
    global _store
    if _store is None:
        _store = SupabaseCheckInStore()
    return _store
