"""
Pytest configuration and fixtures for Streakboard API tests.

Service and HTTP tests run against InMemoryCheckInStore, which mirrors the
query surface of SupabaseCheckInStore. Integration tests that need a real
Supabase project are marked ``requires_supabase`` and skipped otherwise.
"""

import os
from datetime import date, timedelta
from typing import Any, Dict, Generator, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from main import app
from streakboard.core.cache import response_cache
from streakboard.core.errors import StoreError
from streakboard.services import checkin_store as checkin_store_module
from streakboard.services import checkin_service as checkin_service_module
from streakboard.services import freeze_service as freeze_service_module
from streakboard.services import metrics_service as metrics_service_module
from streakboard.services.checkin_service import checkin_service
from streakboard.services.freeze_service import freeze_service
from streakboard.services.leaderboard_service import leaderboard_service
from streakboard.services.metrics_service import metrics_service

TODAY = date(2024, 3, 15)
CHALLENGE_ID = "0b6f1c7e-3f7a-4a55-9d0e-6f7c2a1d9e01"


def _supabase_configured() -> bool:
    """Check if Supabase is configured for integration tests."""
    return bool(os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_SERVICE_KEY"))


requires_supabase = pytest.mark.skipif(
    not _supabase_configured(),
    reason="SUPABASE_URL and SUPABASE_SERVICE_KEY required for integration tests",
)


def day(offset: int) -> date:
    """Day relative to TODAY (0 = today, -1 = yesterday)."""
    return TODAY + timedelta(days=offset)


class InMemoryCheckInStore:
    """Dict-backed stand-in for SupabaseCheckInStore."""

    def __init__(self):
        self.challenges: Dict[str, Dict[str, Any]] = {}
        self.members: List[Dict[str, Any]] = []
        self.users: Dict[str, Dict[str, Any]] = {}
        self.checkins: Dict[tuple, Dict[str, Any]] = {}
        self.metrics: Dict[tuple, Dict[str, Any]] = {}
        self.achievements: Dict[str, List[Dict[str, Any]]] = {}
        self.failing: set = set()
        self.failing_achievement_users: set = set()
        self.calls: List[str] = []

    # Test helpers

    def add_challenge(self, challenge_id: str = CHALLENGE_ID, **fields) -> None:
        self.challenges[challenge_id] = {
            "id": challenge_id,
            "name": "30-Day Fitness Quest",
            "is_archived": False,
            **fields,
        }

    def add_member(
        self,
        user_id: str,
        challenge_id: str = CHALLENGE_ID,
        username: Optional[str] = None,
        is_admin: bool = False,
    ) -> None:
        self.members.append({"challenge_id": challenge_id, "user_id": user_id})
        self.users.setdefault(
            user_id,
            {
                "id": user_id,
                "username": username or user_id,
                "avatar_url": f"https://img.example.com/{user_id}.png",
                "is_admin": is_admin,
            },
        )

    def seed(self, user_id: str, statuses: Dict[date, str], challenge_id: str = CHALLENGE_ID):
        for when, status in statuses.items():
            key = (challenge_id, user_id, when.isoformat())
            self.checkins[key] = {
                "id": f"ci-{len(self.checkins) + 1}",
                "challenge_id": challenge_id,
                "user_id": user_id,
                "check_in_date": when.isoformat(),
                "status": status,
                "notes": None,
            }

    def fail(self, *methods: str) -> None:
        self.failing.update(methods)

    def rows_for(self, user_id: str, challenge_id: str = CHALLENGE_ID) -> List[Dict[str, Any]]:
        return [
            row
            for (c, u, _), row in sorted(self.checkins.items())
            if c == challenge_id and u == user_id
        ]

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise StoreError(f"Failed to {name}")

    # Store interface

    def get_challenge(self, challenge_id: str):
        self._call("get_challenge")
        return self.challenges.get(challenge_id)

    def list_active_challenge_ids(self) -> List[str]:
        self._call("list_active_challenge_ids")
        return [c["id"] for c in self.challenges.values() if not c.get("is_archived")]

    def get_membership(self, challenge_id: str, user_id: str):
        self._call("get_membership")
        for member in self.members:
            if member["challenge_id"] == challenge_id and member["user_id"] == user_id:
                return member
        return None

    def list_memberships(self, challenge_id: str):
        self._call("list_memberships")
        return [m for m in self.members if m["challenge_id"] == challenge_id]

    def ensure_user_profile(self, user_id: str) -> bool:
        self._call("ensure_user_profile")
        if user_id in self.users:
            return False
        self.users[user_id] = {
            "id": user_id,
            "username": f"user_{user_id[:8]}",
            "avatar_url": None,
            "is_admin": False,
        }
        return True

    def is_admin(self, user_id: str) -> bool:
        self._call("is_admin")
        return bool(self.users.get(user_id, {}).get("is_admin"))

    def get_user_profiles(self, user_ids: Iterable[str]):
        self._call("get_user_profiles")
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    def list_achievements(self, user_ids: Iterable[str]):
        self._call("list_achievements")
        return {uid: list(self.achievements[uid]) for uid in user_ids if uid in self.achievements}

    def get_user_achievements(self, user_id: str):
        self._call("get_user_achievements")
        if user_id in self.failing_achievement_users:
            raise StoreError(f"Failed to load achievements for user {user_id}")
        return list(self.achievements.get(user_id, []))

    def get_history(self, challenge_id, user_id, start_date=None, end_date=None):
        self._call("get_history")
        rows = self.rows_for(user_id, challenge_id)
        if start_date:
            rows = [r for r in rows if r["check_in_date"] >= start_date.isoformat()]
        if end_date:
            rows = [r for r in rows if r["check_in_date"] <= end_date.isoformat()]
        return [dict(r) for r in rows]

    def get_checkins_on_dates(self, challenge_id, user_id, dates):
        self._call("get_checkins_on_dates")
        wanted = {d.isoformat() for d in dates}
        return [r for r in self.rows_for(user_id, challenge_id) if r["check_in_date"] in wanted]

    def upsert_checkin(self, row):
        self._call("upsert_checkin")
        key = (row["challenge_id"], row["user_id"], row["check_in_date"])
        existing = self.checkins.get(key)
        if existing:
            existing.update(row)
            return dict(existing)
        stored = {"id": f"ci-{len(self.checkins) + 1}", "notes": None, **row}
        self.checkins[key] = stored
        return dict(stored)

    def insert_checkins(self, rows):
        self._call("insert_checkins")
        keys = [(r["challenge_id"], r["user_id"], r["check_in_date"]) for r in rows]
        if any(key in self.checkins for key in keys):
            raise StoreError("Failed to create check-ins")
        for key, row in zip(keys, rows):
            self.checkins[key] = {"id": f"ci-{len(self.checkins) + 1}", **row}
        return rows

    def get_metrics(self, challenge_id, user_id):
        self._call("get_metrics")
        row = self.metrics.get((challenge_id, user_id))
        return dict(row) if row else None

    def put_metrics(self, row):
        self._call("put_metrics")
        key = (row["challenge_id"], row["user_id"])
        if key in self.metrics:
            self.metrics[key].update(row)
        else:
            self.metrics[key] = dict(row)
        return dict(self.metrics[key])

    def list_metrics(self, challenge_id):
        self._call("list_metrics")
        return [dict(r) for (c, _), r in self.metrics.items() if c == challenge_id]


@pytest.fixture(autouse=True)
def clear_response_cache() -> Generator[None, None, None]:
    response_cache.clear()
    yield
    response_cache.clear()


@pytest.fixture
def store() -> InMemoryCheckInStore:
    s = InMemoryCheckInStore()
    s.add_challenge()
    return s


@pytest.fixture
def wired_store(store, monkeypatch) -> InMemoryCheckInStore:
    """Swap the in-memory store into the module-level service instances
    and pin "today" to TODAY."""
    monkeypatch.setattr(checkin_store_module, "_store", store)
    for service in (checkin_service, freeze_service, leaderboard_service, metrics_service):
        monkeypatch.setattr(service, "_store", store)
    for module in (checkin_service_module, freeze_service_module, metrics_service_module):
        monkeypatch.setattr(module, "app_today", lambda: TODAY)
    return store


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client for the FastAPI app."""
    with TestClient(app, base_url="http://test") as c:
        yield c


@pytest.fixture
def api_base() -> str:
    """Base path for API v1 endpoints."""
    return "/api/v1"
