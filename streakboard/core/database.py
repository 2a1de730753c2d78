"""
Database Configuration

Supabase client for REST API access (already pooled via PostgREST).

The client is created on first use so the API can boot (and report
"not_configured" on /health) before SUPABASE_URL is set.

Tables used by the check-in core:
- challenges
- challenge_members        (challenge_id, user_id) unique
- checkins                 (challenge_id, user_id, check_in_date) unique
- leaderboard_metrics      (challenge_id, user_id) unique
- users
- achievements / user_achievements
"""

from typing import Optional

from supabase import create_client, Client
from streakboard.core.config import settings


_supabase: Optional[Client] = None


def supabase_configured() -> bool:
    return bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY)


def get_supabase_client() -> Client:
    """
    Get Supabase client instance.

    This uses the REST API which is already connection-pooled via PostgREST.
    """
    global _supabase

    if _supabase is None:
        _supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
    return _supabase
