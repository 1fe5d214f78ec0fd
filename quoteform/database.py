"""Database connection and utilities"""
from functools import lru_cache

from supabase import create_client, Client
from quoteform.config import get_settings


@lru_cache()
def get_supabase_admin() -> Client:
    """
    Service role client (bypasses RLS - use carefully)

    Created on first use so importing the app never needs a reachable
    Supabase project. Ownership is enforced by the form store instead of RLS.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key
    )
