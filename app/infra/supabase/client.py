"""Supabase client used by the timer repositories"""
import logging
from typing import Optional

from supabase import Client, create_client  # type: ignore

from app.config import SupabaseSettings, get_supabase_settings

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client(settings: Optional[SupabaseSettings] = None) -> Client:
    """
    Return the process-wide Supabase client, creating it on first use.

    Args:
        settings: Connection settings; read from the environment when omitted

    Raises:
        ValueError: If the URL or service role key is missing
    """
    global _supabase_client

    if _supabase_client is None:
        settings = settings or get_supabase_settings()
        if not settings.url or not settings.service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        logger.info(f"Connecting to Supabase at {settings.url}")
        _supabase_client = create_client(settings.url, settings.service_role_key)

    return _supabase_client
