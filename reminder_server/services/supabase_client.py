"""Supabase client for database operations."""

from functools import lru_cache
from typing import Optional

from supabase import create_client, Client

from ..config import get_settings
from ..logging_config import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Get Supabase client instance."""
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured")
        return None

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client initialized successfully")
        return client
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client: {e}")
        return None


async def verify_reminder_tables() -> bool:
    """Check that the reminder tables are reachable."""
    client = get_supabase_client()
    if not client:
        logger.error("Cannot verify tables: Supabase client not available")
        return False

    settings = get_settings()
    for table in (settings.kv_table, settings.triggers_table):
        try:
            client.table(table).select('*').limit(1).execute()
        except Exception as e:
            # Tables are created via SQL in the Supabase dashboard
            logger.error(f"Reminder table '{table}' is not accessible: {e}")
            return False

    logger.info("Reminder tables verified")
    return True
