"""Key-value persistence for reminder bookkeeping and stored settings."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ...config import get_settings
from ...logging_config import get_logger
from ...models.reminders import ReminderSettings, TriggerStore
from ..supabase_client import get_supabase_client
from .errors import AdapterFailure

logger = get_logger(__name__)

SIGNATURE_KEY = "reminderSettingsSignature"
SETTINGS_KEY = "reminderSettings"


def ids_key(category_key: str) -> str:
    """Storage key of a category's tracked trigger ids, e.g. ``moodReminderIds``."""
    return f"{category_key}ReminderIds"


class KeyValueStore:
    """Durable string key-value store."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used for tests and the default server backend."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)


class SupabaseKeyValueStore(KeyValueStore):
    """Key-value rows in a Supabase table with ``key`` and ``value`` columns."""

    def __init__(self, client: Any = None, table: Optional[str] = None):
        self.client = client if client is not None else get_supabase_client()
        self.table = table or get_settings().kv_table

    async def get(self, key: str) -> Optional[str]:
        if not self.client:
            raise AdapterFailure("Supabase client not available")

        try:
            result = (
                self.client
                .table(self.table)
                .select('value')
                .eq('key', key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise AdapterFailure(f"Failed to read '{key}': {e}") from e

        if result.data:
            return result.data[0].get('value')
        return None

    async def set(self, key: str, value: str) -> None:
        if not self.client:
            raise AdapterFailure("Supabase client not available")

        try:
            self.client.table(self.table).upsert(
                {
                    "key": key,
                    "value": value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
                on_conflict='key',
            ).execute()
            logger.debug(f"Stored '{key}'")
        except Exception as e:
            raise AdapterFailure(f"Failed to write '{key}': {e}") from e


def _parse_ids(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unreadable trigger id list: {raw!r}")
        return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


async def load_trigger_store(kv: KeyValueStore, category_keys: Iterable[str]) -> TriggerStore:
    """Read tracked ids and the last signature.

    Any read failure is treated as "no prior state" so the caller runs a full pass.
    """
    try:
        ids = {key: _parse_ids(await kv.get(ids_key(key))) for key in category_keys}
        signature = await kv.get(SIGNATURE_KEY)
    except AdapterFailure as e:
        logger.error(f"❌ Failed to read reminder bookkeeping, assuming no prior state: {e}")
        return TriggerStore()

    return TriggerStore(ids=ids, last_signature=signature)


async def save_category_ids(kv: KeyValueStore, category_key: str, ids: Iterable[str]) -> None:
    await kv.set(ids_key(category_key), json.dumps(list(ids)))


async def save_signature(kv: KeyValueStore, signature: str) -> None:
    await kv.set(SIGNATURE_KEY, signature)


class StoredSettingsProvider:
    """Loads and saves the user's ``ReminderSettings`` as JSON in a key-value store."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def load(self) -> ReminderSettings:
        try:
            raw = await self.kv.get(SETTINGS_KEY)
        except AdapterFailure as e:
            logger.error(f"❌ Failed to load reminder settings, using defaults: {e}")
            return ReminderSettings()

        if not raw:
            return ReminderSettings()

        try:
            return ReminderSettings.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored reminder settings are invalid, using defaults: {e}")
            return ReminderSettings()

    async def save(self, settings: ReminderSettings) -> None:
        await self.kv.set(SETTINGS_KEY, settings.model_dump_json())

    async def __call__(self) -> ReminderSettings:
        return await self.load()
