# services/kv_store.py
import logging
import threading
from typing import Dict, Optional, Protocol

from supabase import Client

from domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def increment(self, key: str) -> int:
        """Add one to the integer stored under `key` and return the new value, atomically."""
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def increment(self, key: str) -> int:
        with self._lock:
            value = int(self._data.get(key) or "0") + 1
            self._data[key] = str(value)
            return value


class SupabaseKeyValueStore:
    """
    Key/value rows in a Supabase table with columns (key text primary key, value text).

    `increment` calls a Postgres function so the read and the write happen in
    one statement:

        create function increment_counter(p_key text) returns bigint as $$
          insert into app_properties (key, value) values (p_key, '1')
          on conflict (key) do update
            set value = (app_properties.value::bigint + 1)::text
          returning value::bigint;
        $$ language sql;
    """

    def __init__(
            self,
            client: Client,
            schema: str,
            table: str = "app_properties",
            increment_function: str = "increment_counter",
    ):
        self.client = client
        self.schema = schema
        self.table = table
        self.increment_function = increment_function

    def get(self, key: str) -> Optional[str]:
        try:
            resp = (
                self.client.schema(self.schema)
                .table(self.table)
                .select("value")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise ExternalServiceError(f"Fetch {key} failed: {e}") from e

        if not resp.data:
            return None
        return resp.data[0]["value"]

    def set(self, key: str, value: str) -> None:
        try:
            (
                self.client.schema(self.schema)
                .table(self.table)
                .upsert({"key": key, "value": str(value)}, on_conflict="key")
                .execute()
            )
        except Exception as e:
            raise ExternalServiceError(f"Store {key} failed: {e}") from e

    def increment(self, key: str) -> int:
        try:
            resp = (
                self.client.schema(self.schema)
                .rpc(self.increment_function, {"p_key": key})
                .execute()
            )
        except Exception as e:
            raise ExternalServiceError(f"Increment {key} failed: {e}") from e

        value = resp.data
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            value = next(iter(value.values()), None)
        if value is None:
            raise ExternalServiceError(f"Increment {key} returned no value")

        logger.debug("Counter %s is now %s", key, value)
        return int(value)
