from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from pydantic import ValidationError

from ..config import get_settings
from ..schemas.product import CartItem
from ..utils.datetime import utcnow

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local key-value slots."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Key-value slots kept in a single JSON object on disk.

    Writes go through a temporary file and ``os.replace`` so a crash never
    leaves a half-written file behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    def _read_all(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class LocalPersistence:
    """Durable slot for the cart line items."""

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        *,
        key: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.storage: KeyValueStorage = (
            storage if storage is not None else JsonFileStorage(settings.cart_storage_path)
        )
        self.key = key or settings.cart_storage_key

    def save(self, items: Iterable[CartItem]) -> None:
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        self.storage.set_item(self.key, json.dumps(payload, ensure_ascii=False))

    def load(self) -> Optional[list[CartItem]]:
        """Return the stored items, or ``None`` when nothing usable is stored.

        Corrupt data is reported as ``None`` rather than raised. Lines
        without ``lastSynchronized`` are stamped with the current time.
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.warning("Discarding corrupt cart data under %r: %s", self.key, exc)
            return None
        if not isinstance(payload, list):
            logger.warning("Discarding cart data under %r: expected a list", self.key)
            return None
        kept = [entry for entry in payload if _has_positive_quantity(entry)]
        if len(kept) < len(payload):
            logger.warning(
                "Dropping %s cart line(s) without a positive quantity under %r",
                len(payload) - len(kept),
                self.key,
            )
        try:
            items = [CartItem.model_validate(entry) for entry in kept]
        except ValidationError as exc:
            logger.warning("Discarding malformed cart data under %r: %s", self.key, exc)
            return None
        return _normalize_items(items)

    def clear(self) -> None:
        self.storage.remove_item(self.key)


def _has_positive_quantity(entry: Any) -> bool:
    # Non-object entries are left for validation to reject.
    if not isinstance(entry, dict):
        return True
    quantity = entry.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        return False
    return quantity > 0


def _normalize_items(items: list[CartItem]) -> list[CartItem]:
    now = utcnow()
    seen: set[str] = set()
    normalized: list[CartItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        if item.last_synchronized is None:
            item.last_synchronized = now
        normalized.append(item)
    return normalized


__all__ = ["JsonFileStorage", "KeyValueStorage", "LocalPersistence", "MemoryStorage"]
