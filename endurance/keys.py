"""Storage and access control for users' API keys."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from uuid import UUID

from .models import AccessDeniedError, ApiKey, NotFoundError, ValidationError

TELEGRAM_KEY_TYPE = "telegram"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryApiKeyRepository:
    """API keys kept in memory, keyed by id."""

    def __init__(self) -> None:
        self._keys: dict[UUID, ApiKey] = {}

    def get_by_id(self, key_id: UUID) -> ApiKey:
        try:
            return replace(self._keys[key_id])
        except KeyError:
            raise NotFoundError(f"api key {key_id} not found") from None

    def get_all(
        self,
        filters: Mapping[str, object] | None = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int | None = 100,
    ) -> list[ApiKey]:
        """Keys whose fields equal every filter value, ordered and limited."""
        filters = dict(filters or {})
        matched = [
            api_key
            for api_key in self._keys.values()
            if all(getattr(api_key, name) == value for name, value in filters.items())
        ]
        matched.sort(key=lambda api_key: getattr(api_key, order_by), reverse=descending)
        return [replace(api_key) for api_key in matched[:limit]]

    def create(self, api_key: ApiKey) -> ApiKey:
        if api_key.id in self._keys:
            raise ValidationError(f"api key {api_key.id} already exists")
        self._keys[api_key.id] = replace(api_key)
        return replace(api_key)

    def update(self, api_key: ApiKey) -> ApiKey:
        if api_key.id not in self._keys:
            raise NotFoundError(f"api key {api_key.id} not found")
        stored = replace(api_key, updated_at=_utcnow())
        self._keys[stored.id] = stored
        return replace(stored)

    def delete(self, key_id: UUID) -> None:
        try:
            del self._keys[key_id]
        except KeyError:
            raise NotFoundError(f"api key {key_id} not found") from None


class ApiKeyService:
    """API key operations restricted to the keys of the acting user.

    With no ``user_id`` the service acts for the system and sees every key.
    """

    def __init__(self, repository, user_id: UUID | None = None) -> None:
        self._repository = repository
        self._user_id = user_id

    def _check_owner(self, owner: UUID) -> None:
        if self._user_id is not None and owner != self._user_id:
            raise AccessDeniedError("api key belongs to another user")

    def get_by_id(self, key_id: UUID) -> ApiKey:
        api_key = self._repository.get_by_id(key_id)
        self._check_owner(api_key.user_id)
        return api_key

    def get_all(
        self,
        filters: Mapping[str, object] | None = None,
        order_by: str = "created_at",
        descending: bool = True,
        limit: int | None = 100,
    ) -> list[ApiKey]:
        """Matching keys, narrowed to the acting user's own."""
        filters = dict(filters or {})
        if self._user_id is not None:
            filters["user_id"] = self._user_id
        return self._repository.get_all(filters, order_by, descending, limit)

    def create(self, api_key: ApiKey) -> ApiKey:
        self._check_owner(api_key.user_id)
        api_key.validate()
        return self._repository.create(api_key)

    def update(self, api_key: ApiKey) -> ApiKey:
        self.get_by_id(api_key.id)
        api_key.validate()
        return self._repository.update(api_key)

    def delete(self, key_id: UUID) -> None:
        self.get_by_id(key_id)
        self._repository.delete(key_id)

    def get_telegram_keys(self) -> ApiKey:
        """The most recently created Telegram key."""
        found = self.get_all({"type": TELEGRAM_KEY_TYPE}, "created_at", True, 1)
        if not found:
            raise NotFoundError("telegram api key not found")
        return found[0]