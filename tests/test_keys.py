from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from endurance.keys import ApiKeyService, InMemoryApiKeyRepository
from endurance.models import AccessDeniedError, ApiKey, NotFoundError, ValidationError


def make_key(user_id, key_type="telegram", created_at=None):
    extra = {"created_at": created_at} if created_at else {}
    return ApiKey(user_id=user_id, type=key_type, key="placeholder", secret="secret", **extra)


@pytest.fixture
def repository():
    return InMemoryApiKeyRepository()


def test_create_and_get_by_id(repository):
    owner = uuid4()
    service = ApiKeyService(repository, owner)
    created = service.create(make_key(owner))
    fetched = service.get_by_id(created.id)
    assert fetched.id == created.id
    assert fetched.user_id == owner


def test_get_missing_key_raises(repository):
    with pytest.raises(NotFoundError):
        ApiKeyService(repository).get_by_id(uuid4())


def test_create_for_another_user_is_denied(repository):
    service = ApiKeyService(repository, uuid4())
    with pytest.raises(AccessDeniedError):
        service.create(make_key(uuid4()))
    assert repository.get_all() == []


def test_create_invalid_key_raises(repository):
    owner = uuid4()
    api_key = make_key(owner)
    api_key.secret = ""
    with pytest.raises(ValidationError):
        ApiKeyService(repository, owner).create(api_key)


def test_get_by_id_of_foreign_key_is_denied(repository):
    api_key = repository.create(make_key(uuid4()))
    with pytest.raises(AccessDeniedError):
        ApiKeyService(repository, uuid4()).get_by_id(api_key.id)


def test_update_changes_stored_key(repository):
    owner = uuid4()
    service = ApiKeyService(repository, owner)
    created = service.create(make_key(owner))
    created.type = "exchange"
    service.update(created)
    assert service.get_by_id(created.id).type == "exchange"


def test_update_unknown_key_raises(repository):
    owner = uuid4()
    with pytest.raises(NotFoundError):
        ApiKeyService(repository, owner).update(make_key(owner))


def test_delete_removes_key(repository):
    owner = uuid4()
    service = ApiKeyService(repository, owner)
    created = service.create(make_key(owner))
    service.delete(created.id)
    with pytest.raises(NotFoundError):
        service.get_by_id(created.id)


def test_delete_foreign_key_is_denied(repository):
    api_key = repository.create(make_key(uuid4()))
    with pytest.raises(AccessDeniedError):
        ApiKeyService(repository, uuid4()).delete(api_key.id)
    assert repository.get_by_id(api_key.id).id == api_key.id


def test_get_all_is_narrowed_to_user(repository):
    owner, other = uuid4(), uuid4()
    mine = repository.create(make_key(owner))
    repository.create(make_key(other))
    found = ApiKeyService(repository, owner).get_all({"user_id": other})
    assert [api_key.id for api_key in found] == [mine.id]
    assert len(ApiKeyService(repository).get_all()) == 2


def test_get_all_orders_and_limits(repository):
    owner = uuid4()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    keys = [repository.create(make_key(owner, created_at=base + timedelta(days=day))) for day in range(3)]
    found = ApiKeyService(repository).get_all(order_by="created_at", descending=False, limit=2)
    assert [api_key.id for api_key in found] == [keys[0].id, keys[1].id]


def test_get_telegram_keys_returns_newest(repository):
    owner = uuid4()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    repository.create(make_key(owner, created_at=base))
    newest = repository.create(make_key(owner, created_at=base + timedelta(hours=1)))
    repository.create(make_key(owner, key_type="exchange", created_at=base + timedelta(days=1)))
    assert ApiKeyService(repository).get_telegram_keys().id == newest.id


def test_get_telegram_keys_missing_raises(repository):
    repository.create(make_key(uuid4(), key_type="exchange"))
    with pytest.raises(NotFoundError):
        ApiKeyService(repository).get_telegram_keys()