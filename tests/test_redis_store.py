from typing import Any

import pytest
import redis

from seren_core.errors import StorageReadError, StorageWriteError
from seren_core.storage.redis_store import RedisStore


class FakePipeline:
    def __init__(self, client: "FakeRedis") -> None:
        self._client = client
        self._ops: list[tuple[str, tuple[Any, ...]]] = []

    def set(self, key: str, value: str) -> None:
        self._ops.append(("set", (key, value)))

    def delete(self, key: str) -> None:
        self._ops.append(("delete", (key,)))

    def publish(self, channel: str, message: str) -> None:
        self._ops.append(("publish", (channel, message)))

    def execute(self) -> list[Any]:
        if self._client.fail_writes:
            raise redis.ConnectionError("connection refused")
        for name, args in self._ops:
            getattr(self._client, name)(*args)
        return [True] * len(self._ops)


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.published: list[tuple[str, str]] = []
        self.get_failures = 0
        self.get_error: type[Exception] = redis.ConnectionError
        self.fail_writes = False

    def get(self, key: str) -> str | None:
        if self.get_failures:
            self.get_failures -= 1
            raise self.get_error("boom")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def publish(self, channel: str, message: str) -> None:
        self.published.append((channel, message))

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch) -> None:
    monkeypatch.setattr("seren_core.utils.retry.time.sleep", lambda _seconds: None)


@pytest.fixture
def client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_store(client) -> RedisStore:
    return RedisStore(client, channel="serenai:changes", key_prefix="serenai:", retry_attempts=3)


def test_write_sets_prefixed_key_and_publishes(redis_store, client) -> None:
    redis_store.write("serenai-notification-settings", {"reminderTime": "09:00"})

    assert client.data == {"serenai:serenai-notification-settings": '{"reminderTime": "09:00"}'}
    assert client.published == [("serenai:changes", "serenai-notification-settings")]
    assert redis_store.read("serenai-notification-settings") == {"reminderTime": "09:00"}


def test_read_missing_key_returns_none(redis_store) -> None:
    assert redis_store.read("absent") is None


def test_delete_removes_key_and_publishes(redis_store, client) -> None:
    redis_store.write("serenai-notifications", [])
    redis_store.delete("serenai-notifications")

    assert client.data == {}
    assert client.published[-1] == ("serenai:changes", "serenai-notifications")


def test_transient_read_errors_are_retried(redis_store, client) -> None:
    client.data["serenai:key"] = "[1, 2]"
    client.get_failures = 2

    assert redis_store.read("key") == [1, 2]


def test_exhausted_retries_raise_read_error(redis_store, client) -> None:
    client.get_failures = 5

    with pytest.raises(StorageReadError) as excinfo:
        redis_store.read("key")

    assert excinfo.value.key == "key"
    assert client.get_failures == 2


def test_non_transient_errors_are_not_retried(redis_store, client) -> None:
    client.get_failures = 5
    client.get_error = redis.ResponseError

    with pytest.raises(StorageReadError):
        redis_store.read("key")

    assert client.get_failures == 4


def test_invalid_json_raises_read_error(redis_store, client) -> None:
    client.data["serenai:key"] = "{oops"
    with pytest.raises(StorageReadError):
        redis_store.read("key")


def test_write_failure_raises_write_error(redis_store, client) -> None:
    client.fail_writes = True
    with pytest.raises(StorageWriteError):
        redis_store.write("key", {"a": 1})
    with pytest.raises(StorageWriteError):
        redis_store.delete("key")
    assert client.published == []


def test_unserializable_value_raises_write_error(redis_store) -> None:
    with pytest.raises(StorageWriteError):
        redis_store.write("key", {"when": object()})
