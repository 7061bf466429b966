from __future__ import annotations

import json
import logging
from typing import Any

import redis

from seren_core.config import AppConfig
from seren_core.errors import StorageReadError, StorageWriteError
from seren_core.storage.base import ChangeListener, Unsubscribe
from seren_core.utils.retry import RetryError, with_retry

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (redis.ConnectionError, redis.TimeoutError)


class RedisStore:
    """Redis-backed JSON store.

    Every write/delete publishes the (unprefixed) key on ``channel`` so other
    processes sharing the same Redis see settings changes.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        channel: str = "serenai:changes",
        key_prefix: str = "",
        retry_attempts: int = 3,
    ) -> None:
        self._client = client
        self._channel = channel
        self._prefix = key_prefix
        self._attempts = max(1, int(retry_attempts))

    @classmethod
    def from_config(cls, config: AppConfig) -> "RedisStore":
        client = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            password=config.redis_password or None,
            db=config.redis_db,
            decode_responses=True,
        )
        return cls(
            client,
            channel=config.change_channel,
            key_prefix=config.key_prefix,
            retry_attempts=config.redis_retry_attempts,
        )

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def read(self, key: str) -> Any | None:
        try:
            raw = with_retry(
                lambda: self._client.get(self._key(key)),
                attempts=self._attempts,
                retry_on=_TRANSIENT_ERRORS,
                operation=f"redis_get:{key}",
            )
        except (RetryError, redis.RedisError) as exc:
            raise StorageReadError(key, f"redis read failed: {exc}") from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageReadError(key, f"invalid JSON payload: {exc}") from exc

    def write(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageWriteError(key, f"value is not JSON serializable: {exc}") from exc

        def _write() -> None:
            pipeline = self._client.pipeline()
            pipeline.set(self._key(key), payload)
            pipeline.publish(self._channel, key)
            pipeline.execute()

        try:
            with_retry(_write, attempts=self._attempts, retry_on=_TRANSIENT_ERRORS, operation=f"redis_set:{key}")
        except (RetryError, redis.RedisError) as exc:
            raise StorageWriteError(key, f"redis write failed: {exc}") from exc

    def delete(self, key: str) -> None:
        def _delete() -> None:
            pipeline = self._client.pipeline()
            pipeline.delete(self._key(key))
            pipeline.publish(self._channel, key)
            pipeline.execute()

        try:
            with_retry(_delete, attempts=self._attempts, retry_on=_TRANSIENT_ERRORS, operation=f"redis_del:{key}")
        except (RetryError, redis.RedisError) as exc:
            raise StorageWriteError(key, f"redis delete failed: {exc}") from exc

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)

        def _handler(message: dict[str, Any]) -> None:
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8", errors="replace")
            if not isinstance(data, str):
                return
            try:
                listener(data)
            except Exception as exc:  # noqa: BLE001
                logger.warning("store_listener_failed", extra={"event": "store_listener_failed", "key": data, "error": str(exc)})

        pubsub.subscribe(**{self._channel: _handler})
        worker = pubsub.run_in_thread(sleep_time=0.5, daemon=True)
        logger.info("store_subscribed", extra={"event": "store_subscribed", "channel": self._channel})

        def _unsubscribe() -> None:
            try:
                worker.stop()
                pubsub.close()
            except redis.RedisError as exc:
                logger.debug("store_unsubscribe_failed: %s", exc)

        return _unsubscribe
