from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

ChangeListener = Callable[[str], None]
Unsubscribe = Callable[[], None]


class PersistentStore(Protocol):
    """JSON key-value storage that announces changed keys to subscribers.

    ``read`` returns ``None`` for a missing key. Failures surface as
    ``StorageReadError``/``StorageWriteError``.
    """

    def read(self, key: str) -> Any | None: ...

    def write(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def subscribe(self, listener: ChangeListener) -> Unsubscribe: ...
