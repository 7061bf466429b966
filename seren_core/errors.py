class NotificationCoreError(RuntimeError):
    pass


class InvalidCadence(NotificationCoreError, ValueError):
    """Malformed time-of-day, weekday or day-of-month value."""


class StorageError(NotificationCoreError):
    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{message} (key={key})")
        self.key = key


class StorageReadError(StorageError):
    pass


class StorageWriteError(StorageError):
    pass


class CorruptRecord(NotificationCoreError, ValueError):
    """A single persisted entry could not be decoded."""
