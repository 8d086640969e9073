import threading

from errors import BusyError


class AudioDeviceGuard:
    """Exclusion mutua entre grabacion y reproduccion."""

    def __init__(self):
        self._lock = threading.Lock()
        self._owner: str | None = None

    def acquire(self, owner: str):
        with self._lock:
            if self._owner not in (None, owner):
                raise BusyError(f"Audio device is busy ({self._owner} in progress).")
            self._owner = owner

    def release(self, owner: str):
        with self._lock:
            if self._owner == owner:
                self._owner = None

    @property
    def owner(self) -> str | None:
        return self._owner
