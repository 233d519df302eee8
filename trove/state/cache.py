"""Process-wide armed/unarmed status shared by every component."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)

StatusKey = tuple[str, str]
Listener = Callable[[str, str, "bool | None"], None]


class StatusCache:
    """Armed flags keyed by (kind, subject id) with change notification.

    Toggles, list pages and rails all read and write through one instance, so
    two renderings of the same item cannot disagree once a call settles.
    """

    def __init__(self) -> None:
        self._values: dict[StatusKey, bool] = {}
        self._listeners: dict[StatusKey, list[Listener]] = defaultdict(list)

    def get(self, kind: str, subject_id: str) -> bool | None:
        return self._values.get((kind, subject_id))

    def set(self, kind: str, subject_id: str, value: bool) -> None:
        key = (kind, subject_id)
        previous = self._values.get(key)
        self._values[key] = bool(value)
        if previous is not bool(value):
            self._notify(key, bool(value))

    def invalidate(self, kind: str, subject_id: str) -> None:
        key = (kind, subject_id)
        if self._values.pop(key, None) is not None:
            self._notify(key, None)

    def subscribe(self, kind: str, subject_id: str, listener: Listener) -> Callable[[], None]:
        key = (kind, subject_id)
        self._listeners[key].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners and listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(key, None)

        return unsubscribe

    def clear(self) -> None:
        keys = list(self._values)
        self._values.clear()
        for key in keys:
            self._notify(key, None)

    def __len__(self) -> int:
        return len(self._values)

    def _notify(self, key: StatusKey, value: bool | None) -> None:
        for listener in list(self._listeners.get(key, ())):
            try:
                listener(key[0], key[1], value)
            except Exception:
                logger.exception("Status listener failed for %s/%s", *key)


default_cache = StatusCache()
