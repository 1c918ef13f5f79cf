from __future__ import annotations

import threading
from typing import Dict, Hashable


class GenerationCounter:
    """
    Monotonic request numbers per key (usually a user id).

    A caller takes a generation before starting work and checks it afterwards;
    if a newer request for the same key began meanwhile, its result is stale.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Dict[Hashable, int] = {}

    def begin(self, key: Hashable) -> int:
        with self._lock:
            gen = self._current.get(key, 0) + 1
            self._current[key] = gen
            return gen

    def current(self, key: Hashable) -> int:
        with self._lock:
            return self._current.get(key, 0)

    def is_current(self, key: Hashable, generation: int) -> bool:
        return self.current(key) == generation
