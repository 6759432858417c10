import logging
import threading
from contextlib import contextmanager
from typing import Hashable, Iterator

from opsdesk.core.errors import AdvanceInFlight

logger = logging.getLogger(__name__)


class InFlightGuard:
    """At most one state change per record at a time.

    A second ``claim`` on a key that is still held fails immediately instead
    of queueing, so a repeated click cannot produce a second write.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._held: set[Hashable] = set()

    @contextmanager
    def claim(self, key: Hashable) -> Iterator[None]:
        with self._lock:
            if key in self._held:
                logger.warning("rejected concurrent change for %s", key)
                raise AdvanceInFlight()
            self._held.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._held.discard(key)

    def is_held(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._held
