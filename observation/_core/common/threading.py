from collections.abc import Iterator
from contextlib import contextmanager
from threading import RLock

_lock = RLock()


@contextmanager
def synchronized() -> Iterator[RLock]:
    with _lock:
        yield _lock
