from collections.abc import Iterator
from contextlib import contextmanager
from typing import ContextManager, Final

from observation import Registry, registry

__all__ = ("TEST_REGISTRY_NAME", "registry_scope")

TEST_REGISTRY_NAME: Final[str] = "__testing__"


def registry_scope(name: str = TEST_REGISTRY_NAME, /) -> ContextManager[Registry]:
    target = registry(name)

    @contextmanager
    def cleaner() -> Iterator[Registry]:
        try:
            yield target
        finally:
            target.reset()

    return cleaner()
