from ._core.common.event import Event, EventListener
from ._core.registry import Emitter, Handle, ListenerEntry, Registry

__all__ = (
    "Emitter",
    "Event",
    "EventListener",
    "Handle",
    "ListenerEntry",
    "Registry",
    "attach",
    "detach",
    "emit",
    "observe",
    "registry",
)


def registry(name: str | None = None, /) -> Registry:
    if name is None:
        return Registry.default()

    return Registry.from_name(name)


attach = registry().attach
detach = registry().detach
emit = registry().emit
observe = registry().observe
