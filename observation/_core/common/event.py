from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import ContextManager, Self
from weakref import WeakKeyDictionary


class Event(ABC):
    __slots__ = ()


class EventListener(ABC):
    __slots__ = ("__weakref__",)

    @abstractmethod
    def on_event(self, event: Event, /) -> ContextManager[None] | None:
        raise NotImplementedError


@dataclass(repr=False, eq=False, frozen=True, slots=True)
class EventChannel:
    # Weak keys in insertion order, listeners are notified in the order they were added.
    __listeners: WeakKeyDictionary[EventListener, None] = field(
        default_factory=WeakKeyDictionary,
        init=False,
    )

    @property
    def listeners(self) -> tuple[EventListener, ...]:
        return tuple(self.__listeners.keys())

    @contextmanager
    def dispatch(self, event: Event) -> Iterator[None]:
        context_managers = (listener.on_event(event) for listener in self.listeners)

        with ExitStack() as stack:
            for context_manager in context_managers:
                if context_manager is not None:
                    stack.enter_context(context_manager)

            yield

    def add_listener(self, listener: EventListener) -> Self:
        self.__listeners[listener] = None
        return self

    def remove_listener(self, listener: EventListener) -> Self:
        self.__listeners.pop(listener, None)
        return self
