from __future__ import annotations

import asyncio
from abc import ABC
from collections.abc import Awaitable, Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from functools import partial
from inspect import isawaitable, iscoroutine
from itertools import count
from logging import Logger, getLogger
from threading import RLock
from typing import Any, ClassVar, Self, override
from uuid import uuid4

from observation._core.common.event import Event, EventChannel, EventListener
from observation._core.common.threading import synchronized
from observation._core.common.type import Callback, Setup, SetupResult, Teardown
from observation.exceptions import ObservationError, RegistryClosedError

"""
Events
"""


@dataclass(frozen=True, slots=True)
class RegistryEvent(Event, ABC):
    registry: Registry


@dataclass(frozen=True, slots=True)
class ListenerAttached(RegistryEvent):
    handle: Handle[...]

    @override
    def __str__(self) -> str:
        return (
            f"Listener #{self.handle.id} has been attached "
            f"to `{self.handle.observer_id}`."
        )


@dataclass(frozen=True, slots=True)
class ListenerDetached(RegistryEvent):
    handle: Handle[...]

    @override
    def __str__(self) -> str:
        return (
            f"Listener #{self.handle.id} has been detached "
            f"from `{self.handle.observer_id}`."
        )


@dataclass(frozen=True, slots=True)
class ObserverActivated(RegistryEvent):
    observer_id: str

    @override
    def __str__(self) -> str:
        return f"`{self.observer_id}` is now active in `{self.registry}`."


@dataclass(frozen=True, slots=True)
class ObserverDeactivated(RegistryEvent):
    observer_id: str

    @override
    def __str__(self) -> str:
        return f"`{self.observer_id}` is no longer active in `{self.registry}`."


@dataclass(frozen=True, slots=True)
class LateTeardownExecuted(RegistryEvent):
    observer_id: str

    @override
    def __str__(self) -> str:
        return (
            f"The setup of `{self.observer_id}` resolved after its last listener "
            f"was detached, its teardown has been executed."
        )


"""
Listeners
"""


@dataclass(frozen=True, slots=True)
class ListenerEntry[**P]:
    id: int
    callback: Callback[P]


@dataclass(frozen=True, slots=True)
class Handle[**P]:
    id: int
    observer_id: str
    callback: Callback[P] = field(repr=False)
    registry: Registry = field(repr=False, compare=False)

    def __call__(self, setup: Setup[P]) -> Callable[[], None]:
        return self.attach(setup)

    @property
    def entry(self) -> ListenerEntry[P]:
        return ListenerEntry(self.id, self.callback)

    @property
    def is_attached(self) -> bool:
        return any(
            entry.id == self.id
            for entry in self.registry.listeners(self.observer_id)
        )

    def attach(self, setup: Setup[P]) -> Callable[[], None]:
        return self.registry.attach(self, setup)

    def detach(self) -> None:
        self.registry.detach(self)

    @contextmanager
    def attach_temporarily(self, setup: Setup[P]) -> Iterator[Self]:
        self.attach(setup)

        try:
            yield self
        finally:
            self.detach()


@dataclass(repr=False, frozen=True, slots=True)
class Emitter[**P]:
    registry: Registry
    observer_id: str

    def emit(self, *args: P.args, **kwargs: P.kwargs) -> None:
        self.registry.emit(self.observer_id, *args, **kwargs)


@dataclass(repr=False, eq=False, slots=True)
class Window:
    """
    Active period of an observer id, from its first attach to its last detach.
    """

    observer_id: str
    teardown: Teardown | None = field(default=None, init=False)
    is_open: bool = field(default=True, init=False)

    def close(self) -> Teardown | None:
        teardown, self.teardown = self.teardown, None
        self.is_open = False
        return teardown


"""
Registry
"""


@dataclass(eq=False, slots=True)
class Registry:
    name: str = field(default_factory=lambda: f"anonymous@{uuid4().hex[:7]}")
    __listeners: dict[str, tuple[ListenerEntry[...], ...]] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )
    __windows: dict[str, Window] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )
    __tasks: set[asyncio.Future[Any]] = field(
        default_factory=set,
        init=False,
        repr=False,
    )
    __channel: EventChannel = field(
        default_factory=EventChannel,
        init=False,
        repr=False,
    )
    __loggers: list[Logger] = field(
        default_factory=lambda: [getLogger("python-observation")],
        init=False,
        repr=False,
    )
    __lock: RLock = field(
        default_factory=RLock,
        init=False,
        repr=False,
    )
    __is_closed: bool = field(default=False, init=False, repr=False)

    __ids: ClassVar[Iterator[int]] = count(1)
    __instances: ClassVar[dict[str, Registry]] = {}

    def __contains__(self, observer_id: str, /) -> bool:
        with self.__lock:
            return observer_id in self.__listeners

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    @property
    def is_closed(self) -> bool:
        return self.__is_closed

    def listeners(self, observer_id: str) -> tuple[ListenerEntry[...], ...]:
        with self.__lock:
            return self.__listeners.get(observer_id, ())

    def observe[**P](self, observer_id: str, callback: Callback[P]) -> Handle[P]:
        self.__check_closing()

        with synchronized():
            callback_id = next(self.__ids)

        return Handle(callback_id, observer_id, callback, self)

    def attach[**P](self, handle: Handle[P], setup: Setup[P]) -> Callable[[], None]:
        self.__check_closing()

        if handle.registry is not self:
            raise ObservationError(f"`{handle}` belongs to `{handle.registry}`.")

        observer_id = handle.observer_id
        detach = partial(self.detach, handle)

        with self.__lock:
            listeners = self.__listeners.get(observer_id, ())

            if any(entry.id == handle.id for entry in listeners):
                return detach

            with self.dispatch(ListenerAttached(self, handle)):
                self.__listeners[observer_id] = (*listeners, handle.entry)

            window = self.__windows.get(observer_id)

            if listeners and window is not None and window.is_open:
                return detach

            window = Window(observer_id)
            self.__windows[observer_id] = window

        emitter = Emitter(self, observer_id)

        with self.dispatch(ObserverActivated(self, observer_id)):
            result = setup(emitter)

        self.__settle(window, result)
        return detach

    def detach(self, handle: Handle[Any]) -> None:
        observer_id = handle.observer_id

        with self.__lock:
            listeners = self.__listeners.get(observer_id, ())

            if all(entry.id != handle.id for entry in listeners):
                return

            window = self.__windows.get(observer_id)

            if len(listeners) > 1 or window is None:
                self.__remove_entry(handle)
                return

            # Teardown of this window is already running further up the stack.
            if not window.is_open:
                return

            # The last listener stays attached while the teardown runs.
            try:
                self.__deactivate(observer_id, window.close())
            finally:
                if self.__windows.get(observer_id) is window:
                    del self.__windows[observer_id]

                self.__remove_entry(handle)

    def emit(self, observer_id: str, /, *args: Any, **kwargs: Any) -> None:
        for listener in self.listeners(observer_id):
            listener.callback(*args, **kwargs)

    async def settle(self) -> None:
        with self.__lock:
            tasks = tuple(self.__tasks)

        if not tasks:
            return

        try:
            await asyncio.gather(*tasks)
        finally:
            with self.__lock:
                self.__tasks.difference_update(task for task in tasks if task.done())

    def reset(self) -> Self:
        with self.__lock:
            windows = tuple(
                window for window in self.__windows.values() if window.is_open
            )
            teardowns = tuple((window.observer_id, window.close()) for window in windows)
            self.__windows.clear()
            self.__listeners.clear()

        with ExitStack() as stack:
            for observer_id, teardown in teardowns:
                stack.callback(self.__deactivate, observer_id, teardown)

        return self

    def close(self) -> None:
        with self.__lock:
            self.__is_closed = True

        self.reset()

    def add_logger(self, logger: Logger) -> Self:
        self.__loggers.append(logger)
        return self

    def add_listener(self, listener: EventListener) -> Self:
        self.__channel.add_listener(listener)
        return self

    def remove_listener(self, listener: EventListener) -> Self:
        self.__channel.remove_listener(listener)
        return self

    @contextmanager
    def dispatch(self, event: Event) -> Iterator[None]:
        with self.__channel.dispatch(event):
            yield
            message = str(event)
            self.__debug(message)

    def __settle(self, window: Window, result: SetupResult) -> None:
        if isawaitable(result):
            self.__schedule(window, result)

        elif callable(result):
            self.__store_teardown(window, result)

    def __schedule(self, window: Window, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if iscoroutine(awaitable):
                awaitable.close()

            raise ObservationError(
                f"The setup of `{window.observer_id}` is asynchronous "
                "and requires a running event loop."
            ) from exc

        task = asyncio.ensure_future(awaitable, loop=loop)

        with self.__lock:
            self.__tasks.add(task)

        task.add_done_callback(partial(self.__on_setup_done, window))

    def __on_setup_done(self, window: Window, task: asyncio.Future[Any]) -> None:
        # A failed task stays pending until `settle` raises its exception.
        if not task.cancelled() and (exception := task.exception()) is not None:
            self.__error(f"The setup of `{window.observer_id}` has failed.", exception)
            return

        with self.__lock:
            self.__tasks.discard(task)

        if task.cancelled():
            return

        if callable(teardown := task.result()):
            self.__store_teardown(window, teardown)

    def __store_teardown(self, window: Window, teardown: Teardown) -> None:
        with self.__lock:
            if window.is_open:
                window.teardown = teardown
                return

        with self.dispatch(LateTeardownExecuted(self, window.observer_id)):
            teardown()

    def __remove_entry(self, handle: Handle[Any]) -> None:
        observer_id = handle.observer_id
        remaining = tuple(
            entry
            for entry in self.__listeners.get(observer_id, ())
            if entry.id != handle.id
        )

        with self.dispatch(ListenerDetached(self, handle)):
            if remaining:
                self.__listeners[observer_id] = remaining
            else:
                self.__listeners.pop(observer_id, None)

    def __deactivate(self, observer_id: str, teardown: Teardown | None) -> None:
        with self.dispatch(ObserverDeactivated(self, observer_id)):
            if teardown is not None:
                teardown()

    def __debug(self, message: object) -> None:
        for logger in tuple(self.__loggers):
            logger.debug(message)

    def __error(self, message: object, exception: BaseException) -> None:
        for logger in tuple(self.__loggers):
            logger.error(message, exc_info=exception)

    def __check_closing(self) -> None:
        if self.__is_closed:
            raise RegistryClosedError(f"`{self}` is closed.")

    @classmethod
    def from_name(cls, name: str) -> Registry:
        with synchronized():
            try:
                return cls.__instances[name]
            except KeyError:
                instance = cls(name)
                cls.__instances[name] = instance

        return instance

    @classmethod
    def default(cls) -> Registry:
        return cls.from_name("__default__")
