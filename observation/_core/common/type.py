from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from observation._core.registry import Emitter

type Callback[**P] = Callable[P, Any]
type Teardown = Callable[[], Any]
type SetupResult = Teardown | Awaitable[Teardown | None] | None
type Setup[**P] = Callable[["Emitter[P]"], SetupResult]
