"""Request context: where a request came from and what time it is."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class RequestContext(Protocol):
    """What form signing needs to know about the current request.

    Web frameworks adapt their request object to this protocol; tests use
    :class:`StaticRequestContext`.
    """

    @property
    def remote_addr(self) -> str: ...

    def now(self) -> int:
        """Current Unix time in whole seconds."""
        ...


@dataclass(frozen=True)
class StaticRequestContext:
    """A request context with a fixed address and an optional fixed clock.

    Attributes:
        remote_addr: Address the request originated from.
        timestamp: Unix time to report; the wall clock when None.
    """

    remote_addr: str
    timestamp: int | None = field(default=None)

    def now(self) -> int:
        if self.timestamp is not None:
            return self.timestamp
        return int(time.time())
