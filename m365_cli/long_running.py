"""Polling for server-side asynchronous operations.

An operation is submitted by some initiating call which reports whether it
already finished, how long to wait before asking again, and an opaque
identity used for the next status check. The identity is passed back to the
server exactly as received.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Awaitable, Callable

from .cli_shared import OpError


class PollState(enum.Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationHandle:
    identity: str
    polling_interval_ms: int


@dataclass(frozen=True)
class OperationStatus:
    handle: OperationHandle
    is_complete: bool
    error: str | None = None


StatusCheck = Callable[[OperationHandle], Awaitable[OperationStatus]]
Sleep = Callable[[float], Awaitable[None]]


def _state_of(status: OperationStatus) -> PollState:
    if status.error:
        return PollState.FAILED
    if status.is_complete:
        return PollState.COMPLETE
    return PollState.POLLING


async def wait_for_operation(
    initial: OperationStatus,
    check_status: StatusCheck,
    *,
    wait: bool,
    sleep: Sleep = asyncio.sleep,
    on_poll: Callable[[PollState, OperationStatus], None] | None = None,
    max_polls: int | None = None,
) -> OperationStatus:
    """Drive an operation from ``SUBMITTED`` to a terminal state.

    Without ``wait`` the initial status is returned as-is and the server is
    never asked again. Each further check happens after the interval the
    server reported on the previous response. ``max_polls`` bounds the
    number of status checks; ``None`` keeps polling until the server says
    the operation is done.
    """
    state = _state_of(initial)
    if on_poll is not None:
        on_poll(PollState.SUBMITTED, initial)
    if state is PollState.FAILED:
        raise OpError(str(initial.error))
    if not wait or state is PollState.COMPLETE:
        return initial

    current = initial
    polls = 0
    while True:
        if max_polls is not None and polls >= max_polls:
            raise OpError(
                f"operation did not complete after {polls} status check(s); it continues server-side"
            )
        await sleep(max(current.handle.polling_interval_ms, 0) / 1000)
        current = await check_status(current.handle)
        polls += 1
        state = _state_of(current)
        if on_poll is not None:
            on_poll(state, current)
        if state is PollState.FAILED:
            raise OpError(str(current.error))
        if state is PollState.COMPLETE:
            return current
