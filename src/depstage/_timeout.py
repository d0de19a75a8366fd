"""Deadline-bound evaluation of readiness checks.

Lifecycle callbacks may be plain functions or coroutine functions. Plain
functions are treated as blocking and run in an anyio worker thread so the
event loop keeps running while they wait.
"""

import functools
import inspect
from collections.abc import Awaitable, Callable

import anyio
import anyio.to_thread

from depstage.exceptions import ReadyTimeoutError

DEFAULT_READY_TIMEOUT: float = 30.0

type Check = Callable[[], Awaitable[object]] | Callable[[], object]


def _is_async_callable(fn: object) -> bool:
    while isinstance(fn, functools.partial):
        fn = fn.func
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(type(fn), "__call__", None)
    )


async def invoke(fn: Check, *, abandon_on_cancel: bool = False) -> None:
    """Call a sync or async callable and wait for it to finish.

    Args:
        fn: Zero-argument callable. Coroutine functions and objects with an
            async __call__ are awaited, anything else runs in a worker
            thread. An awaitable returned from the thread is awaited on the
            event loop.
        abandon_on_cancel: For sync callables, return immediately when the
            surrounding scope is cancelled and leave the thread running.
    """
    if _is_async_callable(fn):
        _ = await fn()  # pyright: ignore[reportGeneralTypeIssues]
        return
    result = await anyio.to_thread.run_sync(fn, abandon_on_cancel=abandon_on_cancel)
    if inspect.isawaitable(result):
        _ = await result


async def wait_ready(
    check: Check,
    *,
    timeout: float | None = DEFAULT_READY_TIMEOUT,
) -> None:
    """Run a readiness check, racing it against a deadline.

    Async checks are cancelled when the deadline passes. Sync checks cannot
    be interrupted: their worker thread is abandoned and its eventual result
    discarded, so a sync check that never returns holds one worker thread
    until the process exits.

    Args:
        check: Zero-argument readiness check, sync or async.
        timeout: Deadline in seconds, or None for no deadline.

    Raises:
        ReadyTimeoutError: If the deadline passes before the check returns.
        Exception: Whatever the check itself raised.
    """
    with anyio.move_on_after(timeout) as scope:
        await invoke(check, abandon_on_cancel=True)

    if scope.cancelled_caught:
        msg = f"timeout after {timeout}s"
        raise ReadyTimeoutError(msg, timeout=timeout)
