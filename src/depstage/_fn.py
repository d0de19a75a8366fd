"""Synthetic dependency built from plain functions."""

from dataclasses import dataclass

from ._timeout import Check, invoke, wait_ready


@dataclass(frozen=True, slots=True)
class FnDependency:
    """Dependency made of three independently optional functions.

    Lets tests and simple cases satisfy the Dependency protocol without a
    process or container. A missing function is a successful no-op. Each
    function may be sync (run in a worker thread) or async.

    Attributes:
        start_fn: Called by start.
        ready_fn: Called by ready.
        stop_fn: Called by stop.
        name: Display name used by the runner.
        ready_timeout: Deadline in seconds for ready_fn, or None for none.

    Example:
        >>> dep = FnDependency(start_fn=server.listen, stop_fn=server.close)
    """

    start_fn: Check | None = None
    ready_fn: Check | None = None
    stop_fn: Check | None = None
    name: str | None = None
    ready_timeout: float | None = None

    async def start(self) -> None:
        """Call the start function, if any."""
        if self.start_fn is not None:
            await invoke(self.start_fn)

    async def ready(self) -> None:
        """Call the ready function, if any, under the configured deadline.

        Raises:
            ReadyTimeoutError: If ready_timeout passes first.
        """
        if self.ready_fn is not None:
            await wait_ready(self.ready_fn, timeout=self.ready_timeout)

    async def stop(self) -> None:
        """Call the stop function, if any."""
        if self.stop_fn is not None:
            await invoke(self.stop_fn)
