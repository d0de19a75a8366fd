"""Readiness and stop strategies for process dependencies."""

import signal
import subprocess

import anyio
import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, retry_if_result, wait_fixed

from depstage.exceptions import ProcessExitError

from ._models import Process, ProcessCheck, ProcessStop

DEFAULT_POLL_INTERVAL: float = 0.1
DEFAULT_REQUEST_TIMEOUT: float = 10.0


def _close_output(process: Process) -> None:
    # Process has exited; a running drain is at end of stream
    if process.stdout is not None:
        process.stdout.close()


def stop_with_signal(
    sig: signal.Signals = signal.SIGINT,
    *,
    kill_after: float | None = None,
) -> ProcessStop:
    """Return a stop function that signals the process and waits for it.

    The signal is only sent if the process has not exited yet. The wait
    happens unconditionally. A non-zero exit status is reported as an error
    unless the process was terminated by the signal that was sent.

    Args:
        sig: Signal to send.
        kill_after: Seconds to wait before escalating to SIGKILL. Waits
            indefinitely if None.

    Returns:
        A stop function suitable for with_stop_fn.
    """

    def stop(process: Process | None) -> None:
        if process is None:
            return

        errors: list[Exception] = []
        expected = {0, -sig}

        if process.returncode is None:
            try:
                process.send_signal(sig)
            except OSError as e:
                errors.append(e)

        try:
            returncode = process.wait(timeout=kill_after)
        except subprocess.TimeoutExpired:
            process.kill()
            returncode = process.wait()
            expected.add(-signal.SIGKILL)
        _close_output(process)

        if returncode not in expected:
            msg = f"exit status {returncode}"
            errors.append(ProcessExitError(msg, returncode=returncode))

        if len(errors) == 1:
            raise errors[0]
        if errors:
            msg = f"failed to stop process with {sig.name}"
            raise ExceptionGroup(msg, errors)

    return stop


def no_stop(process: Process | None) -> None:
    """Stop function for processes that exit on their own."""


def wait_for_exit(process: Process | None) -> None:
    """Readiness check that waits for the process to exit successfully.

    Raises:
        ProcessExitError: If the process exits with non-zero status.
    """
    if process is None:
        return
    returncode = process.wait()
    _close_output(process)
    if returncode != 0:
        msg = f"exit status {returncode}"
        raise ProcessExitError(msg, returncode=returncode)


def _not_ok(response: httpx.Response) -> bool:
    return response.status_code != httpx.codes.OK


def ready_http(
    url: str,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProcessCheck:
    """Return a readiness check that polls a URL until it answers 200 OK.

    Transport errors and non-200 responses are retried without an attempt
    limit; the surrounding deadline is what ends the polling. Any other
    error from the request is raised.

    Args:
        url: URL to GET.
        interval: Seconds to sleep between attempts.
        request_timeout: Timeout in seconds for each request.
        transport: Optional httpx transport for the polling client.

    Returns:
        An async readiness check suitable for with_ready_fn.
    """

    async def check(process: Process | None) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(_not_ok),
            wait=wait_fixed(interval),
            sleep=anyio.sleep,
            reraise=True,
        )
        async with httpx.AsyncClient(timeout=request_timeout, transport=transport) as client:
            _ = await retrying(client.get, url)

    return check
