"""Timeout-bounded callback execution.

A callback races a one-shot timer; whichever settles first wins. When the
timer wins, the callback is not cancelled: its cancellation token is
signalled, its eventual outcome is consumed and logged, and the caller gets
a ToolTimeoutError straight away.
"""

import asyncio
import inspect
import logging
import threading
from typing import Any, Callable

from mac_engine.errors import ToolTimeoutError

logger = logging.getLogger(__name__)

# Tasks that lost the race but are still running. Holding a reference keeps
# them from being garbage collected mid-flight.
_late_tasks: set[asyncio.Task[Any]] = set()


class CancellationToken:
    """Cooperative cancellation signal handed to long-running callbacks.

    A callback opts in by accepting a ``cancellation`` keyword argument. It
    can then check ``token.cancelled`` between units of work and stop early.
    The token is thread-safe, so sync callbacks running in a worker thread
    can poll it too.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()


def accepts_cancellation(callback: Callable[..., Any]) -> bool:
    """Check whether a callback declares a ``cancellation`` parameter."""
    try:
        parameters = inspect.signature(callback).parameters
    except (TypeError, ValueError):
        return False
    return "cancellation" in parameters


def _is_async(callback: Callable[..., Any]) -> bool:
    return inspect.iscoroutinefunction(callback) or inspect.iscoroutinefunction(
        getattr(callback, "__call__", None)
    )


def _run_in_daemon_thread(
    callback: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> "asyncio.Future[Any]":
    """Run a sync callback on its own daemon thread.

    Not the default executor: asyncio.run() joins its workers on shutdown,
    so a callback that never returns would block the caller after a timeout.
    Daemon threads are abandoned at interpreter exit.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Any] = loop.create_future()

    def settle(result: Any, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def target() -> None:
        try:
            outcome: tuple[Any, Exception | None] = (callback(*args, **kwargs), None)
        except Exception as e:
            outcome = (None, e)
        try:
            loop.call_soon_threadsafe(settle, *outcome)
        except RuntimeError:
            logger.debug("Event loop closed before a sync callback returned")

    name = getattr(callback, "__name__", "callback")
    threading.Thread(target=target, name=f"mac-callback-{name}", daemon=True).start()
    return future


async def _invoke(
    callback: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> Any:
    if _is_async(callback):
        return await callback(*args, **kwargs)

    result = await _run_in_daemon_thread(callback, args, kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def _consume_late_outcome(name: str) -> Callable[[asyncio.Task[Any]], None]:
    def done(task: asyncio.Task[Any]) -> None:
        _late_tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Late callback for '{name}' was cancelled")
        elif task.exception() is not None:
            logger.debug(
                f"Late callback for '{name}' failed after timeout: {task.exception()}"
            )
        else:
            logger.debug(f"Late callback for '{name}' finished after timeout, discarded")

    return done


async def run_with_timeout(
    name: str,
    callback: Callable[..., Any],
    *args: Any,
    timeout_ms: int,
) -> Any:
    """Run a callback racing a timer.

    Args:
        name: Name used in errors and logs (tool name or resource URI)
        callback: Sync or async callable
        *args: Positional arguments for the callback
        timeout_ms: Timer duration in milliseconds

    Returns:
        Whatever the callback returned (awaited if necessary)

    Raises:
        ToolTimeoutError: If the timer fired first
        Exception: Anything the callback raised, unchanged
    """
    token = CancellationToken()
    kwargs: dict[str, Any] = {}
    if accepts_cancellation(callback):
        kwargs["cancellation"] = token

    task = asyncio.ensure_future(_invoke(callback, args, kwargs))
    done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)

    if task in done:
        return task.result()

    token.cancel()
    _late_tasks.add(task)
    task.add_done_callback(_consume_late_outcome(name))
    logger.warning(f"'{name}' timed out after {timeout_ms}ms")
    raise ToolTimeoutError(name, timeout_ms)
