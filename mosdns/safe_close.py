"""Coordinated shutdown of a service and the threads attached to it."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

AttachedFunc = Callable[[Callable[[], None], threading.Event], None]


class SafeClose:
    """Lets a service close only after all its attached threads are done.

    1. Every sub task of a service is started by :meth:`attach` and watches
       :attr:`close_signal`.
    2. Anyone may call :meth:`send_close_signal`, with an error on failure.
    3. :meth:`wait_closed` returns once the signal is sent and every attached
       task has called its ``done``.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._closed = threading.Event()
        self._err: Optional[BaseException] = None
        self._pending = 0

    def wait_closed(self, timeout: Optional[float] = None) -> None:
        """Wait for the close signal and all attached tasks.

        Raises the error given to :meth:`send_close_signal`, if any, and
        TimeoutError if ``timeout`` seconds pass first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        if not self._closed.wait(timeout):
            raise TimeoutError("close signal was not sent in time")
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending == 0, remaining):
                raise TimeoutError("attached tasks did not finish in time")
            err = self._err
        if err is not None:
            raise err

    def send_close_signal(self, err: Optional[BaseException] = None) -> None:
        """Send the close signal. Only the first call has an effect."""
        with self._cond:
            if not self._closed.is_set():
                self._err = err
                self._closed.set()

    @property
    def close_signal(self) -> threading.Event:
        """An event that is set once the close signal was sent."""
        return self._closed

    def attach(self, func: AttachedFunc) -> None:
        """Run ``func(done, close_signal)`` in a new thread.

        ``func`` must call ``done`` when it finishes. Nothing runs if the
        close signal was already sent.
        """
        with self._cond:
            if self._closed.is_set():
                return
            self._pending += 1
            once = threading.Lock()
            finished = False

            def done() -> None:
                nonlocal finished
                with once:
                    if finished:
                        return
                    finished = True
                with self._cond:
                    self._pending -= 1
                    self._cond.notify_all()

            thread = threading.Thread(
                target=func, args=(done, self._closed), daemon=True
            )
            thread.start()