"""
Cancellation and deadline carrier for token generation.

Only credential resolution (and the optional debug identity lookup) blocks on
the network. Those calls are run through ``SignerContext.run`` so that a
caller can abandon them when the context is cancelled or its deadline
passes, instead of hanging on a slow metadata endpoint or STS.

Usage:
    from aws_msk_iam_sasl_signer import SignerContext, generate_auth_token

    ctx = SignerContext.with_timeout(5.0)
    token, expiry_ms = generate_auth_token("us-west-2", context=ctx)
"""

import logging
import threading
import time
from typing import Any, Callable, Optional, TypeVar

from .exceptions import DeadlineExceededError, OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a waiting call re-checks the cancel event
_POLL_INTERVAL_SECONDS = 0.05


class _BackgroundCall:
    """A single call on a daemon thread, holding its result or exception."""

    def __init__(self, func: Callable[..., Any], args: tuple, kwargs: dict):
        self._func = func
        self._args = args
        self._kwargs = kwargs
        self._result: Any = None
        self._error: Optional[BaseException] = None
        self.done = threading.Event()

    def start(self) -> None:
        thread = threading.Thread(target=self._run, name="msk-signer", daemon=True)
        thread.start()

    def _run(self) -> None:
        try:
            self._result = self._func(*self._args, **self._kwargs)
        except BaseException as e:
            self._error = e
        finally:
            self.done.set()

    def outcome(self) -> Any:
        if self._error is not None:
            raise self._error
        return self._result


class SignerContext:
    """
    Carries an optional deadline and a cancellation signal.

    A context is safe to share between threads; ``cancel()`` may be called
    from any thread while another thread is blocked in ``run()``.

    Attributes:
        deadline: Deadline on the ``time.monotonic()`` clock, or None
    """

    def __init__(self, deadline: Optional[float] = None):
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> "SignerContext":
        """Create a context whose deadline is ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Signal cancellation to every operation using this context."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_done(self) -> None:
        """
        Raise if the context is cancelled or past its deadline.

        Raises:
            OperationCancelledError: If cancel() was called
            DeadlineExceededError: If the deadline has passed
        """
        if self._cancelled.is_set():
            raise OperationCancelledError("operation cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("deadline exceeded")

    def run(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Run a blocking call, giving up when the context is done.

        The call runs on a daemon worker thread while this thread waits for
        it in short slices. If the context is cancelled or the deadline
        passes first, the result is abandoned and the matching error is
        raised. An abandoned worker never keeps the interpreter alive.

        Args:
            func: Blocking callable
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Whatever func returns

        Raises:
            OperationCancelledError: If cancelled while waiting
            DeadlineExceededError: If the deadline passes while waiting
        """
        self.raise_if_done()

        call = _BackgroundCall(func, args, kwargs)
        call.start()
        while True:
            wait = _POLL_INTERVAL_SECONDS
            remaining = self.remaining()
            if remaining is not None:
                wait = min(wait, remaining)
            if call.done.wait(timeout=wait):
                return call.outcome()
            try:
                self.raise_if_done()
            except OperationCancelledError:
                logger.debug("Abandoning %s: %s", getattr(func, "__name__", func), self)
                raise

    def __repr__(self) -> str:
        return (
            f"SignerContext(cancelled={self.cancelled}, "
            f"remaining={self.remaining()})"
        )


def call_with_context(
    context: Optional[SignerContext],
    func: Callable[..., T],
    *args,
    **kwargs,
) -> T:
    """Run func through the context when one is given, inline otherwise."""
    if context is None:
        return func(*args, **kwargs)
    return context.run(func, *args, **kwargs)
