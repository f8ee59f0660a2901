"""A token-bucket rate limiter that can be shared between threads."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

_U64_MAX = (1 << 64) - 1
_NANOS_PER_SEC = 1_000_000_000

Interval = Union[timedelta, int, float]


class RatelimitError(ValueError):
    """Base class for invalid rate limiter settings."""


class AvailableTokensTooHigh(RatelimitError):
    def __init__(self) -> None:
        super().__init__("available tokens cannot be set higher than max tokens")


class MaxTokensTooLow(RatelimitError):
    def __init__(self) -> None:
        super().__init__("max tokens cannot be less than the refill amount")


class RefillAmountTooHigh(RatelimitError):
    def __init__(self) -> None:
        super().__init__("refill amount cannot exceed the max tokens")


class RefillIntervalTooLong(RatelimitError):
    def __init__(self) -> None:
        super().__init__("refill interval in nanoseconds exceeds maximum u64")


class RateLimited(Exception):
    """No token was available.

    ``retry_after`` is the number of seconds until the next refill is due.
    """

    def __init__(self, retry_after_ns: int) -> None:
        self.retry_after_ns = retry_after_ns
        self.retry_after = retry_after_ns / _NANOS_PER_SEC
        super().__init__(f"rate limited, next refill in {self.retry_after:.9f}s")


def _to_nanos(interval: Interval) -> int:
    """Convert a timedelta or a number of seconds to whole nanoseconds."""
    if isinstance(interval, timedelta):
        whole = (interval.days * 86_400 + interval.seconds) * _NANOS_PER_SEC
        nanos = whole + interval.microseconds * 1_000
    elif isinstance(interval, bool):
        raise TypeError("interval must be a timedelta or a number of seconds")
    elif isinstance(interval, int):
        nanos = interval * _NANOS_PER_SEC
    elif isinstance(interval, float):
        nanos = round(interval * _NANOS_PER_SEC)
    else:
        raise TypeError("interval must be a timedelta or a number of seconds")
    if nanos < 0:
        raise ValueError("interval cannot be negative")
    if nanos > _U64_MAX:
        raise RefillIntervalTooLong()
    if nanos == 0:
        raise ValueError("interval must be positive")
    return nanos


def _check_tokens(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"token counts must be ints, got {type(value).__name__}")
    if not 0 <= value <= _U64_MAX:
        raise ValueError(f"{value} is outside the unsigned 64-bit range")
    return value


@dataclass
class _Parameters:
    capacity: int
    refill_amount: int
    refill_interval_ns: int


class Ratelimiter:
    """Adds a fixed amount of tokens to a bucket after each interval."""

    def __init__(self, parameters: _Parameters, initial_available: int) -> None:
        self._parameters = parameters
        self._available = initial_available
        self._refill_at = time.monotonic_ns() + parameters.refill_interval_ns
        self._lock = threading.Lock()

    @staticmethod
    def builder(amount: int, interval: Interval) -> "Builder":
        """A builder for a limiter adding ``amount`` tokens every ``interval``.

        ``interval`` is a timedelta or a number of seconds.
        """
        return Builder(amount, interval)

    def rate(self) -> float:
        """The effective rate in tokens per second."""
        with self._lock:
            params = self._parameters
            return params.refill_amount * 1_000_000_000.0 / params.refill_interval_ns

    def refill_interval(self) -> float:
        """The interval between refills, in seconds."""
        with self._lock:
            return self._parameters.refill_interval_ns / _NANOS_PER_SEC

    def set_refill_interval(self, duration: Interval) -> None:
        """Change the interval between refills."""
        nanos = _to_nanos(duration)
        with self._lock:
            self._parameters.refill_interval_ns = nanos

    def refill_amount(self) -> int:
        """The number of tokens added on each refill."""
        with self._lock:
            return self._parameters.refill_amount

    def set_refill_amount(self, amount: int) -> None:
        """Change the number of tokens added on each refill."""
        _check_tokens(amount)
        with self._lock:
            if amount > self._parameters.capacity:
                raise RefillAmountTooHigh()
            self._parameters.refill_amount = amount

    def max_tokens(self) -> int:
        """The most tokens the bucket can hold."""
        with self._lock:
            return self._parameters.capacity

    def set_max_tokens(self, amount: int) -> None:
        """Change the burst size; raising it also fills the bucket to it."""
        _check_tokens(amount)
        with self._lock:
            if amount < self._parameters.refill_amount:
                raise MaxTokensTooLow()
            self._parameters.capacity = amount
            if amount > self._available:
                self._available = amount

    def available(self) -> int:
        """The number of tokens currently in the bucket."""
        return self._available

    def set_available(self, amount: int) -> None:
        """Set the number of tokens currently in the bucket."""
        _check_tokens(amount)
        with self._lock:
            if amount > self._parameters.capacity:
                raise AvailableTokensTooHigh()
            self._available = amount

    def _refill(self, now: int) -> int:
        """Add the tokens due by ``now``; return nanoseconds to wait, or 0."""
        refill_at = self._refill_at
        if now < refill_at:
            return refill_at - now
        params = self._parameters
        intervals = (now - refill_at) // params.refill_interval_ns + 1
        self._refill_at = refill_at + intervals * params.refill_interval_ns
        amount = intervals * params.refill_amount
        if self._available + amount >= params.capacity:
            self._available = params.capacity
        else:
            self._available += amount
        return 0

    def try_wait(self) -> None:
        """Take one token without blocking.

        Raises RateLimited, carrying the time until the next refill, when no
        token is available.
        """
        with self._lock:
            while True:
                wait_ns = self._refill(time.monotonic_ns())
                if self._available > 0:
                    self._available -= 1
                    return
                if wait_ns:
                    raise RateLimited(wait_ns)

    def __repr__(self) -> str:
        params = self._parameters
        return (
            f"Ratelimiter(refill_amount={params.refill_amount}, "
            f"refill_interval_ns={params.refill_interval_ns}, "
            f"max_tokens={params.capacity}, available={self._available})"
        )


class Builder:
    """Collects the settings of a Ratelimiter."""

    def __init__(self, amount: int, interval: Interval) -> None:
        self._refill_amount = _check_tokens(amount)
        self._interval = interval
        self._initial_available = 0
        self._max_tokens = 1

    def max_tokens(self, tokens: int) -> "Builder":
        """Set the burst size; it cannot be lower than the refill amount."""
        self._max_tokens = _check_tokens(tokens)
        return self

    def initial_available(self, tokens: int) -> "Builder":
        """Set how many tokens are available at the start. Defaults to zero."""
        self._initial_available = _check_tokens(tokens)
        return self

    def build(self) -> Ratelimiter:
        """Construct the Ratelimiter."""
        if self._max_tokens < self._refill_amount:
            raise MaxTokensTooLow()
        nanos = _to_nanos(self._interval)
        parameters = _Parameters(
            capacity=self._max_tokens,
            refill_amount=self._refill_amount,
            refill_interval_ns=nanos,
        )
        return Ratelimiter(parameters, self._initial_available)