"""Bounded retries around blocking calls to the remote data platform."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, TypeVar

from retry.api import retry_call

from treecover.errors import ServiceUnavailableError
from treecover.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")

_TRANSIENT_MESSAGE = re.compile(
    r"\b(429|500|502|503|504)\b|too many requests|rate limit|quota exceeded|"
    r"unavailable|deadline|timed out|connection reset",
    re.IGNORECASE,
)


class _TransientFailureError(Exception):
    """Marks a failure that is worth retrying."""


def is_transient(error: BaseException) -> bool:
    """
    Check whether a failure from the remote platform is likely to go away.

    :param error: The exception raised by the remote call.
    :return: True for connection problems, timeouts, rate limiting and server
    side errors.
    """
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    return bool(_TRANSIENT_MESSAGE.search(str(error)))


class RemoteCaller:
    """
    Runs blocking calls against the remote platform with bounded retries.

    Transient failures are retried with exponential backoff. Once the attempts
    run out a ServiceUnavailableError is raised. Anything else is raised to the
    caller unchanged on the first attempt.
    """

    def __init__(
        self,
        *,
        tries: int = 5,
        delay: float = 1.0,
        backoff: float = 2.0,
        max_delay: float = 30.0,
    ) -> None:
        """
        Initialize the RemoteCaller with its retry policy.

        :param tries: The maximum number of attempts, including the first.
        :param delay: The delay before the first retry, in seconds.
        :param backoff: The multiplier applied to the delay after each retry.
        :param max_delay: The upper bound on the delay between attempts.
        """
        if tries < 1:
            msg = f"tries must be at least 1, got {tries}"
            raise ValueError(msg)
        self.tries = tries
        self.delay = delay
        self.backoff = backoff
        self.max_delay = max_delay

    def call(self, description: str, func: Callable[[], T]) -> T:
        """
        Call `func`, retrying transient failures.

        :param description: A short description of the call, used in logs and errors.
        :param func: The zero-argument callable doing the remote work.
        :return: Whatever `func` returns.
        """
        last_error: list[BaseException] = []

        def attempt() -> T:
            try:
                return func()
            except Exception as error:
                if not is_transient(error):
                    raise
                logger.warning(f"Transient failure during {description}: {error}")
                last_error[:] = [error]
                raise _TransientFailureError(str(error)) from error

        try:
            return retry_call(
                attempt,
                exceptions=_TransientFailureError,
                tries=self.tries,
                delay=self.delay,
                backoff=self.backoff,
                max_delay=self.max_delay,
                logger=None,
            )
        except _TransientFailureError:
            msg = f"Remote service unavailable during {description} after {self.tries} attempts"
            raise ServiceUnavailableError(msg) from (last_error[0] if last_error else None)
