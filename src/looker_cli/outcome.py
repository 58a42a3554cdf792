"""Explicit results for best-effort operations.

Opening a browser or fetching a view link may fail without failing the
command. Instead of a bare ``except``/``pass``, such calls return an
``Outcome`` which records the failure and logs it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Value or error of a best-effort call."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def attempt(cls, description: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
        """Run ``func`` and capture any exception it raises.

        Args:
            description: Short label used in the log message.
            func: Callable to run.

        Returns:
            Outcome holding either the return value or the exception.
        """
        try:
            return cls(value=func(*args, **kwargs))
        except Exception as e:
            logger.warning(f"{description} failed: {e}")
            logger.debug(f"{description} traceback", exc_info=True)
            return cls(error=e)
