"""
ec2tester/errors.py

Exception types shared across the package. Configuration problems derive from
ValueError so callers that only care about "bad input" can catch that.
"""

from __future__ import annotations

from typing import Optional


class Ec2TesterError(Exception):
    """Base class for all errors raised by ec2tester."""


class ConfigValidationError(Ec2TesterError, ValueError):
    """A configuration failed a required check during finalization."""


class OverlayError(Ec2TesterError, ValueError):
    """An environment override could not be applied to a configuration field.

    Attributes:
        env_key (Optional[str]): The environment variable that was being applied.
        value (Optional[str]): The raw override value, if relevant.
    """

    def __init__(
        self,
        message: str,
        env_key: Optional[str] = None,
        value: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.env_key = env_key
        self.value = value


class PluginError(Ec2TesterError, ValueError):
    """An init-script plugin name is unknown or malformed."""


class ReconcileAbortedError(Ec2TesterError):
    """The reconciliation loop was cancelled before it succeeded."""


class ReconcileTimeoutError(Ec2TesterError):
    """The reconciliation loop ran out of time without a successful attempt.

    Attributes:
        last_error (Optional[BaseException]): The failure from the final attempt,
            or None if no attempt ran before the deadline.
    """

    def __init__(
        self, message: str, last_error: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.last_error = last_error
