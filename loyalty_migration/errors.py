"""Exception types raised across ``loyalty_migration`` boundaries.

Only input validation is allowed to abort a run. Everything that can fail
while talking to the loyalty API is turned into a value (a
:class:`~loyalty_migration.retry.TerminalFailure` or a failed
:class:`~loyalty_migration.models.UserResult`) before it reaches the caller.
"""

from __future__ import annotations


class LoyaltyMigrationError(Exception):
    """Base class for package errors."""


class InvalidInputError(LoyaltyMigrationError):
    """The input file or configuration cannot be processed.

    Raised before any record is dispatched (wrong file type, missing file,
    missing required column, invalid tunables).
    """


class LoyaltyApiError(LoyaltyMigrationError):
    """The loyalty API answered with a body that could not be interpreted."""


__all__ = ["InvalidInputError", "LoyaltyApiError", "LoyaltyMigrationError"]
