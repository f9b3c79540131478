"""Exception hierarchy shared across the bot.

Every error carries a short, user-safe message. Handlers catch
`CrossSwapError` and reply with `str(error)`; full details go to the log.
"""

from decimal import Decimal
from typing import Optional


class CrossSwapError(Exception):
    """Base class for all expected failures."""


class InvalidInput(CrossSwapError):
    """Malformed user input. Recoverable by re-prompting the same step."""


class InvalidKeyFormat(InvalidInput):
    """Private key does not match the chain family's format."""


class InvalidMnemonicFormat(InvalidInput):
    """Mnemonic has the wrong word count or checksum."""


class InvalidAddress(InvalidInput):
    """Address does not belong to the expected chain family."""

    def __init__(self, expected_family: str, message: Optional[str] = None):
        self.expected_family = expected_family
        super().__init__(message or f"That is not a valid {expected_family} address.")


class InvalidAmount(InvalidInput):
    """Amount is not a positive number inside the advertised band."""

    def __init__(
        self,
        message: str,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
    ):
        self.min_amount = min_amount
        self.max_amount = max_amount
        super().__init__(message)


class UnsupportedOperation(InvalidInput):
    """Operation is not available for this chain family."""


class AuthenticationError(CrossSwapError):
    """Wrong password, or no authenticated session."""


class ExternalEngineError(CrossSwapError):
    """Swap engine rejected or failed a quote, submission or initiation."""


class AmountOutOfRange(ExternalEngineError):
    """Engine reported the amount outside its acceptable range."""

    def __init__(self, message: str, min_amount: Decimal, max_amount: Decimal):
        self.min_amount = min_amount
        self.max_amount = max_amount
        super().__init__(message)


class EngineUnavailable(ExternalEngineError):
    """Engine could not be reached (transport failure or timeout)."""


class PersistenceError(CrossSwapError):
    """Datastore unavailable or stored data failed its integrity check."""


class NotFoundError(CrossSwapError):
    """Referenced wallet, user or order does not exist."""


class IllegalTransition(CrossSwapError):
    """Conversation step change not allowed by the transition table."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from '{current}' to '{target}'.")
