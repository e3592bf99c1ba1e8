import logging
import warnings

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when the engine is called with input it cannot compute on."""


class ReferentialGapWarning(UserWarning):
    """A split, payer or balance refers to a user missing from the user list."""


def report_referential_gap(message: str) -> None:
    """Log and warn about a dropped reference; computation carries on."""
    logger.warning(message)
    warnings.warn(message, ReferentialGapWarning, stacklevel=3)
