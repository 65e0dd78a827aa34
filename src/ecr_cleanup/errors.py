"""Errors reported to the user by the command line shell."""

from botocore.exceptions import BotoCoreError, ClientError

# Exceptions raised by the AWS SDK for a failed remote call.
REMOTE_EXCEPTIONS = (BotoCoreError, ClientError)


class CleanupError(Exception):
    """Base class for every error surfaced as a single user-visible message."""


class NotFoundError(CleanupError):
    """A listing returned no items."""


class RemoteError(CleanupError):
    """A call to the registry service failed."""


class PaginationError(RemoteError):
    """The registry kept returning continuation cursors."""


class ConfigError(CleanupError):
    """Credentials, profile or region could not be resolved."""
