"""
Exception classes for discshelf.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, and the hierarchy lets the CLI decide how to present each kind
of failure without ever crashing with a traceback.

Exception Hierarchy:
    DiscshelfError (base)
        ConfigError - Configuration file issues
        PersistenceError - Local store file cannot be written
        NotInitializedError - Query/profile before the first sync
        EmptyCollectionError - Random pick with nothing to play
        SyncError - Full refresh failed (local state preserved)
            RemoteUnavailable - Network or authentication failure
            RemoteDataError - Malformed page response
"""


class DiscshelfError(Exception):
    """
    Base exception for all discshelf errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every discshelf error with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., folder, page).

    Example:
        try:
            synchronizer.full_refresh()
        except DiscshelfError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'folder': Collection folder involved in the error
                     - 'page': Page number being fetched
                     - 'path': Store or config file path
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(DiscshelfError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Required fields missing (username, token)
        - Invalid field values (e.g., timezone outside -12..14)
    """
    pass


class PersistenceError(DiscshelfError):
    """
    Raised when the local store file cannot be written.

    This is FATAL for the current command and always surfaced: the
    store never silently drops data. When raised by a commit, the
    previously committed file is still in place.
    """
    pass


class NotInitializedError(DiscshelfError):
    """Raised when the catalog is queried before any sync has completed."""
    pass


class EmptyCollectionError(DiscshelfError):
    """Raised by a random pick when the collection holds no releases."""
    pass


class SyncError(DiscshelfError):
    """
    Base class for failures of a full refresh.

    Whatever the subclass, a SyncError guarantees that nothing was
    committed: the local store is exactly as it was before the refresh.
    """
    pass


class RemoteUnavailable(SyncError):
    """
    Raised when the remote catalog cannot be reached or refuses access.

    Attributes:
        is_auth_error: True if the credentials were rejected (401/403).
                       Authentication errors are never retried.
        is_transient: True if the failure may go away on retry
                      (timeouts, connection resets, 429 and 5xx responses).

    Example:
        raise RemoteUnavailable(
            "Discogs rejected the token",
            details={'status_code': 401},
            is_auth_error=True
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_transient: bool = False
    ) -> None:
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_transient = is_transient


class RemoteDataError(SyncError):
    """
    Raised when a remote response cannot be parsed.

    Treated as transient by the synchronizer: the page is retried and,
    once retries are exhausted, the refresh fails with RemoteUnavailable.
    """
    pass
