"""Exception taxonomy for backup and restore.

``ConfigError`` is raised before any store I/O and is fatal.  The other
errors are raised per table and captured into run results by the
``Dumper`` and ``Loader`` -- they never abort a whole run on their own.
"""


class BackupError(Exception):
    """Base class for all attendance-backup errors."""

    pass


class ConfigError(BackupError):
    """Raised when store credentials or settings are missing or malformed."""

    pass


class NotFoundError(BackupError):
    """Raised when a backup directory or a backup file does not exist."""

    pass


class StoreError(BackupError):
    """Raised when a store query or mutation fails."""

    pass


class ParseError(BackupError):
    """Raised when a backup file is not valid JSON or has the wrong shape."""

    pass
