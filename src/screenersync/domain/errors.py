"""Exception hierarchy for the sync pipeline."""


class SyncError(Exception):
    """Base class for failures that mark a mail event as failed."""


class DirectoryTransportError(SyncError):
    """Directory store unreachable, timed out, or answered with an error status."""


class ContactResolutionError(SyncError):
    """A sender address could not be mapped to exactly one contact."""


class GroupRecordError(SyncError):
    """A group card is missing or could not be used for a membership edit."""


class CardFormatError(SyncError):
    """A stored vCard could not be parsed."""
