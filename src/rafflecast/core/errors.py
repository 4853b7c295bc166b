"""
RaffleCast Errors

Exception hierarchy shared by the importer, the draw machine and the
storage layer.
"""


class RaffleError(Exception):
    """Base exception for all RaffleCast errors."""
    pass


# Input errors: reported to the operator, prior state untouched

class RosterImportError(RaffleError):
    """Base exception for participant import failures."""
    pass


class NoTabularContentFound(RosterImportError):
    """Raised when an archive holds no .csv or .txt entry."""
    pass


class ArchiveReadError(RosterImportError):
    """Raised when an archive cannot be opened or read."""
    pass


class EmptyInputError(RosterImportError):
    """Raised when the parsed input has no data rows."""
    pass


class ParseError(RosterImportError):
    """Raised when the delimited text cannot be parsed."""
    pass


# Invariant violations: rejected synchronously, no state change

class DrawError(RaffleError):
    """Base exception for draw lifecycle violations."""
    pass


class EmptyRosterError(DrawError):
    """Raised when a drawing or idle cycling needs participants and there are none."""
    pass


class DrawInProgress(DrawError):
    """Raised when an operation is not allowed while a drawing is spinning."""
    pass


class InvalidTransition(DrawError):
    """Raised when an operation is not valid in the current draw phase."""
    pass


class PrizeError(RaffleError):
    """Raised for invalid prize catalog operations."""
    pass


# Collaborator failures

class StorageError(RaffleError):
    """Raised when the storage collaborator fails."""
    pass


class LicenseBlocked(RaffleError):
    """Raised when the operator's license does not allow running the control surface."""
    pass
