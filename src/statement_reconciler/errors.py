class ReconcilerError(Exception):
    """Base class for errors that abort a reconciliation run."""


class ExtractionError(ReconcilerError):
    """The statement extraction engine failed or returned an unusable document."""


class ExportFormatError(ReconcilerError):
    """The exported CSV file cannot be read at all (as opposed to a bad row)."""


class ResolutionError(ReconcilerError):
    """A transaction could not be assigned to a ledger account."""


class DecisionError(ReconcilerError):
    """The operator decision callback failed or returned an unusable answer."""


class LedgerError(ReconcilerError):
    pass


class LedgerTransportError(LedgerError):
    """The ledger service could not be reached."""
