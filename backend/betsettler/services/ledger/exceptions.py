class LedgerError(Exception):
    """Base exception for ledger API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerConfigError(LedgerError):
    """Ledger endpoint not configured."""

    pass


class LedgerResponseError(LedgerError):
    """Ledger answered with a non-success status."""

    pass


class LedgerTransportError(LedgerError):
    """Ledger could not be reached (network error or timeout)."""

    pass
