from .client import LedgerClient, create_ledger_client
from .config import LedgerConfig
from .exceptions import (
    LedgerConfigError,
    LedgerError,
    LedgerResponseError,
    LedgerTransportError,
)
from .models import (
    LedgerInstruction,
    LedgerReceipt,
    LedgerTransaction,
    build_instruction,
    generate_transaction_id,
)

__all__ = [
    "LedgerClient",
    "create_ledger_client",
    "LedgerConfig",
    "LedgerError",
    "LedgerConfigError",
    "LedgerResponseError",
    "LedgerTransportError",
    "LedgerInstruction",
    "LedgerReceipt",
    "LedgerTransaction",
    "build_instruction",
    "generate_transaction_id",
]
