from pydantic import BaseModel


class LedgerConfig(BaseModel):
    """Configuration for the ledger API client."""

    url: str = ""
    api_key: str = ""
    timeout_seconds: float = 30.0
    max_connections: int = 10
    max_keepalive_connections: int = 5
