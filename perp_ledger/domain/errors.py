"""Error taxonomy for the ledger.

- LedgerError: base class for everything raised by this package
- MalformedInputError: upstream data that cannot be parsed

Upstream fetch failures are raised by the datasource layer
(see infrastructure.datasources.base.UpstreamFetchError).
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""


class MalformedInputError(LedgerError, ValueError):
    """Raised when an upstream record has an unparseable field."""

    def __init__(self, message: str, field: str | None = None, value: object = None):
        self.field = field
        self.value = value
        super().__init__(f"{message}" + (f" (field: {field})" if field else ""))
