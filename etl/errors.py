"""
ETL Errors

Exception types raised by the extract and load stages.
Only CredentialError and TableAdminError abort a run under the default policies.
"""


class EtlError(Exception):
    """Base class for all pipeline errors."""


class CredentialError(EtlError):
    """The API key could not be read from Secret Manager."""


class DiscoveryRequestError(EtlError):
    """A ticket filter page could not be fetched."""

    def __init__(self, page, message):
        super().__init__(f"page {page}: {message}")
        self.page = page


class CollectionRequestError(EtlError):
    """The time entries of a single ticket could not be fetched."""

    def __init__(self, ticket_id, message):
        super().__init__(f"ticket {ticket_id}: {message}")
        self.ticket_id = ticket_id


class TableAdminError(EtlError):
    """The destination table could not be dropped or created."""


class InsertError(EtlError):
    """The bulk insert call failed as a whole."""


class PartialInsertError(InsertError):
    """Some rows were rejected by the warehouse."""

    def __init__(self, row_errors):
        super().__init__(f"{len(row_errors)} row(s) rejected")
        self.row_errors = row_errors
