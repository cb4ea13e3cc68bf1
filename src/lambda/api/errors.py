"""
Error kinds shared by the row store and the action layer.
Store calls report errors as {"kind", "code", "message"} dicts; the action
layer raises StoreError internally to carry one to its logging.
"""

STORE_REJECTION = "store_rejection"
NOT_FOUND = "not_found"
VALIDATION = "validation"
UNEXPECTED = "unexpected"


def storeError(kind, code, message):
    """Build the structured error dict returned in a store response."""
    return {"kind": kind, "code": code, "message": str(message)}


class StoreError(Exception):
    """A store response came back with a non-null error."""

    def __init__(self, error):
        error = error or {}
        self.kind = error.get("kind", UNEXPECTED)
        self.code = error.get("code", "")
        super().__init__(error.get("message", ""))


class UnknownTableError(ValueError):
    """Table name outside the known collections."""

    kind = VALIDATION
    code = "UnknownTable"

    def __init__(self, table_name):
        self.table_name = table_name
        super().__init__(f"unknown table: {table_name!r}")


class FileActionError(Exception):
    """Download or delete of a stored file failed. Message is safe to show users."""
