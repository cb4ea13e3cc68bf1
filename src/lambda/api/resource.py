"""
Generic resource actions shared by every admin screen.

createResource / editResource / deleteResource take a store handle, a table
name and the path whose cached listing goes stale on success. They never
raise: the caller gets {"success": True} or {"success": False, "error": msg}
and the cause is only logged.
"""
import logging

from pydantic import ValidationError

from api.errors import NOT_FOUND, UNEXPECTED, VALIDATION, StoreError, UnknownTableError
from api.invalidation import revalidatePath
from api.schemas import modelFor, validatePayload

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _failure(verb, table_name, error):
    """Log the structured cause and return the coarse result."""
    if isinstance(error, StoreError):
        logger.error("%s %s failed: kind=%s code=%s message=%s", verb, table_name, error.kind, error.code, error)
    elif isinstance(error, (ValidationError, UnknownTableError)):
        logger.error("%s %s failed: kind=%s errors=%s", verb, table_name, VALIDATION, error)
    else:
        logger.exception("%s %s failed: kind=%s", verb, table_name, UNEXPECTED)
    return {"success": False, "error": f"Failed to {verb} {table_name}"}


def _raiseForError(result):
    if result.get("error"):
        raise StoreError(result["error"])


def _noMatch(verb, table_name, row_id, require_match):
    logger.warning("%s %s: no row with id=%s", verb, table_name, row_id)
    if require_match:
        raise StoreError({"kind": NOT_FOUND, "code": "NotFound", "message": f"no row with id={row_id}"})


def createResource(store, table_name, redirect_path, data, revalidate=revalidatePath):
    """Insert data into table_name, then invalidate redirect_path."""
    try:
        payload = validatePayload(table_name, data)
        _raiseForError(store.insert(table_name, payload))
        revalidate(redirect_path)
        return {"success": True}
    except Exception as e:
        return _failure("create", table_name, e)


def editResource(store, table_name, redirect_path, row_id, data, revalidate=revalidatePath, require_match=False):
    """
    Update the given fields of row row_id. A missing row is reported as success
    unless require_match is set; the row is never created.
    """
    try:
        payload = validatePayload(table_name, data, partial=True)
        result = store.update(table_name, row_id, payload)
        _raiseForError(result)
        if not result.get("count"):
            _noMatch("update", table_name, row_id, require_match)
        revalidate(redirect_path)
        return {"success": True}
    except Exception as e:
        return _failure("update", table_name, e)


def deleteResource(store, table_name, redirect_path, row_id, revalidate=revalidatePath, require_match=False):
    """Delete row row_id. Deleting a missing row is success unless require_match is set."""
    try:
        modelFor(table_name)
        result = store.delete(table_name, row_id)
        _raiseForError(result)
        if not result.get("count"):
            _noMatch("delete", table_name, row_id, require_match)
        revalidate(redirect_path)
        return {"success": True}
    except Exception as e:
        return _failure("delete", table_name, e)
