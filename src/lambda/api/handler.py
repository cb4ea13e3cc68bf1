"""
API Gateway HTTP API (payload 2.0) handler. Routes by path.

/admin/{resource}[/{id}]   form submissions through the generic resource actions
/api/{resource}[/{id}]     REST over the row store
/api/users, /api/settings/system, /api/system-info, /api/files/{id}/download
"""
import base64
import json
import logging
import sys
from pathlib import Path
from urllib.parse import parse_qsl

from pydantic import ValidationError

# Ensure common module is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from common.response import ERROR_MESSAGES, STATUS_CODES, errorResponse, jsonResponse, successResponse

from api import files, settings, users
from api.errors import NOT_FOUND, FileActionError
from api.invalidation import VIEW_CACHE, revalidatePath
from api.resource import createResource, deleteResource, editResource
from api.resources import resourceFor
from api.schemas import validatePayload
from api.store import RowStore

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ROLE_DISPLAY_MAP = {"admin": "SuperAdmin", "manager": "Manager", "user": "User"}
LIST_PARAMS = {"order", "ascending", "limit", "offset"}


def getUserInfo(event):
    """Extract user info from Cognito authorizer context."""
    authorizer = event.get("requestContext", {}).get("authorizer", {})
    jwt = authorizer.get("jwt", {})
    claims = jwt.get("claims", {})

    raw_groups = claims.get("cognito:groups")
    groups: list[str] = []

    if isinstance(raw_groups, list):
        groups = [str(g) for g in raw_groups]
    elif isinstance(raw_groups, str) and raw_groups:
        # Cognito sometimes returns groups as a JSON-ish string like "[admin]"
        try:
            parsed = json.loads(raw_groups)
            if isinstance(parsed, list):
                groups = [str(g) for g in parsed]
            else:
                groups = [str(parsed)]
        except ValueError:
            for p in raw_groups.split(","):
                g = p.strip().strip("[]\"'")
                if g:
                    groups.append(g)

    return {
        "userId": claims.get("sub", ""),
        "email": claims.get("email", ""),
        "groups": groups,
        "groupsDisplay": [ROLE_DISPLAY_MAP.get(g, g) for g in groups],
    }


def _requireAuth(event):
    """Return (user, None) if signed in, else (None, error_response)."""
    user = getUserInfo(event)
    if not user.get("userId"):
        return None, jsonResponse({"error": "Authentication required"}, STATUS_CODES["UNAUTHORIZED"])
    return user, None


def _requireAdmin(event):
    """Return (user, None) if admin, else (None, error_response)."""
    user, err = _requireAuth(event)
    if err:
        return None, err
    if "admin" not in user.get("groups", []):
        return None, jsonResponse({"error": "Forbidden: admin role required"}, STATUS_CODES["FORBIDDEN"])
    return user, None


def _requireManagerOrAdmin(event):
    """Return (user, None) if admin or manager, else (None, error_response)."""
    user, err = _requireAuth(event)
    if err:
        return None, err
    groups = user.get("groups", [])
    if "admin" not in groups and "manager" not in groups:
        return None, jsonResponse({"error": "Forbidden: manager or admin role required"}, STATUS_CODES["FORBIDDEN"])
    return user, None


def _getStore():
    return RowStore()


def _parseBody(event):
    """JSON or form-encoded body -> dict. Raises ValueError on a malformed JSON body."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded") and body:
        body = base64.b64decode(body).decode("utf-8")
    if not body:
        return {}
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    if "application/x-www-form-urlencoded" in headers.get("content-type", ""):
        return dict(parse_qsl(body, keep_blank_values=True))
    parsed = json.loads(body)
    if not isinstance(parsed, dict):
        raise ValueError("body must be a JSON object")
    return parsed


def _validationErrorResponse(e):
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in e.errors()]
    return jsonResponse({"error": ERROR_MESSAGES["VALIDATION_ERROR"], "details": details}, STATUS_CODES["BAD_REQUEST"])


def _actionResponse(result):
    return jsonResponse(result, STATUS_CODES["OK"] if result.get("success") else STATUS_CODES["BAD_REQUEST"])


def _label(table):
    return table.replace("_", " ")


def handler(event, context):
    """Route request by path; return JSON with CORS headers."""
    try:
        path = event.get("rawPath", "")
        if not path:
            path = event.get("requestContext", {}).get("http", {}).get("path", "")
        method = event.get("requestContext", {}).get("http", {}).get("method", "GET")

        logger.info("path=%s, method=%s", path, method)

        if method == "OPTIONS":
            # CORS preflight
            return jsonResponse({}, 200)
        if method == "GET" and path == "/health":
            return jsonResponse({"ok": True})
        if method == "GET" and path == "/me":
            user, err = _requireAuth(event)
            return err or jsonResponse(user)

        parts = [p for p in path.split("/") if p]
        if len(parts) >= 2 and parts[0] == "api":
            routed = _routeApi(event, method, parts[1:])
            if routed is not None:
                return routed
        if len(parts) >= 2 and parts[0] == "admin":
            routed = _routeAdmin(event, method, parts[1:])
            if routed is not None:
                return routed
        return jsonResponse({"error": "Not Found", "path": path, "method": method}, 404)
    except Exception as e:
        logger.exception("handler error: %s", str(e))
        return jsonResponse({"error": str(e), "type": type(e).__name__}, 500)


def _routeApi(event, method, parts):
    head, rest = parts[0], parts[1:]
    if head == "users":
        if not rest:
            if method == "GET":
                return listUsers(event)
            if method == "POST":
                return createUser(event)
        elif len(rest) == 1:
            if method == "GET":
                return getUser(event, rest[0])
            if method == "PATCH":
                return updateUser(event, rest[0])
            if method == "DELETE":
                return deleteUser(event, rest[0])
        return None
    if head == "settings" and rest == ["system"]:
        if method == "GET":
            return getSystemSettings(event)
        if method == "POST":
            return saveSystemSettings(event)
        return None
    if head == "system-info" and not rest:
        if method == "GET":
            return getSystemInfo(event)
        if method == "PATCH":
            return patchSystemInfo(event)
        return None
    if head == "files" and len(rest) == 2 and rest[1] == "download" and method == "GET":
        return downloadFile(event, rest[0])

    resource = resourceFor(head)
    if resource is None:
        return None
    if not rest:
        if method == "GET":
            return listApiResource(event, resource)
        if method == "POST":
            return createApiResource(event, resource)
    elif len(rest) == 1:
        if method == "GET":
            return getApiResource(event, resource, rest[0])
        if method in ("PATCH", "PUT"):
            return patchApiResource(event, resource, rest[0])
        if method == "DELETE":
            return deleteApiResource(event, resource, rest[0])
    return None


def _routeAdmin(event, method, parts):
    resource = resourceFor(parts[0])
    if resource is None:
        return None
    rest = parts[1:]
    if not rest:
        if method == "GET":
            return listAdminResource(event, resource)
        if method == "POST":
            return submitCreate(event, resource)
    elif len(rest) == 1:
        if method in ("PUT", "PATCH", "POST"):
            return submitEdit(event, resource, rest[0])
        if method == "DELETE":
            if resource.table == files.FILES_TABLE:
                return submitDeleteFile(event, rest[0])
            return submitDelete(event, resource, rest[0])
    return None


# ------------------------------------------------------------------------------
# Admin screens: listings read through the view cache, mutations go through
# the generic resource actions and answer with {"success", "error"}
# ------------------------------------------------------------------------------

def listAdminResource(event, resource):
    """GET /admin/{slug} - Cached listing for the admin table."""
    _, err = _requireAuth(event)
    if err:
        return err
    try:
        rows = VIEW_CACHE.get(resource.adminPath)
        if rows is not None:
            return jsonResponse({"data": rows, "cached": True})
        generation = VIEW_CACHE.generation()
        result = _getStore().select(
            resource.table,
            order_by=resource.orderBy,
            ascending=resource.ascending,
            embed=resource.embed,
        )
        if result["error"]:
            return errorResponse(result["error"], f"Error fetching {_label(resource.table)}")
        rows = result["data"]
        VIEW_CACHE.put(resource.adminPath, rows, generation)
        return jsonResponse({"data": rows, "cached": False})
    except Exception as e:
        logger.exception("listAdminResource error")
        return errorResponse(e, f"Error fetching {_label(resource.table)}")


def submitCreate(event, resource):
    """POST /admin/{slug} - Create form submission."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    try:
        data = _parseBody(event)
    except ValueError:
        return jsonResponse({"success": False, "error": "Invalid request body"}, 400)
    return _actionResponse(createResource(_getStore(), resource.table, resource.adminPath, data))


def submitEdit(event, resource, row_id):
    """PUT /admin/{slug}/{id} - Edit form submission."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    try:
        data = _parseBody(event)
    except ValueError:
        return jsonResponse({"success": False, "error": "Invalid request body"}, 400)
    data.pop("id", None)
    return _actionResponse(editResource(_getStore(), resource.table, resource.adminPath, row_id, data))


def submitDelete(event, resource, row_id):
    """DELETE /admin/{slug}/{id} - Delete action from the admin table."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    return _actionResponse(deleteResource(_getStore(), resource.table, resource.adminPath, row_id))


def submitDeleteFile(event, file_id):
    """DELETE /admin/files/{id} - Remove the stored object and its row."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    try:
        return _actionResponse(files.delete_file(_getStore(), file_id))
    except FileActionError as e:
        return _actionResponse({"success": False, "error": str(e)})


# ------------------------------------------------------------------------------
# REST resources: {"data": ...} or {"error": ...}
# ------------------------------------------------------------------------------

def listApiResource(event, resource):
    """GET /api/{slug} - ?order=&ascending=&limit=&offset=, other keys filter by equality."""
    _, err = _requireAuth(event)
    if err:
        return err
    label = _label(resource.table)
    try:
        qs = event.get("queryStringParameters") or {}
        try:
            limit = int(qs["limit"]) if qs.get("limit") else None
            offset = int(qs.get("offset") or 0)
        except (TypeError, ValueError):
            return jsonResponse({"error": "limit and offset must be integers"}, 400)
        ascending = resource.ascending
        if qs.get("ascending"):
            ascending = qs["ascending"].lower() not in ("false", "0", "no")
        filters = {k: v for k, v in qs.items() if k not in LIST_PARAMS}
        result = _getStore().select(
            resource.table,
            filters=filters,
            order_by=qs.get("order") or resource.orderBy,
            ascending=ascending,
            embed=resource.embed,
            limit=limit,
            offset=offset,
        )
        if result["error"]:
            return errorResponse(result["error"], f"Error fetching {label}")
        return jsonResponse({"data": result["data"], "count": result["count"]})
    except Exception as e:
        return errorResponse(e, f"Error fetching {label}")


def createApiResource(event, resource):
    """POST /api/{slug} - Insert and return the new row."""
    _, err = _requireAuth(event)
    if err:
        return err
    label = _label(resource.table)
    try:
        payload = validatePayload(resource.table, _parseBody(event))
    except ValidationError as e:
        return _validationErrorResponse(e)
    except ValueError:
        return jsonResponse({"error": "Invalid JSON body"}, 400)
    try:
        result = _getStore().insert(resource.table, payload)
        if result["error"]:
            return errorResponse(result["error"], f"Error creating {label}")
        revalidatePath(resource.adminPath)
        return successResponse(result["data"], STATUS_CODES["CREATED"])
    except Exception as e:
        return errorResponse(e, f"Error creating {label}")


def getApiResource(event, resource, row_id):
    """GET /api/{slug}/{id}"""
    _, err = _requireAuth(event)
    if err:
        return err
    label = _label(resource.table)
    try:
        result = _getStore().get(resource.table, row_id)
        if result["error"]:
            if result["error"].get("kind") == NOT_FOUND:
                return errorResponse(None, ERROR_MESSAGES["NOT_FOUND"], STATUS_CODES["NOT_FOUND"])
            return errorResponse(result["error"], f"Error fetching {label}")
        return successResponse(result["data"])
    except Exception as e:
        return errorResponse(e, f"Error fetching {label}")


def patchApiResource(event, resource, row_id):
    """PATCH /api/{slug}/{id} - Partial update; 404 when no row matched."""
    _, err = _requireAuth(event)
    if err:
        return err
    label = _label(resource.table)
    try:
        body = _parseBody(event)
        body.pop("id", None)
        payload = validatePayload(resource.table, body, partial=True)
    except ValidationError as e:
        return _validationErrorResponse(e)
    except ValueError:
        return jsonResponse({"error": "Invalid JSON body"}, 400)
    try:
        result = _getStore().update(resource.table, row_id, payload)
        if result["error"]:
            return errorResponse(result["error"], f"Error updating {label}")
        if not result["count"]:
            return errorResponse(None, ERROR_MESSAGES["NOT_FOUND"], STATUS_CODES["NOT_FOUND"])
        revalidatePath(resource.adminPath)
        return successResponse(result["data"])
    except Exception as e:
        return errorResponse(e, f"Error updating {label}")


def deleteApiResource(event, resource, row_id):
    """DELETE /api/{slug}/{id}"""
    _, err = _requireAuth(event)
    if err:
        return err
    label = _label(resource.table)
    try:
        result = _getStore().delete(resource.table, row_id)
        if result["error"]:
            return errorResponse(result["error"], f"Error deleting {label}")
        revalidatePath(resource.adminPath)
        return successResponse({"message": f"{label.capitalize()} deleted successfully", "deleted": result["count"]})
    except Exception as e:
        return errorResponse(e, f"Error deleting {label}")


def downloadFile(event, file_id):
    """GET /api/files/{id}/download - Short-lived signed URL."""
    _, err = _requireAuth(event)
    if err:
        return err
    try:
        return successResponse({"signedUrl": files.download_file(_getStore(), file_id)})
    except FileActionError as e:
        return errorResponse(None, str(e), 500)


# ------------------------------------------------------------------------------
# System settings and info
# ------------------------------------------------------------------------------

def getSystemSettings(event):
    """GET /api/settings/system"""
    _, err = _requireAuth(event)
    if err:
        return err
    try:
        result = settings.get_system_settings(_getStore())
        if result["error"] and result["error"].get("kind") != NOT_FOUND:
            return errorResponse(result["error"], "Error fetching system settings")
        return successResponse(result["data"])
    except Exception as e:
        return errorResponse(e, "Error fetching system settings")


def saveSystemSettings(event):
    """POST /api/settings/system - camelCase form fields, upserted."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    try:
        result = settings.save_system_settings(_getStore(), _parseBody(event))
    except ValidationError as e:
        return _validationErrorResponse(e)
    except ValueError:
        return jsonResponse({"error": "Invalid JSON body"}, 400)
    except Exception as e:
        return errorResponse(e, "Error saving system settings")
    if result["error"]:
        return errorResponse(result["error"], "Error saving system settings")
    revalidatePath("/admin/settings", "layout")
    return successResponse(result["data"])


def getSystemInfo(event):
    """GET /api/system-info"""
    _, err = _requireAuth(event)
    if err:
        return err
    try:
        result = settings.get_system_info(_getStore())
        if result["error"]:
            return errorResponse(result["error"], "Error fetching system info")
        return successResponse(result["data"])
    except Exception as e:
        return errorResponse(e, "Error fetching system info")


def patchSystemInfo(event):
    """PATCH /api/system-info - body carries the row id."""
    _, err = _requireManagerOrAdmin(event)
    if err:
        return err
    try:
        result = settings.update_system_info(_getStore(), _parseBody(event))
    except ValidationError as e:
        return _validationErrorResponse(e)
    except ValueError as e:
        return jsonResponse({"error": str(e)}, 400)
    except Exception as e:
        return errorResponse(e, "Error updating system info")
    if result["error"]:
        return errorResponse(result["error"], "Error updating system info")
    if not result["count"]:
        return errorResponse(None, ERROR_MESSAGES["NOT_FOUND"], STATUS_CODES["NOT_FOUND"])
    return successResponse(result["data"])


# ------------------------------------------------------------------------------
# Users (Cognito, SuperAdmin only)
# ------------------------------------------------------------------------------

def listUsers(event):
    """GET /api/users - ?limit=&paginationToken="""
    _, err = _requireAdmin(event)
    if err:
        return err
    if not users.COGNITO_USER_POOL_ID:
        return jsonResponse({"error": "COGNITO_USER_POOL_ID not set"}, 500)
    try:
        qs = event.get("queryStringParameters") or {}
        return successResponse(users.list_users(qs.get("limit"), qs.get("paginationToken", "")))
    except Exception as e:
        return errorResponse(e, "Error fetching users")


def createUser(event):
    """POST /api/users - email and password required."""
    _, err = _requireAdmin(event)
    if err:
        return err
    if not users.COGNITO_USER_POOL_ID:
        return jsonResponse({"error": "COGNITO_USER_POOL_ID not set"}, 500)
    try:
        body = _parseBody(event)
    except ValueError:
        return jsonResponse({"error": "Invalid JSON body"}, 400)
    try:
        user = users.create_user(body)
        return successResponse(user, STATUS_CODES["CREATED"])
    except ValueError as e:
        return errorResponse(None, str(e), 400)
    except Exception as e:
        if "UsernameExistsException" in type(e).__name__ or "UsernameExistsException" in str(e):
            return errorResponse(None, "User already exists", 409)
        return errorResponse(e, "Error creating user")


def getUser(event, username):
    """GET /api/users/{username}"""
    _, err = _requireAdmin(event)
    if err:
        return err
    if not users.COGNITO_USER_POOL_ID:
        return jsonResponse({"error": "COGNITO_USER_POOL_ID not set"}, 500)
    try:
        return successResponse(users.get_user(username))
    except Exception as e:
        if users.is_user_not_found(e):
            return errorResponse(None, "User not found", 404)
        return errorResponse(e, "Error fetching user")


def updateUser(event, username):
    """PATCH /api/users/{username} - attribute updates."""
    _, err = _requireAdmin(event)
    if err:
        return err
    if not users.COGNITO_USER_POOL_ID:
        return jsonResponse({"error": "COGNITO_USER_POOL_ID not set"}, 500)
    try:
        body = _parseBody(event)
    except ValueError:
        return jsonResponse({"error": "Invalid JSON body"}, 400)
    try:
        return successResponse(users.update_user(username, body))
    except Exception as e:
        if users.is_user_not_found(e):
            return errorResponse(None, "User not found", 404)
        return errorResponse(e, "Error updating user")


def deleteUser(event, username):
    """DELETE /api/users/{username}"""
    _, err = _requireAdmin(event)
    if err:
        return err
    if not users.COGNITO_USER_POOL_ID:
        return jsonResponse({"error": "COGNITO_USER_POOL_ID not set"}, 500)
    try:
        users.delete_user(username)
        return successResponse({"message": "User deleted successfully", "username": username})
    except Exception as e:
        if users.is_user_not_found(e):
            return errorResponse(None, "User not found", 404)
        return errorResponse(e, "Error deleting user")
