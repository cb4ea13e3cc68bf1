"""
System settings (single row) and system info (latest row wins).
"""
import logging

from api.schemas import validatePayload

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SETTINGS_TABLE = "system_settings"
SETTINGS_ID = "default"
SYSTEM_INFO_TABLE = "system_info"

# form field -> column
SETTINGS_FIELDS = {
    "siteName": "site_name",
    "siteDescription": "site_description",
    "maintenanceMode": "maintenance_mode",
    "supportEmail": "support_email",
    "maxUploadSize": "max_upload_size",
    "allowedFileTypes": "allowed_file_types",
    "enableAuditLogs": "enable_audit_logs",
    "retentionPeriod": "retention_period",
}


def settings_to_columns(settings):
    """Map camelCase form fields to columns. Absent fields are left out; unknown ones dropped."""
    out = {}
    for field, column in SETTINGS_FIELDS.items():
        if field in settings:
            out[column] = settings[field]
    return out


def get_system_settings(store):
    return store.get(SETTINGS_TABLE, SETTINGS_ID)


def save_system_settings(store, settings):
    """Validate and upsert the settings row. Raises pydantic.ValidationError on bad input."""
    payload = validatePayload(SETTINGS_TABLE, settings_to_columns(settings or {}), partial=True)
    return store.upsert(SETTINGS_TABLE, SETTINGS_ID, payload)


def get_system_info(store):
    """Most recently updated system_info row (data=None when there is none)."""
    result = store.select(SYSTEM_INFO_TABLE, order_by="updated_at", ascending=False, limit=1)
    if result.get("error"):
        return result
    rows = result.get("data") or []
    return {"data": rows[0] if rows else None, "error": None, "count": len(rows)}


def update_system_info(store, body):
    """Update the system_info row named by body["id"]. Raises ValueError without an id."""
    row_id = (body or {}).get("id")
    if not row_id:
        raise ValueError("id is required")
    fields = {k: v for k, v in body.items() if k != "id"}
    payload = validatePayload(SYSTEM_INFO_TABLE, fields, partial=True)
    return store.update(SYSTEM_INFO_TABLE, row_id, payload)
