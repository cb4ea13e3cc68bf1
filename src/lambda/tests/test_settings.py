"""Unit tests for system settings and system info."""
import json
import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def _event(path, method="GET", body=None, groups="admin"):
    return {
        "rawPath": path,
        "requestContext": {
            "http": {"method": method, "path": path},
            "authorizer": {"jwt": {"claims": {"sub": "admin-123", "cognito:groups": groups}}},
        },
        "body": json.dumps(body) if body is not None else None,
    }


def test_settings_to_columns_maps_known_fields():
    from api.settings import settings_to_columns
    out = settings_to_columns({"siteName": "Admin", "maintenanceMode": False, "unknown": 1})
    assert out == {"site_name": "Admin", "maintenance_mode": False}


def test_save_system_settings_upserts_singleton():
    from api.settings import save_system_settings
    store = MagicMock()
    store.upsert.return_value = {"data": {"id": "default"}, "error": None, "count": 1}
    save_system_settings(store, {"siteName": "Admin", "maxUploadSize": "1024", "allowedFileTypes": ["pdf"]})
    store.upsert.assert_called_once_with(
        "system_settings", "default",
        {"site_name": "Admin", "max_upload_size": 1024, "allowed_file_types": ["pdf"]},
    )


def test_save_system_settings_rejects_bad_email():
    from api.settings import save_system_settings
    with pytest.raises(ValidationError):
        save_system_settings(MagicMock(), {"supportEmail": "nope"})


def test_get_system_info_returns_latest():
    from api.settings import get_system_info
    store = MagicMock()
    store.select.return_value = {"data": [{"id": "s2", "version": "2.0"}], "error": None, "count": 3}
    result = get_system_info(store)
    assert result["data"] == {"id": "s2", "version": "2.0"}
    store.select.assert_called_once_with("system_info", order_by="updated_at", ascending=False, limit=1)


def test_update_system_info_requires_id():
    from api.settings import update_system_info
    with pytest.raises(ValueError):
        update_system_info(MagicMock(), {"version": "3"})


@patch("api.handler._getStore")
def test_save_settings_route(mock_get_store):
    from api.handler import handler
    from api.invalidation import VIEW_CACHE
    store = MagicMock()
    store.upsert.return_value = {"data": {"id": "default", "site_name": "Admin"}, "error": None, "count": 1}
    mock_get_store.return_value = store
    VIEW_CACHE.put("/admin/settings/system", {})
    result = handler(_event("/api/settings/system", "POST", {"siteName": "Admin"}), None)
    assert result["statusCode"] == 200
    assert json.loads(result["body"])["data"]["site_name"] == "Admin"
    assert VIEW_CACHE.isStale("/admin/settings/system")


def test_save_settings_route_requires_manager():
    from api.handler import handler
    result = handler(_event("/api/settings/system", "POST", {"siteName": "x"}, groups="user"), None)
    assert result["statusCode"] == 403


@patch("api.handler._getStore")
def test_get_settings_before_first_save(mock_get_store):
    from api.handler import handler
    store = MagicMock()
    store.get.return_value = {"data": None, "error": {"kind": "not_found", "code": "NotFound", "message": "x"}, "count": 0}
    mock_get_store.return_value = store
    result = handler(_event("/api/settings/system"), None)
    assert result["statusCode"] == 200
    assert json.loads(result["body"]) == {"data": None}


@patch("api.handler._getStore")
def test_patch_system_info_missing_row(mock_get_store):
    from api.handler import handler
    store = MagicMock()
    store.update.return_value = {"data": None, "error": None, "count": 0}
    mock_get_store.return_value = store
    result = handler(_event("/api/system-info", "PATCH", {"id": "nope", "status": "ok"}), None)
    assert result["statusCode"] == 404
