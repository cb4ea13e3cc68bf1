"""Unit tests for user administration API handlers (Cognito)."""
import json
import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def _admin_event(path, method="GET", body=None, qs=None):
    """Event with admin (SuperAdmin) JWT authorizer."""
    return {
        "rawPath": path,
        "pathParameters": {},
        "queryStringParameters": qs or {},
        "requestContext": {
            "http": {"method": method, "path": path},
            "authorizer": {
                "jwt": {
                    "claims": {
                        "sub": "admin-123",
                        "email": "admin@example.com",
                        "cognito:groups": "admin",
                    }
                }
            },
        },
        "body": json.dumps(body) if body is not None else "{}",
    }


def _manager_event(path, method="GET", body=None):
    """Event with manager JWT authorizer."""
    ev = _admin_event(path, method, body)
    ev["requestContext"]["authorizer"]["jwt"]["claims"]["sub"] = "manager-123"
    ev["requestContext"]["authorizer"]["jwt"]["claims"]["cognito:groups"] = "manager"
    return ev


class UserNotFoundException(Exception):
    pass


def test_listUsers_requires_auth():
    from api.handler import handler
    event = {"rawPath": "/api/users", "requestContext": {"http": {"method": "GET", "path": "/api/users"}}}
    assert handler(event, None)["statusCode"] == 401


def test_listUsers_requires_admin():
    from api.handler import handler
    result = handler(_manager_event("/api/users"), None)
    assert result["statusCode"] == 403


def test_listUsers_fails_without_pool_id():
    from api.handler import handler
    with patch("api.users.COGNITO_USER_POOL_ID", ""):
        result = handler(_admin_event("/api/users"), None)
    assert result["statusCode"] == 500


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
@patch("boto3.client")
def test_listUsers_returns_page(mock_boto_client):
    from api.handler import handler
    mock_cognito = MagicMock()
    mock_cognito.list_users.return_value = {
        "Users": [
            {
                "Username": "user@example.com",
                "UserStatus": "CONFIRMED",
                "Enabled": True,
                "Attributes": [
                    {"Name": "sub", "Value": "sub-123"},
                    {"Name": "email", "Value": "user@example.com"},
                ],
            }
        ],
        "PaginationToken": "next-page",
    }
    mock_boto_client.return_value = mock_cognito

    result = handler(_admin_event("/api/users", qs={"limit": "500"}), None)

    assert result["statusCode"] == 200
    data = json.loads(result["body"])["data"]
    assert data["users"][0]["email"] == "user@example.com"
    assert data["users"][0]["sub"] == "sub-123"
    assert data["pagination"] == {"pageSize": 60, "count": 1, "hasMore": True, "paginationToken": "next-page"}
    assert mock_cognito.list_users.call_args.kwargs["Limit"] == 60


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
def test_createUser_requires_email_and_password():
    from api.handler import handler
    result = handler(_admin_event("/api/users", "POST", {"email": "new@example.com"}), None)
    assert result["statusCode"] == 400
    assert json.loads(result["body"])["error"] == "Email and password are required"


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
@patch("boto3.client")
def test_createUser_sets_password_and_group(mock_boto_client):
    from api.handler import handler
    mock_cognito = MagicMock()
    mock_cognito.admin_create_user.return_value = {
        "User": {
            "Username": "new@example.com",
            "UserStatus": "FORCE_CHANGE_PASSWORD",
            "Attributes": [{"Name": "email", "Value": "new@example.com"}],
        }
    }
    mock_boto_client.return_value = mock_cognito

    body = {"email": "new@example.com", "password": "S3cret!pass", "role": "manager", "name": "New Person", "team": "ops"}
    result = handler(_admin_event("/api/users", "POST", body), None)

    assert result["statusCode"] == 201
    data = json.loads(result["body"])["data"]
    assert data["groups"] == ["manager"]
    attrs = mock_cognito.admin_create_user.call_args.kwargs["UserAttributes"]
    assert {"Name": "name", "Value": "New Person"} in attrs
    assert {"Name": "custom:team", "Value": "ops"} in attrs
    assert mock_cognito.admin_set_user_password.call_args.kwargs["Permanent"] is True
    mock_cognito.admin_add_user_to_group.assert_called_once_with(
        UserPoolId="us-east-1_abc123", Username="new@example.com", GroupName="manager",
    )


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
@patch("boto3.client")
def test_getUser_not_found(mock_boto_client):
    from api.handler import handler
    mock_cognito = MagicMock()
    mock_cognito.admin_get_user.side_effect = UserNotFoundException("User does not exist.")
    mock_boto_client.return_value = mock_cognito
    result = handler(_admin_event("/api/users/ghost@example.com"), None)
    assert result["statusCode"] == 404


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
@patch("boto3.client")
def test_updateUser_updates_attributes(mock_boto_client):
    from api.handler import handler
    mock_cognito = MagicMock()
    mock_cognito.admin_get_user.return_value = {
        "Username": "user@example.com",
        "UserAttributes": [{"Name": "email", "Value": "user@example.com"}, {"Name": "name", "Value": "Renamed"}],
    }
    mock_boto_client.return_value = mock_cognito
    result = handler(_admin_event("/api/users/user@example.com", "PATCH", {"name": "Renamed"}), None)
    assert result["statusCode"] == 200
    assert json.loads(result["body"])["data"]["attributes"]["name"] == "Renamed"
    mock_cognito.admin_update_user_attributes.assert_called_once()


@patch("api.users.COGNITO_USER_POOL_ID", "us-east-1_abc123")
@patch("boto3.client")
def test_deleteUser(mock_boto_client):
    from api.handler import handler
    mock_cognito = MagicMock()
    mock_boto_client.return_value = mock_cognito
    result = handler(_admin_event("/api/users/user@example.com", "DELETE"), None)
    assert result["statusCode"] == 200
    mock_cognito.admin_delete_user.assert_called_once_with(UserPoolId="us-east-1_abc123", Username="user@example.com")
