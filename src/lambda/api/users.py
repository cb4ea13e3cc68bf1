"""
User administration against the Cognito user pool.
"""
import logging
import os

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")

MAX_PAGE_SIZE = 60
DEFAULT_ROLE = "user"
STANDARD_ATTRIBUTES = {
    "name", "given_name", "family_name", "middle_name", "nickname", "preferred_username",
    "profile", "picture", "website", "gender", "birthdate", "zoneinfo", "locale",
    "phone_number", "address", "email",
}


def _cognito():
    import boto3
    return boto3.client("cognito-idp")


def _to_attributes(data):
    """Map a flat dict to Cognito attributes; non-standard keys go under custom:."""
    attrs = []
    for key, value in (data or {}).items():
        if value is None:
            continue
        name = key if key in STANDARD_ATTRIBUTES or key.startswith("custom:") else f"custom:{key}"
        attrs.append({"Name": name, "Value": str(value)})
    return attrs


def _user_to_dict(u, attributes_key="Attributes"):
    attrs = {a["Name"]: a["Value"] for a in u.get(attributes_key, [])}
    return {
        "username": u.get("Username"),
        "email": attrs.get("email", u.get("Username", "")),
        "sub": attrs.get("sub", ""),
        "status": u.get("UserStatus"),
        "enabled": u.get("Enabled", True),
        "attributes": attrs,
    }


def is_user_not_found(e):
    return "UserNotFoundException" in type(e).__name__ or "UserNotFoundException" in str(e)


def list_users(limit=None, pagination_token=""):
    """One page of users plus pagination metadata."""
    try:
        limit = min(int(limit or MAX_PAGE_SIZE), MAX_PAGE_SIZE)
    except (TypeError, ValueError):
        limit = MAX_PAGE_SIZE
    limit = max(limit, 1)
    kwargs = {"UserPoolId": COGNITO_USER_POOL_ID, "Limit": limit}
    if pagination_token:
        kwargs["PaginationToken"] = pagination_token
    result = _cognito().list_users(**kwargs)
    users = [_user_to_dict(u) for u in result.get("Users", [])]
    next_token = result.get("PaginationToken", "")
    return {
        "users": users,
        "pagination": {
            "pageSize": limit,
            "count": len(users),
            "hasMore": bool(next_token),
            "paginationToken": next_token,
        },
    }


def create_user(body):
    """
    Create a confirmed user with a permanent password and add them to the
    role group. Raises ValueError when email or password is missing.
    """
    body = dict(body or {})
    email = (body.pop("email", None) or "").strip()
    password = body.pop("password", None) or ""
    role = (body.pop("role", None) or DEFAULT_ROLE).strip()
    if not email or not password:
        raise ValueError("Email and password are required")
    cognito = _cognito()
    attrs = [{"Name": "email", "Value": email}, {"Name": "email_verified", "Value": "true"}]
    attrs.extend(_to_attributes(body))
    resp = cognito.admin_create_user(
        UserPoolId=COGNITO_USER_POOL_ID,
        Username=email,
        UserAttributes=attrs,
        MessageAction="SUPPRESS",
    )
    cognito.admin_set_user_password(
        UserPoolId=COGNITO_USER_POOL_ID,
        Username=email,
        Password=password,
        Permanent=True,
    )
    cognito.admin_add_user_to_group(
        UserPoolId=COGNITO_USER_POOL_ID,
        Username=email,
        GroupName=role,
    )
    user = _user_to_dict(resp.get("User", {}))
    user["groups"] = [role]
    return user


def get_user(username):
    resp = _cognito().admin_get_user(UserPoolId=COGNITO_USER_POOL_ID, Username=username)
    return _user_to_dict(resp, attributes_key="UserAttributes")


def update_user(username, body):
    """Update attributes; returns the refreshed user."""
    attrs = _to_attributes(body)
    if attrs:
        _cognito().admin_update_user_attributes(
            UserPoolId=COGNITO_USER_POOL_ID,
            Username=username,
            UserAttributes=attrs,
        )
    return get_user(username)


def delete_user(username):
    _cognito().admin_delete_user(UserPoolId=COGNITO_USER_POOL_ID, Username=username)
