"""
Record models for every collection the admin can write to.
TABLES is the closed set of table names; validatePayload checks a payload
against its table before anything reaches the row store.
"""
from datetime import datetime
from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, create_model

from api.errors import UnknownTableError

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Email = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")]


class Record(BaseModel):
    """Base for all rows. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    id: Optional[NonEmpty] = None


class Organization(Record):
    name: NonEmpty
    slug: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class Member(Record):
    user_id: NonEmpty
    organization_id: NonEmpty
    email: Optional[Email] = None
    full_name: Optional[str] = None
    status: Optional[str] = None


class Role(Record):
    name: NonEmpty
    description: Optional[str] = None
    permissions: Optional[List[str]] = None


class Group(Record):
    name: NonEmpty
    description: Optional[str] = None
    organization_id: Optional[str] = None


class MemberGroup(Record):
    member_id: NonEmpty
    group_id: NonEmpty


class MemberRole(Record):
    member_id: NonEmpty
    role_id: NonEmpty


class Invitation(Record):
    email: Email
    organization_id: Optional[str] = None
    inviter_id: Optional[str] = None
    role_id: Optional[str] = None
    status: Optional[str] = None
    expires_at: Optional[datetime] = None


class Payment(Record):
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: Optional[str] = None
    status: Optional[str] = None
    payment_date: Optional[datetime] = None
    organization_id: Optional[str] = None
    subscription_id: Optional[str] = None
    description: Optional[str] = None


class Subscription(Record):
    organization_id: NonEmpty
    plan: NonEmpty
    status: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None


class Notification(Record):
    user_id: NonEmpty
    title: NonEmpty
    message: Optional[str] = None
    type: Optional[str] = None
    read: Optional[bool] = None


class AuditLog(Record):
    action: NonEmpty
    actor_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class Log(Record):
    level: NonEmpty
    message: NonEmpty
    source: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class File(Record):
    name: NonEmpty
    file_url: NonEmpty
    size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = None
    uploaded_by: Optional[str] = None
    organization_id: Optional[str] = None


class Feedback(Record):
    message: NonEmpty
    user_id: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    status: Optional[str] = None


class HelpTicket(Record):
    subject: NonEmpty
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    requester_id: Optional[str] = None
    assignee_id: Optional[str] = None


class TicketComment(Record):
    ticket_id: NonEmpty
    body: NonEmpty
    author_id: Optional[str] = None


class Event(Record):
    title: NonEmpty
    starts_at: datetime
    ends_at: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    organization_id: Optional[str] = None


class EventAttendee(Record):
    event_id: NonEmpty
    member_id: NonEmpty
    status: Optional[str] = None


class EmailSignup(Record):
    email: Email
    source: Optional[str] = None


class LeadSubmission(Record):
    email: Email
    name: Optional[str] = None
    company: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None


class Report(Record):
    title: NonEmpty
    report_type: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    status: Optional[str] = None
    generated_by: Optional[str] = None


class Task(Record):
    title: NonEmpty
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None


class ApiKey(Record):
    name: NonEmpty
    key_prefix: Optional[str] = None
    organization_id: Optional[str] = None
    scopes: Optional[List[str]] = None
    expires_at: Optional[datetime] = None
    revoked: Optional[bool] = None


class OrganizationSetting(Record):
    organization_id: NonEmpty
    settings: Optional[Dict[str, Any]] = None


class StatusLookup(Record):
    code: NonEmpty
    label: NonEmpty
    category: Optional[str] = None
    description: Optional[str] = None


class SystemInfo(Record):
    version: Optional[str] = None
    environment: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None


class SystemSettings(Record):
    site_name: Optional[str] = None
    site_description: Optional[str] = None
    maintenance_mode: Optional[bool] = None
    support_email: Optional[Email] = None
    max_upload_size: Optional[int] = Field(default=None, ge=0)
    allowed_file_types: Optional[List[str]] = None
    enable_audit_logs: Optional[bool] = None
    retention_period: Optional[int] = Field(default=None, ge=0)


TABLES = {
    "organizations": Organization,
    "members": Member,
    "roles": Role,
    "groups": Group,
    "member_groups": MemberGroup,
    "member_roles": MemberRole,
    "invitations": Invitation,
    "payments": Payment,
    "subscriptions": Subscription,
    "notifications": Notification,
    "audit_logs": AuditLog,
    "logs": Log,
    "files": File,
    "feedback": Feedback,
    "help_tickets": HelpTicket,
    "ticket_comments": TicketComment,
    "events": Event,
    "event_attendees": EventAttendee,
    "email_signups": EmailSignup,
    "lead_submissions": LeadSubmission,
    "reports": Report,
    "tasks": Task,
    "api_keys": ApiKey,
    "organization_settings": OrganizationSetting,
    "status_lookup": StatusLookup,
    "system_info": SystemInfo,
    "system_settings": SystemSettings,
}


def isKnownTable(table_name):
    return table_name in TABLES


def modelFor(table_name):
    """Return the record model for table_name or raise UnknownTableError."""
    try:
        return TABLES[table_name]
    except (KeyError, TypeError):
        raise UnknownTableError(table_name) from None


@lru_cache(maxsize=None)
def partialModel(table_name):
    """
    Update model: every field may be omitted, id not updatable. Only columns
    that are nullable in the full model accept an explicit None.
    """
    model = modelFor(table_name)
    fields = {}
    for name, info in model.model_fields.items():
        if name == "id":
            continue
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation,) + tuple(info.metadata)]
        if info.is_required():
            fields[name] = (annotation, None)
        else:
            fields[name] = (Optional[annotation], None)
    return create_model(
        f"{model.__name__}Update",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )


def validatePayload(table_name, data, partial=False):
    """
    Validate data for table_name and return the JSON-ready payload with
    only the keys the caller supplied. Raises UnknownTableError or
    pydantic.ValidationError.
    """
    model = partialModel(table_name) if partial else modelFor(table_name)
    record = model.model_validate(dict(data or {}))
    return record.model_dump(mode="json", exclude_unset=True)
