"""
Registry of admin resources: URL slug -> table, admin listing path,
default ordering and embedded relations.
"""
from collections import namedtuple

from api.store import Relation

Resource = namedtuple("Resource", ["slug", "table", "adminPath", "orderBy", "ascending", "embed"])


def _resource(slug, table, orderBy="created_at", ascending=False, embed=()):
    return Resource(slug, table, f"/admin/{slug}", orderBy, ascending, tuple(embed))


_MEMBER = Relation("member", "members", "member_id")

RESOURCES = {
    r.slug: r
    for r in (
        _resource("organizations", "organizations", "name", True),
        _resource("members", "members", embed=[Relation("organization", "organizations", "organization_id")]),
        _resource("roles", "roles", "name", True),
        _resource("groups", "groups", "name", True),
        _resource("member-groups", "member_groups", embed=[_MEMBER, Relation("group", "groups", "group_id")]),
        _resource("member-roles", "member_roles", embed=[_MEMBER, Relation("role", "roles", "role_id")]),
        _resource(
            "invitations",
            "invitations",
            embed=[Relation("inviter", "members", "inviter_id"), Relation("role", "roles", "role_id")],
        ),
        _resource("payments", "payments", "payment_date"),
        _resource("subscriptions", "subscriptions"),
        _resource("notifications", "notifications"),
        _resource("audit-logs", "audit_logs"),
        _resource("logs", "logs"),
        _resource("files", "files"),
        _resource("feedback", "feedback"),
        _resource("help-tickets", "help_tickets"),
        _resource("ticket-comments", "ticket_comments", "created_at", True),
        _resource("events", "events", "starts_at", True),
        _resource("event-attendees", "event_attendees", embed=[Relation("event", "events", "event_id"), _MEMBER]),
        _resource("email-signups", "email_signups"),
        _resource("lead-submissions", "lead_submissions"),
        _resource("reports", "reports"),
        _resource("tasks", "tasks"),
        _resource("api-keys", "api_keys"),
        _resource(
            "organization-settings",
            "organization_settings",
            embed=[Relation("organization", "organizations", "organization_id")],
        ),
        _resource("status-lookup", "status_lookup", "code", True),
    )
}


def resourceFor(slug):
    """Return the Resource for a URL slug, or None."""
    return RESOURCES.get((slug or "").strip("/"))
