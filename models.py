"""
models.py – User and Item records.

Both records are immutable dataclasses.  They can be built from (and turned
back into) the snake_case dictionaries used by the REST API and the mock
data files; from_dict() raises ModelDecodeError naming the offending field
when the input is incomplete or malformed.

preview_users() and preview_items() return the sample records used by the
mock environment and the debug console.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import FrozenSet, List, Optional


class ModelDecodeError(ValueError):
    """
    Raised by from_dict() when a record cannot be decoded.

    Attributes
    ----------
    field : str or None
        The dictionary key that caused the error.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field: Optional[str] = field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UserRole(Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

    @property
    def display_name(self) -> str:
        return {"admin": "Administrator", "member": "Member", "viewer": "Viewer"}[self.value]


class ItemStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class ItemPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def sort_order(self) -> int:
        """Ordinal used for priority sorting: low=0 … urgent=3."""
        return _PRIORITY_ORDER[self]


_PRIORITY_ORDER = {
    ItemPriority.LOW: 0,
    ItemPriority.MEDIUM: 1,
    ItemPriority.HIGH: 2,
    ItemPriority.URGENT: 3,
}


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------

def _require(data: dict, key: str):
    if key not in data or data[key] is None:
        raise ModelDecodeError(f"Missing required field '{key}'.", field=key)
    return data[key]


def _parse_timestamp(value, key: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ModelDecodeError(f"Field '{key}' is not an ISO-8601 timestamp.", field=key) from None
    else:
        raise ModelDecodeError(f"Field '{key}' is not an ISO-8601 timestamp.", field=key)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_enum(enum_cls, value, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ModelDecodeError(f"Field '{key}' has unknown value {value!r}.", field=key) from None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class User:
    """A user account."""

    id: str
    email: str
    name: str
    created_at: datetime
    role: UserRole = UserRole.MEMBER
    avatar_url: Optional[str] = None
    is_email_verified: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=str(_require(data, "id")),
            email=str(_require(data, "email")),
            name=str(_require(data, "name")),
            created_at=_parse_timestamp(_require(data, "created_at"), "created_at"),
            role=_parse_enum(UserRole, data.get("role", "member"), "role"),
            avatar_url=data.get("avatar_url"),
            is_email_verified=bool(data.get("is_email_verified", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "created_at": _format_timestamp(self.created_at),
            "role": self.role.value,
            "is_email_verified": self.is_email_verified,
        }


@dataclass(frozen=True)
class Item:
    """
    A task-like record; the subject of search, filter and sort.

    Items are immutable.  Status changes go through with_status(), which
    returns an updated copy with a fresh updated_at.
    """

    id: str
    title: str
    description: str
    status: ItemStatus
    priority: ItemPriority
    created_at: datetime
    updated_at: datetime
    tags: FrozenSet[str] = field(default_factory=frozenset)
    due_date: Optional[datetime] = None
    created_by: Optional[str] = None

    def with_status(self, status: ItemStatus, updated_at: Optional[datetime] = None) -> "Item":
        return replace(
            self,
            status=status,
            updated_at=updated_at or datetime.now(timezone.utc),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """
        Decode an API-shaped dictionary.

        Raises
        ------
        ModelDecodeError
            If a required field is missing or a value cannot be parsed.
        """
        tags = data.get("tags") or []
        if isinstance(tags, str) or not all(isinstance(t, str) for t in tags):
            raise ModelDecodeError("Field 'tags' must be a list of strings.", field="tags")

        due = data.get("due_date")
        return cls(
            id=str(_require(data, "id")),
            title=str(_require(data, "title")),
            description=str(data.get("description") or ""),
            status=_parse_enum(ItemStatus, _require(data, "status"), "status"),
            priority=_parse_enum(ItemPriority, _require(data, "priority"), "priority"),
            created_at=_parse_timestamp(_require(data, "created_at"), "created_at"),
            updated_at=_parse_timestamp(_require(data, "updated_at"), "updated_at"),
            tags=frozenset(tags),
            due_date=_parse_timestamp(due, "due_date") if due is not None else None,
            created_by=data.get("created_by"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
            "created_by": self.created_by,
            "due_date": _format_timestamp(self.due_date),
            "tags": sorted(self.tags),
        }


# ---------------------------------------------------------------------------
# Preview data
# ---------------------------------------------------------------------------

def preview_users(now: Optional[datetime] = None) -> List[User]:
    """Sample users, created relative to *now*."""
    now = now or datetime.now(timezone.utc)
    day = timedelta(days=1)
    return [
        User(
            id="usr_preview_001",
            email="john.doe@example.com",
            name="John Doe",
            created_at=now - 30 * day,
            role=UserRole.ADMIN,
            avatar_url="https://api.dicebear.com/7.x/avataaars/svg?seed=john",
            is_email_verified=True,
        ),
        User(
            id="usr_preview_002",
            email="jane.smith@example.com",
            name="Jane Smith",
            created_at=now - 15 * day,
            role=UserRole.MEMBER,
            avatar_url="https://api.dicebear.com/7.x/avataaars/svg?seed=jane",
            is_email_verified=True,
        ),
        User(
            id="usr_preview_003",
            email="bob.wilson@example.com",
            name="Bob Wilson",
            created_at=now - 7 * day,
            role=UserRole.VIEWER,
        ),
    ]


def preview_items(now: Optional[datetime] = None) -> List[Item]:
    """Sample items, timestamped relative to *now*."""
    now = now or datetime.now(timezone.utc)
    day = timedelta(days=1)
    hour = timedelta(hours=1)
    return [
        Item(
            id="item_preview_001",
            title="Review Q4 Reports",
            description="Review and approve the quarterly financial reports before the board meeting.",
            status=ItemStatus.IN_PROGRESS,
            priority=ItemPriority.HIGH,
            created_at=now - 3 * day,
            updated_at=now - hour,
            tags=frozenset({"finance", "quarterly", "review"}),
            due_date=now + 2 * day,
            created_by="usr_preview_001",
        ),
        Item(
            id="item_preview_002",
            title="Update Security Policies",
            description="Update the security policies document with new compliance requirements.",
            status=ItemStatus.PENDING,
            priority=ItemPriority.URGENT,
            created_at=now - 7 * day,
            updated_at=now - day,
            tags=frozenset({"security", "compliance"}),
            due_date=now + day,
            created_by="usr_preview_001",
        ),
        Item(
            id="item_preview_003",
            title="Team Onboarding Session",
            description="Prepare and conduct onboarding session for new team members.",
            status=ItemStatus.COMPLETED,
            priority=ItemPriority.MEDIUM,
            created_at=now - 14 * day,
            updated_at=now - 2 * day,
            tags=frozenset({"hr", "onboarding"}),
            created_by="usr_preview_002",
        ),
        Item(
            id="item_preview_004",
            title="Database Migration Planning",
            description="Plan the migration from PostgreSQL 14 to 16 with minimal downtime.",
            status=ItemStatus.IN_PROGRESS,
            priority=ItemPriority.HIGH,
            created_at=now - 5 * day,
            updated_at=now - 2 * hour,
            tags=frozenset({"database", "infrastructure"}),
            due_date=now + 7 * day,
            created_by="usr_preview_001",
        ),
        Item(
            id="item_preview_005",
            title="Update Documentation",
            description="Update the API documentation with new endpoints.",
            status=ItemStatus.PENDING,
            priority=ItemPriority.LOW,
            created_at=now - day,
            updated_at=now - 2 * hour,
            tags=frozenset({"documentation", "api"}),
            due_date=now + 14 * day,
            created_by="usr_preview_003",
        ),
    ]
