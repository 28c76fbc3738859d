"""Domain enumerations for the Pohi timber marketplace.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
The values match the strings stored in the key-value collections.
"""

from enum import Enum


class UserRole(str, Enum):
    """Role of a company in the directory."""

    ADMIN = "Administrator"
    CUSTOMER = "Customer"
    MANUFACTURER = "Manufacturer"


class DemandStatus(str, Enum):
    """Lifecycle of a customer demand."""

    RECEIVED = "Received"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class StockStatus(str, Enum):
    """Lifecycle of a manufacturer stock listing."""

    AVAILABLE = "Available"
    RESERVED = "Reserved"
    SOLD = "Sold"


class MatchStrength(str, Enum):
    """Qualitative strength the AI assigns to a pairing suggestion."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class WaypointType(str, Enum):
    """Kind of stop on a consolidated route."""

    PICKUP = "pickup"
    DROPOFF = "dropoff"


class TransitionActor(str, Enum):
    """Who is allowed to move a demand or stock record between states."""

    MATCH_ENGINE = "match_engine"
    BILLING = "billing"
    OWNER = "owner"
    ADMIN = "admin"


class ResultKind(str, Enum):
    """Tag carried by every ``Result``.

    ``ITEMS`` and ``EMPTY`` are successes; everything else is a failure
    the caller branches on to pick a user-facing message.
    """

    ITEMS = "items"
    EMPTY = "empty"
    PRECONDITION = "precondition"
    TRANSPORT = "transport"
    DECODE = "decode"
    SHAPE = "shape"
    ALL_INVALID = "all_invalid"
    NOT_FOUND = "not_found"
    ALREADY_MATCHED = "already_matched"
    INVALID_TRANSITION = "invalid_transition"
    INSUFFICIENT_DATA = "insufficient_data"
    PERSISTENCE = "persistence"
