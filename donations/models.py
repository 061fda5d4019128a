"""
Donation Data Models

Defines the value types stored by the donation settings:
- Subscriber identities, one per currency
- Level update operations keyed by an idempotency key
- Badges, kept as a blob when one has expired
"""

import base64
import json
import secrets
from dataclasses import dataclass, asdict
from typing import Any, Dict


class DonationsError(Exception):
    """Base class for donation settings errors"""
    pass


class SubscriberNotSetError(DonationsError):
    """Raised when a subscriber is required but none has been stored"""
    pass


class BadgeParseError(DonationsError):
    """Raised when a stored badge blob cannot be decoded"""
    pass


class KeyValueStoreError(DonationsError):
    """Raised when the backing store document cannot be read"""
    pass


class _OpaqueBytes:
    """Fixed-size random identifier"""

    SIZE = 0

    __slots__ = ("bytes",)

    def __init__(self, value: bytes):
        if len(value) != self.SIZE:
            raise ValueError(
                f"{type(self).__name__} must be {self.SIZE} bytes, got {len(value)}"
            )
        self.bytes = bytes(value)

    @classmethod
    def generate(cls):
        return cls(secrets.token_bytes(cls.SIZE))

    @classmethod
    def from_bytes(cls, value: bytes):
        return cls(value)

    def serialize(self) -> str:
        """URL-safe base64 without padding, as sent to the payment backend"""
        return base64.urlsafe_b64encode(self.bytes).rstrip(b"=").decode("ascii")

    def __eq__(self, other):
        return type(other) is type(self) and other.bytes == self.bytes

    def __hash__(self):
        return hash((type(self).__name__, self.bytes))

    def __repr__(self):
        return f"{type(self).__name__}({self.serialize()})"


class SubscriberId(_OpaqueBytes):
    """Identifies a subscriber to the payment backend"""
    SIZE = 32
    __slots__ = ()


class IdempotencyKey(_OpaqueBytes):
    """Deduplicates retries of a single level change request"""
    SIZE = 16
    __slots__ = ()


@dataclass(frozen=True)
class Subscriber:
    """A subscriber identity and the currency it was registered under"""
    subscriber_id: SubscriberId
    currency_code: str

    def __post_init__(self):
        object.__setattr__(self, "currency_code", self.currency_code.upper())


@dataclass(frozen=True)
class LevelUpdateOperation:
    """In-flight request to move a subscription to a new level"""
    idempotency_key: IdempotencyKey
    level: str


@dataclass
class Badge:
    """Profile badge granted for a donation"""
    id: str
    category: str
    name: str
    description: str
    image_url: str
    image_density: str
    expiration_timestamp: int  # Epoch milliseconds
    visible: bool
    duration: int  # Milliseconds

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Badge":
        """Create from dictionary"""
        return cls(
            id=str(data["id"]),
            category=str(data.get("category", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            image_url=str(data.get("image_url", "")),
            image_density=str(data.get("image_density", "")),
            expiration_timestamp=int(data.get("expiration_timestamp", 0)),
            visible=bool(data.get("visible", False)),
            duration=int(data.get("duration", 0)),
        )

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Badge":
        """Decode a stored badge blob, raising BadgeParseError if malformed"""
        try:
            decoded = json.loads(data.decode("utf-8"))
            if not isinstance(decoded, dict):
                raise BadgeParseError("Badge blob is not an object")
            return cls.from_dict(decoded)
        except BadgeParseError:
            raise
        except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise BadgeParseError(f"Invalid badge blob: {e}") from e
