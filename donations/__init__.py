"""
Donation Settings for the application

Keeps the user's donation state in a local key-value store:
- Subscription and one-time (boost) currency, resolved from the stored
  choice, the device locale or the registered phone number, and limited to
  the currencies the payment processor supports
- Subscriber identity per currency
- Idempotency keys for in-flight subscription level changes
- Cancellation flag, keep-alive and end-of-period timestamps, badge state

Architecture:
- KeyValueStore holds typed values and commits multi-key writes atomically
- DonationsValues is the typed accessor layer over the store
- LiveValue publishes currency changes to interested screens
"""

import logging

from donations.models import (
    Badge,
    BadgeParseError,
    DonationsError,
    IdempotencyKey,
    KeyValueStoreError,
    LevelUpdateOperation,
    Subscriber,
    SubscriberId,
    SubscriberNotSetError,
)
from donations.keyvalue_store import (
    KeyValueStore,
    WriteBatch,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from donations.currency_handler import (
    CurrencyLookup,
    DEFAULT_CURRENCY_CODE,
    SUPPORTED_CURRENCY_CODES,
    is_supported_currency,
)
from donations.live_value import LiveValue
from donations.donations_values import (
    DonationKey,
    DonationsValues,
    get_donations_values,
)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for processes that embed the donation settings"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


__all__ = [
    # Models
    'Badge',
    'IdempotencyKey',
    'LevelUpdateOperation',
    'Subscriber',
    'SubscriberId',
    # Errors
    'DonationsError',
    'BadgeParseError',
    'KeyValueStoreError',
    'SubscriberNotSetError',
    # Storage
    'KeyValueStore',
    'WriteBatch',
    'InMemoryKeyValueStore',
    'JsonFileKeyValueStore',
    # Currency
    'CurrencyLookup',
    'DEFAULT_CURRENCY_CODE',
    'SUPPORTED_CURRENCY_CODES',
    'is_supported_currency',
    # Settings
    'LiveValue',
    'DonationKey',
    'DonationsValues',
    'get_donations_values',
    'configure_logging',
]
