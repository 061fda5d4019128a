"""
Donation Settings

Persisted state of the donation feature, stored in a KeyValueStore:
- Subscription and one-time ("boost") currency, with locale and phone number
  fallbacks and a supported-currency whitelist
- One subscriber identity per currency
- Idempotency keys for in-flight level changes, plus a history of every
  level seen so they can be cleared in bulk
- Keep-alive and end-of-period timestamps, manual cancellation flag,
  badge display preference and the last expired badge

Both currencies are also exposed as LiveValues so that screens can follow
changes without polling.

Usage:
    values = DonationsValues(JsonFileKeyValueStore(settings.get_store_path()))

    values.set_subscriber(Subscriber(SubscriberId.generate(), "EUR"))
    values.observable_subscription_currency.subscribe(on_currency_changed)
"""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from donations.currency_handler import CurrencyLookup, get_default_locale
from donations.keyvalue_store import JsonFileKeyValueStore, KeyValueStore, Value
from donations.live_value import LiveValue
from donations.models import (
    Badge,
    BadgeParseError,
    IdempotencyKey,
    LevelUpdateOperation,
    Subscriber,
    SubscriberId,
    SubscriberNotSetError,
)

logger = logging.getLogger(__name__)


class DonationKey(str, Enum):
    """Store keys owned by the donation settings. *_PREFIX keys take a suffix."""
    SUBSCRIPTION_CURRENCY_CODE = "donation.currency.code"
    BOOST_CURRENCY_CODE = "donation.currency.code.boost"
    SUBSCRIBER_ID_PREFIX = "donation.subscriber.id."
    LAST_KEEP_ALIVE_LAUNCH = "donation.last.successful.ping"
    LAST_END_OF_PERIOD = "donation.last.end.of.period"
    EXPIRED_BADGE = "donation.expired.badge"
    USER_MANUALLY_CANCELLED = "donation.user.manually.cancelled"
    LEVEL_OPERATION_PREFIX = "donation.level.operation."
    LEVEL_HISTORY = "donation.level.history"
    DISPLAY_BADGES_ON_PROFILE = "donation.display.badges.on.profile"


LEVEL_HISTORY_DELIMITER = ","


def subscriber_id_key(currency_code: str) -> str:
    """Store key of the subscriber id registered under a currency"""
    return f"{DonationKey.SUBSCRIBER_ID_PREFIX.value}{currency_code.upper()}"


def level_operation_key(level: str) -> str:
    """Store key of the idempotency key for a subscription level"""
    return f"{DonationKey.LEVEL_OPERATION_PREFIX.value}{level}"


def encode_level_history(levels: Iterable[str]) -> str:
    return LEVEL_HISTORY_DELIMITER.join(sorted(set(levels)))


def decode_level_history(serialized: Optional[str]) -> FrozenSet[str]:
    """
    Decode the delimited level history.

    An empty string is an empty history. Empty items are dropped, which also
    covers histories written with a leading delimiter.
    """
    if not serialized:
        return frozenset()
    return frozenset(level for level in serialized.split(LEVEL_HISTORY_DELIMITER) if level)


class DonationsValues:
    """
    Donation settings over a KeyValueStore.

    One instance should be created at startup and shared; the live currency
    values belong to the instance.
    """

    # Keys restored from a settings backup; everything else is device-local
    BACKUP_KEYS = (
        DonationKey.BOOST_CURRENCY_CODE,
        DonationKey.LAST_KEEP_ALIVE_LAUNCH,
        DonationKey.LAST_END_OF_PERIOD,
    )

    def __init__(
        self,
        store: KeyValueStore,
        currency_lookup: Optional[CurrencyLookup] = None,
        locale_provider: Optional[Callable[[], Optional[str]]] = None,
        local_number_provider: Optional[Callable[[], Optional[str]]] = None,
        supported_currencies: Optional[Iterable[str]] = None,
        default_currency: Optional[str] = None,
    ):
        """
        Args:
            store: Backing key-value store
            currency_lookup: Maps codes, locales and phone numbers to currencies
            locale_provider: Returns the current device locale name
            local_number_provider: Returns the registered E.164 number, if any
            supported_currencies: Currencies the payment processor accepts
            default_currency: Returned whenever resolution yields nothing usable
        """
        if supported_currencies is None or default_currency is None or local_number_provider is None:
            from config import settings
            if supported_currencies is None:
                supported_currencies = settings.DONATIONS_SUPPORTED_CURRENCIES
            if default_currency is None:
                default_currency = settings.DONATIONS_DEFAULT_CURRENCY
            if local_number_provider is None:
                local_number_provider = lambda: settings.DONATIONS_LOCAL_NUMBER

        self._store = store
        self._currency_lookup = currency_lookup or CurrencyLookup()
        self._locale_provider = locale_provider or get_default_locale
        self._local_number_provider = local_number_provider
        self._supported_currencies = frozenset(code.upper() for code in supported_currencies)
        self._default_currency = default_currency.upper()

        self._publisher_lock = threading.RLock()
        self._subscription_currency_publisher: Optional[LiveValue[str]] = None
        self._boost_currency_publisher: Optional[LiveValue[str]] = None

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def supported_currencies(self) -> FrozenSet[str]:
        return self._supported_currencies

    @property
    def default_currency(self) -> str:
        return self._default_currency

    def on_first_ever_app_launch(self) -> None:
        """Nothing to seed: every value has a usable default"""
        pass

    def keys_to_include_in_backup(self) -> List[str]:
        return [key.value for key in self.BACKUP_KEYS]

    def get_backup_snapshot(self) -> Dict[str, Value]:
        """Stored values of the backup keys that are present"""
        snapshot = {}
        for key in self.keys_to_include_in_backup():
            value = self._store.get_raw(key)
            if value is not None:
                snapshot[key] = value
        return snapshot

    # ========================================================================
    # Live values
    # ========================================================================

    @property
    def observable_subscription_currency(self) -> LiveValue[str]:
        """Subscription currency, seeded on first access"""
        with self._publisher_lock:
            if self._subscription_currency_publisher is None:
                self._subscription_currency_publisher = LiveValue(
                    self.get_subscription_currency(), name="subscription_currency"
                )
            return self._subscription_currency_publisher

    @property
    def observable_boost_currency(self) -> LiveValue[str]:
        """Boost currency, seeded on first access"""
        with self._publisher_lock:
            if self._boost_currency_publisher is None:
                self._boost_currency_publisher = LiveValue(
                    self.get_boost_currency(), name="boost_currency"
                )
            return self._boost_currency_publisher

    # ========================================================================
    # Currency resolution
    # ========================================================================

    def get_subscription_currency(self) -> str:
        """
        Resolve the subscription currency.

        Order: stored code, device locale, registered phone number. The
        result must be a supported currency, otherwise the default currency
        is returned. Nothing is persisted here.
        """
        currency_code = self._read_or_none(
            self._store.get_string, DonationKey.SUBSCRIPTION_CURRENCY_CODE.value
        )

        if currency_code is None:
            currency = self._currency_lookup.currency_for_locale(self._hint(self._locale_provider))
            if currency is None:
                e164 = self._hint(self._local_number_provider)
                currency = self._currency_lookup.currency_for_e164(e164) if e164 else None
        else:
            currency = self._currency_lookup.currency_for_code(currency_code)

        if currency is not None and currency in self._supported_currencies:
            return currency

        logger.debug(f"No supported subscription currency ({currency}), using {self._default_currency}")
        return self._default_currency

    def get_boost_currency(self) -> str:
        """
        Get the one-time donation currency.

        The first call without a stored value pins the current subscription
        currency as the boost currency.
        """
        boost_currency_code = self._read_or_none(
            self._store.get_string, DonationKey.BOOST_CURRENCY_CODE.value
        )
        if boost_currency_code is None:
            currency = self.get_subscription_currency()
            self.set_boost_currency(currency)
            return currency
        return boost_currency_code

    def set_boost_currency(self, currency_code: str) -> None:
        currency_code = currency_code.upper()
        self._store.put_string(DonationKey.BOOST_CURRENCY_CODE.value, currency_code)

        with self._publisher_lock:
            publisher = self._boost_currency_publisher
        if publisher is not None:
            publisher.push(currency_code)

    def _hint(self, provider: Callable[[], Optional[str]]) -> Optional[str]:
        try:
            return provider()
        except Exception as e:
            logger.warning(f"Currency hint unavailable: {e}")
            return None

    def _read_or_none(self, getter: Callable[[str], Optional[Value]], key: str) -> Optional[Value]:
        """Typed read that treats a value of the wrong type as absent"""
        try:
            return getter(key)
        except TypeError as e:
            logger.warning(f"Ignoring malformed value: {e}")
            return None

    # ========================================================================
    # Subscribers
    # ========================================================================

    def get_subscriber(self, currency_code: Optional[str] = None) -> Optional[Subscriber]:
        """
        Get the subscriber registered under a currency.

        Without a currency, the resolved subscription currency is used.
        """
        if currency_code is None:
            currency_code = self.get_subscription_currency()
        currency_code = currency_code.upper()

        subscriber_id_bytes = self._read_or_none(
            self._store.get_blob, subscriber_id_key(currency_code)
        )
        if subscriber_id_bytes is None:
            return None

        try:
            subscriber_id = SubscriberId.from_bytes(subscriber_id_bytes)
        except ValueError as e:
            logger.warning(f"Ignoring malformed subscriber id for {currency_code}: {e}")
            return None

        return Subscriber(subscriber_id, currency_code)

    def require_subscriber(self) -> Subscriber:
        subscriber = self.get_subscriber()
        if subscriber is None:
            raise SubscriberNotSetError("Subscriber ID is not set.")
        return subscriber

    def set_subscriber(self, subscriber: Subscriber) -> None:
        """Store the subscriber and make its currency the subscription currency"""
        currency_code = subscriber.currency_code
        self._store.begin_write() \
            .put_blob(subscriber_id_key(currency_code), subscriber.subscriber_id.bytes) \
            .put_string(DonationKey.SUBSCRIPTION_CURRENCY_CODE.value, currency_code) \
            .apply()

        logger.info(f"Subscriber set for currency {currency_code}")

        with self._publisher_lock:
            publisher = self._subscription_currency_publisher
        if publisher is not None:
            publisher.push(currency_code)

    # ========================================================================
    # Level operations
    # ========================================================================

    def get_level_operation(self, level: str) -> Optional[LevelUpdateOperation]:
        idempotency_key = self._read_or_none(self._store.get_blob, level_operation_key(level))
        if idempotency_key is None:
            return None

        try:
            return LevelUpdateOperation(IdempotencyKey.from_bytes(idempotency_key), level)
        except ValueError as e:
            logger.warning(f"Ignoring malformed idempotency key for level {level}: {e}")
            return None

    def set_level_operation(self, operation: LevelUpdateOperation) -> None:
        """
        Store the idempotency key for a level and record the level in the
        history, in one transaction under the store lock.
        """
        level = operation.level
        if not level or LEVEL_HISTORY_DELIMITER in level:
            raise ValueError(f"Invalid level identifier: {level!r}")

        with self._store.locked():
            levels = self.get_level_history() | {level}
            self._store.begin_write() \
                .put_string(DonationKey.LEVEL_HISTORY.value, encode_level_history(levels)) \
                .put_blob(level_operation_key(level), operation.idempotency_key.bytes) \
                .apply()

    def get_level_history(self) -> FrozenSet[str]:
        """Every level that ever had an operation stored"""
        return decode_level_history(
            self._read_or_none(self._store.get_string, DonationKey.LEVEL_HISTORY.value)
        )

    def clear_level_operations(self) -> None:
        """
        Remove the stored operation of every level in the history.

        The history itself is kept.
        """
        with self._store.locked():
            level_history = self.get_level_history()
            write = self._store.begin_write()
            for level in sorted(level_history):
                write.remove(level_operation_key(level))
            write.apply()

        logger.info(f"Cleared level operations for {len(level_history)} levels")

    # ========================================================================
    # Badges
    # ========================================================================

    def set_expired_badge(self, badge: Optional[Badge]) -> None:
        if badge is not None:
            self._store.put_blob(DonationKey.EXPIRED_BADGE.value, badge.to_bytes())
        else:
            self._store.remove(DonationKey.EXPIRED_BADGE.value)

    def get_expired_badge(self) -> Optional[Badge]:
        """Raises BadgeParseError if the stored blob is malformed"""
        try:
            badge_bytes = self._store.get_blob(DonationKey.EXPIRED_BADGE.value)
        except TypeError as e:
            raise BadgeParseError(f"Invalid badge entry: {e}") from e
        if badge_bytes is None:
            return None
        return Badge.from_bytes(badge_bytes)

    def get_display_badges_on_profile(self) -> bool:
        return self._store.get_boolean(DonationKey.DISPLAY_BADGES_ON_PROFILE.value, False)

    def set_display_badges_on_profile(self, enabled: bool) -> None:
        self._store.put_boolean(DonationKey.DISPLAY_BADGES_ON_PROFILE.value, enabled)

    # ========================================================================
    # Timestamps and flags
    # ========================================================================

    def get_last_keep_alive_launch_time(self) -> int:
        return self._store.get_long(DonationKey.LAST_KEEP_ALIVE_LAUNCH.value, 0)

    def set_last_keep_alive_launch_time(self, timestamp: int) -> None:
        self._store.put_long(DonationKey.LAST_KEEP_ALIVE_LAUNCH.value, timestamp)

    def get_last_end_of_period(self) -> int:
        return self._store.get_long(DonationKey.LAST_END_OF_PERIOD.value, 0)

    def set_last_end_of_period(self, timestamp: int) -> None:
        self._store.put_long(DonationKey.LAST_END_OF_PERIOD.value, timestamp)

    def is_user_manually_cancelled(self) -> bool:
        return self._store.get_boolean(DonationKey.USER_MANUALLY_CANCELLED.value, False)

    def mark_user_manually_cancelled(self) -> None:
        self._store.put_boolean(DonationKey.USER_MANUALLY_CANCELLED.value, True)

    def clear_user_manually_cancelled(self) -> None:
        self._store.remove(DonationKey.USER_MANUALLY_CANCELLED.value)


# Global instance, created on first use
_donations_values: Optional[DonationsValues] = None
_donations_values_lock = threading.Lock()


def get_donations_values() -> DonationsValues:
    """Get the application's donation settings, backed by the configured store file"""
    global _donations_values
    with _donations_values_lock:
        if _donations_values is None:
            from config import settings
            settings.create_directories()
            _donations_values = DonationsValues(JsonFileKeyValueStore(settings.get_store_path()))
            logger.info(f"DonationsValues initialized with store: {settings.get_store_path()}")
    return _donations_values
