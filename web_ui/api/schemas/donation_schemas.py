"""Donation settings API schemas"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class CurrencyResponse(BaseModel):
    """Currencies currently used for donations"""
    subscription_currency: str
    boost_currency: str


class BoostCurrencyRequest(BaseModel):
    """Request to change the one-time donation currency"""
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO-4217 code")

    @field_validator("currency_code")
    @classmethod
    def upper_case_code(cls, v: str) -> str:
        return v.upper()


class SupportedCurrenciesResponse(BaseModel):
    """Currencies accepted by the payment processor"""
    currencies: List[str]
    default_currency: str


class SubscriberResponse(BaseModel):
    """Subscriber registered for the subscription currency"""
    subscriber_id: str  # URL-safe base64
    currency_code: str


class BadgeResponse(BaseModel):
    """Expired badge waiting to be shown"""
    id: str
    category: str
    name: str
    description: str
    image_url: str
    expiration_timestamp: int


class DonationStatusResponse(BaseModel):
    """Donation bookkeeping state"""
    user_manually_cancelled: bool
    last_keep_alive_launch_time: int  # Epoch ms, 0 = never
    last_end_of_period: int  # Epoch ms, 0 = never
    display_badges_on_profile: bool
    expired_badge: Optional[BadgeResponse] = None


class DisplayBadgesRequest(BaseModel):
    """Request to change the badge display preference"""
    enabled: bool
