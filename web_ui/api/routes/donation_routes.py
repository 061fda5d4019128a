"""Donation settings API routes"""

import logging
from fastapi import APIRouter, HTTPException, Depends

from donations import (
    BadgeParseError,
    DonationsValues,
    get_donations_values,
)
from web_ui.api.schemas.donation_schemas import (
    BadgeResponse,
    BoostCurrencyRequest,
    CurrencyResponse,
    DisplayBadgesRequest,
    DonationStatusResponse,
    SubscriberResponse,
    SupportedCurrenciesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/currency", response_model=CurrencyResponse)
async def get_currency(values: DonationsValues = Depends(get_donations_values)):
    """
    Get the subscription and one-time donation currencies.

    The first call pins the boost currency if none was chosen yet.
    """
    return CurrencyResponse(
        subscription_currency=values.get_subscription_currency(),
        boost_currency=values.get_boost_currency(),
    )


@router.put("/currency/boost", response_model=CurrencyResponse)
async def set_boost_currency(
    request: BoostCurrencyRequest,
    values: DonationsValues = Depends(get_donations_values),
):
    """
    Change the one-time donation currency.

    - **currency_code**: ISO-4217 code accepted by the payment processor
    """
    if request.currency_code not in values.supported_currencies:
        raise HTTPException(
            status_code=400,
            detail=f"Currency {request.currency_code} is not supported",
        )

    values.set_boost_currency(request.currency_code)
    logger.info(f"Boost currency changed to {request.currency_code}")

    return CurrencyResponse(
        subscription_currency=values.get_subscription_currency(),
        boost_currency=values.get_boost_currency(),
    )


@router.get("/supported-currencies", response_model=SupportedCurrenciesResponse)
async def get_supported_currencies(values: DonationsValues = Depends(get_donations_values)):
    """List the currencies accepted by the payment processor"""
    return SupportedCurrenciesResponse(
        currencies=sorted(values.supported_currencies),
        default_currency=values.default_currency,
    )


@router.get("/subscriber", response_model=SubscriberResponse)
async def get_subscriber(values: DonationsValues = Depends(get_donations_values)):
    """Get the subscriber for the current subscription currency"""
    subscriber = values.get_subscriber()
    if subscriber is None:
        raise HTTPException(status_code=404, detail="Subscriber ID is not set")

    return SubscriberResponse(
        subscriber_id=subscriber.subscriber_id.serialize(),
        currency_code=subscriber.currency_code,
    )


@router.get("/status", response_model=DonationStatusResponse)
async def get_status(values: DonationsValues = Depends(get_donations_values)):
    """Get cancellation, timing and badge state"""
    try:
        badge = values.get_expired_badge()
    except BadgeParseError as e:
        logger.error(f"Stored expired badge is unreadable: {e}")
        raise HTTPException(status_code=500, detail="Stored expired badge is unreadable")

    expired_badge = None
    if badge is not None:
        expired_badge = BadgeResponse(
            id=badge.id,
            category=badge.category,
            name=badge.name,
            description=badge.description,
            image_url=badge.image_url,
            expiration_timestamp=badge.expiration_timestamp,
        )

    return DonationStatusResponse(
        user_manually_cancelled=values.is_user_manually_cancelled(),
        last_keep_alive_launch_time=values.get_last_keep_alive_launch_time(),
        last_end_of_period=values.get_last_end_of_period(),
        display_badges_on_profile=values.get_display_badges_on_profile(),
        expired_badge=expired_badge,
    )


@router.put("/display-badges", response_model=DonationStatusResponse)
async def set_display_badges(
    request: DisplayBadgesRequest,
    values: DonationsValues = Depends(get_donations_values),
):
    """Show or hide donation badges on the profile"""
    values.set_display_badges_on_profile(request.enabled)
    return await get_status(values)


@router.post("/cancellation", response_model=DonationStatusResponse)
async def mark_cancelled(values: DonationsValues = Depends(get_donations_values)):
    """Record that the user cancelled their subscription"""
    values.mark_user_manually_cancelled()
    logger.info("Subscription marked as manually cancelled")
    return await get_status(values)


@router.delete("/cancellation", response_model=DonationStatusResponse)
async def clear_cancelled(values: DonationsValues = Depends(get_donations_values)):
    """Clear the manual cancellation flag"""
    values.clear_user_manually_cancelled()
    return await get_status(values)
