"""
Restaurant onboarding and special-offer services.
"""
import logging
from django.db import transaction
from django.utils import timezone

from core.exceptions import (
    Forbidden, InvalidInput, InvalidState, OfferNotFound, RestaurantNotFound,
)
from core.utils.money import parse_amount
from core.utils.websocket_notifications import (
    notify_restaurant_created, notify_restaurant_decision, notify_restaurant_blocked,
)
from .models import Restaurant, SpecialOffer

logger = logging.getLogger(__name__)


def get_restaurant(restaurant_id):
    try:
        return Restaurant.objects.get(pk=restaurant_id)
    except (Restaurant.DoesNotExist, ValueError, TypeError):
        raise RestaurantNotFound(f"Restaurant {restaurant_id} not found")


def create_restaurant(actor, name, address, phone_number, email='',
                      description='', latitude=None, longitude=None, image=None):
    """
    Onboard a new restaurant. It starts unapproved and cannot take orders
    until a superadmin approves it.
    """
    name = (name or '').strip()
    address = (address or '').strip()
    phone_number = (phone_number or '').strip()
    if not name:
        raise InvalidInput('Restaurant name is required')
    if not address:
        raise InvalidInput('Restaurant address is required')
    if not phone_number:
        raise InvalidInput('Restaurant phone number is required')

    restaurant = Restaurant.objects.create(
        name=name,
        address=address,
        phone_number=phone_number,
        email=email or '',
        description=description or '',
        latitude=latitude,
        longitude=longitude,
        image=image,
    )
    logger.info(f"Restaurant {restaurant.id} ({restaurant.name}) created by {actor}")

    notify_restaurant_created(restaurant)
    return restaurant


def approve_restaurant(restaurant_id, admin):
    updated = Restaurant.objects.filter(pk=restaurant_id, is_approved=False).update(
        is_approved=True,
        is_active=True,
        rejection_reason='',
        approved_at=timezone.now(),
        updated_at=timezone.now(),
    )
    restaurant = get_restaurant(restaurant_id)
    if not updated:
        raise InvalidState(f"Restaurant {restaurant.name} is already approved")

    logger.info(f"✓ Restaurant {restaurant.id} approved by {admin}")
    notify_restaurant_decision(restaurant, approved=True)
    return restaurant


def reject_restaurant(restaurant_id, admin, reason):
    """
    Reject (or revoke) a restaurant. A reason is required and is shown to
    the restaurant; the restaurant is deactivated.
    """
    reason = (reason or '').strip()
    if not reason:
        raise InvalidInput('Rejection reason is required')

    restaurant = get_restaurant(restaurant_id)
    restaurant.is_approved = False
    restaurant.is_active = False
    restaurant.rejection_reason = reason
    restaurant.approved_at = None
    restaurant.save(update_fields=[
        'is_approved', 'is_active', 'rejection_reason', 'approved_at', 'updated_at'
    ])

    logger.info(f"Restaurant {restaurant.id} rejected by {admin}: {reason}")
    notify_restaurant_decision(restaurant, approved=False, reason=reason)
    return restaurant


def block_restaurant(restaurant_id, admin):
    """
    Suspend a restaurant: it stops taking orders and its offers leave the
    slider. Orders already placed are not affected.
    """
    updated = Restaurant.objects.filter(pk=restaurant_id, is_active=True).update(
        is_active=False, updated_at=timezone.now()
    )
    restaurant = get_restaurant(restaurant_id)
    if not updated:
        raise InvalidState(f"Restaurant {restaurant.name} is already blocked")

    logger.warning(f"Restaurant {restaurant.id} blocked by {admin}")
    notify_restaurant_blocked(restaurant, blocked=True)
    return restaurant


def unblock_restaurant(restaurant_id, admin):
    updated = Restaurant.objects.filter(pk=restaurant_id, is_active=False).update(
        is_active=True, updated_at=timezone.now()
    )
    restaurant = get_restaurant(restaurant_id)
    if not updated:
        raise InvalidState(f"Restaurant {restaurant.name} is not blocked")

    logger.info(f"Restaurant {restaurant.id} unblocked by {admin}")
    notify_restaurant_blocked(restaurant, blocked=False)
    return restaurant


# Special offers

def _ensure_can_manage_offers(actor, restaurant):
    if actor is None or not actor.works_for(restaurant.id):
        raise Forbidden('You can only manage offers for your own restaurant')


def _get_offer(offer_id):
    try:
        return SpecialOffer.objects.select_related('restaurant').get(pk=offer_id)
    except (SpecialOffer.DoesNotExist, ValueError, TypeError):
        raise OfferNotFound(f"Special offer {offer_id} not found")


def create_special_offer(actor, restaurant_id, title, original_price,
                         discounted_price, image=None, is_live=False):
    restaurant = get_restaurant(restaurant_id)
    _ensure_can_manage_offers(actor, restaurant)

    title = (title or '').strip()
    if not title:
        raise InvalidInput('Offer title is required')

    original = parse_amount(original_price, field='original_price', max_digits=10)
    discounted = parse_amount(discounted_price, field='discounted_price', max_digits=10)
    if discounted >= original:
        raise InvalidInput('Discounted price must be lower than the original price')

    offer = SpecialOffer.objects.create(
        restaurant=restaurant,
        title=title,
        image=image,
        original_price=original,
        discounted_price=discounted,
        is_live=bool(is_live),
    )
    logger.info(
        f"Special offer {offer.id} for {restaurant.name} created by {actor} "
        f"({offer.discount_percentage}% off)"
    )
    return offer


def set_offer_live(actor, offer_id, is_live):
    offer = _get_offer(offer_id)
    _ensure_can_manage_offers(actor, offer.restaurant)

    if is_live and not offer.restaurant.is_accepting_orders:
        raise InvalidState('Offers can only go live for active, approved restaurants')

    offer.mark_live(bool(is_live))
    logger.info(f"Special offer {offer.id} is_live={offer.is_live} by {actor}")
    return offer


@transaction.atomic
def delete_special_offer(actor, offer_id):
    offer = _get_offer(offer_id)
    _ensure_can_manage_offers(actor, offer.restaurant)
    offer.delete()
    logger.info(f"Special offer {offer_id} deleted by {actor}")


def list_live_offers(restaurant_id=None):
    """Offers shown on the customer slider: live offers of open restaurants."""
    offers = SpecialOffer.objects.select_related('restaurant').filter(
        is_live=True,
        restaurant__is_active=True,
        restaurant__is_approved=True,
    )
    if restaurant_id is not None:
        offers = offers.filter(restaurant_id=restaurant_id)
    return offers
