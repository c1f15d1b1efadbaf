"""
Menu catalog: categories, items and the kitchen approval gate.

Restaurant admins publish items directly. Items added or edited by kitchen
staff wait in pending_approval until the restaurant admin approves them.
Availability is a quick toggle any staff member may flip without review.
"""
import logging
from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from core.exceptions import (
    Forbidden, InvalidInput, InvalidState, MenuCategoryNotFound, MenuItemNotFound,
    RestaurantNotFound,
)
from core.utils.money import parse_amount
from core.utils.websocket_notifications import notify_menu_item_decision
from .models import MenuCategory, MenuItem
from .services import get_restaurant

logger = logging.getLogger(__name__)

# MenuItem.price is DecimalField(max_digits=10)
PRICE_DIGITS = 10


def _ensure_staff(actor, restaurant_id):
    if actor is None or not actor.works_for(restaurant_id):
        raise Forbidden('You can only manage the menu of your own restaurant')


def _ensure_manager(actor, restaurant_id):
    if actor is None or not actor.manages_menu_of(restaurant_id):
        raise Forbidden('Only the restaurant admin can do this')


def get_category(category_id):
    try:
        return MenuCategory.objects.select_related('restaurant').get(pk=category_id)
    except (MenuCategory.DoesNotExist, ValueError, TypeError):
        raise MenuCategoryNotFound(f"Menu category {category_id} not found")


def get_menu_item(item_id):
    try:
        return MenuItem.objects.select_related('restaurant', 'category').get(pk=item_id)
    except (MenuItem.DoesNotExist, ValueError, TypeError):
        raise MenuItemNotFound(f"Menu item {item_id} not found")


def _clean_name(value, what):
    name = (value or '').strip()
    if not name:
        raise InvalidInput(f"{what} name is required")
    return name


def _parse_whole_number(value, field, minimum=0, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid {field.replace('_', ' ')}: {value}")
    if number < minimum or (maximum is not None and number > maximum):
        upper = f" and {maximum}" if maximum is not None else ''
        raise InvalidInput(f"{field.replace('_', ' ').capitalize()} must be at least {minimum}{upper}")
    return number


def _parse_preparation_time(value):
    if value in (None, ''):
        return None
    return _parse_whole_number(value, 'preparation_time')


# Categories

def create_category(actor, restaurant_id, name, description='', sort_order=0, is_active=True):
    restaurant = get_restaurant(restaurant_id)
    _ensure_staff(actor, restaurant.id)

    category = MenuCategory.objects.create(
        restaurant=restaurant,
        name=_clean_name(name, 'Category'),
        description=description or '',
        sort_order=_parse_whole_number(sort_order, 'sort_order'),
        is_active=bool(is_active),
    )
    logger.info(f"Menu category {category.id} ({category.name}) created for {restaurant.name} by {actor}")
    return category


def update_category(actor, category_id, **changes):
    category = get_category(category_id)
    _ensure_manager(actor, category.restaurant_id)

    if 'name' in changes:
        category.name = _clean_name(changes['name'], 'Category')
    if 'description' in changes:
        category.description = changes['description'] or ''
    if 'is_active' in changes:
        category.is_active = bool(changes['is_active'])
    if 'sort_order' in changes:
        category.sort_order = _parse_whole_number(changes['sort_order'], 'sort_order')
    category.save()
    return category


@transaction.atomic
def delete_category(actor, category_id):
    """Delete a category and its items. Past orders keep their item names and prices."""
    category = get_category(category_id)
    _ensure_manager(actor, category.restaurant_id)
    category.delete()
    logger.info(f"Menu category {category_id} deleted by {actor}")


# Items

def create_menu_item(actor, restaurant_id, category_id, name, price, description='', image=None,
                     preparation_time=None, is_vegetarian=False, is_vegan=False,
                     spice_level=0, is_available=True):
    """
    Add a dish. Published at once when a restaurant admin adds it,
    otherwise queued for approval.
    """
    restaurant = get_restaurant(restaurant_id)
    _ensure_staff(actor, restaurant.id)

    category = get_category(category_id)
    if category.restaurant_id != restaurant.id:
        raise InvalidInput('Category belongs to another restaurant')

    publish = actor.manages_menu_of(restaurant.id)
    now = timezone.now()
    item = MenuItem.objects.create(
        restaurant=restaurant,
        category=category,
        name=_clean_name(name, 'Item'),
        description=description or '',
        image=image,
        price=parse_amount(price, field='price', max_digits=PRICE_DIGITS),
        preparation_time=_parse_preparation_time(preparation_time),
        is_vegetarian=bool(is_vegetarian),
        is_vegan=bool(is_vegan),
        spice_level=_parse_whole_number(spice_level, 'spice_level', maximum=5),
        is_available=bool(is_available),
        status='active' if publish else 'pending_approval',
        submitted_by=actor,
        reviewed_by=actor if publish else None,
        reviewed_at=now if publish else None,
    )
    logger.info(f"Menu item {item.id} ({item.name}) added to {restaurant.name} by {actor} [{item.status}]")
    return item


def update_menu_item(actor, item_id, **changes):
    """
    Edit a dish. Edits by kitchen staff send the item back for approval.
    """
    item = get_menu_item(item_id)
    _ensure_staff(actor, item.restaurant_id)

    if 'name' in changes:
        item.name = _clean_name(changes['name'], 'Item')
    if 'description' in changes:
        item.description = changes['description'] or ''
    if 'price' in changes:
        item.price = parse_amount(changes['price'], field='price', max_digits=PRICE_DIGITS)
    if 'category_id' in changes:
        category = get_category(changes['category_id'])
        if category.restaurant_id != item.restaurant_id:
            raise InvalidInput('Category belongs to another restaurant')
        item.category = category
    if 'preparation_time' in changes:
        item.preparation_time = _parse_preparation_time(changes['preparation_time'])
    if 'is_vegetarian' in changes:
        item.is_vegetarian = bool(changes['is_vegetarian'])
    if 'is_vegan' in changes:
        item.is_vegan = bool(changes['is_vegan'])
    if 'spice_level' in changes:
        item.spice_level = _parse_whole_number(changes['spice_level'], 'spice_level', maximum=5)
    if changes.get('image'):
        item.image = changes['image']

    if actor.manages_menu_of(item.restaurant_id):
        item.status = 'active'
        item.rejection_reason = ''
        item.reviewed_by = actor
        item.reviewed_at = timezone.now()
    else:
        item.status = 'pending_approval'
        item.submitted_by = actor
        item.reviewed_by = None
        item.reviewed_at = None
    item.save()
    logger.info(f"Menu item {item.id} updated by {actor} [{item.status}]")
    return item


def set_item_availability(actor, item_id, is_available):
    """Sold-out toggle. No approval needed."""
    item = get_menu_item(item_id)
    _ensure_staff(actor, item.restaurant_id)

    item.is_available = bool(is_available)
    item.save(update_fields=['is_available', 'updated_at'])
    logger.info(f"Menu item {item.id} is_available={item.is_available} by {actor}")
    return item


@transaction.atomic
def delete_menu_item(actor, item_id):
    item = get_menu_item(item_id)
    _ensure_manager(actor, item.restaurant_id)
    item.delete()
    logger.info(f"Menu item {item_id} deleted by {actor}")


def _decide(actor, item_id, new_status, reason=''):
    item = get_menu_item(item_id)
    _ensure_manager(actor, item.restaurant_id)

    updated = MenuItem.objects.filter(pk=item.pk, status='pending_approval').update(
        status=new_status,
        rejection_reason=reason,
        reviewed_by=actor,
        reviewed_at=timezone.now(),
        updated_at=timezone.now(),
    )
    if not updated:
        raise InvalidState(f"Menu item {item.name} is not awaiting approval")

    item = get_menu_item(item.pk)
    notify_menu_item_decision(item)
    return item


def approve_menu_item(actor, item_id):
    item = _decide(actor, item_id, 'active')
    logger.info(f"✓ Menu item {item.id} approved by {actor}")
    return item


def reject_menu_item(actor, item_id, reason):
    reason = (reason or '').strip()
    if not reason:
        raise InvalidInput('Rejection reason is required')

    item = _decide(actor, item_id, 'rejected', reason)
    logger.info(f"Menu item {item.id} rejected by {actor}: {reason}")
    return item


def list_pending_items(actor, restaurant_id):
    restaurant = get_restaurant(restaurant_id)
    _ensure_manager(actor, restaurant.id)
    return MenuItem.objects.filter(
        restaurant=restaurant, status='pending_approval'
    ).select_related('category').order_by('created_at', 'id')


def get_menu(restaurant_id, actor=None):
    """
    Categories with their items.

    Staff of the restaurant see everything, including pending, rejected and
    sold-out items. Everyone else sees the orderable menu of restaurants
    that accept orders.
    """
    restaurant = get_restaurant(restaurant_id)
    is_staff = actor is not None and actor.is_authenticated and actor.works_for(restaurant.id)

    categories = MenuCategory.objects.filter(restaurant=restaurant)
    items = MenuItem.objects.all()
    if not is_staff:
        if not restaurant.is_accepting_orders:
            raise RestaurantNotFound(f"Restaurant {restaurant_id} not found")
        categories = categories.filter(is_active=True)
        items = items.filter(status='active', is_available=True)

    return restaurant, categories.prefetch_related(
        Prefetch('items', queryset=items.order_by('name'), to_attr='listed_items')
    )
