"""
Read-only catalog lookups.

The tab core only ever needs a menu item's price and availability at one
restaurant, whether a restaurant exists, and which restaurants a user
manages. The restaurant views also list a restaurant's whole menu.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, FrozenSet, Optional

from .models import Restaurant, RestaurantMenuItem


@dataclass(frozen=True)
class MenuItemQuote:
    menu_item_id: int
    restaurant_id: int
    name: str
    price: Decimal
    available: bool


def get_menu_item(menu_item_id, restaurant_id) -> Optional[MenuItemQuote]:
    """Return the current price and availability of a menu item at a restaurant."""
    entry = (
        RestaurantMenuItem.objects
        .select_related('menu_item')
        .filter(menu_item_id=menu_item_id, restaurant_id=restaurant_id)
        .first()
    )
    if entry is None:
        return None
    return MenuItemQuote(
        menu_item_id=entry.menu_item_id,
        restaurant_id=entry.restaurant_id,
        name=entry.menu_item.name,
        price=entry.menu_item.price,
        available=entry.is_available,
    )


def restaurant_exists(restaurant_id) -> bool:
    return Restaurant.objects.filter(id=restaurant_id).exists()


def managed_restaurant_ids(user_id) -> FrozenSet[int]:
    return frozenset(
        Restaurant.objects.filter(manager_id=user_id).values_list('id', flat=True)
    )


def is_manager(user_id) -> bool:
    return Restaurant.objects.filter(manager_id=user_id).exists()


def restaurant_names(restaurant_ids) -> Dict[int, str]:
    return dict(
        Restaurant.objects.filter(id__in=list(restaurant_ids)).values_list('id', 'name')
    )


def menu_for(restaurant_id):
    """Menu entries of a restaurant with their items, ordered by type then name."""
    return (
        RestaurantMenuItem.objects
        .select_related('menu_item')
        .filter(restaurant_id=restaurant_id)
        .order_by('menu_item__type', 'menu_item__name', 'menu_item_id')
    )
