"""
Who may do what to a tab.

Cross-tenant access to a tab answers NotFoundError so a caller cannot
tell whether a tab that is not theirs exists. This holds for every
action, the served toggle included. A caller who can see the tab but
lacks the role for the action gets ForbiddenError.
"""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet

from restaurants import catalog

from .exceptions import ForbiddenError, NotFoundError


class ViewScope(str, enum.Enum):
    CUSTOMER = 'customer'
    MANAGER = 'manager'


@dataclass(frozen=True)
class Identity:
    """A verified caller: their user id and the restaurants they manage."""
    user_id: int
    managed_restaurant_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_manager(self) -> bool:
        return bool(self.managed_restaurant_ids)

    def manages(self, restaurant_id) -> bool:
        return restaurant_id in self.managed_restaurant_ids


def identity_for(user) -> Identity:
    return Identity(
        user_id=user.pk,
        managed_restaurant_ids=catalog.managed_restaurant_ids(user.pk),
    )


class AccessPolicy:

    def view_scope(self, identity: Identity, tab) -> ViewScope:
        """Pick the projection a caller may see, or hide the tab entirely."""
        if tab.user_id == identity.user_id:
            return ViewScope.CUSTOMER
        if identity.manages(tab.restaurant_id):
            return ViewScope.MANAGER
        raise NotFoundError('Tab not found')

    def authorize_owner(self, identity: Identity, tab):
        """Adding items and closing are for the tab's owner only."""
        if tab.user_id != identity.user_id:
            raise NotFoundError('Tab not found or not accessible')

    def authorize_serve(self, identity: Identity, tab):
        """The served flag belongs to managers of the tab's restaurant, open or closed."""
        self.view_scope(identity, tab)
        if not identity.manages(tab.restaurant_id):
            raise ForbiddenError('Access denied. Only restaurant managers can update served status.')

    def authorize_restaurant(self, identity: Identity, restaurant_id):
        if not identity.manages(restaurant_id):
            raise ForbiddenError('Access denied. You are not the manager of this restaurant.')

    def authorize_manager(self, identity: Identity):
        if not identity.is_manager:
            raise ForbiddenError('Access denied. Manager role required.')
