"""
Tab operations as seen by a caller.

Every call runs the access policy first, then the store (which consults
the state machine and pricing under the tab lock). Committed changes are
announced through the notifier.
"""

from datetime import timedelta

from django.apps import apps
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from restaurants import catalog

from . import store as tab_store
from .exceptions import NotFoundError, ValidationError
from .policy import AccessPolicy
from .serializers import ManagerTabView
from .store import TabStore

MAX_CHAT_MESSAGE_LENGTH = 1000


class TabService:

    def __init__(self, notifier=None, policy=None, store=None):
        self.notifier = notifier
        self.policy = policy or AccessPolicy()
        self.store = store or TabStore()
        self.store.on_change = self._announce

    def _announce(self, change):
        if self.notifier is None:
            return
        if change.kind == tab_store.ITEM_SERVED:
            self.notifier.item_served(change.tab_id, change.item_id, change.served)
        tab, _ = self.store.get_with_items(change.tab_id)
        self.notifier.tab_updated(change.tab_id, change.restaurant_id, ManagerTabView(tab).data)

    # -- customer ------------------------------------------------------------

    def open_tab(self, identity, restaurant_id):
        return self.store.open_tab(identity.user_id, restaurant_id)

    def add_item(self, identity, tab_id, menu_item_id, quantity=1):
        tab = self.store.get_tab(tab_id)
        self.policy.authorize_owner(identity, tab)
        return self.store.add_or_increment_item(tab_id, identity.user_id, menu_item_id, quantity)

    def close_tab(self, identity, tab_id, payment_method_id):
        tab = self.store.get_tab(tab_id)
        self.policy.authorize_owner(identity, tab)
        return self.store.close_tab(tab_id, identity.user_id, payment_method_id)

    def get_tab(self, identity, tab_id):
        """Return ``(tab, scope)``; scope picks CustomerTabView or ManagerTabView."""
        tab, _ = self.store.get_with_items(tab_id)
        return tab, self.policy.view_scope(identity, tab)

    def list_my_tabs(self, identity):
        return self.store.list_for_user(identity.user_id)

    # -- manager -------------------------------------------------------------

    def set_served(self, identity, tab_id, item_id, served):
        tab = self.store.get_tab(tab_id)
        self.policy.authorize_serve(identity, tab)
        return self.store.set_item_served(tab_id, item_id, served)

    def list_restaurant_tabs(self, identity, restaurant_id):
        self.policy.authorize_restaurant(identity, restaurant_id)
        return self.store.list_open_for_restaurant(restaurant_id)

    def list_manager_tabs(self, identity):
        """
        Open tabs at every restaurant the caller manages, grouped by
        restaurant. Restaurants without open tabs are listed with none.
        """
        self.policy.authorize_manager(identity)
        names = catalog.restaurant_names(identity.managed_restaurant_ids)
        groups = {
            restaurant_id: {'restaurant_id': restaurant_id, 'restaurant_name': name, 'tabs': []}
            for restaurant_id, name in sorted(names.items())
        }
        for tab in self.store.list_open_for_restaurants(identity.managed_restaurant_ids):
            groups[tab.restaurant_id]['tabs'].append(tab)
        return list(groups.values())

    def is_manager(self, identity):
        """Asks the catalog, so a restaurant assigned after sign-in counts."""
        return catalog.is_manager(identity.user_id)

    def can_view(self, identity, tab_id):
        """Raise unless the caller may read the tab. Used to gate realtime joins."""
        tab = self.store.get_tab(tab_id)
        return self.policy.view_scope(identity, tab)

    # -- chat ----------------------------------------------------------------

    def can_join_chat(self, identity, restaurant_id):
        """Customers with an open tab at the restaurant, or one closed within the chat window."""
        since = timezone.now() - timedelta(days=settings.TABS_CHAT_WINDOW_DAYS)
        return self.store.has_recent_tab(identity.user_id, restaurant_id, since)

    def post_chat_message(self, identity, restaurant_id, message):
        if not isinstance(message, str) or not message.strip():
            raise ValidationError('message must be a non-empty string')
        if len(message) > MAX_CHAT_MESSAGE_LENGTH:
            raise ValidationError(f"message must be at most {MAX_CHAT_MESSAGE_LENGTH} characters")
        user = get_user_model().objects.filter(pk=identity.user_id).first()
        if user is None:
            raise NotFoundError('User not found')
        user_name = user.get_full_name() or user.get_username()
        return self.notifier.new_message(restaurant_id, identity.user_id, user_name, message)


def get_tab_service():
    """The service wired to the process notifier built at startup."""
    return apps.get_app_config('tabs').service
