"""
Durable tab state.

Every write runs under a process-local mutex for the tab and inside a
database transaction that locks the tab row (``select_for_update``), so
the find-or-create line / recompute subtotal / recompute total sequence
is atomic with respect to other writers on the same tab. The mutex also
covers SQLite, which has no row locks.

Change listeners run after the transaction commits and while the mutex is
still held, so changes to one tab are announced in commit order.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Prefetch, Q
from django.utils import timezone

from payment import store as payment_store
from restaurants import catalog as restaurant_catalog

from . import pricing, state
from .exceptions import (
    ConflictError,
    InvalidPaymentError,
    NotAvailableError,
    NotFoundError,
)
from .models import Tab, TabItem
from .state import Transition

logger = logging.getLogger(__name__)

TAB_OPENED = 'opened'
ITEM_ADDED = 'item_added'
ITEM_SERVED = 'item_served'
TAB_CLOSED = 'closed'


@dataclass(frozen=True)
class TabChange:
    kind: str
    tab_id: int
    restaurant_id: int
    item_id: Optional[int] = None
    served: Optional[bool] = None


class LockRegistry:
    """Mutexes keyed by any hashable, created on demand and freed when idle."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)


# One registry per process; every TabStore must share it
tab_locks = LockRegistry()


def items_prefetch():
    return Prefetch(
        'items',
        queryset=TabItem.objects.select_related('menu_item').order_by('created_at', 'id'),
    )


class TabStore:

    def __init__(self, on_change=None, catalog=restaurant_catalog, payments=payment_store,
                 locks=tab_locks, retries=None):
        self.on_change = on_change
        self.catalog = catalog
        self.payments = payments
        self.locks = locks
        self.retries = settings.TABS_LOCK_RETRIES if retries is None else retries

    # -- plumbing ----------------------------------------------------------

    def _write(self, key, operation):
        """Run ``operation`` atomically under the mutex for ``key``.

        A database lock conflict is retried ``self.retries`` times before
        surfacing as ConflictError.
        """
        attempts = self.retries + 1
        with self.locks.hold(key):
            for attempt in range(1, attempts + 1):
                try:
                    with transaction.atomic():
                        return operation()
                except OperationalError as exc:
                    if attempt < attempts:
                        logger.warning("Lock conflict on %s (attempt %d/%d): %s", key, attempt, attempts, exc)
                        continue
                    logger.error("Giving up on %s after %d attempts: %s", key, attempts, exc)
                    raise ConflictError('The tab is being updated by someone else, please retry')

    def _emit(self, change):
        if self.on_change is None:
            return

        def deliver():
            try:
                self.on_change(change)
            except Exception:
                logger.error("Change listener failed for %s", change, exc_info=True)

        transaction.on_commit(deliver)

    def _lock_tab(self, tab_id):
        return Tab.objects.select_for_update().filter(id=tab_id).first()

    def _recompute_total(self, tab):
        subtotals = TabItem.objects.filter(tab_id=tab.id).values_list('subtotal', flat=True)
        tab.total = pricing.tab_total(subtotals)
        return tab.total

    # -- writes ------------------------------------------------------------

    def open_tab(self, user_id, restaurant_id):
        def create():
            if not self.catalog.restaurant_exists(restaurant_id):
                raise NotFoundError('Restaurant not found')
            if Tab.objects.filter(user_id=user_id, restaurant_id=restaurant_id, is_open=True).exists():
                raise ConflictError('You already have an open tab at this restaurant')
            try:
                with transaction.atomic():
                    tab = Tab.objects.create(user_id=user_id, restaurant_id=restaurant_id)
            except IntegrityError:
                raise ConflictError('You already have an open tab at this restaurant')
            logger.info("Opened tab %s for user %s at restaurant %s", tab.id, user_id, restaurant_id)
            self._emit(TabChange(TAB_OPENED, tab.id, tab.restaurant_id))
            return tab

        return self._write(('open', user_id, restaurant_id), create)

    def add_or_increment_item(self, tab_id, user_id, menu_item_id, quantity=1):
        pricing.validate_quantity(quantity)

        def add():
            tab = self._lock_tab(tab_id)
            if tab is None or tab.user_id != user_id:
                raise NotFoundError('Tab not found or not accessible')
            state.apply(tab, Transition.ADD_ITEM)

            quote = self.catalog.get_menu_item(menu_item_id, tab.restaurant_id)
            if quote is None or not quote.available:
                raise NotAvailableError()

            item = TabItem.objects.select_for_update().filter(tab_id=tab.id, menu_item_id=menu_item_id).first()
            if item is not None:
                item.quantity += quantity
                item.subtotal = pricing.subtotal(quote.price, item.quantity)
                item.save(update_fields=['quantity', 'subtotal'])
            else:
                item = TabItem.objects.create(
                    tab=tab,
                    menu_item_id=menu_item_id,
                    quantity=quantity,
                    subtotal=pricing.subtotal(quote.price, quantity),
                )

            self._recompute_total(tab)
            tab.save(update_fields=['total'])
            logger.info("Tab %s: %s x menu item %s, line now %s (%s), total %s",
                        tab.id, quantity, menu_item_id, item.quantity, item.subtotal, tab.total)
            self._emit(TabChange(ITEM_ADDED, tab.id, tab.restaurant_id, item_id=item.id))
            return item

        return self._write(('tab', tab_id), add)

    def set_item_served(self, tab_id, item_id, served):
        """Set an item's served flag. Callers authorize first; allowed on closed tabs."""

        def serve():
            tab = self._lock_tab(tab_id)
            if tab is None:
                raise NotFoundError('Tab not found')
            state.apply(tab, Transition.SET_SERVED)

            item = TabItem.objects.select_for_update().filter(id=item_id, tab_id=tab.id).first()
            if item is None:
                raise NotFoundError('Tab item not found')
            if item.served != served:
                item.served = served
                item.save(update_fields=['served'])
            logger.info("Tab %s: item %s served=%s", tab.id, item.id, served)
            self._emit(TabChange(ITEM_SERVED, tab.id, tab.restaurant_id, item_id=item.id, served=served))
            return item

        return self._write(('tab', tab_id), serve)

    def close_tab(self, tab_id, user_id, payment_method_id):
        def close():
            tab = self._lock_tab(tab_id)
            if tab is None or tab.user_id != user_id:
                raise NotFoundError('Tab not found or not accessible')
            state.apply(tab, Transition.CLOSE)

            if not self.payments.belongs_to_user(payment_method_id, user_id):
                raise InvalidPaymentError()

            self._recompute_total(tab)
            tab.close_time = timezone.now()
            tab.is_open = False
            tab.payment_method_id = payment_method_id
            tab.save(update_fields=['total', 'close_time', 'is_open', 'payment_method'])
            logger.info("Closed tab %s with payment method %s, total %s", tab.id, payment_method_id, tab.total)
            self._emit(TabChange(TAB_CLOSED, tab.id, tab.restaurant_id))
            return tab

        return self._write(('tab', tab_id), close)

    # -- reads -------------------------------------------------------------
    # Unlocked. Projections recompute totals from the prefetched items.

    def get_tab(self, tab_id):
        tab = Tab.objects.select_related('restaurant').filter(id=tab_id).first()
        if tab is None:
            raise NotFoundError('Tab not found')
        return tab

    def get_with_items(self, tab_id):
        tab = (
            Tab.objects
            .select_related('restaurant', 'user')
            .prefetch_related(items_prefetch())
            .filter(id=tab_id)
            .first()
        )
        if tab is None:
            raise NotFoundError('Tab not found')
        return tab, list(tab.items.all())

    def list_for_user(self, user_id):
        return list(
            Tab.objects
            .filter(user_id=user_id)
            .select_related('restaurant')
            .prefetch_related(items_prefetch())
            .order_by('-created_at', '-id')
        )

    def list_open_for_restaurant(self, restaurant_id):
        return self.list_open_for_restaurants([restaurant_id])

    def list_open_for_restaurants(self, restaurant_ids):
        return list(
            Tab.objects
            .filter(restaurant_id__in=list(restaurant_ids), is_open=True)
            .select_related('restaurant', 'user')
            .prefetch_related(items_prefetch())
            .order_by('open_time', 'id')
        )

    def has_recent_tab(self, user_id, restaurant_id, since):
        """True if the user has an open tab at the restaurant, or one closed at or after ``since``."""
        return (
            Tab.objects
            .filter(user_id=user_id, restaurant_id=restaurant_id)
            .filter(Q(is_open=True) | Q(close_time__gte=since))
            .exists()
        )
