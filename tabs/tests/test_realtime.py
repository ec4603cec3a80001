from datetime import timedelta
from unittest import mock

import redis
from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import NotAuthenticated

from tabs.exceptions import ForbiddenError, NotFoundError, ValidationError
from tabs.models import Tab
from tabs.notifier import (
    ALL_MANAGERS_TOPIC,
    ITEM_SERVED,
    NEW_MESSAGE,
    TAB_UPDATED,
    Notifier,
    RedisBroadcaster,
    restaurant_chat_topic,
    restaurant_manager_topic,
    tab_topic,
)
from tabs.policy import ViewScope, identity_for
from tabs.realtime import RealtimeGateway
from tabs.services import MAX_CHAT_MESSAGE_LENGTH, TabService

from .helpers import RecordingConnection, make_card, make_menu_item, make_restaurant, make_user


class RealtimeTestCase(TestCase):

    def setUp(self):
        self.notifier = Notifier()
        self.service = TabService(notifier=self.notifier)
        self.gateway = RealtimeGateway(self.service)

        self.manager = make_user('john.smith')
        self.other_manager = make_user('sarah.johnson')
        self.alice = make_user('alice', first_name='Alice', last_name='Brown')
        self.bob = make_user('bob')
        self.restaurant = make_restaurant("The Tap Room", manager=self.manager)
        self.elsewhere = make_restaurant("Hop & Barrel", manager=self.other_manager)
        self.ipa = make_menu_item("Hazy IPA", '8.50', restaurant=self.restaurant)
        self.card = make_card(self.alice)

        self.tab = self.service.open_tab(identity_for(self.alice), self.restaurant.id)


class GatewaySubscriptionTests(RealtimeTestCase):

    def test_customer_joins_own_tab(self):
        conn = RecordingConnection('alice')
        self.assertEqual(self.gateway.connect(conn, identity_for(self.alice)), [])

        topic = self.gateway.join_tab_updates(conn, self.tab.id)

        self.assertEqual(topic, tab_topic(self.tab.id))
        self.assertEqual(self.notifier.topics_for(conn), [topic])

    def test_stranger_cannot_join_tab(self):
        conn = RecordingConnection('bob')
        self.gateway.connect(conn, identity_for(self.bob))

        with self.assertRaises(NotFoundError):
            self.gateway.join_tab_updates(conn, self.tab.id)
        with self.assertRaises(NotFoundError):
            self.gateway.join_tab_updates(conn, 9999)
        self.assertEqual(self.notifier.topics_for(conn), [])

    def test_manager_of_restaurant_may_follow_a_tab(self):
        conn = RecordingConnection('manager')
        self.gateway.connect(conn, identity_for(self.manager))
        self.gateway.join_tab_updates(conn, self.tab.id)
        self.assertIn(tab_topic(self.tab.id), self.notifier.topics_for(conn))

        other = RecordingConnection('other-manager')
        self.gateway.connect(other, identity_for(self.other_manager))
        with self.assertRaises(NotFoundError):
            self.gateway.join_tab_updates(other, self.tab.id)

    def test_managers_auto_join_their_restaurants(self):
        conn = RecordingConnection('manager')
        topics = self.gateway.connect(conn, identity_for(self.manager))

        expected = [ALL_MANAGERS_TOPIC, restaurant_manager_topic(self.restaurant.id)]
        self.assertEqual(topics, expected)
        self.assertEqual(self.notifier.topics_for(conn), sorted(expected))

    def test_customer_cannot_join_manager_updates(self):
        conn = RecordingConnection('alice')
        self.gateway.connect(conn, identity_for(self.alice))
        with self.assertRaises(ForbiddenError):
            self.gateway.join_manager_updates(conn)

    def test_unknown_connection(self):
        with self.assertRaises(NotAuthenticated):
            self.gateway.join_tab_updates(RecordingConnection('anon'), self.tab.id)

    def test_leave_and_disconnect(self):
        conn = RecordingConnection('alice')
        self.gateway.connect(conn, identity_for(self.alice))
        self.gateway.join_tab_updates(conn, self.tab.id)

        self.assertTrue(self.gateway.leave_tab_updates(conn, self.tab.id))
        self.assertFalse(self.gateway.leave_tab_updates(conn, self.tab.id))

        self.gateway.join_tab_updates(conn, self.tab.id)
        self.assertEqual(self.gateway.disconnect(conn), [tab_topic(self.tab.id)])
        with self.assertRaises(NotAuthenticated):
            self.gateway.join_tab_updates(conn, self.tab.id)


class TabEventTests(RealtimeTestCase):

    def setUp(self):
        super().setUp()
        self.owner_conn = RecordingConnection('alice')
        self.manager_conn = RecordingConnection('manager')
        self.other_conn = RecordingConnection('other-manager')
        self.gateway.connect(self.owner_conn, identity_for(self.alice))
        self.gateway.join_tab_updates(self.owner_conn, self.tab.id)
        self.gateway.connect(self.manager_conn, identity_for(self.manager))
        self.gateway.connect(self.other_conn, identity_for(self.other_manager))

    def test_item_added_reaches_owner_and_managers(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 2)

        self.assertEqual(self.owner_conn.event_names(), [TAB_UPDATED])
        payload = self.owner_conn.events[0][1]
        self.assertEqual(payload['tabId'], self.tab.id)
        self.assertEqual(payload['restaurantId'], self.restaurant.id)
        self.assertEqual(payload['tab']['total'], '17.00')
        self.assertEqual(payload['tab']['customer_name'], 'Alice Brown')

        # restaurant topic and managers:all
        self.assertEqual(self.manager_conn.event_names(), [TAB_UPDATED, TAB_UPDATED])
        # every manager follows managers:all
        self.assertEqual(self.other_conn.event_names(), [TAB_UPDATED])

    def test_served_change_goes_to_the_tab(self):
        item = self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 1)

        with self.captureOnCommitCallbacks(execute=True):
            self.service.set_served(identity_for(self.manager), self.tab.id, item.id, True)

        self.assertEqual(self.owner_conn.event_names(), [ITEM_SERVED, TAB_UPDATED])
        served = self.owner_conn.events[0][1]
        self.assertEqual((served['itemId'], served['served']), (item.id, True))
        self.assertNotIn(ITEM_SERVED, self.manager_conn.event_names())

    def test_no_events_after_disconnect(self):
        self.gateway.disconnect(self.owner_conn)
        with self.captureOnCommitCallbacks(execute=True):
            self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 1)
        self.assertEqual(self.owner_conn.events, [])

    def test_write_commits_when_broadcast_times_out(self):
        client = mock.Mock()
        client.publish.side_effect = redis.exceptions.TimeoutError("Timeout reading from socket")
        self.notifier.broadcaster = RedisBroadcaster(client=client)

        with self.assertLogs('tabs.notifier', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 1)

        self.assertEqual(self.owner_conn.event_names(), [TAB_UPDATED])
        # the tab lock was released, so the next order goes through
        item = self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 1)
        self.assertEqual(item.quantity, 2)


class TabServiceTests(RealtimeTestCase):

    def test_owner_cannot_serve(self):
        item = self.service.add_item(identity_for(self.alice), self.tab.id, self.ipa.id, 1)

        with self.assertRaises(ForbiddenError):
            self.service.set_served(identity_for(self.alice), self.tab.id, item.id, True)
        with self.assertRaises(NotFoundError):
            self.service.set_served(identity_for(self.other_manager), self.tab.id, item.id, True)

        item.refresh_from_db()
        self.assertFalse(item.served)

    def test_manager_cannot_order_or_close_for_customer(self):
        with self.assertRaises(NotFoundError):
            self.service.add_item(identity_for(self.manager), self.tab.id, self.ipa.id, 1)
        with self.assertRaises(NotFoundError):
            self.service.close_tab(identity_for(self.manager), self.tab.id, self.card.id)

    def test_get_tab_scopes(self):
        _, scope = self.service.get_tab(identity_for(self.alice), self.tab.id)
        self.assertEqual(scope, ViewScope.CUSTOMER)
        _, scope = self.service.get_tab(identity_for(self.manager), self.tab.id)
        self.assertEqual(scope, ViewScope.MANAGER)
        with self.assertRaises(NotFoundError):
            self.service.get_tab(identity_for(self.bob), self.tab.id)

    def test_manager_tabs_grouped_by_restaurant(self):
        second = make_restaurant("Draft Bar Riverside", manager=self.manager)
        bobs = self.service.open_tab(identity_for(self.bob), second.id)
        self.service.open_tab(identity_for(self.bob), self.elsewhere.id)

        groups = self.service.list_manager_tabs(identity_for(self.manager))

        self.assertEqual(
            [(g['restaurant_id'], [t.id for t in g['tabs']]) for g in groups],
            [(self.restaurant.id, [self.tab.id]), (second.id, [bobs.id])],
        )

    def test_manager_with_no_open_tabs(self):
        groups = self.service.list_manager_tabs(identity_for(self.other_manager))
        self.assertEqual(groups, [{
            'restaurant_id': self.elsewhere.id,
            'restaurant_name': "Hop & Barrel",
            'tabs': [],
        }])

    def test_restaurant_tabs_require_managing_it(self):
        tabs = self.service.list_restaurant_tabs(identity_for(self.manager), self.restaurant.id)
        self.assertEqual([t.id for t in tabs], [self.tab.id])

        with self.assertRaises(ForbiddenError):
            self.service.list_restaurant_tabs(identity_for(self.manager), self.elsewhere.id)
        with self.assertRaises(ForbiddenError):
            self.service.list_manager_tabs(identity_for(self.alice))

    def test_is_manager(self):
        self.assertTrue(self.service.is_manager(identity_for(self.manager)))
        self.assertFalse(self.service.is_manager(identity_for(self.alice)))

    def test_is_manager_reads_current_assignments(self):
        identity = identity_for(self.bob)
        self.assertFalse(self.service.is_manager(identity))

        make_restaurant("Draft Bar Riverside", manager=self.bob)
        self.assertTrue(self.service.is_manager(identity))


class RestaurantChatTests(RealtimeTestCase):

    def setUp(self):
        super().setUp()
        self.alice_conn = RecordingConnection('alice')
        self.bob_conn = RecordingConnection('bob')
        self.gateway.connect(self.alice_conn, identity_for(self.alice))
        self.gateway.connect(self.bob_conn, identity_for(self.bob))

    def close_tab_for(self, user, restaurant, days_ago):
        return Tab.objects.create(
            user=user, restaurant=restaurant, payment_method=make_card(user, last4='4242'),
            is_open=False, close_time=timezone.now() - timedelta(days=days_ago),
        )

    def test_open_tab_admits_to_chat(self):
        topic = self.gateway.join_restaurant_chat(self.alice_conn, self.restaurant.id)
        self.assertEqual(topic, restaurant_chat_topic(self.restaurant.id))
        self.assertIn(topic, self.notifier.topics_for(self.alice_conn))

    def test_recently_closed_tab_admits_to_chat(self):
        self.close_tab_for(self.bob, self.restaurant, days_ago=6)
        self.gateway.join_restaurant_chat(self.bob_conn, self.restaurant.id)
        self.assertEqual(self.notifier.topics_for(self.bob_conn), [restaurant_chat_topic(self.restaurant.id)])

    def test_old_or_missing_tab_is_refused(self):
        with self.assertRaises(ForbiddenError):
            self.gateway.join_restaurant_chat(self.bob_conn, self.restaurant.id)

        self.close_tab_for(self.bob, self.restaurant, days_ago=8)
        with self.assertRaises(ForbiddenError):
            self.gateway.join_restaurant_chat(self.bob_conn, self.restaurant.id)
        self.assertEqual(self.notifier.topics_for(self.bob_conn), [])

    def test_tab_elsewhere_does_not_count(self):
        self.service.open_tab(identity_for(self.bob), self.elsewhere.id)
        with self.assertRaises(ForbiddenError):
            self.gateway.join_restaurant_chat(self.bob_conn, self.restaurant.id)

    def test_joining_a_room_leaves_the_previous_one(self):
        self.service.open_tab(identity_for(self.alice), self.elsewhere.id)
        self.gateway.join_tab_updates(self.alice_conn, self.tab.id)
        self.gateway.join_restaurant_chat(self.alice_conn, self.restaurant.id)

        self.gateway.join_restaurant_chat(self.alice_conn, self.elsewhere.id)

        self.assertEqual(
            self.notifier.topics_for(self.alice_conn),
            [restaurant_chat_topic(self.elsewhere.id), tab_topic(self.tab.id)],
        )

    def test_message_reaches_the_room(self):
        self.close_tab_for(self.bob, self.restaurant, days_ago=1)
        self.gateway.join_restaurant_chat(self.alice_conn, self.restaurant.id)
        self.gateway.join_restaurant_chat(self.bob_conn, self.restaurant.id)

        payload = self.gateway.send_chat_message(self.alice_conn, self.restaurant.id, "Anyone tried the stout?")

        self.assertEqual(self.bob_conn.event_names(), [NEW_MESSAGE])
        self.assertEqual(self.alice_conn.event_names(), [NEW_MESSAGE])
        self.assertEqual(self.bob_conn.events[0][1], payload)
        self.assertEqual(payload['userId'], self.alice.pk)
        self.assertEqual(payload['userName'], 'Alice Brown')
        self.assertEqual(payload['restaurantId'], self.restaurant.id)
        self.assertEqual(payload['message'], "Anyone tried the stout?")

    def test_must_be_in_the_room_to_send(self):
        with self.assertRaises(ForbiddenError):
            self.gateway.send_chat_message(self.alice_conn, self.restaurant.id, "hello")

        self.gateway.join_restaurant_chat(self.alice_conn, self.restaurant.id)
        self.assertTrue(self.gateway.leave_restaurant_chat(self.alice_conn, self.restaurant.id))
        with self.assertRaises(ForbiddenError):
            self.gateway.send_chat_message(self.alice_conn, self.restaurant.id, "hello")

    def test_blank_or_long_messages_rejected(self):
        self.gateway.join_restaurant_chat(self.alice_conn, self.restaurant.id)
        for message in ('', '   ', None, 'x' * (MAX_CHAT_MESSAGE_LENGTH + 1)):
            with self.subTest(message=message):
                with self.assertRaises(ValidationError):
                    self.gateway.send_chat_message(self.alice_conn, self.restaurant.id, message)
        self.assertEqual(self.alice_conn.events, [])
