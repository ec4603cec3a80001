import json
from unittest import mock

import redis
from django.test import SimpleTestCase

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

from .helpers import BrokenConnection, RecordingConnection


class NotifierSubscriptionTests(SimpleTestCase):

    def setUp(self):
        self.notifier = Notifier()
        self.alice = RecordingConnection('alice')

    def test_topic_names(self):
        self.assertEqual(tab_topic(7), 'tab:7')
        self.assertEqual(restaurant_manager_topic(3), 'restaurant-manager:3')
        self.assertEqual(ALL_MANAGERS_TOPIC, 'managers:all')
        self.assertEqual(restaurant_chat_topic(3), 'restaurant-chat:3')

    def test_subscribe_is_idempotent(self):
        self.assertTrue(self.notifier.subscribe('tab:1', self.alice))
        self.assertFalse(self.notifier.subscribe('tab:1', self.alice))
        self.assertEqual(self.notifier.subscribers('tab:1'), frozenset({self.alice}))

    def test_unsubscribe_is_idempotent(self):
        self.notifier.subscribe('tab:1', self.alice)
        self.assertTrue(self.notifier.unsubscribe('tab:1', self.alice))
        self.assertFalse(self.notifier.unsubscribe('tab:1', self.alice))
        self.assertFalse(self.notifier.unsubscribe('tab:2', self.alice))
        self.assertEqual(self.notifier.subscribers('tab:1'), frozenset())

    def test_drop_forgets_every_subscription(self):
        bob = RecordingConnection('bob')
        self.notifier.subscribe('tab:1', self.alice)
        self.notifier.subscribe('tab:2', self.alice)
        self.notifier.subscribe('tab:2', bob)

        dropped = self.notifier.drop(self.alice)

        self.assertEqual(sorted(dropped), ['tab:1', 'tab:2'])
        self.assertEqual(self.notifier.topics_for(self.alice), [])
        self.assertEqual(self.notifier.subscribers('tab:2'), frozenset({bob}))
        self.assertEqual(self.notifier.drop(self.alice), [])


class NotifierPublishTests(SimpleTestCase):

    def setUp(self):
        self.notifier = Notifier()
        self.owner = RecordingConnection('owner')
        self.manager = RecordingConnection('manager')
        self.other_manager = RecordingConnection('other-manager')
        self.notifier.subscribe(tab_topic(1), self.owner)
        self.notifier.subscribe(restaurant_manager_topic(10), self.manager)
        self.notifier.subscribe(ALL_MANAGERS_TOPIC, self.manager)
        self.notifier.subscribe(restaurant_manager_topic(20), self.other_manager)

    def test_tab_updated_reaches_owner_and_managers(self):
        self.notifier.tab_updated(1, 10, {'id': 1, 'total': '17.00'})

        self.assertEqual(self.owner.event_names(), [TAB_UPDATED])
        # once per topic it follows
        self.assertEqual(self.manager.event_names(), [TAB_UPDATED, TAB_UPDATED])
        self.assertEqual(self.other_manager.events, [])

        payload = self.owner.events[0][1]
        self.assertEqual(payload['tabId'], 1)
        self.assertEqual(payload['restaurantId'], 10)
        self.assertEqual(payload['tab'], {'id': 1, 'total': '17.00'})
        self.assertIn('timestamp', payload)

    def test_item_served_only_reaches_the_tab(self):
        self.notifier.item_served(1, 5, True)

        self.assertEqual(self.owner.event_names(), [ITEM_SERVED])
        self.assertEqual(self.manager.events, [])
        payload = self.owner.events[0][1]
        self.assertEqual((payload['tabId'], payload['itemId'], payload['served']), (1, 5, True))

    def test_failed_delivery_is_logged_and_skipped(self):
        self.notifier.subscribe(tab_topic(1), BrokenConnection())

        with self.assertLogs('tabs.notifier', level='WARNING'):
            delivered = self.notifier.publish(tab_topic(1), TAB_UPDATED, {'tabId': 1})

        self.assertEqual(delivered, 1)
        self.assertEqual(self.owner.event_names(), [TAB_UPDATED])

    def test_broadcaster_failure_does_not_raise(self):
        broadcaster = mock.Mock()
        broadcaster.publish.side_effect = ConnectionError("redis down")
        notifier = Notifier(broadcaster=broadcaster)
        notifier.subscribe(tab_topic(1), self.owner)

        with self.assertLogs('tabs.notifier', level='ERROR'):
            notifier.item_served(1, 5, False)

        self.assertEqual(self.owner.event_names(), [ITEM_SERVED])
        broadcaster.publish.assert_called_once()

    def test_new_message_only_reaches_the_chat_room(self):
        guest = RecordingConnection('guest')
        self.notifier.subscribe(restaurant_chat_topic(10), guest)

        payload = self.notifier.new_message(10, 100, 'Alice Brown', 'hello')

        self.assertEqual(guest.events, [(NEW_MESSAGE, payload)])
        self.assertEqual(self.owner.events, [])
        self.assertEqual(self.manager.events, [])
        self.assertEqual(
            (payload['restaurantId'], payload['userId'], payload['userName'], payload['message']),
            (10, 100, 'Alice Brown', 'hello'),
        )
        self.assertIn('timestamp', payload)

    def test_publish_without_subscribers(self):
        self.assertEqual(self.notifier.publish('tab:999', TAB_UPDATED, {}), 0)


class RedisBroadcasterTests(SimpleTestCase):

    def test_publishes_json_to_topic_channel(self):
        client = mock.Mock()
        broadcaster = RedisBroadcaster(client=client)

        broadcaster.publish('tab:1', ITEM_SERVED, {'tabId': 1, 'itemId': 2, 'served': True})

        channel, message = client.publish.call_args[0]
        self.assertEqual(channel, 'tab:1')
        self.assertEqual(json.loads(message), {
            'event': ITEM_SERVED,
            'payload': {'tabId': 1, 'itemId': 2, 'served': True},
        })

    @mock.patch('tabs.notifier.redis.Redis')
    def test_builds_client_from_settings(self, redis_cls):
        with self.settings(REDIS_HOST='redis.internal', REDIS_PORT='6380', REDIS_DB='2',
                           REDIS_CONNECT_TIMEOUT=0.25, REDIS_SOCKET_TIMEOUT=0.5):
            RedisBroadcaster()

        redis_cls.assert_called_once_with(
            host='redis.internal', port=6380, db=2,
            socket_connect_timeout=0.25, socket_timeout=0.5,
            decode_responses=True
        )

    def test_timed_out_publish_is_logged(self):
        client = mock.Mock()
        client.publish.side_effect = redis.exceptions.TimeoutError("Timeout reading from socket")
        notifier = Notifier(broadcaster=RedisBroadcaster(client=client))
        owner = RecordingConnection('owner')
        notifier.subscribe(tab_topic(1), owner)

        with self.assertLogs('tabs.notifier', level='ERROR') as logs:
            delivered = notifier.publish(tab_topic(1), TAB_UPDATED, {'tabId': 1})

        self.assertIn('Failed to broadcast tab_updated on tab:1', logs.output[0])
        self.assertEqual(delivered, 1)
        self.assertEqual(owner.event_names(), [TAB_UPDATED])
