"""
Real-time fan-out of tab changes.

Topics:
    tab:{tab_id}                       the tab's owner while viewing it
    restaurant-manager:{restaurant_id} managers of that restaurant
    managers:all                       every connected manager
    restaurant-chat:{restaurant_id}    customers in that restaurant's chat room

Delivery is at-most-once and best effort. Every tab event is a cue for
the receiver to refetch the tab; payloads may already be stale on arrival.
A failed delivery is logged and dropped, it never reaches the writer.

A connection is any hashable object with a ``send(event, payload)``
method. Subscriptions live as long as the connection; there is no replay
buffer, so clients rejoin their topics after reconnecting.
"""

import json
import logging
import threading
from collections import defaultdict

import redis
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

logger = logging.getLogger(__name__)

TAB_UPDATED = 'tab_updated'
ITEM_SERVED = 'item_served'
NEW_MESSAGE = 'new_message'

ALL_MANAGERS_TOPIC = 'managers:all'


def tab_topic(tab_id):
    return f"tab:{tab_id}"


def restaurant_manager_topic(restaurant_id):
    return f"restaurant-manager:{restaurant_id}"


CHAT_TOPIC_PREFIX = 'restaurant-chat:'


def restaurant_chat_topic(restaurant_id):
    return f"{CHAT_TOPIC_PREFIX}{restaurant_id}"


class RedisBroadcaster:
    """
    Publishes events to Redis channels named after the topics.

    Channels are not access checked; see tabs.realtime for how a relay
    must gate subscriptions.
    """

    def __init__(self, client=None):
        self.redis_client = client or redis.Redis(
            host=settings.REDIS_HOST,
            port=int(settings.REDIS_PORT),
            db=int(settings.REDIS_DB),
            socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            decode_responses=True
        )

    def publish(self, topic, event, payload):
        message = json.dumps({'event': event, 'payload': payload}, cls=DjangoJSONEncoder)
        return self.redis_client.publish(topic, message)


class Notifier:
    """Topic registry plus best-effort publisher."""

    def __init__(self, broadcaster=None):
        self.broadcaster = broadcaster
        self._topics = defaultdict(set)
        self._lock = threading.RLock()

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, topic, connection):
        """Add a connection to a topic. Returns False if it was already there."""
        with self._lock:
            members = self._topics[topic]
            if connection in members:
                return False
            members.add(connection)
        logger.debug("Subscribed %r to %s", connection, topic)
        return True

    def unsubscribe(self, topic, connection):
        """Remove a connection from a topic. Returns False if it was not there."""
        with self._lock:
            members = self._topics.get(topic)
            if not members or connection not in members:
                return False
            members.discard(connection)
            if not members:
                del self._topics[topic]
        logger.debug("Unsubscribed %r from %s", connection, topic)
        return True

    def drop(self, connection):
        """Forget every subscription held by a connection."""
        dropped = []
        with self._lock:
            for topic in list(self._topics):
                members = self._topics[topic]
                if connection in members:
                    members.discard(connection)
                    dropped.append(topic)
                    if not members:
                        del self._topics[topic]
        return dropped

    def subscribers(self, topic):
        with self._lock:
            return frozenset(self._topics.get(topic, ()))

    def topics_for(self, connection):
        with self._lock:
            return sorted(t for t, members in self._topics.items() if connection in members)

    # -- publishing --------------------------------------------------------

    def publish(self, topic, event, payload):
        """
        Deliver an event to every local subscriber of a topic and to the
        broadcaster, if one is configured.

        Returns the number of local connections that accepted the event.
        Never raises.
        """
        delivered = 0
        for connection in self.subscribers(topic):
            try:
                connection.send(event, payload)
                delivered += 1
            except Exception:
                logger.warning("Dropping %s for %r on %s", event, connection, topic, exc_info=True)

        if self.broadcaster is not None:
            try:
                self.broadcaster.publish(topic, event, payload)
            except Exception:
                logger.error("Failed to broadcast %s on %s", event, topic, exc_info=True)

        return delivered

    def tab_updated(self, tab_id, restaurant_id, tab):
        """Announce a committed tab change to its owner and the restaurant's managers."""
        payload = {
            'tabId': tab_id,
            'restaurantId': restaurant_id,
            'tab': tab,
            'timestamp': timezone.now().isoformat(),
        }
        for topic in (tab_topic(tab_id), restaurant_manager_topic(restaurant_id), ALL_MANAGERS_TOPIC):
            self.publish(topic, TAB_UPDATED, payload)

    def item_served(self, tab_id, item_id, served):
        """Announce a served-flag change to the tab's owner only."""
        payload = {
            'tabId': tab_id,
            'itemId': item_id,
            'served': served,
            'timestamp': timezone.now().isoformat(),
        }
        self.publish(tab_topic(tab_id), ITEM_SERVED, payload)

    def new_message(self, restaurant_id, user_id, user_name, message):
        """Relay a chat message to everyone in the restaurant's chat room."""
        payload = {
            'restaurantId': restaurant_id,
            'userId': user_id,
            'userName': user_name,
            'message': message,
            'timestamp': timezone.now().isoformat(),
        }
        self.publish(restaurant_chat_topic(restaurant_id), NEW_MESSAGE, payload)
        return payload
