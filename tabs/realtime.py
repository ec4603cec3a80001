"""
Connection-scoped subscription management for realtime tab updates.

A socket bridge (or a test) calls ``connect`` with a verified identity
when a client connects and ``disconnect`` when it goes away. In between
the client may follow individual tabs it is allowed to read. Managers are
joined to their restaurants' topics on connect. A customer may also sit in
one restaurant chat room at a time while eligible for it.

The Redis channels written by ``RedisBroadcaster`` carry every tab's
events and are not access checked. Any bridge that relays them to sockets
must admit a client to ``tab:{id}`` only after ``TabService.can_view``
succeeds for it, and to the manager topics only after
``AccessPolicy.authorize_manager`` or ``authorize_restaurant`` does,
and to ``restaurant-chat:{id}`` only while ``TabService.can_join_chat``
holds. The join methods below do exactly that.
"""

import logging
import threading

from rest_framework.exceptions import NotAuthenticated

from .exceptions import ForbiddenError
from .notifier import (
    ALL_MANAGERS_TOPIC,
    CHAT_TOPIC_PREFIX,
    restaurant_chat_topic,
    restaurant_manager_topic,
    tab_topic,
)

logger = logging.getLogger(__name__)


class RealtimeGateway:

    def __init__(self, service):
        self.service = service
        self.notifier = service.notifier
        self._identities = {}
        self._lock = threading.Lock()

    def _identity(self, connection):
        with self._lock:
            identity = self._identities.get(connection)
        if identity is None:
            raise NotAuthenticated('Connection is not authenticated')
        return identity

    def connect(self, connection, identity):
        with self._lock:
            self._identities[connection] = identity
        logger.info("Realtime connection %r for user %s", connection, identity.user_id)
        if identity.is_manager:
            return self.join_manager_updates(connection)
        return []

    def join_tab_updates(self, connection, tab_id):
        identity = self._identity(connection)
        self.service.can_view(identity, tab_id)
        topic = tab_topic(tab_id)
        self.notifier.subscribe(topic, connection)
        return topic

    def leave_tab_updates(self, connection, tab_id):
        return self.notifier.unsubscribe(tab_topic(tab_id), connection)

    def join_manager_updates(self, connection):
        identity = self._identity(connection)
        self.service.policy.authorize_manager(identity)
        topics = [ALL_MANAGERS_TOPIC]
        topics.extend(restaurant_manager_topic(rid) for rid in sorted(identity.managed_restaurant_ids))
        for topic in topics:
            self.notifier.subscribe(topic, connection)
        return topics

    def join_restaurant_chat(self, connection, restaurant_id):
        """Move the connection into one restaurant's chat room, leaving any other."""
        identity = self._identity(connection)
        if not self.service.can_join_chat(identity, restaurant_id):
            raise ForbiddenError('You do not have permission to join this chat room')
        topic = restaurant_chat_topic(restaurant_id)
        for joined in self.notifier.topics_for(connection):
            if joined.startswith(CHAT_TOPIC_PREFIX) and joined != topic:
                self.notifier.unsubscribe(joined, connection)
        self.notifier.subscribe(topic, connection)
        logger.info("User %s joined chat for restaurant %s", identity.user_id, restaurant_id)
        return topic

    def leave_restaurant_chat(self, connection, restaurant_id):
        return self.notifier.unsubscribe(restaurant_chat_topic(restaurant_id), connection)

    def send_chat_message(self, connection, restaurant_id, message):
        identity = self._identity(connection)
        if connection not in self.notifier.subscribers(restaurant_chat_topic(restaurant_id)):
            raise ForbiddenError('You are not in this chat room')
        return self.service.post_chat_message(identity, restaurant_id, message)

    def disconnect(self, connection):
        with self._lock:
            self._identities.pop(connection, None)
        dropped = self.notifier.drop(connection)
        logger.info("Realtime connection %r closed, left %d topics", connection, len(dropped))
        return dropped
