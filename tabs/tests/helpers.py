from decimal import Decimal

from django.contrib.auth import get_user_model

from payment.models import PaymentMethod
from restaurants.models import MenuItem, Restaurant, RestaurantMenuItem


def make_user(username, **extra):
    return get_user_model().objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password='password123',
        **extra
    )


def make_restaurant(name="The Tap Room", manager=None):
    return Restaurant.objects.create(name=name, address="12 Brewery Lane", manager=manager)


def make_menu_item(name="Hazy IPA", price='8.50', restaurant=None, available=True):
    item = MenuItem.objects.create(type='beer', name=name, price=Decimal(price))
    if restaurant is not None:
        RestaurantMenuItem.objects.create(restaurant=restaurant, menu_item=item, is_available=available)
    return item


def make_card(user, last4='1111'):
    return PaymentMethod.objects.create(
        user=user,
        card_holder_name=user.get_username(),
        card_brand='Visa',
        last4=last4,
        card_exp_month=12,
        card_exp_year=2030,
        is_default=True,
    )


class RecordingConnection:
    """Stands in for a client socket; remembers every event sent to it."""

    def __init__(self, name):
        self.name = name
        self.events = []

    def send(self, event, payload):
        self.events.append((event, payload))

    def event_names(self):
        return [event for event, _ in self.events]

    def __repr__(self):
        return f"<RecordingConnection {self.name}>"


class BrokenConnection:

    def send(self, event, payload):
        raise ConnectionError("socket closed")
