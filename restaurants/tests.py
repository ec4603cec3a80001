from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from draftbar.authentication import issue_token
from payment.models import PaymentMethod
from . import catalog
from .models import MenuItem, Restaurant, RestaurantMenuItem


class CatalogTests(TestCase):
    """Menu lookups used by the tab core"""

    def setUp(self):
        User = get_user_model()
        self.manager = User.objects.create_user(username='john.smith', password='manager123')
        self.customer = User.objects.create_user(username='alice', password='password123')
        self.tap_room = Restaurant.objects.create(name="The Tap Room", address="12 Brewery Lane", manager=self.manager)
        self.barrel = Restaurant.objects.create(name="Hop & Barrel", address="4 Market Square")
        self.ipa = MenuItem.objects.create(type='beer', name="Hazy IPA", price=Decimal('8.50'))
        self.stout = MenuItem.objects.create(type='beer', name="Oatmeal Stout", price=Decimal('7.25'))
        RestaurantMenuItem.objects.create(restaurant=self.tap_room, menu_item=self.ipa)
        RestaurantMenuItem.objects.create(restaurant=self.tap_room, menu_item=self.stout, is_available=False)

    def test_menu_item_quote(self):
        quote = catalog.get_menu_item(self.ipa.id, self.tap_room.id)

        self.assertEqual(quote.price, Decimal('8.50'))
        self.assertEqual(quote.name, "Hazy IPA")
        self.assertTrue(quote.available)

    def test_unavailable_item_is_quoted_as_such(self):
        self.assertFalse(catalog.get_menu_item(self.stout.id, self.tap_room.id).available)

    def test_item_not_on_menu(self):
        self.assertIsNone(catalog.get_menu_item(self.ipa.id, self.barrel.id))
        self.assertIsNone(catalog.get_menu_item(9999, self.tap_room.id))

    def test_quote_follows_price_changes(self):
        self.ipa.price = Decimal('9.00')
        self.ipa.save()
        self.assertEqual(catalog.get_menu_item(self.ipa.id, self.tap_room.id).price, Decimal('9.00'))

    def test_menu_for(self):
        entries = list(catalog.menu_for(self.tap_room.id))
        self.assertEqual([e.menu_item.name for e in entries], ["Hazy IPA", "Oatmeal Stout"])
        self.assertEqual([e.is_available for e in entries], [True, False])
        self.assertEqual(list(catalog.menu_for(self.barrel.id)), [])

    def test_restaurants_and_managers(self):
        self.assertTrue(catalog.restaurant_exists(self.tap_room.id))
        self.assertFalse(catalog.restaurant_exists(9999))
        self.assertEqual(catalog.managed_restaurant_ids(self.manager.id), frozenset({self.tap_room.id}))
        self.assertEqual(catalog.managed_restaurant_ids(self.customer.id), frozenset())
        self.assertTrue(catalog.is_manager(self.manager.id))
        self.assertFalse(catalog.is_manager(self.customer.id))
        self.assertEqual(
            catalog.restaurant_names([self.tap_room.id, self.barrel.id]),
            {self.tap_room.id: "The Tap Room", self.barrel.id: "Hop & Barrel"},
        )


class SeedRestaurantsCommandTests(TestCase):

    def test_seed_is_repeatable(self):
        call_command('seed_restaurants', stdout=StringIO())
        call_command('seed_restaurants', stdout=StringIO())

        User = get_user_model()
        self.assertEqual(Restaurant.objects.count(), 3)
        self.assertEqual(User.objects.filter(managed_restaurants__isnull=False).distinct().count(), 3)
        self.assertEqual(PaymentMethod.objects.filter(user__username='alice', is_default=True).count(), 1)
        self.assertTrue(User.objects.get(username='alice').check_password('password123'))

    def test_clear(self):
        call_command('seed_restaurants', stdout=StringIO())
        Restaurant.objects.create(name="Pop-up", address="Somewhere")

        call_command('seed_restaurants', '--clear', stdout=StringIO())
        self.assertFalse(Restaurant.objects.filter(name="Pop-up").exists())
        self.assertEqual(Restaurant.objects.count(), 3)


class RestaurantAPITests(APITestCase):
    """Browsing restaurants and their menus"""

    def setUp(self):
        User = get_user_model()
        self.manager = User.objects.create_user(username='john.smith', password='manager123')
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.tap_room = Restaurant.objects.create(name="The Tap Room", address="12 Brewery Lane", manager=self.manager)
        self.barrel = Restaurant.objects.create(name="Hop & Barrel", address="4 Market Square")
        self.stout = MenuItem.objects.create(type='beer', name="Oatmeal Stout", price=Decimal('7.25'))
        self.ipa = MenuItem.objects.create(type='beer', name="Hazy IPA", price=Decimal('8.50'), abv=Decimal('6.20'))
        self.fries = MenuItem.objects.create(type='food', name="Fries", price=Decimal('4.00'))
        RestaurantMenuItem.objects.create(restaurant=self.tap_room, menu_item=self.fries)
        RestaurantMenuItem.objects.create(restaurant=self.tap_room, menu_item=self.stout, is_available=False)
        RestaurantMenuItem.objects.create(restaurant=self.tap_room, menu_item=self.ipa)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(self.alice)}")

    def test_list_restaurants_by_name(self):
        response = self.client.get(reverse('restaurants'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['name'] for r in response.data['restaurants']], ["Hop & Barrel", "The Tap Room"])
        self.assertEqual(response.data['restaurants'][1]['manager_id'], self.manager.id)
        self.assertIsNone(response.data['restaurants'][0]['manager_id'])

    def test_restaurant_detail(self):
        response = self.client.get(reverse('restaurant_detail', kwargs={'restaurant_id': self.tap_room.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['restaurant']['id'], self.tap_room.id)
        self.assertEqual(response.data['restaurant']['address'], "12 Brewery Lane")

    def test_unknown_restaurant(self):
        response = self.client.get(reverse('restaurant_detail', kwargs={'restaurant_id': 9999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['kind'], 'not_found')

        response = self.client.get(reverse('restaurant_menu', kwargs={'restaurant_id': 9999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_menu_ordered_by_type_then_name(self):
        response = self.client.get(reverse('restaurant_menu', kwargs={'restaurant_id': self.tap_room.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        items = response.data['menu_items']
        self.assertEqual([i['name'] for i in items], ["Hazy IPA", "Oatmeal Stout", "Fries"])
        self.assertEqual(items[0]['id'], self.ipa.id)
        self.assertEqual(items[0]['price'], '8.50')
        self.assertEqual(items[0]['abv'], '6.20')
        self.assertIsNone(items[2]['abv'])
        self.assertEqual([i['is_available'] for i in items], [True, False, True])

    def test_empty_menu(self):
        response = self.client.get(reverse('restaurant_menu', kwargs={'restaurant_id': self.barrel.id}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['menu_items'], [])

    def test_requires_identity(self):
        self.client.credentials()
        response = self.client.get(reverse('restaurants'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
