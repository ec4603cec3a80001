from datetime import time
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from payment.models import PaymentMethod
from restaurants.models import MenuItem, Restaurant, RestaurantMenuItem
from tabs.models import Tab


MANAGERS = [
    ('john.smith', 'John', 'Smith'),
    ('sarah.johnson', 'Sarah', 'Johnson'),
    ('mike.davis', 'Mike', 'Davis'),
]

CUSTOMERS = [
    ('alice', 'Alice', 'Brown'),
    ('bob', 'Bob', 'Wilson'),
    ('charlie', 'Charlie', 'Taylor'),
]

RESTAURANTS = [
    {
        "name": "The Tap Room",
        "slogan": "Twenty lines, zero regrets",
        "address": "12 Brewery Lane",
        "open_time": time(12, 0),
        "close_time": time(23, 0),
    },
    {
        "name": "Hop & Barrel",
        "slogan": "Cask ales since yesterday",
        "address": "4 Market Square",
        "open_time": time(16, 0),
        "close_time": time(1, 0),
    },
    {
        "name": "Draft Bar Riverside",
        "slogan": "Pints by the water",
        "address": "88 Quay Street",
        "open_time": time(11, 0),
        "close_time": time(22, 30),
    },
]

MENU_ITEMS = [
    {"type": "beer", "name": "Hazy IPA", "abv": Decimal('6.50'), "price": Decimal('8.50')},
    {"type": "beer", "name": "Pilsner", "abv": Decimal('4.80'), "price": Decimal('6.00')},
    {"type": "beer", "name": "Oatmeal Stout", "abv": Decimal('5.20'), "price": Decimal('7.25')},
    {"type": "cider", "name": "Dry Cider", "abv": Decimal('5.00'), "price": Decimal('6.75')},
    {"type": "food", "name": "Pretzel Bites", "abv": None, "price": Decimal('9.00')},
    {"type": "food", "name": "Loaded Fries", "abv": None, "price": Decimal('11.50')},
    {"type": "soft", "name": "Ginger Beer", "abv": None, "price": Decimal('3.50')},
]

# menu item names offered at each restaurant, by restaurant index
MENU_MAPPINGS = [
    ["Hazy IPA", "Pilsner", "Oatmeal Stout", "Pretzel Bites", "Ginger Beer"],
    ["Hazy IPA", "Dry Cider", "Loaded Fries", "Ginger Beer"],
    ["Pilsner", "Oatmeal Stout", "Dry Cider", "Pretzel Bites", "Loaded Fries"],
]


class Command(BaseCommand):
    help = 'Seed the database with managers, customers, restaurants and menus'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing restaurants, menus, tabs and seeded users before seeding',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        User = get_user_model()

        if options['clear']:
            self.stdout.write('Clearing existing data...')
            Tab.objects.all().delete()
            RestaurantMenuItem.objects.all().delete()
            Restaurant.objects.all().delete()
            MenuItem.objects.all().delete()
            seeded = [username for username, _, _ in MANAGERS + CUSTOMERS]
            User.objects.filter(username__in=seeded).delete()
            self.stdout.write(
                self.style.SUCCESS('Successfully cleared data')
            )

        managers = []
        for username, first_name, last_name in MANAGERS:
            user = self._user(User, username, first_name, last_name, f"{username}@draftbar.com", 'manager123')
            managers.append(user)

        for username, first_name, last_name in CUSTOMERS:
            user = self._user(User, username, first_name, last_name, f"{username}@example.com", 'password123')
            if not user.payment_methods.exists():
                PaymentMethod.objects.create(
                    user=user,
                    card_holder_name=f"{first_name} {last_name}",
                    card_brand='Visa',
                    last4='1111',
                    card_exp_month=12,
                    card_exp_year=2026,
                    is_default=True,
                )
                self.stdout.write(f"Created payment method for {user.email}")

        menu = {}
        for item_data in MENU_ITEMS:
            item, created = MenuItem.objects.get_or_create(
                name=item_data['name'],
                defaults={
                    'type': item_data['type'],
                    'abv': item_data['abv'],
                    'price': item_data['price'],
                }
            )
            menu[item.name] = item
            if created:
                self.stdout.write(f"Created: {item.name} - {item.price}")

        for index, restaurant_data in enumerate(RESTAURANTS):
            # cycle through the managers
            restaurant, created = Restaurant.objects.get_or_create(
                name=restaurant_data['name'],
                defaults={**restaurant_data, 'manager': managers[index % len(managers)]}
            )
            if created:
                self.stdout.write(f"Created restaurant: {restaurant.name} (manager {restaurant.manager.username})")
            for name in MENU_MAPPINGS[index]:
                RestaurantMenuItem.objects.get_or_create(restaurant=restaurant, menu_item=menu[name])

        self.stdout.write("\nRestaurants in database:")
        self.stdout.write("-" * 60)
        for restaurant in Restaurant.objects.select_related('manager').order_by('id'):
            manager = restaurant.manager.username if restaurant.manager else '-'
            self.stdout.write(
                f"ID: {restaurant.id:2d} | {restaurant.name:22s} | manager: {manager:14s} | "
                f"{restaurant.menu_entries.count()} menu items"
            )

    def _user(self, User, username, first_name, last_name, email, password):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={'first_name': first_name, 'last_name': last_name, 'email': email}
        )
        if created:
            user.set_password(password)
            user.save()
            self.stdout.write(f"Created user: {first_name} {last_name} ({email})")
        return user
