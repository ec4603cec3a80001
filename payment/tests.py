from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from draftbar.authentication import issue_token
from restaurants.models import Restaurant
from tabs.models import Tab
from .models import PaymentMethod
from .store import belongs_to_user


class PaymentMethodStoreTests(TestCase):
    """Ownership lookups used when closing a tab"""

    def setUp(self):
        User = get_user_model()
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.bob = User.objects.create_user(username='bob', password='password123')
        self.card = PaymentMethod.objects.create(user=self.alice, card_brand='Visa', last4='1111')

    def test_owner(self):
        self.assertTrue(belongs_to_user(self.card.id, self.alice.id))

    def test_someone_else(self):
        self.assertFalse(belongs_to_user(self.card.id, self.bob.id))

    def test_missing(self):
        self.assertFalse(belongs_to_user(9999, self.alice.id))
        self.assertFalse(belongs_to_user(None, self.alice.id))


class PaymentMethodAPITests(APITestCase):
    """Storing and listing cards"""

    def setUp(self):
        User = get_user_model()
        self.alice = User.objects.create_user(username='alice', password='password123')
        self.bob = User.objects.create_user(username='bob', password='password123')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(self.alice)}")
        self.url = reverse('payment_methods')
        self.card_data = {
            'card_number': '4111 1111 1111 1111',
            'card_cvc': '123',
            'card_holder_name': 'Alice Brown',
            'card_brand': 'Visa',
            'card_exp_month': 12,
            'card_exp_year': 2030,
            'is_default': True,
        }

    def test_store_card_keeps_last_four_digits(self):
        response = self.client.post(self.url, self.card_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['last4'], '1111')
        self.assertNotIn('card_number', response.data)
        self.assertNotIn('card_cvc', response.data)

        method = PaymentMethod.objects.get(id=response.data['id'])
        self.assertEqual(method.user, self.alice)
        self.assertTrue(method.is_default)

    def test_new_default_replaces_old_one(self):
        old = PaymentMethod.objects.create(user=self.alice, last4='0005', is_default=True)
        bobs = PaymentMethod.objects.create(user=self.bob, last4='4242', is_default=True)

        self.client.post(self.url, self.card_data, format='json')

        old.refresh_from_db()
        bobs.refresh_from_db()
        self.assertFalse(old.is_default)
        self.assertTrue(bobs.is_default)

    def test_invalid_card_details(self):
        invalid = [
            {'card_number': '4111'},
            {'card_number': '4111-1111-1111-111x'},
            {'card_cvc': '12'},
            {'card_exp_month': 13},
        ]
        for override in invalid:
            with self.subTest(override=override):
                response = self.client.post(self.url, {**self.card_data, **override}, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['kind'], 'validation_error')
                self.assertIn(next(iter(override)), response.data['fields'])
        self.assertFalse(PaymentMethod.objects.exists())

    def test_list_only_my_cards_default_first(self):
        PaymentMethod.objects.create(user=self.alice, last4='0005')
        default = PaymentMethod.objects.create(user=self.alice, last4='1111', is_default=True)
        PaymentMethod.objects.create(user=self.bob, last4='4242')

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        methods = response.data['payment_methods']
        self.assertEqual([m['last4'] for m in methods], ['1111', '0005'])
        self.assertEqual(methods[0]['id'], default.id)

    def test_requires_authentication(self):
        self.client.credentials()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_delete_my_card(self):
        card = PaymentMethod.objects.create(user=self.alice, last4='1111', is_default=True)

        response = self.client.delete(reverse('payment_method_detail', kwargs={'payment_method_id': card.id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Payment method deleted successfully')
        self.assertFalse(PaymentMethod.objects.filter(id=card.id).exists())

    def test_cannot_delete_someone_elses_card(self):
        bobs = PaymentMethod.objects.create(user=self.bob, last4='4242')

        response = self.client.delete(reverse('payment_method_detail', kwargs={'payment_method_id': bobs.id}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['kind'], 'not_found')
        self.assertTrue(PaymentMethod.objects.filter(id=bobs.id).exists())

        response = self.client.delete(reverse('payment_method_detail', kwargs={'payment_method_id': 9999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_card_recorded_on_a_closed_tab_is_kept(self):
        card = PaymentMethod.objects.create(user=self.alice, last4='1111')
        restaurant = Restaurant.objects.create(name="The Tap Room", address="12 Brewery Lane")
        tab = Tab.objects.create(
            user=self.alice, restaurant=restaurant, payment_method=card,
            is_open=False, close_time=timezone.now()
        )

        response = self.client.delete(reverse('payment_method_detail', kwargs={'payment_method_id': card.id}))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'conflict')
        tab.refresh_from_db()
        self.assertEqual(tab.payment_method_id, card.id)
