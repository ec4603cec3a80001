from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase

from tabs.exceptions import ForbiddenError, NotFoundError
from tabs.policy import AccessPolicy, Identity, ViewScope, identity_for

from .helpers import make_restaurant, make_user


class AccessPolicyTests(SimpleTestCase):

    def setUp(self):
        self.policy = AccessPolicy()
        self.tab = SimpleNamespace(id=1, user_id=100, restaurant_id=10)
        self.owner = Identity(user_id=100)
        self.manager = Identity(user_id=200, managed_restaurant_ids=frozenset({10}))
        self.other_manager = Identity(user_id=300, managed_restaurant_ids=frozenset({20}))
        self.stranger = Identity(user_id=400)

    def test_view_scope(self):
        self.assertEqual(self.policy.view_scope(self.owner, self.tab), ViewScope.CUSTOMER)
        self.assertEqual(self.policy.view_scope(self.manager, self.tab), ViewScope.MANAGER)

    def test_view_scope_hides_tab_from_others(self):
        for identity in (self.stranger, self.other_manager):
            with self.subTest(identity=identity):
                with self.assertRaises(NotFoundError):
                    self.policy.view_scope(identity, self.tab)

    def test_owner_sees_customer_view_even_when_managing(self):
        owner_manager = Identity(user_id=100, managed_restaurant_ids=frozenset({10}))
        self.assertEqual(self.policy.view_scope(owner_manager, self.tab), ViewScope.CUSTOMER)

    def test_only_owner_mutates(self):
        self.policy.authorize_owner(self.owner, self.tab)
        for identity in (self.manager, self.stranger):
            with self.subTest(identity=identity):
                with self.assertRaises(NotFoundError):
                    self.policy.authorize_owner(identity, self.tab)

    def test_only_restaurant_manager_serves(self):
        self.policy.authorize_serve(self.manager, self.tab)
        with self.assertRaises(ForbiddenError):
            self.policy.authorize_serve(self.owner, self.tab)

    def test_serve_hides_tab_from_others(self):
        for identity in (self.other_manager, self.stranger):
            with self.subTest(identity=identity):
                with self.assertRaises(NotFoundError):
                    self.policy.authorize_serve(identity, self.tab)

    def test_restaurant_and_manager_checks(self):
        self.policy.authorize_restaurant(self.manager, 10)
        self.policy.authorize_manager(self.manager)
        with self.assertRaises(ForbiddenError):
            self.policy.authorize_restaurant(self.other_manager, 10)
        with self.assertRaises(ForbiddenError):
            self.policy.authorize_manager(self.owner)


class IdentityForTests(TestCase):

    def test_collects_managed_restaurants(self):
        manager = make_user('john.smith')
        customer = make_user('alice')
        first = make_restaurant("The Tap Room", manager=manager)
        second = make_restaurant("Hop & Barrel", manager=manager)
        make_restaurant("Draft Bar Riverside")

        identity = identity_for(manager)
        self.assertEqual(identity.user_id, manager.pk)
        self.assertEqual(identity.managed_restaurant_ids, frozenset({first.id, second.id}))
        self.assertTrue(identity.is_manager)

        self.assertFalse(identity_for(customer).is_manager)
