from django.contrib.auth import get_user_model
from django.core import signing
from django.test import TestCase, override_settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from .authentication import BearerTokenAuthentication, issue_token, read_token


class BearerTokenTests(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(username='alice', password='password123')
        self.auth = BearerTokenAuthentication()
        self.factory = APIRequestFactory()

    def test_round_trip(self):
        token = issue_token(self.user)
        request = self.factory.get('/api/tabs/', HTTP_AUTHORIZATION=f"Bearer {token}")

        user, auth = self.auth.authenticate(request)

        self.assertEqual(user, self.user)
        self.assertEqual(auth, token)

    def test_no_header_is_anonymous(self):
        self.assertIsNone(self.auth.authenticate(self.factory.get('/api/tabs/')))

    def test_foreign_salt_rejected(self):
        token = signing.dumps({'user_id': self.user.pk}, salt='something.else')
        with self.assertRaises(AuthenticationFailed):
            read_token(token)

    def test_payload_without_user(self):
        token = signing.dumps({'sub': self.user.pk}, salt='draftbar.auth')
        with self.assertRaises(AuthenticationFailed):
            read_token(token)

    @override_settings(AUTH_TOKEN_MAX_AGE=-1)
    def test_expired(self):
        token = issue_token(self.user)
        with self.assertRaises(AuthenticationFailed) as ctx:
            read_token(token)
        self.assertEqual(str(ctx.exception.detail), 'Token expired')

    def test_deleted_user(self):
        token = issue_token(self.user)
        self.user.delete()
        request = self.factory.get('/api/tabs/', HTTP_AUTHORIZATION=f"Bearer {token}")
        with self.assertRaises(AuthenticationFailed):
            self.auth.authenticate(request)
