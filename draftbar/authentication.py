from django.conf import settings
from django.contrib.auth import get_user_model
from django.core import signing
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed


def issue_token(user):
    """Sign a bearer token carrying the user's id."""
    return signing.dumps({'user_id': user.pk}, salt=settings.AUTH_TOKEN_SALT)


def read_token(token):
    """
    Return the user id carried by a bearer token.

    Raises AuthenticationFailed for tampered, expired or malformed tokens.
    """
    try:
        payload = signing.loads(
            token,
            salt=settings.AUTH_TOKEN_SALT,
            max_age=settings.AUTH_TOKEN_MAX_AGE,
        )
    except signing.SignatureExpired:
        raise AuthenticationFailed('Token expired')
    except signing.BadSignature:
        raise AuthenticationFailed('Invalid token')

    user_id = payload.get('user_id') if isinstance(payload, dict) else None
    if user_id is None:
        raise AuthenticationFailed('Invalid token payload')
    return user_id


class BearerTokenAuthentication(BaseAuthentication):
    """
    Signed token authentication using the Authorization: Bearer header
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        header = request.META.get('HTTP_AUTHORIZATION')

        if not header:
            return None

        parts = header.split()
        if len(parts) != 2 or parts[0] != self.keyword:
            raise AuthenticationFailed('Malformed Authorization header')

        user_id = read_token(parts[1])

        User = get_user_model()
        try:
            user = User.objects.get(pk=user_id, is_active=True)
        except User.DoesNotExist:
            raise AuthenticationFailed('User not found')

        return (user, parts[1])

    def authenticate_header(self, request):
        return self.keyword
