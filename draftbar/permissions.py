from rest_framework.permissions import BasePermission


class HasVerifiedIdentity(BasePermission):
    """
    Allows access only to callers resolved to an active user
    """

    def has_permission(self, request, view):
        # BearerTokenAuthentication sets request.user on success;
        # anonymous requests carry no user at all
        user = getattr(request, 'user', None)
        return user is not None and user.is_authenticated
