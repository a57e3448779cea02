"""
Authentication backend for e-mail + password login.

Wallet users have no password; they are resolved directly by the auth
service.  E-mail users go through Django's ``authenticate()`` so that the
configured password hashers do the verification.

This backend is registered in ``settings.AUTHENTICATION_BACKENDS``.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()


class EmailAuthBackend(ModelBackend):
    """
    Authenticate against the (lowercased) ``email`` field.

    Called as ``authenticate(request, email=..., password=...)``.
    """

    def authenticate(self, request, email=None, password=None, **kwargs):
        if email is None or password is None:
            return None

        try:
            user = User.objects.get(email=email.strip().lower())
        except User.DoesNotExist:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
