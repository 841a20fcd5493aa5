from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class EmailBackend(ModelBackend):
    """Case-insensitive email login."""

    def authenticate(self, request, username=None, password=None, **kwargs):
        usermodel = get_user_model()
        email = kwargs.get("email", username)
        if email is None or password is None:
            return None
        try:
            user = usermodel.objects.get(email__iexact=email)
        except usermodel.DoesNotExist:
            # Run the hasher once to keep timing similar for unknown emails.
            usermodel().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None
