from django.contrib.auth import forms as admin_forms

from .models import User


class UserAdminChangeForm(admin_forms.UserChangeForm):
    class Meta(admin_forms.UserChangeForm.Meta):  # type: ignore[name-defined]
        model = User
        fields = "__all__"


class UserAdminCreationForm(admin_forms.UserCreationForm):
    """Form for creating accounts in the Admin Area; email is the identifier."""

    class Meta(admin_forms.UserCreationForm.Meta):  # type: ignore[name-defined]
        model = User
        fields = ("email", "role")
        error_messages = {
            "email": {"unique": "This email has already been taken."},
        }
