from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _

from .managers import UserManager


class User(AbstractUser):
    """
    Presenter or admin account. Audience members never have one; they join
    sessions anonymously.
    """

    class Role(models.TextChoices):
        PRESENTER = "presenter", _("Presenter")
        ADMIN = "admin", _("Admin")

    username = None  # type: ignore[assignment]
    email = EmailField(_("email address"), unique=True)
    first_name = CharField(_("First Name"), max_length=100, blank=True)
    last_name = CharField(_("Last Name"), max_length=100, blank=True)
    role = CharField(
        _("Role"),
        max_length=20,
        choices=Role.choices,
        default=Role.PRESENTER,
    )
    # Bumped on password or role change; access tokens carry the value they
    # were issued with.
    token_version = models.PositiveIntegerField(default=0)
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.email

    @property
    def is_admin_role(self) -> bool:
        return self.role == self.Role.ADMIN

    def invalidate_tokens(self) -> None:
        """Supersede every token issued so far. Caller saves."""
        self.token_version += 1
