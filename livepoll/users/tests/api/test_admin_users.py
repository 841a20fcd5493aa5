import pytest
from rest_framework import status

from livepoll.polls.models import PollSession
from livepoll.users.models import User

pytestmark = pytest.mark.django_db

USERS_URL = "/api/v1/admin/users/"


def user_url(pk: int) -> str:
    return f"{USERS_URL}{pk}/"


def test_admin_lists_users_with_session_counts(admin_client, presenter):
    PollSession.objects.create(presenter=presenter, title="One", join_code="a2a2")
    PollSession.objects.create(presenter=presenter, title="Two", join_code="b3b3")

    r = admin_client.get(USERS_URL)

    assert r.status_code == status.HTTP_200_OK
    by_email = {u["email"]: u for u in r.data["users"]}
    assert by_email["presenter@example.com"]["sessionCount"] == 2  # noqa: PLR2004
    assert by_email["admin@example.com"]["sessionCount"] == 0
    assert "password" not in by_email["admin@example.com"]


def test_presenter_cannot_use_admin_api(presenter_client):
    r = presenter_client.get(USERS_URL)
    assert r.status_code == status.HTTP_403_FORBIDDEN


def test_admin_creates_user(admin_client):
    r = admin_client.post(
        USERS_URL,
        {"email": "made@example.com", "password": "secret1", "role": "admin"},
        format="json",
    )

    assert r.status_code == status.HTTP_201_CREATED, r.content
    created = User.objects.get(email="made@example.com")
    assert created.role == User.Role.ADMIN
    assert created.check_password("secret1")


def test_admin_create_requires_password(admin_client):
    r = admin_client.post(USERS_URL, {"email": "nopass@example.com"}, format="json")
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_role_change_invalidates_tokens(admin_client, presenter):
    before = presenter.token_version

    r = admin_client.put(user_url(presenter.pk), {"role": "admin"}, format="json")

    assert r.status_code == status.HTTP_200_OK, r.content
    presenter.refresh_from_db()
    assert presenter.role == User.Role.ADMIN
    assert presenter.token_version == before + 1


def test_name_change_keeps_tokens(admin_client, presenter):
    before = presenter.token_version

    r = admin_client.put(user_url(presenter.pk), {"firstName": "Renamed"}, format="json")

    assert r.status_code == status.HTTP_200_OK
    presenter.refresh_from_db()
    assert presenter.first_name == "Renamed"
    assert presenter.token_version == before


def test_admin_cannot_change_own_role(admin_client, admin):
    r = admin_client.put(user_url(admin.pk), {"role": "presenter"}, format="json")

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.data == {"error": "Cannot change your own role"}


def test_admin_cannot_delete_self(admin_client, admin):
    r = admin_client.delete(user_url(admin.pk))

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert User.objects.filter(pk=admin.pk).exists()


def test_admin_deletes_other_user(admin_client, presenter):
    r = admin_client.delete(user_url(presenter.pk))

    assert r.status_code == status.HTTP_200_OK
    assert not User.objects.filter(pk=presenter.pk).exists()


def test_admin_resets_password(admin_client, presenter):
    before = presenter.token_version

    r = admin_client.post(
        f"{user_url(presenter.pk)}reset-password/",
        {"newPassword": "fresh12"},
        format="json",
    )

    assert r.status_code == status.HTTP_200_OK
    presenter.refresh_from_db()
    assert presenter.check_password("fresh12")
    assert presenter.token_version == before + 1
