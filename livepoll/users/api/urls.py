from django.urls import path

from .views import ChangePasswordView
from .views import LoginView
from .views import ProfileView
from .views import RegisterView
from .views import TokenVersionRefreshView

urlpatterns = [
    path("register/", RegisterView.as_view(), name="auth-register"),
    path("login/", LoginView.as_view(), name="auth-login"),
    path("jwt/refresh/", TokenVersionRefreshView.as_view(), name="jwt-refresh"),
    path("profile/", ProfileView.as_view(), name="auth-profile"),
    path("change-password/", ChangePasswordView.as_view(), name="auth-change-password"),
]
