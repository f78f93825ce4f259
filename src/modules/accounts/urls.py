"""Account URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.accounts.views import AccountMeView, RegisterView

urlpatterns = [
    path("auth/register/", RegisterView.as_view(), name="auth_register"),
    path("account/me/", AccountMeView.as_view(), name="account_me"),
]
