import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.accounts.models import Account
from modules.catalog.models import Item

pytestmark = pytest.mark.integration


class TestSeedData:
    def test_seeds_catalog_once(self, monkeypatch):
        monkeypatch.delenv("ADMIN_EMAIL", raising=False)
        monkeypatch.delenv("ADMIN_PASSWORD", raising=False)

        call_command("seed_data")
        call_command("seed_data")

        assert Item.objects.count() == 4
        assert Item.objects.get(name="Beef Chew Bone").price_cents == 799

    def test_creates_admin_from_environment(self, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAIL", "Owner@Example.com")
        monkeypatch.setenv("ADMIN_PASSWORD", "change-me-please")

        call_command("seed_data")

        admin = get_user_model().objects.get(email="owner@example.com")
        assert admin.is_staff and admin.is_superuser
        assert admin.check_password("change-me-please")
        assert Account.objects.filter(user=admin).exists()

    def test_existing_admin_left_alone(self, monkeypatch, admin_user):
        monkeypatch.setenv("ADMIN_EMAIL", admin_user.email)
        monkeypatch.setenv("ADMIN_PASSWORD", "another-password")

        call_command("seed_data")

        admin_user.refresh_from_db()
        assert admin_user.check_password("admin-pass")
