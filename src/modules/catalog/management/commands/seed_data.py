from __future__ import annotations

from decouple import config
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.accounts.models import Account
from modules.catalog.models import Item

DEFAULT_ITEMS = [
    ("Dog Collar", "Adjustable nylon collar.", 1299),
    ("Beef Chew Bone", "Long-lasting natural chew.", 799),
    ("Cat Collar", "Breakaway collar with bell.", 899),
    ("Salmon Treats", "Freeze-dried salmon bites.", 499),
]


class Command(BaseCommand):
    help = "Seed the catalog and the shop admin account."

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding catalog...")
        items_created = self._seed_items()
        admin_created = self._seed_admin()

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: items={items_created}, admin_created={admin_created}"
            )
        )

    def _seed_items(self) -> int:
        if Item.objects.exists():
            self.stdout.write(self.style.WARNING("Catalog already populated; skipping."))
            return 0
        for name, description, price_cents in DEFAULT_ITEMS:
            Item.objects.create(name=name, description=description, price_cents=price_cents)
        return len(DEFAULT_ITEMS)

    def _seed_admin(self) -> bool:
        email = config("ADMIN_EMAIL", default="").strip().lower()
        password = config("ADMIN_PASSWORD", default="")
        if not email or not password:
            self.stdout.write(
                self.style.WARNING("ADMIN_EMAIL/ADMIN_PASSWORD not set; no admin created.")
            )
            return False

        User = get_user_model()
        if User.objects.filter(email__iexact=email).exists():
            return False
        admin = User.objects.create_superuser(username=email, email=email, password=password)
        Account.objects.create(user=admin, name="Admin")
        return True
