"""Catalog item model.

The catalog is owned by the shop's CRUD tooling; order checkout only reads
from it.  Prices are stored as integer minor units (pence) so that line
totals never go through floating point.
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models


class Item(models.Model):
    """A sellable catalog entry.

    ``id`` is a positive integer (auto increment) because cart lines refer
    to items by that id.
    """

    id = models.BigAutoField(primary_key=True)
    name = models.CharField(max_length=160)
    description = models.TextField(blank=True, default="")
    price_cents = models.PositiveIntegerField(validators=[MinValueValidator(0)])
    in_stock = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "catalog_items"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.price_cents}p)"
