"""Catalog exceptions."""

from __future__ import annotations


class ItemNotFound(Exception):
    """A cart line references an item id that is not in the catalog."""

    code = "item_not_found"
    default_message = "One or more items are no longer available."

    def __init__(self, item_id: object = None, message: str | None = None) -> None:
        self.item_id = item_id
        super().__init__(message or self.default_message)
