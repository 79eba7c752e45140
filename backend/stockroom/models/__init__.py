"""All models must be imported here so SQLAlchemy registers them."""

from stockroom.models.core import Category, ImportProfileRecord, Item, Supplier  # noqa: F401
