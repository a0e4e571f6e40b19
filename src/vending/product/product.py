"""Product aggregate — the sellable item cards are stocked against.

Catalogue management lives outside this context; the purchase flow only
reads a product's name, price and availability flag.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String

from vending.domain import vending
from vending.utils.clock import utcnow


@vending.aggregate
class Product:
    name = String(required=True, max_length=200)
    price = Float(required=True)
    active = Boolean(default=True)
    created_at = DateTime(default=utcnow)

    @classmethod
    def list_for_sale(cls, name: str, price: float):
        if price is None or price <= 0:
            raise ValidationError({"price": ["Price must be positive"]})
        return cls(name=name, price=price, active=True)
