"""
OrderItem model for the order fulfillment workflow.
"""

import uuid
from decimal import Decimal, ROUND_HALF_UP
from django.db import models

CENT = Decimal('0.01')


def line_total(price_per_unit, quantity) -> Decimal:
    """Item total rounded to two decimals."""
    return (Decimal(price_per_unit) * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderItem(models.Model):
    """A line item of an order. Priced at creation and never left unpriced."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'Order',
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Order this item belongs to"
    )

    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True)

    quantity = models.PositiveIntegerField(help_text="Units ordered")
    price_per_unit = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="price_per_unit * quantity"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'sku']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name='of_item_quantity_positive'),
            models.CheckConstraint(condition=models.Q(price_per_unit__gt=0), name='of_item_price_positive'),
        ]

    def __str__(self):
        return f"{self.sku or self.product_name} x {self.quantity}"

    def save(self, *args, **kwargs):
        """Override save to keep the item total consistent with its price."""
        self.total_price = line_total(self.price_per_unit, self.quantity)
        super().save(*args, **kwargs)
