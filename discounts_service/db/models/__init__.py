from discounts_service.db.models.discounts import Discount
from discounts_service.db.models.outbox_entries import OutboxEntry
from discounts_service.db.models.redemptions import Redemption

__all__ = [
    "Discount",
    "OutboxEntry",
    "Redemption",
]
