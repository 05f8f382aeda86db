from discounts_service.db.repo.discounts_repo import DiscountsRepo
from discounts_service.db.repo.outbox_repo import OutboxRepo
from discounts_service.db.repo.redemptions_repo import RedemptionsRepo

__all__ = [
    "DiscountsRepo",
    "OutboxRepo",
    "RedemptionsRepo",
]
