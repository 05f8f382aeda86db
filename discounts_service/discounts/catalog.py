from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from discounts_service.db.models.discounts import Discount
from discounts_service.db.repo.discounts_repo import DiscountsRepo
from discounts_service.discounts.errors import DiscountNotFoundError


class DiscountCatalog:
    @staticmethod
    async def resolve(session: AsyncSession, *, access_key: str) -> Discount:
        """Return the active discount for ``access_key``.

        Inactive and unknown keys are indistinguishable to callers.
        """
        discount = await DiscountsRepo.get_active_by_access_key(session, access_key)
        if discount is None:
            raise DiscountNotFoundError
        return discount
