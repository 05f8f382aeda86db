from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
from uuid import UUID, uuid4

from discounts_service.db.models.discounts import DEFAULT_DEVICE_COOLDOWN_MINUTES, Discount
from discounts_service.db.repo.discounts_repo import DiscountsRepo
from discounts_service.db.session import SessionLocal, create_all, dispose_engine
from discounts_service.discounts.access_keys import generate_access_key


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a discount for local testing")
    parser.add_argument("--business-id", type=UUID, required=True)
    parser.add_argument("--access-key", help="explicit access key; generated when omitted")
    parser.add_argument("--prefix", default="")
    parser.add_argument("--title")
    parser.add_argument("--description")
    parser.add_argument(
        "--cooldown-minutes",
        type=int,
        default=DEFAULT_DEVICE_COOLDOWN_MINUTES,
        help="per-device cooldown; 0 disables",
    )
    parser.add_argument("--allow-repeat-email", action="store_true")
    parser.add_argument("--inactive", action="store_true")
    parser.add_argument("--create-tables", action="store_true")
    return parser.parse_args(argv)


def _validate_args(args: argparse.Namespace) -> None:
    if args.cooldown_minutes < 0:
        raise ValueError("--cooldown-minutes must not be negative")
    if args.access_key is not None and not args.access_key.strip():
        raise ValueError("--access-key must not be blank")


def _build_discount(args: argparse.Namespace, *, now_utc: datetime) -> Discount:
    prefix = args.prefix.strip().upper()
    if prefix and not prefix.endswith("-"):
        prefix = f"{prefix}-"
    access_key = args.access_key.strip() if args.access_key else generate_access_key(prefix=prefix)
    return Discount(
        id=uuid4(),
        access_key=access_key,
        business_id=args.business_id,
        title=args.title,
        description=args.description,
        per_device_cooldown_minutes=args.cooldown_minutes,
        per_email_once=not args.allow_repeat_email,
        active=not args.inactive,
        created_at=now_utc,
        updated_at=now_utc,
    )


async def _run(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _validate_args(args)
    discount = _build_discount(args, now_utc=datetime.now(timezone.utc))

    try:
        if args.create_tables:
            await create_all()
        async with SessionLocal.begin() as session:
            if await DiscountsRepo.get_by_access_key(session, discount.access_key) is not None:
                raise ValueError(f"access key already exists: {discount.access_key}")
            await DiscountsRepo.create(session, discount=discount)
    finally:
        await dispose_engine()

    print(f"discount_id={discount.id} access_key={discount.access_key}")  # noqa: T201
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(_run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
