from discounts_service.workers.tasks.outbox_dispatch import run_outbox_drain

__all__ = [
    "run_outbox_drain",
]
