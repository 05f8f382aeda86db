from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(slots=True)
class AdmissionResult:
    redemption_id: UUID
    idempotent_replay: bool
