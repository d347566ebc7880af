"""
Per-item outcomes collected by each pipeline stage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..db import utcnow


@dataclass
class ItemResult:
    """Outcome for one product (or one manufacturer fetch)."""
    key: str
    ok: bool
    action: Optional[str] = None
    error: Optional[str] = None
    skipped: bool = False


@dataclass
class StageResult:
    """Everything a stage did, in order. Stages never raise; they report here."""
    stage: str
    items: List[ItemResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def record_success(self, key: str, action: Optional[str] = None) -> ItemResult:
        item = ItemResult(key=key, ok=True, action=action)
        self.items.append(item)
        return item

    def record_failure(self, key: str, error: str) -> ItemResult:
        item = ItemResult(key=key, ok=False, error=error)
        self.items.append(item)
        return item

    def record_skip(self, key: str, reason: str) -> ItemResult:
        item = ItemResult(key=key, ok=True, action="skipped", error=reason, skipped=True)
        self.items.append(item)
        return item

    def finish(self) -> "StageResult":
        self.finished_at = utcnow()
        return self

    def get(self, key: str) -> Optional[ItemResult]:
        for item in reversed(self.items):
            if item.key == key:
                return item
        return None

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.ok and not i.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if not i.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for i in self.items if i.skipped)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def errors(self) -> Dict[str, str]:
        return {i.key: i.error for i in self.items if not i.ok}

    def summary(self) -> str:
        return (
            f"{self.stage}: {self.succeeded} succeeded, "
            f"{self.failed} failed, {self.skipped} skipped"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": self.errors,
        }
