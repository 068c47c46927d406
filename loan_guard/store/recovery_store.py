"""JSON file store for partially unwound reserve positions."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from ..models import PendingUnwind, WithdrawMode

logger = logging.getLogger(__name__)


class RecoveryStore:
    """One JSON document mapping lower-cased owner address → pending unwind."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            content = f.read().strip()
        return json.loads(content) if content else {}

    def _write_all(self, data: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def load(self, owner: str) -> PendingUnwind | None:
        entry = self._read_all().get(owner.lower())
        if entry is None:
            return None
        return PendingUnwind(
            owner=entry["owner"],
            withdraw_mode=WithdrawMode(entry["withdraw_mode"]),
            plan_kind=entry["plan_kind"],
            unstaked_units=int(entry["unstaked_units"]),
            created_at=datetime.fromisoformat(entry["created_at"]),
        )

    def save(self, pending: PendingUnwind) -> None:
        data = self._read_all()
        data[pending.owner.lower()] = {
            "owner": pending.owner,
            "withdraw_mode": pending.withdraw_mode.value,
            "plan_kind": pending.plan_kind,
            # str keeps 18-decimal amounts exact for any JSON reader
            "unstaked_units": str(pending.unstaked_units),
            "created_at": pending.created_at.isoformat(),
        }
        self._write_all(data)
        logger.warning("Recorded pending unwind for %s in %s", pending.owner, self.path)

    def clear(self, owner: str) -> None:
        data = self._read_all()
        if data.pop(owner.lower(), None) is not None:
            self._write_all(data)
            logger.info("Cleared pending unwind for %s", owner)
