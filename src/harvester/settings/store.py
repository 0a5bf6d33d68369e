from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Callable

from ..crawler.models import RootRef
from .models import HarvestSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> HarvestSettings:
        with self._lock:
            if not self._path.exists():
                return HarvestSettings()

            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Unreadable settings file [%s], using defaults: %s", self._path, exc)
                return HarvestSettings()

            if not isinstance(raw, dict):
                return HarvestSettings()

            return HarvestSettings.from_persist_dict(raw)

    def save(self, settings: HarvestSettings) -> None:
        payload = settings.to_persist_dict()

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self._path)

    def update(self, *, mutator: Callable[[HarvestSettings], HarvestSettings]) -> HarvestSettings:
        with self._lock:
            current = self.load()
            updated = mutator(current)
            if not isinstance(updated, HarvestSettings):
                raise TypeError("mutator must return HarvestSettings")
            self.save(updated)
            return updated

    def add_roots(self, refs: list[RootRef]) -> HarvestSettings:
        """Append roots not already configured (by Drive id)."""
        def mutate(settings: HarvestSettings) -> HarvestSettings:
            known = {r.drive_id for r in settings.roots}
            for ref in refs:
                if ref.drive_id and ref.drive_id not in known:
                    settings.roots.append(ref)
                    known.add(ref.drive_id)
            return settings

        return self.update(mutator=mutate)
