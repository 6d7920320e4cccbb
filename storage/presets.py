"""User-owned material presets, persisted alongside the rating log."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from storage.json_store import JsonFileStore
from studio.models import MaterialPreset, MaterialSettings

logger = logging.getLogger(__name__)

PRESETS_KEY = "presets"


class PresetLibrary:
    def __init__(self, store: JsonFileStore, key: str = PRESETS_KEY) -> None:
        self._store = store
        self._key = key
        self._presets: list[MaterialPreset] = []

    def load(self) -> list[MaterialPreset]:
        presets: list[MaterialPreset] = []
        for raw in self._store.load(self._key, default=[]) or []:
            try:
                presets.append(MaterialPreset.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed preset: %r", raw)
        self._presets = presets
        return self.presets

    def save(self) -> None:
        self._store.save(self._key, [p.model_dump(mode="json") for p in self._presets])

    @property
    def presets(self) -> list[MaterialPreset]:
        return list(self._presets)

    def get(self, preset_id: str) -> MaterialPreset | None:
        return next((p for p in self._presets if p.id == preset_id), None)

    def add(self, name: str, material: MaterialSettings) -> MaterialPreset:
        name = name.strip()
        if not name:
            raise ValueError("Preset name must not be empty")
        preset = MaterialPreset(name=name, material=material)
        self._presets.append(preset)
        self.save()
        logger.info("Saved preset %r (%s)", preset.name, preset.material_type)
        return preset

    def remove(self, preset_id: str) -> bool:
        preset = self.get(preset_id)
        if preset is None:
            return False
        self._presets.remove(preset)
        self.save()
        return True
