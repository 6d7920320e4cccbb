"""Studio data models.

``Job`` is the unit the queue works on: an uploaded product photo, a frozen
snapshot of the rendering configuration it was submitted with, and its
lifecycle state.

``GenerationConfig`` is immutable.  Global settings are replaced, never
edited in place, so a job's snapshot can not drift after submission.

Material settings are a discriminated union on ``type``; each variant only
carries the parameters that make sense for that material, so e.g. a texture
roughness can never be attached to a silver job.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from studio.config import GROUNDED_THRESHOLD
from studio.errors import FailureKind

ShadowIntensity = Literal["soft", "hard", "long"]
AspectRatio = Literal["1:1", "16:9", "4:3", "9:16", "3:4"]
PatinaVariation = Literal["subtle", "standard", "extreme"]
MaterialType = Literal["standard", "metal", "silver", "patina", "ammonia", "stone", "texture"]

SHADOW_INTENSITIES: tuple[str, ...] = ("soft", "hard", "long")
ASPECT_RATIOS: tuple[str, ...] = ("1:1", "16:9", "4:3", "9:16", "3:4")
PATINA_VARIATIONS: tuple[str, ...] = ("subtle", "standard", "extreme")
MATERIAL_TYPES: tuple[str, ...] = (
    "standard", "metal", "silver", "patina", "ammonia", "stone", "texture",
)

# Materials whose variant carries patina_intensity / patina_variation
PATINA_MATERIALS = frozenset({"metal", "silver", "patina", "ammonia"})


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def new_job_id() -> str:
    return uuid4().hex


class JobStatus(str, Enum):
    QUEUED = "queued"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.GENERATING})


# ── Material variants ───────────────────────────────────────────────────────


class _Material(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class StandardMaterial(_Material):
    """Generic product: plastic, ceramic, electronics, packaging."""

    type: Literal["standard"] = "standard"


class StoneMaterial(_Material):
    type: Literal["stone"] = "stone"


class TextureMaterial(_Material):
    """Wood, fabric, leather and glass. ``texture_intensity`` is roughness."""

    type: Literal["texture"] = "texture"
    texture_intensity: int = Field(50, ge=0, le=100)


class _AgedMetal(_Material):
    patina_intensity: int = Field(0, ge=0, le=100)  # % coverage
    patina_variation: PatinaVariation = "standard"


class MetalMaterial(_AgedMetal):
    type: Literal["metal"] = "metal"


class SilverMaterial(_AgedMetal):
    """Silver family; the patina fields describe tarnish."""

    type: Literal["silver"] = "silver"


class PatinaMaterial(_AgedMetal):
    type: Literal["patina"] = "patina"
    patina_intensity: int = Field(50, ge=0, le=100)


class AmmoniaMaterial(_AgedMetal):
    """Ammonia / salt fuming on copper alloys."""

    type: Literal["ammonia"] = "ammonia"
    patina_intensity: int = Field(50, ge=0, le=100)


MaterialSettings = Annotated[
    Union[
        StandardMaterial,
        MetalMaterial,
        SilverMaterial,
        PatinaMaterial,
        AmmoniaMaterial,
        StoneMaterial,
        TextureMaterial,
    ],
    Field(discriminator="type"),
]

_MATERIAL_CLASSES: dict[str, type[_Material]] = {
    "standard": StandardMaterial,
    "metal": MetalMaterial,
    "silver": SilverMaterial,
    "patina": PatinaMaterial,
    "ammonia": AmmoniaMaterial,
    "stone": StoneMaterial,
    "texture": TextureMaterial,
}


def make_material(material_type: str, **params: Any) -> MaterialSettings:
    """Build the variant for ``material_type`` with the given parameters.

    Raises ``ValueError`` for an unknown type and pydantic's
    ``ValidationError`` for parameters the variant does not accept.
    """
    cls = _MATERIAL_CLASSES.get(material_type)
    if cls is None:
        raise ValueError(f"Unknown material type: {material_type!r}")
    return cls(**params)  # type: ignore[return-value]


def switch_material(current: MaterialSettings, material_type: str) -> MaterialSettings:
    """Return a ``material_type`` variant, carrying patina settings across the metal family."""
    if current.type == material_type:
        return current
    if current.type in PATINA_MATERIALS and material_type in PATINA_MATERIALS:
        return make_material(
            material_type,
            patina_intensity=current.patina_intensity,  # type: ignore[union-attr]
            patina_variation=current.patina_variation,  # type: ignore[union-attr]
        )
    return make_material(material_type)


# ── Generation config ───────────────────────────────────────────────────────


class GenerationConfig(BaseModel):
    """Snapshot of every rendering directive applied to one job."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    material: MaterialSettings = Field(default_factory=StandardMaterial)
    shadow_angle: int = Field(135, ge=0, le=360)  # 0 = top, 90 = right
    shadow_intensity: ShadowIntensity = "soft"
    elevation: int = Field(0, ge=0, le=100)  # distance to background, %
    aspect_ratio: AspectRatio = "1:1"
    enhanced_lighting: bool = False
    resolution: str = "2K"

    @property
    def material_type(self) -> str:
        return self.material.type

    @property
    def is_grounded(self) -> bool:
        return self.elevation <= GROUNDED_THRESHOLD

    def with_changes(self, **changes: Any) -> GenerationConfig:
        """Return a validated copy with ``changes`` applied."""
        data = self.model_dump()
        data.update(changes)
        return GenerationConfig.model_validate(data)


# ── Image payloads ──────────────────────────────────────────────────────────


class ImagePayload(BaseModel):
    """Raw image bytes plus their declared media type."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    media_type: str

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    @classmethod
    def from_data_uri(cls, uri: str) -> ImagePayload:
        """Parse ``data:<type>;base64,<data>``; the media type defaults to PNG."""
        meta, sep, encoded = uri.partition(",")
        if not sep or not meta.startswith("data:"):
            raise ValueError("Not a data URI")
        media_type = meta[len("data:"):].split(";", 1)[0] or "image/png"
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Malformed data URI payload: {exc}") from exc
        return cls(data=data, media_type=media_type)


# ── Job ─────────────────────────────────────────────────────────────────────


class Job(BaseModel):
    id: str = Field(default_factory=new_job_id)
    filename: str = ""
    preview: str  # data URI of the original upload, kept for display and resubmission
    source: ImagePayload | None = None  # purged once the job reaches a terminal state
    config: GenerationConfig
    status: JobStatus = JobStatus.QUEUED
    result: ImagePayload | None = None
    rating: int | None = None
    error: str | None = None
    failure_kind: FailureKind | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_upload(
        cls,
        filename: str,
        data: bytes,
        media_type: str,
        config: GenerationConfig,
    ) -> Job:
        source = ImagePayload(data=data, media_type=media_type)
        return cls(
            filename=filename,
            preview=source.to_data_uri(),
            source=source,
            config=config,
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def touch(self) -> None:
        self.updated_at = _utcnow()


# ── Ratings & presets ───────────────────────────────────────────────────────


class RatingRecord(BaseModel):
    """A user rating together with the config that produced the rated image."""

    job_id: str
    rating: int = Field(ge=1, le=5)
    config: GenerationConfig
    rated_at: datetime = Field(default_factory=_utcnow)


class MaterialPreset(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex[:8])
    name: str
    material: MaterialSettings
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def material_type(self) -> str:
        return self.material.type
