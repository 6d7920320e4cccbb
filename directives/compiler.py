"""Directive Compiler — turns a job's configuration into a generation request.

``compile_request`` is a pure function: the same ``GenerationConfig`` and
``PreferenceProfile`` always render the same prompt, byte for byte.  Both
inputs are frozen pydantic models, so nothing here can mutate them.

The prompt is assembled from Jinja2 templates in ``templates/``:

- ``lighting.j2``   shadow branch keyed by intensity x enhanced lighting,
                    elevation falloff and spatial (grounded/hovering/floating)
- ``materials/*``   one template per material variant
- ``preferences.j2`` learned-preference hints, only for a non-empty profile
- ``system.j2``     fixed boilerplate wrapping the blocks above
"""

from __future__ import annotations

import hashlib

from pydantic import BaseModel, ConfigDict

from directives.prompt_loader import has_template, render
from preferences.aggregator import PreferenceProfile, angle_bucket
from studio.config import GROUNDED_THRESHOLD
from studio.models import GenerationConfig, MaterialSettings

_FALLBACK_MATERIAL_TEMPLATE = "materials/standard.j2"

HOVER_THRESHOLD = 30  # below this elevation the object hovers, above it floats

_PATINA_DEPTHS = ("SURFACE DUSTING", "HEAVY OXIDATION", "ANCIENT CRUST")
_TARNISH_DEPTHS = ("LIGHT TARNISH", "VINTAGE AGING", "ANTIQUE BLACKENING")
_TEXTURE_LEVELS = ("SUBTLE", "NATURAL", "INTENSE")


class GenerationRequest(BaseModel):
    """Payload handed to the image generator alongside the source image."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    aspect_ratio: str
    resolution: str
    fingerprint: str


def _tier(value: int, labels: tuple[str, str, str]) -> str:
    if value < 30:
        return labels[0]
    if value < 70:
        return labels[1]
    return labels[2]


def light_source_angle(shadow_angle: int) -> int:
    """The key light sits opposite the cast shadow."""
    return (shadow_angle + 180) % 360


def spatial_relation(elevation: int) -> str:
    if elevation <= GROUNDED_THRESHOLD:
        return "grounded"
    if elevation < HOVER_THRESHOLD:
        return "hovering"
    return "floating"


# ── Blocks ──────────────────────────────────────────────────────────────────


def render_lighting(config: GenerationConfig) -> str:
    return render(
        "lighting.j2",
        light_angle=light_source_angle(config.shadow_angle),
        shadow_angle=config.shadow_angle,
        intensity=config.shadow_intensity,
        enhanced=config.enhanced_lighting,
        elevated=config.elevation > GROUNDED_THRESHOLD,
        elevation=config.elevation,
        spatial=spatial_relation(config.elevation),
    )


def render_material(material: MaterialSettings) -> str:
    """Render the block for ``material``; unknown types get the standard PBR block."""
    template = f"materials/{material.type}.j2"
    if not has_template(template):
        template = _FALLBACK_MATERIAL_TEMPLATE

    context: dict = {"material": material}
    if material.type == "metal":
        context["depth"] = _tier(material.patina_intensity, _PATINA_DEPTHS)
    elif material.type == "silver":
        context["depth"] = _tier(material.patina_intensity, _TARNISH_DEPTHS)
    elif material.type == "texture":
        context["level"] = _tier(material.texture_intensity, _TEXTURE_LEVELS)
    return render(template, **context)


def preference_hints(config: GenerationConfig, profile: PreferenceProfile) -> list[str]:
    """Hints from ``profile`` that do not contradict ``config``.

    A preference that disagrees with an explicit setting is dropped.  The one
    gap a config leaves open is material identification on a ``standard``
    job, where the preferred material may tip ambiguous surfaces.
    """
    hints: list[str] = []

    if profile.shadow_intensity is not None and profile.shadow_intensity == config.shadow_intensity:
        hints.append(
            f"Favourite results used {profile.shadow_intensity} shadows: "
            "refine penumbra and falloff toward that look."
        )

    if profile.material is not None:
        if profile.material == config.material.type:
            hints.append(
                f"Favourite results used the {profile.material} pipeline: "
                "keep finish and reflectivity consistent with them."
            )
        elif config.material.type == "standard" and profile.material != "standard":
            hints.append(
                f"Where a surface is ambiguous, lean toward a {profile.material} finish."
            )

    if profile.enhanced_lighting is not None and profile.enhanced_lighting == config.enhanced_lighting:
        if profile.enhanced_lighting:
            hints.append("The user prefers rich bounce light and strong speculars.")
        else:
            hints.append("The user prefers restrained, simple fill light.")

    if profile.floating is not None and profile.floating == (not config.is_grounded):
        if profile.floating:
            hints.append("The user likes a clear air gap between product and shadow.")
        else:
            hints.append("The user likes dense contact shadows that anchor the product.")

    if profile.shadow_angle_bucket is not None and profile.shadow_angle_bucket == angle_bucket(config.shadow_angle):
        hints.append(
            f"Favourite results cast shadows toward about {profile.shadow_angle_bucket}°: "
            "keep highlight placement consistent with that direction."
        )

    return hints


def render_preferences(config: GenerationConfig, profile: PreferenceProfile | None) -> str:
    """The learned-preference block, or an empty string for an empty profile."""
    if profile is None or profile.is_empty:
        return ""
    return render(
        "preferences.j2",
        sample_size=profile.sample_size,
        hints=preference_hints(config, profile),
    )


# ── Entry point ─────────────────────────────────────────────────────────────


def compile_request(
    config: GenerationConfig,
    profile: PreferenceProfile | None = None,
) -> GenerationRequest:
    """Build the complete generation request for one job."""
    prompt = render(
        "system.j2",
        aspect_ratio=config.aspect_ratio,
        resolution=config.resolution,
        preferences=render_preferences(config, profile),
        lighting=render_lighting(config),
        material=render_material(config.material),
        material_type=config.material.type,
    )
    digest = hashlib.sha256()
    for part in (prompt, config.aspect_ratio, config.resolution):
        digest.update(part.encode("utf-8"))
        digest.update(b"\0")
    return GenerationRequest(
        prompt=prompt,
        aspect_ratio=config.aspect_ratio,
        resolution=config.resolution,
        fingerprint=digest.hexdigest(),
    )
