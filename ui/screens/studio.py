"""Studio screen — settings on the left, job history on the right.

Every control is a key binding.  Settings changes only affect jobs uploaded
(or regenerated) afterwards; each job keeps the snapshot it was stamped with.
"""

from __future__ import annotations

import shlex

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.screen import Screen
from textual.widgets import Footer

from studio.errors import InvalidRatingError, QueueCapacityError, StorageError, UploadRejected
from studio.models import (
    ASPECT_RATIOS,
    MATERIAL_TYPES,
    PATINA_MATERIALS,
    PATINA_VARIATIONS,
    SHADOW_INTENSITIES,
)
from ui.screens.presets import PresetScreen
from ui.screens.prompt import PromptScreen
from ui.widgets.job_table import JobTable
from ui.widgets.queue_status import QueueStatus
from ui.widgets.settings_panel import SettingsPanel

ANGLE_STEP = 15
ELEVATION_STEP = 5
INTENSITY_STEP = 10


def _cycle(options, current):
    return options[(options.index(current) + 1) % len(options)]


class StudioScreen(Screen):
    BINDINGS = [
        Binding("u", "upload", "Upload"),
        Binding("space", "toggle_queue", "Start/Pause"),
        Binding("m", "cycle_material", "Material"),
        Binding("comma", "rotate_shadow(-1)", "Angle -", show=False),
        Binding("full_stop", "rotate_shadow(1)", "Angle +", show=False),
        Binding("s", "cycle_shadow", "Shadow", show=False),
        Binding("j", "elevation(-1)", "Lower", show=False),
        Binding("k", "elevation(1)", "Raise", show=False),
        Binding("p", "patina", "Patina", show=False),
        Binding("v", "cycle_variation", "Variant", show=False),
        Binding("t", "texture", "Texture", show=False),
        Binding("r", "cycle_aspect", "Aspect", show=False),
        Binding("l", "toggle_lighting", "Lighting", show=False),
        Binding("1", "rate(1)", "Rate 1", show=False),
        Binding("2", "rate(2)", "Rate 2", show=False),
        Binding("3", "rate(3)", "Rate 3", show=False),
        Binding("4", "rate(4)", "Rate 4", show=False),
        Binding("5", "rate(5)", "Rate 5", show=False),
        Binding("g", "regenerate", "Regenerate"),
        Binding("x", "remove_job", "Remove", show=False),
        Binding("c", "clear_history", "Clear"),
        Binding("o", "export", "Export"),
        Binding("f", "save_preset", "Save preset", show=False),
        Binding("n", "presets", "Presets"),
        Binding("a", "api_key", "API key"),
        Binding("q", "quit_studio", "Quit"),
    ]

    DEFAULT_CSS = """
    StudioScreen {
        layout: vertical;
    }
    #studio-body {
        height: 1fr;
        layout: horizontal;
    }
    #queue-status {
        border-top: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        with Horizontal(id="studio-body"):
            yield SettingsPanel(id="settings-panel")
            yield JobTable(id="job-table")
        yield QueueStatus(id="queue-status")
        yield Footer()

    def on_mount(self) -> None:
        session = self.app.session
        self.query_one("#queue-status", QueueStatus).set_session(session)
        self._unsubscribe = session.subscribe(self._update_all_widgets)
        self._update_all_widgets()

    def on_unmount(self) -> None:
        self._unsubscribe()

    # ── Widget Updates ──────────────────────────────────────────────────

    def _update_all_widgets(self) -> None:
        session = self.app.session
        self.query_one("#settings-panel", SettingsPanel).set_state(
            session.settings, session.profile, len(session.presets.presets),
        )
        self.query_one("#job-table", JobTable).set_jobs(session.store.jobs)
        self.query_one("#queue-status", QueueStatus).refresh()

    def _selected_job_id(self) -> str | None:
        return self.query_one("#job-table", JobTable).selected_job_id

    # ── Settings ────────────────────────────────────────────────────────

    def action_cycle_material(self) -> None:
        session = self.app.session
        session.select_material(_cycle(MATERIAL_TYPES, session.settings.material.type))

    def action_rotate_shadow(self, direction: int) -> None:
        session = self.app.session
        angle = (session.settings.shadow_angle + direction * ANGLE_STEP) % 360
        session.update_settings(shadow_angle=angle)

    def action_cycle_shadow(self) -> None:
        session = self.app.session
        session.update_settings(
            shadow_intensity=_cycle(SHADOW_INTENSITIES, session.settings.shadow_intensity),
        )

    def action_elevation(self, direction: int) -> None:
        session = self.app.session
        elevation = max(0, min(100, session.settings.elevation + direction * ELEVATION_STEP))
        session.update_settings(elevation=elevation)

    def action_patina(self) -> None:
        material = self.app.session.settings.material
        if material.type not in PATINA_MATERIALS:
            self.notify("Patina only applies to metal, silver, patina and ammonia.", severity="warning")
            return
        self.app.session.update_material(
            patina_intensity=(material.patina_intensity + INTENSITY_STEP) % (100 + INTENSITY_STEP),
        )

    def action_cycle_variation(self) -> None:
        material = self.app.session.settings.material
        if material.type not in PATINA_MATERIALS:
            return
        self.app.session.update_material(
            patina_variation=_cycle(PATINA_VARIATIONS, material.patina_variation),
        )

    def action_texture(self) -> None:
        material = self.app.session.settings.material
        if material.type != "texture":
            self.notify("Select the texture material first.", severity="warning")
            return
        self.app.session.update_material(
            texture_intensity=(material.texture_intensity + INTENSITY_STEP) % (100 + INTENSITY_STEP),
        )

    def action_cycle_aspect(self) -> None:
        session = self.app.session
        session.update_settings(aspect_ratio=_cycle(ASPECT_RATIOS, session.settings.aspect_ratio))

    def action_toggle_lighting(self) -> None:
        session = self.app.session
        session.update_settings(enhanced_lighting=not session.settings.enhanced_lighting)

    # ── Queue & Jobs ────────────────────────────────────────────────────

    @work(group="upload", exclusive=True)
    async def action_upload(self) -> None:
        session = self.app.session
        if not session.can_upload():
            self.notify(f"Queue is full ({session.store.capacity}).", severity="warning")
            return
        raw = await self.app.push_screen_wait(
            PromptScreen(
                "◆  Upload Product Photos  ◆",
                hint=f"Image paths separated by spaces (quote paths with spaces). "
                f"{session.store.remaining_capacity} slot(s) free.",
                placeholder="~/photos/mug.jpg ~/photos/lamp.png",
            )
        )
        if not raw:
            return
        try:
            jobs = session.upload_paths(shlex.split(raw))
        except (UploadRejected, QueueCapacityError) as exc:
            self.notify(str(exc), severity="error")
            return
        except ValueError as exc:
            self.notify(f"Could not parse paths: {exc}", severity="error")
            return
        self.notify(f"Queued {len(jobs)} image(s). Press Space to start.")

    def action_toggle_queue(self) -> None:
        session = self.app.session
        if not session.queue.is_running and not session.credentials.has_valid_credential():
            self.action_api_key()
            return
        session.toggle_queue()

    def action_rate(self, value: int) -> None:
        job_id = self._selected_job_id()
        if job_id is None:
            return
        try:
            self.app.session.rate(job_id, value)
        except InvalidRatingError as exc:
            self.notify(str(exc), severity="warning")
        except StorageError as exc:
            self.notify(str(exc), severity="error")

    def action_regenerate(self) -> None:
        job_id = self._selected_job_id()
        if job_id is None:
            return
        try:
            self.app.session.resubmit(job_id)
        except QueueCapacityError as exc:
            self.notify(str(exc), severity="error")

    def action_remove_job(self) -> None:
        job_id = self._selected_job_id()
        if job_id is not None and not self.app.session.remove(job_id):
            self.notify("A job that is generating can not be removed.", severity="warning")

    def action_clear_history(self) -> None:
        self.app.session.clear_history()
        self.notify("History cleared. Queue paused.")

    def action_export(self) -> None:
        paths = self.app.session.export_completed()
        if not paths:
            self.notify("No completed images to export.", severity="warning")

    # ── Presets & Credentials ───────────────────────────────────────────

    @work(group="preset", exclusive=True)
    async def action_save_preset(self) -> None:
        name = await self.app.push_screen_wait(
            PromptScreen("◆  Save Material Preset  ◆", placeholder="Preset name")
        )
        if not name:
            return
        preset = self.app.session.save_preset(name)
        self.notify(f"Saved preset {preset.name!r}.")

    def action_presets(self) -> None:
        self.app.push_screen(PresetScreen(self.app.session))

    @work(group="credentials", exclusive=True)
    async def action_api_key(self) -> None:
        if await self.app.session.acquire_credential():
            self.notify("API key set.")
        else:
            self.notify("No API key entered.", severity="warning")

    def action_quit_studio(self) -> None:
        self.app.exit()
