from __future__ import annotations

from rich.text import Text
from textual.widgets import DataTable
from textual.widgets.data_table import CellDoesNotExist

from studio.models import Job, JobStatus

_STATUS_STYLES = {
    JobStatus.QUEUED: ("queued", "dim"),
    JobStatus.GENERATING: ("generating", "bold yellow"),
    JobStatus.COMPLETED: ("done", "bold green"),
    JobStatus.FAILED: ("failed", "bold red"),
}


class JobTable(DataTable):
    """Job history, newest first.  Row keys are job ids."""

    DEFAULT_CSS = """
    JobTable {
        height: 1fr;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)
        self.add_columns("File", "Material", "Shadow", "Status", "Rating", "Note")

    def set_jobs(self, jobs: list[Job]) -> None:
        selected = self.selected_job_id
        self.clear()
        for job in jobs:
            label, style = _STATUS_STYLES[job.status]
            config = job.config
            self.add_row(
                job.filename or job.id[:8],
                config.material.type,
                f"{config.shadow_angle}° {config.shadow_intensity}",
                Text(label, style=style),
                Text("★" * (job.rating or 0), style="yellow"),
                Text(job.error or "", style="red"),
                key=job.id,
            )
        if selected is not None:
            ids = [job.id for job in jobs]
            if selected in ids:
                self.move_cursor(row=ids.index(selected))

    @property
    def selected_job_id(self) -> str | None:
        if self.row_count == 0:
            return None
        try:
            row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        except CellDoesNotExist:
            return None
        return row_key.value
