"""ETL pipeline view: list, pause/resume, delete and create pipelines."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.message import Message
from textual.widgets import Button, DataTable, Input, Static

from snowsarva.api import ApiClient
from snowsarva.errors import SnowsarvaError
from snowsarva.models import Pipeline
from snowsarva.registry import ConnectionRegistry

from .connection_panel import PLACEHOLDER, ConnectionPanel

MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10


class PipelinesPanel(ConnectionPanel):
    """Lists ETL pipelines and lets the user manage them."""

    DEFAULT_CSS = """
    PipelinesPanel {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }

    PipelinesPanel .panel-title {
        text-style: bold;
    }

    #pipeline-table {
        height: 1fr;
        min-height: 5;
    }

    PipelinesPanel .pipeline-form {
        height: auto;
        margin-top: 1;
    }

    PipelinesPanel .pipeline-form Input {
        width: 1fr;
    }
    """

    def __init__(self, registry: ConnectionRegistry, client: ApiClient) -> None:
        super().__init__(registry, client, id="pipelines-panel")
        self._pipelines: list[Pipeline] = []
        self._table: DataTable | None = None
        self._status: Static | None = None

    @property
    def pipelines(self) -> tuple[Pipeline, ...]:
        return tuple(self._pipelines)

    def compose(self) -> ComposeResult:
        yield Static("ETL pipelines  (p: pause/resume, delete: remove)", classes="panel-title")
        yield _PipelineTable(id="pipeline-table", zebra_stripes=True, cursor_type="row")
        yield Static(PLACEHOLDER, id="pipeline-status", markup=False)
        yield Horizontal(
            Input(placeholder="Pipeline name", id="pipeline-name"),
            Input(placeholder="Source description", id="pipeline-source"),
            Input(placeholder="Target description", id="pipeline-target"),
            Input(placeholder="Schedule (cron)", id="pipeline-schedule"),
            Button("Create pipeline", id="create-pipeline", variant="primary"),
            classes="pipeline-form",
        )

    def _bind_widgets(self) -> None:
        self._table = self.query_one("#pipeline-table", DataTable)
        self._status = self.query_one("#pipeline-status", Static)

    async def _load(self) -> None:
        self._pipelines = list(await self._client.list_pipelines())
        self._render_table()
        self._set_status(f"{len(self._pipelines)} pipeline(s).")

    def _render_placeholder(self) -> None:
        self._pipelines = []
        self._render_table()
        self._set_status(PLACEHOLDER)

    def _render_error(self, message: str) -> None:
        self._set_status(f"✖ {message}")

    async def toggle_pipeline(self, pipeline_id: int) -> Pipeline | None:
        """Pause an active pipeline or resume a paused one."""

        pipeline = self._find(pipeline_id)
        if pipeline is None:
            return None
        status = "paused" if pipeline.status == "active" else "active"
        try:
            updated = await self._client.update_pipeline(pipeline_id, status=status)
        except SnowsarvaError as exc:
            self._set_status(f"✖ {exc}")
            return None
        self._pipelines = [updated if entry.id == pipeline_id else entry for entry in self._pipelines]
        self._render_table()
        self._set_status(f"Pipeline status changed to {updated.status}.")
        return updated

    async def remove_pipeline(self, pipeline_id: int) -> bool:
        pipeline = self._find(pipeline_id)
        if pipeline is None:
            return False
        try:
            await self._client.delete_pipeline(pipeline_id)
        except SnowsarvaError as exc:
            self._set_status(f"✖ {exc}")
            return False
        self._pipelines = [entry for entry in self._pipelines if entry.id != pipeline_id]
        self._render_table()
        self._set_status(f"Pipeline deleted: {pipeline.name}")
        return True

    async def create_from_form(self) -> Pipeline | None:
        """Validate the form and create a pipeline on the active connection."""

        active = self._registry.get_snapshot().active
        if active is None:
            self._set_status("No active connection. Connect or activate one first.")
            return None
        name = self._input_value("#pipeline-name")
        source = self._input_value("#pipeline-source")
        target = self._input_value("#pipeline-target")
        schedule = self._input_value("#pipeline-schedule")
        problem = validate_pipeline_form(name, source, target)
        if problem:
            self._set_status(f"⚠ {problem}")
            return None
        fields: dict[str, Any] = {
            "connection_id": active.id,
            "name": name,
            "source_description": source,
            "target_description": target,
        }
        if schedule:
            fields["schedule"] = schedule
        self._set_status("Generating pipeline…")
        try:
            created = await self._client.create_pipeline(**fields)
        except SnowsarvaError as exc:
            self._set_status(f"✖ {exc}")
            return None
        self._pipelines.append(created)
        self._render_table()
        for selector in ("#pipeline-name", "#pipeline-source", "#pipeline-target", "#pipeline-schedule"):
            self.query_one(selector, Input).value = ""
        self._set_status(f"Pipeline created: {created.name}")
        return created

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "create-pipeline":
            event.stop()
            self.run_worker(self.create_from_form(), group="pipeline-edit")

    def on_pipeline_action_requested(self, event: PipelineActionRequested) -> None:
        event.stop()
        if event.action == "toggle":
            self.run_worker(self.toggle_pipeline(event.pipeline_id), group="pipeline-edit")
        elif event.action == "delete":
            self.run_worker(self.remove_pipeline(event.pipeline_id), group="pipeline-edit")

    def _find(self, pipeline_id: int) -> Pipeline | None:
        return next((entry for entry in self._pipelines if entry.id == pipeline_id), None)

    def _input_value(self, selector: str) -> str:
        return self.query_one(selector, Input).value.strip()

    def _render_table(self) -> None:
        if not self._table:
            return
        self._table.clear(columns=True)
        self._table.add_columns("Pipeline", "Status", "Schedule", "Last run")
        for pipeline in self._pipelines:
            self._table.add_row(
                Text(pipeline.name),
                pipeline.status,
                Text(pipeline.schedule or "—"),
                Text(pipeline.last_run_status or "—"),
                key=str(pipeline.id),
            )

    def _set_status(self, message: str) -> None:
        if self._status:
            self._status.update(message)


def validate_pipeline_form(name: str, source: str, target: str) -> str | None:
    """Return the first validation problem with the form values, if any."""

    if len(name) < MIN_NAME_LENGTH:
        return f"Name must be at least {MIN_NAME_LENGTH} characters."
    if len(source) < MIN_DESCRIPTION_LENGTH:
        return f"Source description must be at least {MIN_DESCRIPTION_LENGTH} characters."
    if len(target) < MIN_DESCRIPTION_LENGTH:
        return f"Target description must be at least {MIN_DESCRIPTION_LENGTH} characters."
    return None


class _PipelineTable(DataTable):
    """Pipeline table with bindings acting on the highlighted row."""

    BINDINGS = [
        Binding("p", "toggle_pipeline", "Pause/resume"),
        Binding("delete", "delete_pipeline", "Delete pipeline"),
    ]

    def action_toggle_pipeline(self) -> None:
        self._request("toggle")

    def action_delete_pipeline(self) -> None:
        self._request("delete")

    def _request(self, action: str) -> None:
        if not self.row_count:
            return
        row_key = self.coordinate_to_cell_key(self.cursor_coordinate).row_key
        if row_key.value is not None:
            self.post_message(PipelineActionRequested(int(row_key.value), action))


class PipelineActionRequested(Message):
    """Message emitted when the user acts on a pipeline row."""

    def __init__(self, pipeline_id: int, action: str) -> None:
        super().__init__()
        self.pipeline_id = pipeline_id
        self.action = action


__all__ = ["PipelinesPanel", "validate_pipeline_form"]
