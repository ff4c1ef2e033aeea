"""Command-line interface for blueprint authoring.

Commands: ``new``, ``status``, ``say``, ``chat``, ``journey``,
``deliverables``, ``export`` and ``init-config``.  The author's position is
never stored, so every command re-derives it from the saved document.
``say`` processes its messages in order within one session and ``chat``
keeps a session open, which is how clarifier steps are passed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from src.blueprint_flow.config import FlowConfig, load_flow_config
from src.blueprint_flow.display import (
    print_deliverables,
    print_document_summary,
    print_error_panel,
    print_flow_header,
    print_journey,
    print_reply,
    print_stage_table,
)
from src.blueprint_flow.exceptions import ConfigurationError, FlowError
from src.blueprint_flow.flow import BlueprintFlow, create_flow, new_blueprint_id
from src.blueprint_flow.guidance import guidance_for
from src.persistence.gateway import JsonFileGateway
from src.shared.constants import SERVICE_NAME, VERSION
from src.shared.logging import setup_logging
from src.shared.utils import atomic_write_json

app = typer.Typer(
    name="blueprint",
    help="Author curriculum blueprints through a staged, conversational flow.",
    no_args_is_help=True,
)

_QUIT_WORDS = {"quit", "exit", "/quit", "/exit"}

_DEFAULT_CONFIG_TEMPLATE = """\
# Blueprint flow configuration
storage_dir: .blueprints
keep_revisions: true

autosave:
  enabled: true
  debounce_ms: 500

generative:
  base_url: ""
  api_key: ""
  timeout: 30.0

journey:
  prefer_generative: true

logging:
  level: WARNING
  json_format: true
"""

ConfigOption = typer.Option(None, "--config", "-c", help="Path to a YAML config file.")
StorageOption = typer.Option(None, "--storage-dir", help="Override the blueprint storage directory.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{SERVICE_NAME} {VERSION}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Blueprint flow command-line interface."""


def _setup(config_path: Optional[Path], storage_dir: Optional[str]) -> FlowConfig:
    try:
        cfg = load_flow_config(config_path)
    except ConfigurationError as exc:
        print_error_panel(exc)
        raise typer.Exit(code=1)
    if storage_dir:
        cfg.storage_dir = storage_dir
    setup_logging(SERVICE_NAME, cfg.logging.level, cfg.logging.json_format)
    return cfg


def _open(cfg: FlowConfig, blueprint_id: str) -> BlueprintFlow:
    flow = create_flow(cfg, blueprint_id)
    if not flow.load(blueprint_id):
        print_error_panel(f"No blueprint '{blueprint_id}' in {cfg.storage_dir}")
        raise typer.Exit(code=1)
    return flow


@app.command()
def new(
    vision: str = typer.Option("", help="What students should take away."),
    subject: str = typer.Option("", help="Subject the project lives in."),
    students: str = typer.Option("", help="Who the students are."),
    duration: str = typer.Option("", help='Project length, e.g. "6 weeks".'),
    blueprint_id: Optional[str] = typer.Option(None, "--id", help="Blueprint id to use."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Create a blueprint, optionally filling the intake answers."""
    cfg = _setup(config, storage_dir)
    blueprint_id = blueprint_id or new_blueprint_id()
    gateway = JsonFileGateway(cfg.storage_dir, keep_revisions=cfg.keep_revisions)
    if gateway.exists(blueprint_id):
        print_error_panel(f"Blueprint '{blueprint_id}' already exists")
        raise typer.Exit(code=1)

    flow = create_flow(cfg, blueprint_id, gateway=gateway)
    intake = {
        key: value
        for key, value in {
            "vision": vision, "subject": subject, "students": students, "duration": duration,
        }.items()
        if value
    }
    try:
        if vision and subject and students:
            flow.complete_wizard(intake)
        elif intake:
            flow.update_blueprint({"wizard_context": intake}, reason="Created from CLI")
    except FlowError as exc:
        print_error_panel(exc)
        raise typer.Exit(code=1)

    if not flow.close():
        print_error_panel(f"Could not save blueprint '{blueprint_id}'")
        raise typer.Exit(code=1)
    typer.echo(blueprint_id)
    print_flow_header(flow.get_state())


@app.command()
def status(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Show where the author is in a blueprint."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    state = flow.get_state()
    if as_json:
        typer.echo(json.dumps(state.to_dict(), indent=2))
        return
    print_flow_header(state)
    print_stage_table(state)
    print_document_summary(state.document)
    typer.echo(guidance_for(state.step).prompt)


@app.command()
def say(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    messages: list[str] = typer.Argument(..., help="Messages, processed in order."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Send one or more messages to a blueprint."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    try:
        for message in messages:
            print_reply(flow.handle_input(message))
    except FlowError as exc:
        print_error_panel(exc)
        raise typer.Exit(code=1)
    finally:
        flow.close()
    print_flow_header(flow.get_state())


@app.command()
def chat(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Interactive session; type quit to save and leave."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    print_flow_header(flow.get_state())
    typer.echo(guidance_for(flow.step).prompt)
    try:
        while True:
            try:
                text = typer.prompt("you", default="", show_default=False)
            except typer.Abort:
                break
            if text.strip().lower() in _QUIT_WORDS:
                break
            print_reply(flow.handle_input(text))
    finally:
        flow.close()
    typer.echo("Saved.")


@app.command()
def journey(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    accept: bool = typer.Option(False, "--accept", help="Write the suggestion into the blueprint."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Suggest a learning journey for a blueprint."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    suggestion = flow.suggest_journey()
    print_journey(suggestion.phases, suggestion.source)
    if accept:
        flow.apply_journey(suggestion)
        if not flow.close():
            print_error_panel("Journey could not be saved")
            raise typer.Exit(code=1)
        typer.echo("Journey saved.")


@app.command()
def deliverables(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    accept: bool = typer.Option(False, "--accept", help="Write the suggestion into the blueprint."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Suggest milestones, final artifacts and rubric criteria for a blueprint."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    suggestion = flow.suggest_deliverables()
    print_deliverables(suggestion)
    if accept:
        flow.apply_deliverables(suggestion)
        if not flow.close():
            print_error_panel("Deliverables could not be saved")
            raise typer.Exit(code=1)
        typer.echo("Deliverables saved.")


@app.command()
def export(
    blueprint_id: str = typer.Argument(..., help="Blueprint id."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON to this file."),
    config: Optional[Path] = ConfigOption,
    storage_dir: Optional[str] = StorageOption,
) -> None:
    """Export a blueprint as camelCase JSON."""
    cfg = _setup(config, storage_dir)
    flow = _open(cfg, blueprint_id)
    data = flow.export_document().to_export_dict()
    if output is None:
        typer.echo(json.dumps(data, indent=2))
        return
    atomic_write_json(output, data)
    typer.echo(f"Exported to {output}")


@app.command("init-config")
def init_config(
    path: Path = typer.Option(Path("blueprint.yaml"), "--path", help="Where to write the config."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write a default configuration file."""
    if path.exists() and not force:
        print_error_panel(f"{path} already exists (use --force to overwrite)")
        raise typer.Exit(code=1)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    typer.echo(f"Wrote {path}")


if __name__ == "__main__":
    app()
