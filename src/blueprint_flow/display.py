"""Rich-based terminal display for the authoring flow.

Uses a module-level :class:`~rich.console.Console` so every command shares
the same formatting.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from src.blueprint_flow.state import FlowReply, FlowState
from src.blueprint_flow.steps import STAGE_ORDER
from src.journey.deliverables import DeliverablesSuggestion
from src.journey.generator import SuggestedPhase
from src.shared.constants import VERSION
from src.shared.models.blueprint import BlueprintDocument, Stage

_console = Console()


def print_flow_header(state: FlowState) -> None:
    """Panel with the blueprint id, position and progress."""
    header = Text()
    header.append("Blueprint Flow", style="bold white")
    header.append(f" v{VERSION}\n", style="dim")
    header.append("Blueprint: ", style="bold")
    header.append(f"{state.blueprint_id}\n", style="cyan")
    header.append("Position: ", style="bold")
    header.append(f"{state.stage.value} / {state.step.value}\n", style="green")
    header.append("Progress: ", style="bold")
    progress = state.progress
    header.append(
        f"{progress.percentage}% ({progress.current_step_number}/{progress.total_steps})",
        style="yellow",
    )
    _console.print(
        Panel(header, title="[bold]Blueprint Overview[/bold]", border_style="blue", expand=False)
    )


def print_stage_table(state: FlowState) -> None:
    """Table of stages with complete / active / pending status."""
    table = Table(title="Stages", show_header=True, header_style="bold magenta")
    table.add_column("Stage", style="cyan", min_width=14)
    table.add_column("Status", justify="center", min_width=10)

    current = STAGE_ORDER.index(state.stage)
    for index, stage in enumerate(STAGE_ORDER):
        if stage is Stage.COMPLETED:
            continue
        if index < current:
            status = "[green]COMPLETE[/green]"
        elif index == current:
            status = "[yellow]ACTIVE[/yellow]"
        else:
            status = "[dim]PENDING[/dim]"
        table.add_row(stage.value.title(), status)
    _console.print(table)

    actions = ", ".join(a.value for a in state.allowed_actions) or "none"
    _console.print(f"Allowed actions: [bold]{actions}[/bold]")
    if not state.can_advance and state.stage is not Stage.COMPLETED:
        _console.print("[dim]This step needs an answer before you can continue.[/dim]")


def print_reply(reply: FlowReply) -> None:
    style = "green" if reply.stored or reply.advanced else "white"
    _console.print(Text(reply.message, style=style))
    for suggestion in reply.suggestions:
        _console.print(f"  • {suggestion}")


def print_journey(phases: list[SuggestedPhase], source: str = "") -> None:
    table = Table(
        title=f"Suggested Journey{f' ({source})' if source else ''}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", justify="right")
    table.add_column("Phase", style="cyan")
    table.add_column("Weeks", justify="center")
    table.add_column("Summary")
    table.add_column("Activities")
    for index, phase in enumerate(phases, start=1):
        table.add_row(
            str(index), phase.name, phase.duration, phase.summary, "\n".join(phase.activities)
        )
    _console.print(table)


def print_document_summary(doc: BlueprintDocument) -> None:
    """Compact table of what the blueprint holds so far."""
    table = Table(title="Blueprint Contents", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    rows = [
        ("Subject", doc.wizard_context.subject),
        ("Students", doc.wizard_context.students),
        ("Duration", doc.wizard_context.duration),
        ("Concept", doc.ideation.concept_statement),
        ("Driving question", doc.ideation.driving_question),
        ("Challenge", doc.ideation.challenge_statement),
        ("Phases", str(len(doc.journey.phases))),
        ("Activities", str(len(doc.journey.activities))),
        ("Milestones", str(len(doc.deliverables.milestones))),
        ("Artifacts", str(len(doc.deliverables.artifacts))),
        ("Rubric criteria", str(len(doc.deliverables.rubric.criteria))),
        ("Impact", doc.deliverables.impact.audience),
    ]
    for name, value in rows:
        table.add_row(name, value or "—")
    _console.print(table)


def print_error_panel(error: str | Exception) -> None:
    _console.print(
        Panel(
            Text(str(error), style="bold white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )


def print_deliverables(suggestion: DeliverablesSuggestion) -> None:
    table = Table(title="Suggested Deliverables", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan")
    table.add_column("Suggestions")
    table.add_row("Milestones", "\n".join(suggestion.milestones))
    table.add_row("Artifacts", "\n".join(suggestion.artifacts))
    table.add_row("Criteria", "\n".join(suggestion.criteria))
    _console.print(table)
