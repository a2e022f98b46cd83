#!/usr/bin/env python3
"""Ad hoc runner for the fridge-photo-to-recipe workflow.

Usage:
    python snap.py --image fridge.jpg                    # pick items interactively
    python snap.py --image fridge.jpg --select "Egg,Milk"
    python snap.py --image fridge.jpg --all --no-save    # every item, skip Supabase
    python snap.py --image fridge.jpg --debug            # also dump the final state as JSON
    python snap.py --history [--limit 4]                 # recent snaps
    python snap.py --resume 42                           # redisplay a saved snap

Each workflow stage is rendered as soon as it is reached: the raw recipe text
appears while the parse call is still running.
"""

import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Prompt
from rich.table import Table

from snapchef.gemini.adapter import GeminiAdapter
from snapchef.models.models import DetectionItem, ParsedRecipe, PersistedSnap
from snapchef.storage.persistence import PersistenceBridge
from snapchef.storage.supabase import SupabaseClient
from snapchef.utils.config import config
from snapchef.utils.errors import SnapChefError
from snapchef.utils.logger import logger
from snapchef.workflow.sequencer import RecipeWorkflow, Stage, WorkflowState

console = Console()

USAGE = (
    'Usage: python snap.py --image PATH [--select "A,B" | --all] [--no-save] [--debug]\n'
    "       python snap.py --history [--limit N]\n"
    "       python snap.py --resume SNAP_ID"
)


def render_recipe(recipe: ParsedRecipe) -> Table:
    table = Table(title=f"{recipe.title} ({recipe.type}, {recipe.total_time})", show_lines=True)
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Time")
    table.add_column("Ingredients")
    for number, step in enumerate(recipe.steps, start=1):
        table.add_row(str(number), step.description, step.time_to_complete, ", ".join(step.ingredients))
    return table


def render_state(state: WorkflowState) -> None:
    """Print the section belonging to the stage just reached."""
    if state.stage is Stage.AWAITING_CONFIRMATION:
        console.print(f"[bold]Let's see the fridge[/bold]: {state.image_uri or 'image loaded'}")
    elif state.stage is Stage.DETECTING_ITEMS:
        console.print("[dim]Detecting items in the image... It may take a few seconds.[/dim]")
    elif state.stage is Stage.AWAITING_SELECTION:
        console.print(f"[bold]Detection results[/bold] ({len(state.items or [])} items)")
        for number, item in enumerate(state.items or [], start=1):
            console.print(f"  {number:>3}. {item.label}")
        if state.error:
            console.print(f"[yellow]{state.error}[/yellow]")
    elif state.stage is Stage.GENERATING_RECIPE:
        console.print(f"[bold]Generating recipe[/bold] with: {', '.join(state.selected_labels)}")
    elif state.stage is Stage.DISPLAYING_RAW_RECIPE:
        render_search(state)
    elif state.stage is Stage.DISPLAYING_PARSED_RECIPE:
        console.print("[bold]Final recipes[/bold]")
        if not state.recipes:
            console.print("[yellow]No structured recipes found[/yellow]")
        for recipe in state.recipes or []:
            console.print(render_recipe(recipe))
        if state.error:
            console.print(f"[yellow]{state.error}[/yellow]")


def render_save(state: WorkflowState) -> None:
    if state.snap_id is not None:
        console.print(f"[green]Saved as snap {state.snap_id}[/green]")
    if state.error:
        console.print(f"[yellow]{state.error}[/yellow]")


class StateRenderer:
    """Workflow listener: a new stage prints its section, a repeat of the final stage is the save outcome."""

    def __init__(self) -> None:
        self.last_stage: Optional[Stage] = None

    def __call__(self, state: WorkflowState) -> None:
        if state.stage is self.last_stage:
            render_save(state)
            return
        self.last_stage = state.stage
        render_state(state)


def render_search(state: WorkflowState) -> None:
    result = state.search_result
    if result is None:
        return
    console.print("[bold]Raw recipe[/bold] [dim](parsing in progress)[/dim]")
    console.print(Markdown(result.response or "_empty_"))
    if result.search_queries:
        console.print("[bold]Search queries[/bold]")
        for query in result.search_queries:
            console.print(f"  🔎 {query}")
    if result.where_it_searched:
        console.print("[bold]Sources[/bold]")
        for source in result.where_it_searched:
            console.print(f"  • {source.title} [dim]{source.uri}[/dim]")


def choose_items(items: list[DetectionItem], select: Optional[str], select_all: bool) -> list[str]:
    """Resolve the selection from flags, or ask on the terminal.

    Interactive answers are comma-separated item numbers or labels.
    """
    if select_all:
        return [item.label for item in items]
    if select is None:
        select = Prompt.ask("Items to cook with (numbers or labels, comma-separated)", default="all")
        if select.strip().lower() == "all":
            return [item.label for item in items]

    chosen = []
    for token in (part.strip() for part in select.split(",")):
        if token.isdigit() and 1 <= int(token) <= len(items):
            chosen.append(items[int(token) - 1].label)
        elif token:
            chosen.append(token)
    return chosen


def build_bridge() -> Optional[PersistenceBridge]:
    if not config.supabase_enabled:
        return None
    return PersistenceBridge(SupabaseClient.from_config(config), config)


async def run_snap(image_path: str, select: Optional[str], select_all: bool, save: bool, debug: bool) -> int:
    config.validate(require_supabase=save and config.PERSIST_SNAPS)
    bridge = build_bridge() if save and config.PERSIST_SNAPS else None
    workflow = RecipeWorkflow(GeminiAdapter.from_config(config), bridge)
    workflow.subscribe(StateRenderer())

    await workflow.acquire_image(image_path)
    items = await workflow.confirm_image()
    if not items:
        console.print("[red]No items detected. Try again with a clearer image.[/red]")
        return 1

    await workflow.select_items(choose_items(items, select, select_all))

    state = workflow.state
    if debug:
        console.print_json(
            data={
                "stage": state.stage.value,
                "selected": state.selected_labels,
                "search_result": state.search_result.model_dump(by_alias=True) if state.search_result else None,
                "recipes": [recipe.model_dump(by_alias=True) for recipe in state.recipes or []],
                "snap_id": state.snap_id,
            }
        )
    return 0


def render_history(snaps: list[PersistedSnap]) -> Table:
    table = Table(title="Recent snaps")
    table.add_column("Snap", justify="right")
    table.add_column("Created")
    table.add_column("Ingredients")
    table.add_column("Recipes")
    for snap in snaps:
        ingredients = snap.selected_ingredients
        summary = ", ".join(ingredients[:3]) + ("..." if len(ingredients) > 3 else "")
        created = snap.created_at.strftime("%Y-%m-%d %H:%M") if snap.created_at else ""
        table.add_row(str(snap.id), created, summary, ", ".join(recipe.title for recipe in snap.recipes))
    return table


async def show_history(limit: Optional[int]) -> int:
    config.validate(require_supabase=True)
    bridge = build_bridge()
    snaps = await bridge.list_recent_snaps(limit)
    if not snaps:
        console.print("[yellow]No snaps yet[/yellow]")
        return 0
    console.print(render_history(snaps))
    return 0


async def resume_snap(snap_id: int) -> int:
    config.validate(require_supabase=True)
    bridge = build_bridge()
    snap = await bridge.get_snap(snap_id)
    if snap is None:
        console.print(f"[red]Snap {snap_id} not found[/red]")
        return 1

    workflow = RecipeWorkflow.resume(snap, bridge=bridge)
    console.print(f"[bold]Snap {snap.id}[/bold]: {workflow.state.image_uri}")
    render_search(workflow.state)
    render_state(workflow.state)
    return 0


def parse_args(argv: list[str]) -> dict:
    """Parse flags the same way for every mode; unknown flags are an error."""
    options = {
        "image": None,
        "select": None,
        "all": False,
        "save": True,
        "debug": False,
        "history": False,
        "limit": None,
        "resume": None,
    }
    idx = 0
    while idx < len(argv):
        flag = argv[idx]
        if flag in ("--image", "--select", "--limit", "--resume"):
            if idx + 1 >= len(argv):
                raise ValueError(f"{flag} requires a value")
            options[flag[2:]] = argv[idx + 1]
            idx += 2
            continue
        if flag == "--all":
            options["all"] = True
        elif flag == "--no-save":
            options["save"] = False
        elif flag == "--debug":
            options["debug"] = True
        elif flag == "--history":
            options["history"] = True
        else:
            raise ValueError(f"Unknown flag: {flag}")
        idx += 1

    for key in ("limit", "resume"):
        if options[key] is not None:
            options[key] = int(options[key])
    if not (options["image"] or options["history"] or options["resume"] is not None):
        raise ValueError("One of --image, --history or --resume is required")
    return options


def main(argv: Optional[list[str]] = None) -> int:
    try:
        options = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        return 2

    try:
        if options["history"]:
            return asyncio.run(show_history(options["limit"]))
        if options["resume"] is not None:
            return asyncio.run(resume_snap(options["resume"]))
        return asyncio.run(
            run_snap(options["image"], options["select"], options["all"], options["save"], options["debug"])
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 130
    except SnapChefError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
