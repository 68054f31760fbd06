"""cadence CLI: inspect and drive a YAML deck through the scheduling engine."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
import yaml

from cadence.application import card_ops
from cadence.application.config import AppConfig, resolve_config
from cadence.application.ledger import CounterLedger
from cadence.application.queue_builder import plan_queue
from cadence.application.scheduler import review
from cadence.application.stats import compute_project_stats
from cadence.domain.errors import CadenceError, ParameterValidationError
from cadence.domain.models import CardState, DailyCounters, Grade, LeechOutcome
from cadence.domain.parameters import ParameterSet
from cadence.domain.ports import Deck
from cadence.infrastructure.yaml_store import YamlDeckStore

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cadence: spaced-repetition scheduling for flashcard decks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

params_app = typer.Typer(help="Validate and inspect scheduling parameters.", no_args_is_help=True)
app.add_typer(params_app, name="params")

config_app = typer.Typer(help="Manage cadence configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class GradeChoice(str, Enum):
    again = "again"
    hard = "hard"
    good = "good"
    easy = "easy"


class ReactivateChoice(str, Enum):
    review = "review"
    new = "new"


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for cadence."""
    try:
        config = resolve_config({"verbose": verbose or None})
    except ValueError as e:
        raise _fail(str(e)) from e

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = config.verbose
    logging.getLogger("cadence").setLevel(_log_level(config.verbose))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _log_level(verbose: int) -> int:
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg="red", err=True)
    return typer.Exit(1)


def _parse_now(value: str | None) -> datetime:
    if value is None:
        return datetime.now(dt_timezone.utc)
    try:
        now = datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Not an ISO-8601 timestamp: {value}") from None
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt_timezone.utc)
    return now


def _store_for(path: Path | None, config: AppConfig) -> YamlDeckStore:
    deck_path = path or config.deck_path
    if deck_path is None:
        raise _fail("No deck given. Pass a path or set CADENCE_DECK_PATH.")
    return YamlDeckStore(deck_path)


def _load(store: YamlDeckStore) -> Deck:
    try:
        return store.load()
    except ParameterValidationError as e:
        for violation in e.violations:
            typer.secho(f"  {violation}", fg="red", err=True)
        raise _fail(f"Deck {store.path} has invalid parameters.") from e
    except CadenceError as e:
        raise _fail(str(e)) from e


def _open_day(deck: Deck, now: datetime) -> tuple[CounterLedger, DailyCounters]:
    """Load the deck's counters into a ledger, rolling over and unburying on a new day."""
    ledger = CounterLedger()
    if deck.counters is not None:
        ledger.restore(deck.counters)

    counters = ledger.get_or_reset(deck.project_id, now, deck.timezone)
    if deck.counters is None or deck.counters.day != counters.day:
        deck.cards = card_ops.clear_buried(deck.cards)

    return ledger, counters


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: Annotated[Path, typer.Argument(help="Where to create the deck file.")],
    project: Annotated[str, typer.Option("--project", "-p", help="Project id.")],
    tz: Annotated[
        str | None, typer.Option("--timezone", help="IANA timezone for day boundaries.")
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite existing deck.")] = False,
):
    """Create an empty deck with default parameters."""
    try:
        config = resolve_config({"timezone": tz})
    except ValueError as e:
        raise _fail(str(e)) from e

    store = YamlDeckStore(path)
    if store.exists() and not force:
        raise _fail(f"{path} already exists. Use --force to overwrite.")

    store.save(Deck(project_id=project, params=ParameterSet(), timezone=config.timezone))
    typer.secho(f"Created deck '{project}' at {path}", fg="green")


@app.command()
def add(
    path: Annotated[Path | None, typer.Argument(help="Deck file. Defaults to config.")] = None,
    count: Annotated[int, typer.Option("--count", "-n", min=1, help="Cards to add.")] = 1,
    group: Annotated[str | None, typer.Option(help="Sibling group for burial.")] = None,
    card_id: Annotated[
        str | None, typer.Option("--id", help="Explicit id (only with --count 1).")
    ] = None,
    now: Annotated[str | None, typer.Option(help="Creation time (ISO-8601).")] = None,
):
    """Add new cards to a deck."""
    if card_id and count != 1:
        raise typer.BadParameter("--id can only be used with --count 1")

    store = _store_for(path, resolve_config())
    deck = _load(store)
    ts = _parse_now(now)

    if card_id and deck.get_card(card_id):
        raise _fail(f"Card {card_id} already exists.")

    created = [
        card_ops.new_card(deck.project_id, deck.params, ts, card_id=card_id, sibling_group_id=group)
        for _ in range(count)
    ]
    deck.cards.extend(created)
    store.save(deck)

    for card in created:
        typer.echo(card.id)


@app.command("queue")
def queue(
    path: Annotated[Path | None, typer.Argument(help="Deck file. Defaults to config.")] = None,
    now: Annotated[str | None, typer.Option(help="Evaluate at this time (ISO-8601).")] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for random new-card order.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show the cards eligible for study right now, in order."""
    config = resolve_config({"queue_seed": seed})
    store = _store_for(path, config)
    deck = _load(store)
    ts = _parse_now(now)

    _, counters = _open_day(deck, ts)
    plan = plan_queue(deck.cards, deck.params, counters, ts, seed=config.queue_seed)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "project_id": deck.project_id,
                    "day": counters.day.isoformat(),
                    "learning": len(plan.learning),
                    "review": len(plan.review),
                    "new": len(plan.new),
                    "buried": plan.buried,
                    "queue": plan.card_ids,
                },
                indent=2,
            )
        )
        return

    typer.echo(
        f"Learning: {len(plan.learning)}  Review: {len(plan.review)}  New: {len(plan.new)}"
    )
    if plan.buried:
        typer.secho(f"Buried siblings: {len(plan.buried)}", fg="yellow")
    for card in plan.ordered:
        typer.echo(f"  {card.id}  [{card.state.value}]  due {card.due_at.isoformat()}")


@app.command("review")
def review_cmd(
    card_id: Annotated[str, typer.Argument(help="Card to answer.")],
    grade: Annotated[GradeChoice, typer.Argument(help="again, hard, good or easy.")],
    path: Annotated[Path | None, typer.Option("--deck", help="Deck file.")] = None,
    now: Annotated[str | None, typer.Option(help="Review time (ISO-8601).")] = None,
):
    """Answer a card and save its new schedule."""
    store = _store_for(path, resolve_config())
    deck = _load(store)
    ts = _parse_now(now)

    card = deck.get_card(card_id)
    if card is None:
        raise _fail(f"Card {card_id} not found.")
    if card.state == CardState.SUSPENDED:
        raise _fail(f"Card {card_id} is suspended. Use 'cadence reactivate' first.")

    ledger, _ = _open_day(deck, ts)
    try:
        result = review(card, deck.params, Grade[grade.name.upper()], ts)
    except CadenceError as e:
        raise _fail(str(e)) from e

    deck.counters = ledger.record_shown(deck.project_id, card, ts, deck.timezone)
    deck.replace_card(result.card)
    deck.cards = card_ops.bury_siblings_after_review(deck.cards, result.card, deck.params)
    store.save(deck)

    updated = result.card
    typer.echo(
        f"{card.state.value} -> {updated.state.value}  "
        f"due {updated.due_at.isoformat()}  interval {updated.interval_days:.2f}d  "
        f"ease {updated.ease_factor:.2f}"
    )
    if result.leech.action_taken != LeechOutcome.NONE:
        typer.secho(
            f"Leech: {card_id} ({updated.lapse_count} lapses), {result.leech.action_taken.value}",
            fg="yellow",
        )


@app.command()
def reactivate(
    card_id: Annotated[str, typer.Argument(help="Suspended card to bring back.")],
    path: Annotated[Path | None, typer.Option("--deck", help="Deck file.")] = None,
    target: Annotated[
        ReactivateChoice, typer.Option("--as", help="State to return the card to.")
    ] = ReactivateChoice.review,
    now: Annotated[str | None, typer.Option(help="Reactivation time (ISO-8601).")] = None,
):
    """Return a suspended card to Review or New."""
    store = _store_for(path, resolve_config())
    deck = _load(store)

    card = deck.get_card(card_id)
    if card is None:
        raise _fail(f"Card {card_id} not found.")

    try:
        updated = card_ops.reactivate(card, CardState(target.value), _parse_now(now))
    except CadenceError as e:
        raise _fail(str(e)) from e

    deck.replace_card(updated)
    store.save(deck)
    typer.secho(f"{card_id} is now {updated.state.value}.", fg="green")


@app.command()
def stats(
    path: Annotated[Path | None, typer.Argument(help="Deck file. Defaults to config.")] = None,
    now: Annotated[str | None, typer.Option(help="Evaluate at this time (ISO-8601).")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Summarize what the deck has due today."""
    store = _store_for(path, resolve_config())
    deck = _load(store)
    ts = _parse_now(now)

    _, counters = _open_day(deck, ts)
    result = compute_project_stats(deck.cards, deck.params, counters, ts)

    if json_output:
        typer.echo(json.dumps(asdict(result), indent=2))
        return

    typer.echo(
        f"Due: {result.due} (learning {result.due_learning}, review {result.due_review})"
        f"  New available: {result.available_new}"
    )
    typer.echo(
        f"Total: {result.total}  Suspended: {result.suspended}  Leeches: {result.leeches}"
    )


# ---------------------------------------------------------------------------
# Params subgroup
# ---------------------------------------------------------------------------


@params_app.command("check")
def params_check(
    path: Annotated[Path, typer.Argument(help="YAML file with parameters, or a deck file.")],
):
    """Validate a parameter set, listing every violated constraint."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise _fail(f"Cannot read {path}: {e}") from e

    if isinstance(raw, dict) and isinstance(raw.get("params"), dict):
        raw = raw["params"]
    if not isinstance(raw, dict):
        raise _fail(f"{path}: expected a mapping of parameters.")

    try:
        ParameterSet.from_mapping(raw)
    except ParameterValidationError as e:
        typer.secho(f"Invalid: {len(e.violations)} problem(s)", fg="red")
        for violation in e.violations:
            typer.echo(f"  {violation}")
        raise typer.Exit(1) from e

    typer.secho("Parameters OK", fg="green")


@params_app.command("defaults")
def params_defaults():
    """Print the default parameter set as YAML."""
    typer.echo(yaml.safe_dump(ParameterSet().to_dict(), sort_keys=False).rstrip())


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
