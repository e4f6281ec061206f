"""CLI interface for the card budget engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from card_forge.catalog import CardCatalog, validate_card_set
from card_forge.config import AppConfig, load_config
from card_forge.engine import EngineContext
from card_forge.generator import UPGRADED_ID_OFFSET
from card_forge.models import CardCategory, ConditionKind, EffectKind, Rarity

console = Console()

# Base card ids must stay below the upgraded-card id range.
MAX_CARDS = UPGRADED_ID_OFFSET - 1


def _card_count(value: str) -> int:
    count = int(value)
    if not 1 <= count <= MAX_CARDS:
        raise argparse.ArgumentTypeError(f"card count must be between 1 and {MAX_CARDS}")
    return count


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="card-forge",
        description="Point-budget card generator and upgrade rules engine",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug)",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: config.yaml)",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")
    rarities = [r.value for r in Rarity]

    # budget
    budget_parser = subparsers.add_parser("budget", help="Show budget breakdowns per rarity")
    budget_parser.add_argument("--rarity", choices=rarities, default=None)
    budget_parser.add_argument("--seed", type=int, default=None)
    budget_parser.set_defaults(func=_cmd_budget)

    # price
    price_parser = subparsers.add_parser("price", help="Price a single effect")
    price_parser.add_argument("kind", choices=[k.value for k in EffectKind])
    price_parser.add_argument("magnitude", type=int)
    price_parser.add_argument(
        "--condition",
        choices=[k.value for k in ConditionKind],
        default=None,
        help="Attach a condition of this kind",
    )
    price_parser.set_defaults(func=_cmd_price)

    # generate
    gen_parser = subparsers.add_parser("generate", help="Generate cards and their upgrades")
    source = gen_parser.add_mutually_exclusive_group()
    source.add_argument("--rarity", choices=rarities, default=None)
    source.add_argument(
        "--draft",
        type=_card_count,
        default=None,
        metavar="N",
        help=f"Draw N rarities from the draft distribution (at most {MAX_CARDS})",
    )
    source.add_argument(
        "--starter",
        action="store_true",
        help="Generate a starter deck",
    )
    gen_parser.add_argument(
        "--count",
        type=_card_count,
        default=1,
        help=f"Cards to generate with --rarity (at most {MAX_CARDS})",
    )
    gen_parser.add_argument("--seed", type=int, default=None)
    gen_parser.add_argument("--output", type=Path, default=None, help="Write the set as JSON")
    gen_parser.set_defaults(func=_cmd_generate)

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate an exported card set")
    validate_parser.add_argument("path", type=Path)
    validate_parser.set_defaults(func=_cmd_validate)

    return parser


def _load_app_config(args: argparse.Namespace) -> AppConfig:
    return load_config(args.config)


# ------------------------------------------------------------------
# Command handlers
# ------------------------------------------------------------------


def _cmd_budget(args: argparse.Namespace) -> None:
    ctx = EngineContext.create(_load_app_config(args), seed=args.seed)
    rarities = [Rarity(args.rarity)] if args.rarity else list(Rarity)

    table = Table(title="Budget Breakdown")
    table.add_column("Rarity", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("Energy pts", justify="right")
    table.add_column("Effect budget", justify="right", style="green")
    table.add_column("Fallback")
    for rarity in rarities:
        b = ctx.budget.compute(rarity)
        table.add_row(
            rarity.value,
            str(b.total_budget),
            str(b.energy_cost),
            f"{b.energy_cost_points:.1f}",
            f"{b.effect_budget:.1f}",
            "[yellow]yes[/yellow]" if b.used_fallback else "no",
        )
    console.print(table)


def _cmd_price(args: argparse.Namespace) -> None:
    ctx = EngineContext.create(_load_app_config(args))
    kind = EffectKind(args.kind)
    condition = ConditionKind(args.condition) if args.condition else None
    cost = ctx.effect_costs.price(kind, args.magnitude, condition)

    label = f"{kind.value} x{args.magnitude}"
    if condition is not None:
        label += f" if {condition.value}"
    console.print(f"{label}: [bold green]{cost:.2f}[/bold green] points")


def _cmd_generate(args: argparse.Namespace) -> None:
    ctx = EngineContext.create(_load_app_config(args), seed=args.seed)
    generator = ctx.generator

    category = CardCategory.DRAFTABLE
    if args.starter:
        rarities = generator.starter_rarities()
        category = CardCategory.STARTER
    elif args.draft is not None:
        rarities = generator.draft_rarities(args.draft)
    else:
        rarity = Rarity(args.rarity) if args.rarity else Rarity.COMMON
        rarities = [rarity] * args.count

    catalog = generator.generate_set(rarities, category)

    table = Table(title=f"Generated Cards ({len(catalog)})")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Rarity")
    table.add_column("Type")
    table.add_column("Energy", justify="right")
    table.add_column("Effects")
    table.add_column("Upgrade")
    for card in catalog:
        upgrade = ""
        if card.upgrade is not None:
            upgrade = (
                f"{card.upgrade.kind.value} {card.upgrade.comparator.value} "
                f"{card.upgrade.required_value} -> {card.upgraded_card_id}"
            )
        table.add_row(
            str(card.card_id),
            card.name,
            card.rarity.value,
            card.card_type.value,
            str(card.energy_cost),
            ", ".join(f"{e.kind.value} {e.magnitude}" for e in card.effects),
            upgrade,
        )
    console.print(table)

    if args.output:
        catalog.export(args.output)
        console.print(f"Wrote {len(catalog)} cards to {args.output}")


def _cmd_validate(args: argparse.Namespace) -> None:
    path: Path = args.path
    if not path.exists():
        console.print(f"[red]Card set {path} does not exist[/red]")
        sys.exit(1)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]{path} is not valid JSON: {e}[/red]")
        sys.exit(1)

    errors = validate_card_set(data)
    if not errors:
        try:
            errors = CardCatalog.from_dict(data).validate()
        except (KeyError, TypeError, ValueError) as e:
            errors = [f"cards: {e}"]

    if errors:
        for e in errors:
            console.print(f"  [red]ERROR[/red] {e}")
        console.print(f"\n[red]{len(errors)} validation error(s)[/red]")
        sys.exit(1)
    else:
        console.print(f"[green]{path}: {len(data['cards'])} cards valid[/green]")
