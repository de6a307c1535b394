"""CLI for CoupleSplit using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .calculator import format_currency, is_settled
from .clients.rowstore import RowStoreClient
from .config import load_settings
from .db import Database
from .exceptions import CoupleSplitError, FileParseError
from .models import (
    CalculationResult,
    CardClassification,
    Category,
    CategoryNames,
    Payer,
    SettlementDirection,
    Transaction,
)
from .parsing.values import parse_date
from .rules import suggest_card_names
from .service import ExpenseService, ImportPreview
from .store import TransactionStore
from .ui import QUIT, confirm, review_duplicates, select_category_interactive

app = typer.Typer(
    name="couple-split",
    help="Split shared expenses between two people from bank statements",
)
rules_app = typer.Typer(help="Manage merchant categorization rules")
cards_app = typer.Typer(help="Manage card classification rules")
app.add_typer(rules_app, name="rules")
app.add_typer(cards_app, name="cards")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_service(verbose: bool = False) -> Iterator[ExpenseService]:
    """
    Build the service for one command and report errors the CLI way.

    Errors are printed and exit with status 1; --verbose re-raises them.
    """
    setup_logging(verbose)
    db = None
    remote = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        if settings.remote_enabled:
            remote = RowStoreClient(
                settings.rowstore_url, settings.rowstore_api_key, settings.rowstore_user_id
            )
        store = TransactionStore(db, remote)
        store.load()
        service = ExpenseService(settings, db, store)

        yield service

        if store.last_sync_error:
            console.print(
                f"[yellow]⚠️  Changes saved locally, will sync on next run: "
                f"{store.last_sync_error}[/yellow]"
            )
    except FileParseError as e:
        console.print(f"\n[bold red]Could not parse file:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    except (CoupleSplitError, ValueError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if remote is not None:
            remote.close()
        if db is not None:
            db.close()


def format_money(amount: float, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"($[red]{abs_amount:,.2f}[/red])"
        return f"(${abs_amount:,.2f})"
    if use_color:
        return f" [green]${abs_amount:,.2f}[/green] "
    return f" ${abs_amount:,.2f} "


def _parse_category(value: str) -> Category:
    lookup = {c.value.lower(): c for c in Category}
    lookup.update({"1": Category.PERSON1, "2": Category.PERSON2, "s": Category.SHARED})
    category = lookup.get(value.strip().lower())
    if category is None:
        raise typer.BadParameter("Use person1, person2, shared or unclassified")
    return category


def _parse_payer(value: str) -> Payer:
    lookup = {"person1": Payer.PERSON1, "1": Payer.PERSON1, "person2": Payer.PERSON2, "2": Payer.PERSON2}
    payer = lookup.get(value.strip().lower())
    if payer is None:
        raise typer.BadParameter("Use person1 or person2")
    return payer


def display_transactions(transactions: list[Transaction], names: CategoryNames, title: str):
    """Display transactions in a table."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Date", width=10)
    table.add_column("Description", style="cyan", width=40)
    table.add_column("Amount", justify="right", width=12)
    table.add_column("Category", style="yellow")
    table.add_column("Paid by")
    table.add_column("Card", style="dim")

    for t in transactions:
        desc = t.description[:40] + "..." if len(t.description) > 40 else t.description
        category = names.display_name(t.category)
        if t.category is Category.UNCLASSIFIED:
            category = f"[dim]{category}[/dim]"
        elif t.auto_applied_rule:
            category = f"{category} ⚡"
        table.add_row(
            t.id[:8],
            t.date,
            desc,
            format_money(t.amount, use_color=False),
            category,
            names.payer_name(t.paid_by),
            t.card_name,
        )

    console.print(table)


def display_settlement(result: CalculationResult, names: CategoryNames, verbose: bool):
    """Display a settlement report."""
    if is_settled(result):
        console.print("\n[bold green]✓ All settled up - nobody owes anything.[/bold green]")
    else:
        payer, payee = (
            (names.person1, names.person2)
            if result.settlement_direction is SettlementDirection.PERSON1_TO_PERSON2
            else (names.person2, names.person1)
        )
        console.print(
            f"\n[bold]{payer} owes {payee} "
            f"[green]{format_currency(result.final_settlement_amount)}[/green][/bold]"
        )

    table = Table(title="Breakdown", show_header=True, header_style="bold magenta")
    table.add_column("")
    table.add_column(names.person1, justify="right")
    table.add_column(names.person2, justify="right")
    table.add_row(
        "Individual expenses",
        format_money(result.person1_individual, False),
        format_money(result.person2_individual, False),
    )
    table.add_row(
        f"Share of {names.shared.lower()}",
        format_money(result.person1_share_of_shared, False),
        format_money(result.person2_share_of_shared, False),
    )
    table.add_row(
        "[bold]Should pay[/bold]",
        format_money(result.person1_should_pay, False),
        format_money(result.person2_should_pay, False),
    )
    table.add_row(
        "Actually paid",
        format_money(result.person1_actually_paid, False),
        format_money(result.person2_actually_paid, False),
    )
    table.add_row(
        "[bold]Net position[/bold]",
        format_money(result.person1_net_position),
        format_money(result.person2_net_position),
    )
    console.print(table)

    console.print(f"  Total spending: {format_currency(result.total_spending)}")
    console.print(f"  {names.shared} total: {format_currency(result.shared_total)}")
    if result.unclassified_count:
        console.print(
            f"  [yellow]⚠️  {result.unclassified_count} unclassified transaction(s) "
            f"are not included. Run [cyan]couple-split categorize[/cyan].[/yellow]"
        )

    if verbose:
        for label, bucket in (
            (names.person1, result.category_breakdown.person1),
            (names.person2, result.category_breakdown.person2),
            (names.shared, result.category_breakdown.shared),
        ):
            if bucket:
                display_transactions(bucket, names, title=label)


def _print_preview(preview: ImportPreview):
    console.print(f"[green]Found {len(preview.transactions)} transactions[/green]")
    if preview.bill_payments:
        console.print(f"[dim]Excluded {len(preview.bill_payments)} bill payment(s)[/dim]")
    if preview.auto_applied:
        console.print(f"[cyan]⚡ Rules classified {preview.auto_applied} transaction(s)[/cyan]")
    if preview.detected_fields:
        console.print(f"[dim]Extra fields: {', '.join(sorted(preview.detected_fields))}[/dim]")


@app.command("import")
def import_files(
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Statement files"),
    card: str = typer.Option(..., "--card", help="Card the statements belong to"),
    paid_by: str = typer.Option(..., "--paid-by", help="Whose card it is (person1/person2)"),
    review: bool = typer.Option(False, "--review", "-r", help="Review duplicates one by one"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Import CSV, Excel or PDF statements.

    Duplicates of stored transactions are skipped unless --review is used.
    """
    payer = _parse_payer(paid_by)
    with open_service(verbose) as service:
        console.print(f"\n[bold blue]Parsing {len(files)} file(s)...[/bold blue]")
        preview = service.import_files(files, card, payer)
        _print_preview(preview)

        if not preview.transactions:
            console.print("[yellow]Nothing to import.[/yellow]")
            return

        decisions = []
        if preview.has_duplicates:
            console.print(
                f"[yellow]⚠️  {len(preview.detection.duplicates)} transaction(s) "
                f"already exist[/yellow]"
            )
            if review:
                decisions = review_duplicates(preview.detection)

        if not yes and not confirm("Import these transactions?", default=True):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        summary = service.commit_import(preview, decisions)
        console.print(
            f"\n[bold green]✓ Imported {summary.added} transaction(s)[/bold green]"
            + (
                f" [dim](skipped {summary.skipped_duplicates} duplicate(s))[/dim]"
                if summary.skipped_duplicates
                else ""
            )
        )


@app.command()
def add(
    amount: float = typer.Argument(..., help="Expense amount"),
    description: str = typer.Argument(..., help="What it was"),
    category: str = typer.Option("shared", "--category", "-c", help="person1, person2 or shared"),
    paid_by: str = typer.Option("person1", "--paid-by", "-p", help="person1 or person2"),
    on: str = typer.Option(None, "--date", help="Expense date (defaults to today)"),
    payment_method: str = typer.Option(None, "--method", help="Cash, Venmo, ..."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a manual expense."""
    with open_service(verbose) as service:
        transaction = service.add_manual_expense(
            date=parse_date(on) if on else date.today().isoformat(),
            amount=amount,
            description=description,
            category=_parse_category(category),
            paid_by=_parse_payer(paid_by),
            payment_method=payment_method,
        )
        console.print(f"[green]✓ Added {transaction.description} ({transaction.id[:8]})[/green]")


@app.command("list")
def list_transactions(
    unclassified: bool = typer.Option(False, "--unclassified", "-u", help="Only unclassified"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List stored transactions."""
    with open_service(verbose) as service:
        names = service.get_category_names()
        transactions = (
            service.store.unclassified() if unclassified else list(service.store.snapshot())
        )
        if not transactions:
            console.print("[yellow]No transactions.[/yellow]")
            return
        display_transactions(transactions, names, title=f"Transactions ({len(transactions)})")


@app.command()
def categorize(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Interactively categorize unclassified transactions."""
    with open_service(verbose) as service:
        names = service.get_category_names()
        pending = service.store.unclassified()
        if not pending:
            console.print("[green]✓ Everything is categorized.[/green]")
            return

        console.print(f"\n[bold blue]{len(pending)} transaction(s) to categorize[/bold blue]")
        for transaction in pending:
            # A rule created earlier in this session may already have classified it
            if service.store.get(transaction.id).category is not Category.UNCLASSIFIED:
                continue

            choice = select_category_interactive(transaction, names)
            if choice == QUIT:
                break
            if not isinstance(choice, Category):
                continue

            if service.categorize(transaction.id, choice):
                label = names.display_name(choice)
                if confirm(f"   Always categorize '{transaction.description}' as {label}?"):
                    applied = service.create_rule_and_apply(transaction.description, choice)
                    console.print(f"[cyan]⚡ Rule created, applied to {applied} more[/cyan]")

        remaining = len(service.store.unclassified())
        console.print(f"\n[bold]{remaining} unclassified transaction(s) left[/bold]")


@app.command()
def settle(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show transactions per category"),
):
    """Show who owes whom."""
    with open_service(verbose) as service:
        names = service.get_category_names()
        proportions = service.get_proportions()
        console.print(
            f"\n[dim]Split: {names.person1} {proportions.person1_percentage:g}% / "
            f"{names.person2} {proportions.person2_percentage:g}%[/dim]"
        )
        display_settlement(service.calculate_settlement(), names, verbose)


@app.command()
def proportions(
    person1: float = typer.Argument(None, help="Person 1's share of shared expenses (%)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show or set how shared expenses are split."""
    with open_service(verbose) as service:
        names = service.get_category_names()
        current = (
            service.save_proportions(person1) if person1 is not None else service.get_proportions()
        )
        console.print(
            f"{names.person1}: {current.person1_percentage:g}%  "
            f"{names.person2}: {current.person2_percentage:g}%"
        )


@app.command()
def names(
    person1: str = typer.Option(None, "--person1", help="Display name for person 1"),
    person2: str = typer.Option(None, "--person2", help="Display name for person 2"),
    shared: str = typer.Option(None, "--shared", help="Display name for shared"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show or set category display names."""
    with open_service(verbose) as service:
        current = service.get_category_names()
        updates = {
            k: v for k, v in {"person1": person1, "person2": person2, "shared": shared}.items() if v
        }
        if updates:
            current = current.model_copy(update=updates)
            service.save_category_names(current)
        console.print(f"person1: {current.person1}\nperson2: {current.person2}\nshared: {current.shared}")


@app.command()
def delete(
    transaction_id: str = typer.Argument(..., help="Transaction ID or unique prefix"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a transaction."""
    with open_service(verbose) as service:
        matches = [t for t in service.store.snapshot() if t.id.startswith(transaction_id)]
        if len(matches) != 1:
            console.print(f"[yellow]{len(matches)} transactions match '{transaction_id}'.[/yellow]")
            return
        service.store.delete_transaction(matches[0].id)
        console.print(f"[green]✓ Deleted {matches[0].description}[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete all transactions."""
    with open_service(verbose) as service:
        if not yes and not confirm("Delete ALL transactions?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        removed = service.store.clear()
        console.print(f"[green]✓ Deleted {removed} transaction(s)[/green]")


@rules_app.command("list")
def rules_list(verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")):
    """List merchant rules."""
    with open_service(verbose) as service:
        names = service.get_category_names()
        table = Table(title="Merchant Rules", show_header=True, header_style="bold magenta")
        table.add_column("Merchant", style="cyan")
        table.add_column("Category", style="yellow")
        table.add_column("Created", style="dim")
        for rule in service.rules.get_all_rules():
            table.add_row(
                rule.merchant_name,
                names.display_name(rule.category),
                rule.created_at.date().isoformat(),
            )
        console.print(table)


@rules_app.command("create")
def rules_create(
    merchant: str = typer.Argument(..., help="Merchant description"),
    category: str = typer.Argument(..., help="person1, person2 or shared"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a merchant rule and apply it to unclassified transactions."""
    parsed = _parse_category(category)
    if parsed is Category.UNCLASSIFIED:
        raise typer.BadParameter("A rule needs a real category")
    with open_service(verbose) as service:
        applied = service.create_rule_and_apply(merchant, parsed)
        console.print(f"[green]✓ Rule created, applied to {applied} transaction(s)[/green]")


@rules_app.command("delete")
def rules_delete(
    merchant: str = typer.Argument(..., help="Merchant description"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a merchant rule."""
    with open_service(verbose) as service:
        if service.rules.delete_rule(merchant):
            console.print("[green]✓ Rule deleted[/green]")
        else:
            console.print(f"[yellow]No rule for '{merchant}'.[/yellow]")


@cards_app.command("list")
def cards_list(
    query: str = typer.Argument(None, help="Only cards containing this text"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List card rules."""
    with open_service(verbose) as service:
        rules = (
            service.card_rules.search_cards(query) if query else service.card_rules.get_all_rules()
        )
        table = Table(title="Card Rules", show_header=True, header_style="bold magenta")
        table.add_column("Card", style="cyan")
        table.add_column("Classification", style="yellow")
        table.add_column("Last used", style="dim")
        for rule in rules:
            table.add_row(
                rule.card_name, rule.classification.value, rule.last_used.date().isoformat()
            )
        console.print(table)


@cards_app.command("set")
def cards_set(
    card: str = typer.Argument(..., help="Card name"),
    classification: str = typer.Argument(..., help="person1, person2, shared or skip"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Set the default category for a card."""
    try:
        parsed = CardClassification(classification.strip().lower())
    except ValueError:
        raise typer.BadParameter("Use person1, person2, shared or skip") from None
    with open_service(verbose) as service:
        if service.card_rules.save_card_classification(card, parsed):
            console.print(f"[green]✓ {card} → {parsed.value}[/green]")
        else:
            console.print("[dim]Skipped - no rule saved.[/dim]")


@cards_app.command("delete")
def cards_delete(
    card: str = typer.Argument(..., help="Card name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a card rule."""
    with open_service(verbose) as service:
        if service.card_rules.delete_rule(card):
            console.print("[green]✓ Card rule deleted[/green]")
        else:
            console.print(f"[yellow]No rule for '{card}'.[/yellow]")


@cards_app.command("rename")
def cards_rename(
    old: str = typer.Argument(..., help="Current card name"),
    new: str = typer.Argument(..., help="New card name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Rename a card rule."""
    with open_service(verbose) as service:
        if service.card_rules.update_card_name(old, new):
            console.print(f"[green]✓ {old} → {new}[/green]")
        else:
            console.print(f"[yellow]No rule for '{old}'.[/yellow]")


@cards_app.command("merge")
def cards_merge(
    source: str = typer.Argument(..., help="Card to merge away"),
    target: str = typer.Argument(..., help="Card to keep"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Merge one card rule into another."""
    with open_service(verbose) as service:
        if service.card_rules.merge_cards(source, target):
            console.print(f"[green]✓ Merged {source} into {target}[/green]")
        else:
            console.print(f"[yellow]No rule for '{source}'.[/yellow]")


@cards_app.command("suggest")
def cards_suggest(query: str = typer.Argument("", help="Part of a card name")):
    """Suggest common card names."""
    for name in suggest_card_names(query):
        console.print(name)


if __name__ == "__main__":
    app()
