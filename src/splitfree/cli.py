"""CLI for SplitFree using Typer."""

import logging
import sys
from pathlib import Path

import click
import typer
from rich.console import Console
from rich.table import Table

from .claims import get_item_claim_status, get_item_remaining_fraction
from .config import load_settings
from .db import Database, load_snapshot
from .ledger import load_ledger, member_balances
from .models import MemberTotal, ReceiptItem, ReceiptSummary, SplitMethod, SplitParams
from .money import format_amount, round_currency
from .payment_links import generate_payment_links
from .service import ReceiptService
from .splits import calculate_splits, validate_split_data
from .summary import validate_all_items_claimed

app = typer.Typer(
    name="splitfree",
    help="Split shared expenses and settle scanned receipts",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_entries(method: SplitMethod, entries: list[str]) -> SplitParams:
    """
    Parse command-line split entries into split parameters.

    Equal splits take bare member IDs; the other methods take member=value.
    """
    if method is SplitMethod.EQUAL:
        return SplitParams(member_ids=[entry.split("=", 1)[0] for entry in entries])

    values: dict[str, float] = {}
    for entry in entries:
        member_id, sep, raw = entry.partition("=")
        if not sep or not member_id:
            raise typer.BadParameter(f"Expected member=value, got '{entry}'")
        try:
            values[member_id] = float(raw)
        except ValueError as e:
            raise typer.BadParameter(f"'{raw}' is not a number (in '{entry}')") from e

    if method is SplitMethod.EXACT:
        return SplitParams(amounts=values)
    if method is SplitMethod.PERCENT:
        return SplitParams(percents=values)
    return SplitParams(shares=values)


@app.command()
def split(
    method: SplitMethod = typer.Argument(..., help="equal, exact, percent or shares"),
    total: float = typer.Argument(..., help="Total expense amount"),
    entries: list[str] = typer.Argument(
        ..., help="Member IDs (equal) or member=value pairs"
    ),
    currency: str = typer.Option(None, "--currency", help="Currency for display"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Split an expense among members.

    Examples:

      splitfree split equal 100 alice bob carol

      splitfree split percent 80 alice=60 bob=40
    """
    setup_logging(verbose)

    try:
        params = parse_entries(method, entries)

        validation = validate_split_data(method, total, params)
        if not validation.is_valid:
            console.print(f"[bold red]✗ {validation.error}[/bold red]")
            sys.exit(1)

        splits = calculate_splits(method, total, params, strict=True)
        currency = currency or load_settings().default_currency

        table = Table(
            title=f"{method.icon} {method.label}",
            caption=method.description,
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Member", style="cyan")
        table.add_column("Amount", justify="right")

        for entry in splits:
            table.add_row(entry.member_id, format_amount(entry.amount, currency))

        console.print(table)

        split_total = round_currency(sum(entry.amount for entry in splits))
        if split_total == round_currency(total):
            console.print(f"  [green]✓ Splits add up to {format_amount(total, currency)}[/green]")
        else:
            console.print(
                f"  [yellow]Splits add up to {format_amount(split_total, currency)} "
                f"of {format_amount(total, currency)}[/yellow]"
            )

    except typer.BadParameter:
        raise
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@app.command("import-receipt")
def import_receipt(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Snapshot JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Import a receipt snapshot (receipt, items, members, claims) from JSON."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)

        snapshot = load_snapshot(path)
        receipt = db.import_snapshot(snapshot)

        console.print(
            f"[green]✓ Imported receipt {receipt.id}[/green] "
            f"({len(snapshot.items)} items, {len(snapshot.members)} members)"
        )

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def claim(
    item_id: str = typer.Argument(..., help="Receipt item ID"),
    member_id: str = typer.Argument(..., help="Claiming member ID"),
    fraction: float = typer.Option(
        None,
        "--fraction",
        "-f",
        click_type=click.FloatRange(min=0.0, max=1.0, min_open=True),
        help="Fraction of the item to claim",
    ),
    split_count: int = typer.Option(
        None, "--split-count", "-n", min=1, help="Claim 1/N of the item"
    ),
    via: str = typer.Option(None, "--via", help="Claim source: app, web, imessage, assigned"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Claim a receipt item, or part of it, for a member."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = ReceiptService(settings, db)

        saved = service.claim_item(
            item_id,
            member_id,
            share_fraction=fraction,
            split_count=split_count,
            claimed_via=via,
        )

        console.print(
            f"[green]✓ {member_id} claimed {saved.share_fraction:.0%} of {item_id}[/green] "
            f"({saved.claim_type})"
        )

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def unclaim(
    item_id: str = typer.Argument(..., help="Receipt item ID"),
    member_id: str = typer.Argument(..., help="Member ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a member's claim on an item."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = ReceiptService(settings, db)

        if service.unclaim_item(item_id, member_id):
            console.print(f"[green]✓ Removed {member_id}'s claim on {item_id}[/green]")
        else:
            console.print(f"[yellow]{member_id} has no claim on {item_id}.[/yellow]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command("split-item")
def split_item(
    item_id: str = typer.Argument(..., help="Receipt item ID"),
    member_ids: list[str] = typer.Argument(..., help="Members sharing the item"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Split an item evenly between members, replacing existing claims."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = ReceiptService(settings, db)

        claims = service.split_item(item_id, member_ids)
        console.print(f"[green]✓ Split {item_id} {len(claims)} ways[/green]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def summary(
    receipt_id: str = typer.Argument(..., help="Receipt ID"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show a receipt's items, claim status and member totals."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = ReceiptService(settings, db)

        receipt_summary = service.get_summary(receipt_id)
        items = db.list_items(receipt_id)

        display_items(items, receipt_summary.currency)
        display_summary(receipt_summary)

        validation = validate_all_items_claimed(items, db.list_claims(receipt_id))
        if validation.is_valid:
            console.print("\n[green]✓ All items claimed, ready to settle[/green]")
        else:
            names = ", ".join(item.description or item.id for item in validation.unclaimed_items)
            console.print(f"\n[yellow]Still unclaimed: {names}[/yellow]")

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def settle(
    receipt_id: str = typer.Argument(..., help="Receipt ID"),
    venmo: str = typer.Option(None, "--venmo", help="Payer's Venmo username"),
    paypal: str = typer.Option(None, "--paypal", help="Payer's PayPal.me username"),
    cashapp: str = typer.Option(None, "--cashapp", help="Payer's Cash App cashtag"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Settle a fully claimed receipt and store each member's total.

    Pass the handles of whoever paid the bill to print payment links.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = ReceiptService(settings, db)

        totals = service.settle_receipt(receipt_id)
        receipt = db.get_receipt(receipt_id)

        display_member_totals(totals, receipt.currency)
        console.print(f"\n[bold green]✓ Receipt {receipt_id} settled[/bold green]")

        if venmo or paypal or cashapp:
            note = receipt.merchant_name or f"Receipt {receipt_id}"
            console.print("\n[bold]Payment links:[/bold]")
            for total in totals:
                links = generate_payment_links(
                    total.grand_total,
                    venmo_username=venmo,
                    paypal_username=paypal,
                    cash_app_tag=cashapp,
                    note=note,
                )
                console.print(f"  [cyan]{total.member_name}[/cyan]")
                for link in links:
                    console.print(f"    {link.display_name}: {link.url}", soft_wrap=True)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if "db" in locals():
            db.close()


@app.command()
def balances(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Ledger JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance from a group's expenses and settlements."""
    setup_logging(verbose)

    try:
        ledger = load_ledger(path)
        results = member_balances(ledger.expenses, ledger.settlements, ledger.members)

        table = Table(title="Balances", show_header=True, header_style="bold magenta")
        table.add_column("Member", style="cyan")
        table.add_column("Balance", justify="right")
        table.add_column("Status")

        for result in results:
            if result.balance > 0:
                status = "[green]is owed[/green]"
            elif result.balance < 0:
                status = "[red]owes[/red]"
            else:
                status = "[dim]settled up[/dim]"
            table.add_row(
                result.member_name,
                format_amount(result.balance, ledger.currency),
                status,
            )

        console.print(table)

    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


def display_items(items: list[ReceiptItem], currency: str):
    """Display receipt items with their claim status."""
    table = Table(title="Items", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Description", style="cyan", width=30)
    table.add_column("Price", justify="right")
    table.add_column("Status")
    table.add_column("Remaining", justify="right")

    for item in items:
        if item.is_claimable:
            status = get_item_claim_status(item)
            remaining = f"{get_item_remaining_fraction(item):.0%}"
        else:
            status = "[dim]Not claimable[/dim]"
            remaining = "—"

        table.add_row(
            item.id,
            item.description,
            format_amount(item.total_price, currency),
            status,
            remaining,
        )

    console.print(table)


def display_member_totals(totals: list[MemberTotal], currency: str):
    """Display what each member owes."""
    table = Table(title="Member Totals", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Tax", justify="right")
    table.add_column("Tip", justify="right")
    table.add_column("Total", justify="right", style="bold")

    for total in totals:
        table.add_row(
            total.member_name,
            format_amount(total.items_total, currency),
            format_amount(total.tax_share, currency),
            format_amount(total.tip_share, currency),
            format_amount(total.grand_total, currency),
        )

    console.print(table)


def display_summary(receipt_summary: ReceiptSummary):
    """Display a receipt summary."""
    currency = receipt_summary.currency

    console.print(f"\n[bold]{receipt_summary.merchant_name or 'Receipt'}[/bold]")
    if receipt_summary.receipt_date:
        console.print(f"  Date: {receipt_summary.receipt_date:%b %d, %Y}")
    console.print(f"  Subtotal: {format_amount(receipt_summary.subtotal, currency)}")
    console.print(f"  Tax: {format_amount(receipt_summary.tax, currency)}")
    console.print(f"  Tip: {format_amount(receipt_summary.tip, currency)}")
    console.print(f"  Total: {format_amount(receipt_summary.total, currency)}")
    console.print(
        f"  Claimed: {receipt_summary.claimed_item_count}/{receipt_summary.item_count} items"
    )
    console.print()

    if receipt_summary.member_totals:
        display_member_totals(receipt_summary.member_totals, currency)
    else:
        console.print("[dim]No claims yet.[/dim]")


if __name__ == "__main__":
    app()
