"""
Management commands for operating the stock ledger from the shell.
"""
import json

import click
from flask.cli import AppGroup

from .services.inventory_ledger import LedgerError, get_ledger
from .utils.timezone_utils import TimezoneUtils

ledger_cli = AppGroup('ledger', help='Receive, issue and inspect stock.')


def _fail(error: LedgerError):
    click.echo(f"❌ {error.message} ({error.code})", err=True)
    if error.details:
        click.echo(json.dumps(error.details, default=str), err=True)
    raise SystemExit(1)


@ledger_cli.command('receive')
@click.argument('variant_id', type=int)
@click.argument('quantity', type=int)
@click.argument('unit_cost')
@click.option('--received-at', type=click.DateTime(), default=None, help='Arrival time (UTC).')
@click.option('--note', default=None)
@click.option('--actor', default=None)
def receive_command(variant_id, quantity, unit_cost, received_at, note, actor):
    """Record an inbound lot"""
    try:
        receipt = get_ledger().receive(
            variant_id,
            quantity,
            unit_cost,
            arrival_time=TimezoneUtils.ensure_timezone_aware(received_at),
            note=note,
            actor=actor,
        )
    except LedgerError as e:
        _fail(e)
    click.echo(f"✅ Received lot {receipt.lot.id}: {quantity} @ {receipt.lot.unit_cost}")


@ledger_cli.command('issue')
@click.argument('variant_id', type=int)
@click.argument('quantity', type=int)
@click.option('--note', default=None)
@click.option('--ref', default=None, help='External reference such as an order id.')
@click.option('--actor', default=None)
def issue_command(variant_id, quantity, note, ref, actor):
    """Issue stock FIFO from the oldest lots"""
    try:
        allocation = get_ledger().issue(variant_id, quantity, note=note, external_ref=ref, actor=actor)
    except LedgerError as e:
        _fail(e)
    for line in allocation.lines:
        click.echo(f"  lot {line.lot_id}: {line.quantity_taken} @ {line.unit_cost}")
    click.echo(f"✅ Issued {allocation.total_allocated}, cost {allocation.total_cost}")


@ledger_cli.command('adjust')
@click.argument('variant_id', type=int)
@click.argument('delta', type=int)
@click.option('--note', default=None)
@click.option('--actor', default=None)
def adjust_command(variant_id, delta, note, actor):
    """Apply a signed stock correction"""
    ledger = get_ledger()
    try:
        ledger.adjust(variant_id, delta, note=note, actor=actor)
    except LedgerError as e:
        _fail(e)
    click.echo(f"✅ Adjusted variant {variant_id} by {delta:+d}; stock now {ledger.current_stock(variant_id)}")


@ledger_cli.command('stock')
@click.argument('variant_id', type=int)
@click.option('--set', 'target', type=int, default=None, help='Recount to an absolute quantity.')
@click.option('--note', default=None)
@click.option('--actor', default=None)
def stock_command(variant_id, target, note, actor):
    """Show stock for a variant, or recount it with --set"""
    ledger = get_ledger()
    try:
        if target is not None:
            ledger.set_stock(variant_id, target, note=note, actor=actor)
        snapshot = ledger.snapshot(variant_id)
    except LedgerError as e:
        _fail(e)
    click.echo(json.dumps(snapshot.to_dict(), indent=2))


@ledger_cli.command('verify')
@click.argument('variant_id', type=int)
def verify_command(variant_id):
    """Replay movements and compare them with lot state"""
    try:
        audit = get_ledger().verify(variant_id)
    except LedgerError as e:
        _fail(e)
    click.echo(json.dumps(audit.to_dict(), indent=2))
    if not audit.is_valid:
        click.echo("❌ Ledger out of sync", err=True)
        raise SystemExit(2)
    click.echo("✅ Ledger consistent")


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(ledger_cli)
