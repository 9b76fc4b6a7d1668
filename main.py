#!/usr/bin/env python3
"""
Spotlight - Coin rotation and balance ledger
Main CLI entry point
"""

import sys
from pathlib import Path

# Add src/ to Python path
ROOT_DIR = Path(__file__).parent
sys.path.insert(0, str(ROOT_DIR))

import click
from rich.console import Console
from rich.table import Table

from src.config import load_config
from src.errors import SpotlightError
from src.utils import setup_logging, get_logger

# Initialize console
console = Console()

# Version
VERSION = "1.0.0"


def _fmt(value) -> str:
    return value.strftime('%Y-%m-%d %H:%M') if value else '-'


def _context(ctx):
    """Lazily build the service context (only commands that need it pay for it)"""
    if 'context' not in ctx.obj:
        from src.context import SpotlightContext
        ctx.obj['context'] = SpotlightContext.from_config(ctx.obj['config'])
    return ctx.obj['context']


def _resolve_account(context, reference: str):
    """Account by numeric id or by email"""
    if reference.isdigit():
        return context.accounts.get_account(int(reference))
    return context.accounts.require_by_email(reference)


def _fail(error: Exception):
    console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


@click.group()
@click.version_option(version=VERSION)
@click.pass_context
def cli(ctx):
    """
    Spotlight - Coin rotation and balance ledger

    \b
    Quick start:
        spotlight init-db                          # Create tables
        spotlight schedule --events 20             # Show rotation schedule
        spotlight open-account user@example.com    # Create an account
        spotlight deposit user@example.com 100     # Credit a deposit
        spotlight api                              # Run the HTTP API

    \b
    For help on any command:
        spotlight <command> --help
    """
    if ctx.obj is None:
        ctx.obj = {}

    try:
        ctx.obj['config'] = load_config()
    except Exception as e:
        console.print(f"[red]Failed to load configuration:[/red] {e}")
        sys.exit(1)

    config = ctx.obj['config']
    setup_logging(
        log_file=config.get('logging.file', 'logs/spotlight.log'),
        log_level=config.get('logging.level', 'INFO'),
        max_bytes=config.get('logging.max_bytes', 10485760),
        backup_count=config.get('logging.backup_count', 5),
        module_levels=config.get('logging.modules'),
        console=False
    )

    ctx.obj['logger'] = get_logger('spotlight.cli')


# ==============================================================================
# STATUS / SCHEDULE
# ==============================================================================

@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration and current rotation status"""
    config = ctx.obj['config']
    context = _context(ctx)
    now = context.clock.now()

    console.print(f"\n[bold cyan]{config.get('system.name', 'Spotlight')} v{VERSION}[/bold cyan]\n")

    schedule = context.schedule_config
    console.print("[bold]Schedule:[/bold]")
    console.print(f"  Start: {schedule.start_time.isoformat()}")
    console.print(f"  Coins: {schedule.active_coins} active of {schedule.total_coins}")
    console.print(f"  Activation: {schedule.activation_duration_days} days")
    console.print(f"  Rotation step: {schedule.step}\n")

    active = context.rotation.active_coins(now)
    next_event = context.rotation.next_event(now)
    console.print(f"[bold]Now ({_fmt(now)} UTC):[/bold]")
    console.print(f"  Active coins: {', '.join(str(w.coin_id) for w in active)}")
    if next_event:
        console.print(
            f"  Next rotation: {_fmt(next_event.timestamp)} "
            f"(coin {next_event.expiring_coin} -> coin {next_event.activating_coin})"
        )
    console.print(f"\n[bold]Ledger:[/bold] currency {context.currency}\n")


@cli.command()
@click.option('--events', type=int, default=None, help='Number of rotation events (default: config)')
@click.option('--start', type=str, default=None, help='Override schedule start (ISO-8601)')
@click.pass_context
def schedule(ctx, events, start):
    """Print the initial partition and upcoming rotation events"""
    from src.rotation import ScheduleConfig, generate_schedule
    from src.rotation.clock import parse_timestamp

    try:
        start_time = parse_timestamp(start) if start else None
        config = ScheduleConfig.from_config(ctx.obj['config'], start_time=start_time)
        result = generate_schedule(config, events)
    except (SpotlightError, ValueError) as e:
        _fail(e)

    meta = result.metadata
    console.print(
        f"\n[bold cyan]Rotation schedule[/bold cyan] from {meta.generated_at.isoformat()} "
        f"- step {meta.step_hours:.2f}h\n"
    )

    table = Table(title="Initial active coins")
    table.add_column("Coin", justify="right")
    table.add_column("Activated")
    table.add_column("Expires")
    for coin in result.active:
        table.add_row(str(coin.id), _fmt(coin.activated_at), _fmt(coin.expires_at))
    console.print(table)

    console.print(
        f"Inactive queue: {', '.join(str(coin.id) for coin in result.inactive)}\n"
    )

    table = Table(title="Rotation events")
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("Expiring", justify="right")
    table.add_column("Activating", justify="right")
    table.add_column("Active until")
    for event in result.events:
        table.add_row(
            str(event.index),
            _fmt(event.timestamp),
            str(event.expiring_coin),
            str(event.activating_coin),
            _fmt(event.activation_ends_at),
        )
    console.print(table)


@cli.command()
@click.argument('coin_id', type=int)
@click.option('--at', type=str, default=None, help='Instant to check (ISO-8601, default: now)')
@click.pass_context
def coin(ctx, coin_id, at):
    """Show whether a coin is active"""
    from src.rotation.clock import parse_timestamp

    context = _context(ctx)
    try:
        instant = parse_timestamp(at) if at else context.clock.now()
    except ValueError as e:
        _fail(e)

    if not context.rotation.is_known_coin(coin_id):
        _fail(ValueError(f"Unknown coin {coin_id} (1..{context.schedule_config.total_coins})"))

    try:
        window = context.rotation.active_window_for(coin_id, instant)
    except SpotlightError as e:
        _fail(e)

    if window:
        console.print(
            f"Coin {coin_id}: [green]active[/green] "
            f"({_fmt(window.activated_at)} -> {_fmt(window.expires_at)})"
        )
    else:
        console.print(f"Coin {coin_id}: [yellow]inactive[/yellow] at {_fmt(instant)}")


# ==============================================================================
# DATABASE / ACCOUNTS
# ==============================================================================

@cli.command('init-db')
@click.pass_context
def init_db_command(ctx):
    """Create database tables (use Alembic in production)"""
    from src.database import init_db

    try:
        init_db()
    except SpotlightError as e:
        _fail(e)
    console.print("[green]Database tables created/verified[/green]")


@cli.command('open-account')
@click.argument('email')
@click.option('--balance', type=str, default='0', help='Initial balance')
@click.option('--admin', is_flag=True, help='Create an admin account')
@click.pass_context
def open_account(ctx, email, balance, admin):
    """Create an account"""
    context = _context(ctx)
    try:
        account = context.accounts.open_account(
            email, initial_balance=balance, account_type='admin' if admin else 'user'
        )
    except (SpotlightError, ValueError) as e:
        _fail(e)
    console.print(f"[green]Account {account.id}[/green] {account.email} ({account.balance} {context.currency})")


@cli.command()
@click.argument('account')
@click.pass_context
def balance(ctx, account):
    """Show the balance of an account (id or email)"""
    context = _context(ctx)
    try:
        record = _resolve_account(context, account)
        amount = context.retry_read(context.ledger.read_balance, record.id)
    except SpotlightError as e:
        _fail(e)
    console.print(f"{record.email}: [bold]{amount} {context.currency}[/bold]")


@cli.command()
@click.argument('account')
@click.argument('amount')
@click.option('--network', type=str, default=None, help='Network key (bsc, tron, solana, ton, eth)')
@click.pass_context
def deposit(ctx, account, amount, network):
    """Record a confirmed deposit and credit the account"""
    context = _context(ctx)
    try:
        record = _resolve_account(context, account)
        created = context.deposits.record_deposit(record.id, amount, network)
        new_balance = context.ledger.read_balance(record.id)
    except SpotlightError as e:
        _fail(e)
    console.print(
        f"[green]Deposit {created.id}[/green]: +{created.amount} -> "
        f"{record.email} balance {new_balance} {context.currency}"
    )


# ==============================================================================
# WITHDRAWALS / ALLOCATIONS
# ==============================================================================

@cli.command()
@click.option('--status', 'status_filter',
              type=click.Choice(['pending', 'completed', 'rejected']), default=None)
@click.pass_context
def withdrawals(ctx, status_filter):
    """List withdrawal requests"""
    context = _context(ctx)
    try:
        records = context.retry_read(context.withdrawals.list_withdrawals, status_filter)
    except SpotlightError as e:
        _fail(e)

    table = Table(title="Withdrawals")
    table.add_column("ID", justify="right")
    table.add_column("Account", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Network")
    table.add_column("Address")
    table.add_column("Status")
    table.add_column("Created")
    for record in records:
        table.add_row(
            str(record.id), str(record.account_id), str(record.amount), record.network,
            record.address, record.status, _fmt(record.created_at)
        )
    console.print(table)


@cli.command()
@click.argument('withdrawal_id', type=int)
@click.argument('decision', type=click.Choice(['completed', 'rejected']))
@click.pass_context
def resolve(ctx, withdrawal_id, decision):
    """Resolve a pending withdrawal"""
    context = _context(ctx)
    try:
        record = context.withdrawals.resolve(withdrawal_id, decision)
    except SpotlightError as e:
        _fail(e)
    console.print(f"Withdrawal {record.id}: [bold]{record.status}[/bold] ({record.amount})")


@cli.command('close-expired')
@click.pass_context
def close_expired(ctx):
    """Close allocations whose activation window is over"""
    context = _context(ctx)
    try:
        closed = context.allocations.close_expired()
    except SpotlightError as e:
        _fail(e)
    console.print(f"Closed {closed} allocations")


# ==============================================================================
# API
# ==============================================================================

@cli.command()
@click.option('--host', type=str, default=None)
@click.option('--port', type=int, default=None)
@click.pass_context
def api(ctx, host, port):
    """Run the HTTP API (uvicorn)"""
    from src.api.main import run

    config = ctx.obj['config']
    run(host=host or config.get('api.host'), port=port or int(config.get('api.port', 8080)))


if __name__ == "__main__":
    cli()
