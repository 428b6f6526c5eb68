"""Reporting commands."""

import click
from finledger.cli.error_handling import handle_domain_error
from finledger.cli.formatting import money, percent
from finledger.domain.account import AccountService
from finledger.domain.aggregation import AggregationService
from finledger.utils.date_parser import current_month, parse_month


def _month_or_exit(ctx, month: str | None) -> str:
    if month is None:
        return current_month()
    try:
        return parse_month(month)
    except ValueError as e:
        handle_domain_error(ctx, e)


@click.group()
def report_group():
    """Balances, net worth and spending reports."""
    pass


@report_group.command("balances")
@click.option("--all", "show_all", is_flag=True, help="Include inactive accounts")
@click.pass_context
def balances(ctx, show_all: bool):
    """Show the balance of every account."""
    db = ctx.obj["db"]
    accounts = AccountService(db).list_accounts(active_only=not show_all)
    if not accounts:
        click.echo("No accounts found. Run 'finledger init' first.")
        return

    all_balances = AggregationService(db).all_account_balances()
    for acc in accounts:
        click.echo(f"{acc.id} | {acc.name:25s} | {acc.account_type.value:9s} | {money(all_balances.get(acc.id, 0)):>14s}")


@report_group.command("net-worth")
@click.pass_context
def net_worth(ctx):
    """Show assets, liabilities and net worth."""
    db = ctx.obj["db"]
    breakdown = AggregationService(db).net_worth_breakdown()

    click.echo("Assets:")
    for line in breakdown.assets:
        click.echo(f"  {line.name:25s} {money(line.balance):>14s}")
    click.echo(f"  {'Total assets':25s} {money(breakdown.total_assets):>14s}")
    click.echo("Liabilities:")
    for line in breakdown.liabilities:
        click.echo(f"  {line.name:25s} {money(line.balance):>14s}")
    click.echo(f"  {'Total liabilities':25s} {money(breakdown.total_liabilities):>14s}")
    click.echo("-" * 42)
    click.echo(f"  {'Net worth':25s} {money(breakdown.net_worth):>14s}")


@report_group.command("month")
@click.argument("month", required=False)
@click.pass_context
def month_summary(ctx, month: str | None):
    """Show income and expenses for a month (default: this month)."""
    db = ctx.obj["db"]
    summary = AggregationService(db).monthly_summary(_month_or_exit(ctx, month))

    click.echo(f"Month:    {summary.month}")
    click.echo(f"Income:   {money(summary.income)}")
    click.echo(f"Expenses: {money(summary.expenses)}")
    click.echo(f"Net:      {money(summary.net)}")
    click.echo(f"Entries:  {summary.count}")


@report_group.command("months")
@click.pass_context
def months(ctx):
    """Show a summary line for every month with entries."""
    db = ctx.obj["db"]
    summaries = AggregationService(db).all_monthly_summaries()
    if not summaries:
        click.echo("No journal entries found.")
        return

    click.echo(f"{'Month':7s} | {'Income':>12s} | {'Expenses':>12s} | {'Net':>12s} | Entries")
    for s in summaries:
        click.echo(
            f"{s.month:7s} | {money(s.income):>12s} | {money(s.expenses):>12s} | "
            f"{money(s.net):>12s} | {s.count}"
        )


@report_group.command("categories")
@click.option("--month", help="Month (YYYY-MM, 'this month', 'last month'); default all time")
@click.option("--limit", type=click.IntRange(min=1), help="Show only the top N categories")
@click.pass_context
def categories(ctx, month: str | None, limit: int | None):
    """Show spending per expense category, largest first."""
    db = ctx.obj["db"]
    service = AggregationService(db)
    month_key = _month_or_exit(ctx, month) if month else None

    if limit is not None:
        spending = service.top_expense_categories(limit=limit, month=month_key)
    else:
        spending = service.spending_by_category(month=month_key)
    if not spending:
        click.echo("No expenses found.")
        return

    for item in spending:
        click.echo(f"{item.category:25s} {money(item.amount):>12s} {percent(item.percentage):>8s}")


@report_group.command("trend")
@click.argument("month", required=False)
@click.option("--window", type=click.IntRange(min=1), default=3, show_default=True, help="Months used for spending statistics")
@click.pass_context
def trend(ctx, month: str | None, window: int):
    """Compare a month's spending with the month before and recent months."""
    db = ctx.obj["db"]
    service = AggregationService(db)
    month_key = _month_or_exit(ctx, month)

    change = service.month_over_month_change(month_key)
    savings = service.monthly_savings_rate(month_key)
    analysis = service.spending_analysis(months_window=window)

    click.echo(f"Expenses {change.current_month}: {money(change.current_expenses)}")
    click.echo(f"Expenses {change.previous_month}: {money(change.previous_expenses)}")
    click.echo(f"Change: {money(change.change)} ({percent(change.percent_change)}, {change.direction})")
    click.echo(f"Savings: {money(savings.savings)} ({percent(savings.savings_rate)} of income)")
    click.echo(f"Last {analysis.months_analyzed} months:")
    click.echo(f"  Average: {money(analysis.average)}")
    click.echo(f"  Highest: {money(analysis.highest)}")
    click.echo(f"  Lowest:  {money(analysis.lowest)}")


@report_group.command("summary")
@click.argument("month", required=False)
@click.pass_context
def summary(ctx, month: str | None):
    """Show a financial overview for a month (default: this month)."""
    db = ctx.obj["db"]
    result = AggregationService(db).financial_summary(_month_or_exit(ctx, month))

    click.echo(f"Period: {result.period}")
    click.echo(f"  Income:   {money(result.month.income)}")
    click.echo(f"  Expenses: {money(result.month.expenses)}")
    click.echo(f"  Net:      {money(result.month.net)}")
    click.echo("All time:")
    click.echo(f"  Net worth:      {money(result.net_worth)}")
    click.echo(f"  Total income:   {money(result.total_income)}")
    click.echo(f"  Total expenses: {money(result.total_expenses)}")
    click.echo(f"  Entries:        {result.transaction_count}")
    if result.top_expenses:
        click.echo("Top expenses:")
        for item in result.top_expenses:
            click.echo(f"  {item.category:25s} {money(item.amount):>12s} {percent(item.percentage):>8s}")
    click.echo(f"Trial balance: {'OK' if result.trial_balance_ok else 'FAILED'}")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
