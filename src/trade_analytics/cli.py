"""CLI entry point for the trade analytics core."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import click

from .core.config import Settings, load_settings
from .core.errors import TradeAnalyticsError
from .core.models import Trade
from .observability import new_run_id, setup_logging


def _bootstrap(config: str | None, log_level: str | None) -> Settings:
    try:
        settings = load_settings(config)
    except TradeAnalyticsError as exc:
        raise click.ClickException(str(exc)) from exc
    obs = settings.observability
    setup_logging(level=log_level or obs.log_level, format=obs.log_format)
    new_run_id()
    return settings


def _load_pool(path: str, settings: Settings) -> list[Trade]:
    """Read trades from a JSON export or normalize them from CSV/TSV."""
    from .journal.normalizer import CsvNormalizer

    source = Path(path)
    text = source.read_text(encoding="utf-8")
    if source.suffix.lower() == ".json":
        return [Trade.model_validate(item) for item in json.loads(text)]

    result = CsvNormalizer(settings.importer).normalize_text(text)
    if result.errors:
        raise click.ClickException("; ".join(result.errors))
    return result.trades


def _write_or_echo(text: str, out: str | None) -> None:
    if out:
        Path(out).write_text(text, encoding="utf-8")
        click.echo(f"Wrote {out}")
    else:
        click.echo(text)


_config_option = click.option("--config", default=None, help="TOML config file path")
_log_option = click.option("--log-level", default=None, help="Override log level")


@click.group()
def main() -> None:
    """Trade journal analytics."""


@main.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", default=None, help="Write normalized trades as JSON to this path")
@click.option("--delimiter", default=None, help="Field separator (auto-detected by default)")
@_config_option
@_log_option
def import_trades(
    source: str,
    out: str | None,
    delimiter: str | None,
    config: str | None,
    log_level: str | None,
) -> None:
    """Normalize a broker CSV/TSV export."""
    from .journal.export import TradeExporter
    from .journal.normalizer import CsvNormalizer

    settings = _bootstrap(config, log_level)
    text = Path(source).read_text(encoding="utf-8")
    result = CsvNormalizer(settings.importer).normalize_text(text, delimiter=delimiter)

    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if result.errors:
        raise SystemExit(1)

    summary = result.summary()
    click.echo(
        f"Imported {summary['imported']} trades "
        f"({summary['closed']} closed, {summary['open']} open, "
        f"{summary['skipped']} skipped)"
    )
    if out:
        Path(out).write_text(TradeExporter(settings.export).to_json(result.trades), encoding="utf-8")
        click.echo(f"Wrote {out}")


@main.command()
@click.argument("pool", type=click.Path(exists=True, dir_okay=False))
@click.option("--symbol", default=None, help="Symbol facet")
@click.option("--strategy", default=None, help="Strategy facet")
@click.option("--exchange", default=None, help="Exchange facet")
@click.option("--side", type=click.Choice(["LONG", "SHORT"]), default=None)
@click.option("--days", default=None, type=int, help="Only the last N days")
@click.option("--start", default=None, help="Start date (YYYY-MM-DD)")
@click.option("--end", default=None, help="End date (YYYY-MM-DD)")
@click.option("--exclude-backtest", is_flag=True, help="Drop DATA trades")
@click.option("--format", "fmt", type=click.Choice(["text", "json", "seek"]), default="text")
@_config_option
@_log_option
def report(
    pool: str,
    symbol: str | None,
    strategy: str | None,
    exchange: str | None,
    side: str | None,
    days: int | None,
    start: str | None,
    end: str | None,
    exclude_backtest: bool,
    fmt: str,
    config: str | None,
    log_level: str | None,
) -> None:
    """Compute performance analytics over a trade pool."""
    from .journal.filters import DateWindow, FacetFilters
    from .journal.report import build_report, seek_analysis_payload

    settings = _bootstrap(config, log_level)
    trades = _load_pool(pool, settings)

    if days is not None and (start or end):
        raise click.UsageError("--days cannot be combined with --start/--end")
    if days is not None:
        window = DateWindow.relative(days)
    elif start or end:
        if not (start and end):
            raise click.UsageError("--start and --end must be given together")
        try:
            window = DateWindow.absolute(date.fromisoformat(start), date.fromisoformat(end))
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--start/--end") from exc
    else:
        window = DateWindow.lifetime()

    facets = FacetFilters(
        symbol=symbol,
        strategy=strategy,
        exchange=exchange,
        side=side,
        exclude_backtest=exclude_backtest,
    )
    result = build_report(trades, facets, window, settings=settings)

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return
    if fmt == "seek":
        click.echo(json.dumps(seek_analysis_payload(result), indent=2, default=str))
        return

    s = result.stats
    click.echo(f"\n{'=' * 50}")
    click.echo(f"  Period:          {result.window.label}")
    click.echo(f"{'=' * 50}")
    click.echo(f"  Trades:          {s.total_trades} ({s.winning_trades}W / {s.losing_trades}L)")
    click.echo(f"  Win Rate:        {s.win_rate:.1f}%")
    click.echo(f"  Net P&L:         {s.net_pnl:+.2f}")
    click.echo(f"  Profit Factor:   {s.profit_factor:.2f}")
    click.echo(f"  Expectancy:      {s.expectancy:+.2f}")
    click.echo(f"  Avg Win / Loss:  {s.avg_win:.2f} / {s.avg_loss:.2f}")
    click.echo(f"  Sharpe:          {s.sharpe_ratio:.4f}")
    click.echo(f"  Sortino:         {s.sortino_ratio:.4f}")
    click.echo(f"  Max Drawdown:    {result.equity.max_drawdown:.2f}")
    click.echo(f"  Recovery Days:   {result.equity.max_recovery_days:.1f}")
    click.echo(f"  Est. Fees:       {result.fees.total:.2f}")
    click.echo(f"  Streak:          {s.active_streak_count} {s.active_streak_type.value}")

    by_symbol = result.deep_dive.get("by_symbol", [])
    if by_symbol:
        click.echo("\n  By Symbol:")
        for group in by_symbol:
            click.echo(
                f"    {group.name:<14s} {group.pnl:>+12.2f}  "
                f"{group.win_rate:5.1f}%  ({group.count})"
            )
    click.echo(f"\n{'=' * 50}\n")


@main.command()
@click.argument("pool", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(["csv", "tsv", "json"]), default="csv")
@click.option("--out", default=None, help="Output path (default: trades_export_<date>.<ext>)")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print instead of writing a file")
@_config_option
@_log_option
def export(
    pool: str,
    fmt: str,
    out: str | None,
    to_stdout: bool,
    config: str | None,
    log_level: str | None,
) -> None:
    """Export a trade pool as CSV, TSV or JSON."""
    from .journal.export import TradeExporter, export_filename

    settings = _bootstrap(config, log_level)
    trades = _load_pool(pool, settings)
    text = TradeExporter(settings.export).export(trades, fmt)
    _write_or_echo(text, None if to_stdout else (out or export_filename(fmt)))


@main.command()
@click.option("--capital", default=10_000.0, type=float, help="Starting capital")
@click.option("--win-rate", default=50.0, type=float, help="Win rate in percent")
@click.option("--rr", "risk_reward", default=2.0, type=float, help="Reward:risk multiple")
@click.option("--risk", default=1.0, type=float, help="Percent of balance risked per trade")
@click.option("--trades", "num_trades", default=100, type=int, help="Trades per path")
@click.option("--sims", "num_simulations", default=20, type=int, help="Number of paths")
@click.option("--seed", default=None, type=int, help="Random seed")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def simulate(
    capital: float,
    win_rate: float,
    risk_reward: float,
    risk: float,
    num_trades: int,
    num_simulations: int,
    seed: int | None,
    as_json: bool,
) -> None:
    """Monte Carlo projection of a fixed-fractional system."""
    from .journal.simulator import RiskSimulator

    if num_simulations < 1:
        raise click.BadParameter("must be at least 1", param_hint="--sims")

    result = RiskSimulator(seed=seed).run(
        start_capital=capital,
        win_rate=win_rate,
        risk_reward=risk_reward,
        risk_per_trade=risk,
        num_trades=num_trades,
        num_simulations=num_simulations,
    )
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"  Expectancy:        {result.expectancy_r:+.2f}R")
    click.echo(f"  Break-even WR:     {result.break_even_win_rate:.1f}%")
    click.echo(f"  Avg Ending:        {result.avg_ending_balance:,.0f}")
    click.echo(f"  Best Run:          {result.best_run:,.0f}")
    click.echo(f"  Worst Run:         {result.worst_run:,.0f}")
    click.echo(f"  Ruin Probability:  {result.ruin_probability:.1f}%")


if __name__ == "__main__":
    main()
