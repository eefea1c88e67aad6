"""Risk simulator — Monte Carlo projection of a fixed-fractional system.

Answers "given this win rate and reward:risk, risking X% of the balance
per trade, what is the range of outcomes over the next N trades?"

Each path starts at ``start_capital``; every trade risks
``risk_per_trade`` percent of the current balance, wins ``risk_reward``
times that amount with probability ``win_rate`` and otherwise loses it.
A path is ruined once its balance touches the ruin level
(``start_capital * (1 - ruin_threshold_pct)``; zero by default).  A ruined
path is frozen at that balance.

Usage::

    sim = RiskSimulator(seed=7)
    result = sim.run(start_capital=10_000, win_rate=50, risk_reward=2,
                     risk_per_trade=1, num_trades=100, num_simulations=20)
    print(result.avg_ending_balance, result.ruin_probability)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


def expectancy_r(win_rate: float, risk_reward: float) -> float:
    """Expected result per trade in R.  ``win_rate`` is a percentage."""
    p = win_rate / 100
    return p * risk_reward - (1 - p)


def break_even_win_rate(risk_reward: float) -> float:
    """Win rate (percent) at which the expectancy is exactly zero."""
    return 100 / (1 + risk_reward) if risk_reward > -1 else 0.0


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of one :meth:`RiskSimulator.run`.

    ``paths[s][t]`` is the balance of run ``s`` after ``t`` trades
    (``t = 0`` is the starting capital).
    """

    start_capital: float
    num_trades: int
    num_simulations: int
    avg_ending_balance: float
    best_run: float
    worst_run: float
    ruin_probability: float
    expectancy_r: float
    break_even_win_rate: float
    median_ending_balance: float = 0.0
    mean_max_drawdown_pct: float = 0.0
    paths: list[list[float]] = field(default_factory=list, repr=False)

    def chart_rows(self) -> list[dict[str, float]]:
        """One row per trade index: ``{"trade": t, "run0": ..., "run1": ...}``."""
        rows = []
        for t in range(self.num_trades + 1):
            row: dict[str, float] = {"trade": t}
            for s, path in enumerate(self.paths):
                row[f"run{s}"] = round(path[t])
            rows.append(row)
        return rows

    def to_dict(self, *, include_paths: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "start_capital": self.start_capital,
            "num_trades": self.num_trades,
            "num_simulations": self.num_simulations,
            "avg_ending_balance": round(self.avg_ending_balance, 2),
            "median_ending_balance": round(self.median_ending_balance, 2),
            "best_run": round(self.best_run, 2),
            "worst_run": round(self.worst_run, 2),
            "ruin_probability": round(self.ruin_probability, 4),
            "mean_max_drawdown_pct": round(self.mean_max_drawdown_pct, 4),
            "expectancy_r": round(self.expectancy_r, 4),
            "break_even_win_rate": round(self.break_even_win_rate, 4),
        }
        if include_paths:
            data["paths"] = self.chart_rows()
        return data


class RiskSimulator:
    """Monte Carlo simulator for fixed-fractional position sizing.

    Parameters
    ----------
    ruin_threshold_pct : float
        Fraction of starting capital whose loss counts as ruin.
        Default 1.0 (ruin = balance at or below zero).
    seed : int | None
        Random seed for reproducibility.  None = non-deterministic.
    """

    def __init__(
        self,
        *,
        ruin_threshold_pct: float = 1.0,
        seed: int | None = None,
    ) -> None:
        self._ruin_threshold = min(1.0, max(0.0, ruin_threshold_pct))
        self._rng = random.Random(seed)

    # ------------------------------------------------------------------ #
    # Simulation                                                           #
    # ------------------------------------------------------------------ #

    def run(
        self,
        start_capital: float = 10_000.0,
        win_rate: float = 50.0,
        risk_reward: float = 2.0,
        risk_per_trade: float = 1.0,
        num_trades: int = 100,
        num_simulations: int = 20,
    ) -> SimulationResult:
        """Simulate ``num_simulations`` independent paths.

        Parameters
        ----------
        start_capital : float
            Opening balance of every path.
        win_rate : float
            Probability of a winning trade, in percent (0-100).
        risk_reward : float
            Reward multiple of the risked amount on a win.
        risk_per_trade : float
            Percent of the current balance risked per trade.
        num_trades : int
            Trades per path.
        num_simulations : int
            Number of paths.

        Returns
        -------
        SimulationResult
        """
        if num_simulations < 1:
            raise ValueError("num_simulations must be at least 1")
        num_trades = max(0, int(num_trades))
        win_rate = min(100.0, max(0.0, win_rate))
        risk_fraction = max(0.0, risk_per_trade) / 100
        ruin_level = start_capital * (1.0 - self._ruin_threshold)

        paths: list[list[float]] = []
        endings: list[float] = []
        drawdowns: list[float] = []
        ruins = 0

        for _ in range(num_simulations):
            balance = start_capital
            peak = balance
            worst_dd = 0.0
            ruined = False
            path = [balance]

            for _ in range(num_trades):
                if not ruined and balance <= ruin_level:
                    ruined = True
                if not ruined:
                    risk_amt = balance * risk_fraction
                    if self._rng.random() * 100 < win_rate:
                        balance += risk_amt * risk_reward
                    else:
                        balance -= risk_amt
                    balance = max(0.0, balance)

                if balance > peak:
                    peak = balance
                dd = (peak - balance) / peak if peak > 0 else 0.0
                if dd > worst_dd:
                    worst_dd = dd
                path.append(balance)

            if not ruined and balance <= ruin_level:
                ruined = True
            paths.append(path)
            endings.append(balance)
            drawdowns.append(worst_dd)
            if ruined:
                ruins += 1

        n = num_simulations
        result = SimulationResult(
            start_capital=start_capital,
            num_trades=num_trades,
            num_simulations=n,
            avg_ending_balance=sum(endings) / n,
            median_ending_balance=self._percentile(sorted(endings), 50),
            best_run=max(endings),
            worst_run=min(endings),
            ruin_probability=ruins / n * 100,
            mean_max_drawdown_pct=sum(drawdowns) / n * 100,
            expectancy_r=expectancy_r(win_rate, risk_reward),
            break_even_win_rate=break_even_win_rate(risk_reward),
            paths=paths,
        )
        logger.debug(
            "RiskSimulator: %d paths x %d trades, avg end=%.2f, ruin=%.1f%%",
            n,
            num_trades,
            result.avg_ending_balance,
            result.ruin_probability,
        )
        return result

    # ------------------------------------------------------------------ #
    # Private helpers                                                      #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _percentile(sorted_values: list[float], pct: float) -> float:
        """Linear-interpolated percentile of a sorted list."""
        if not sorted_values:
            return 0.0
        k = (len(sorted_values) - 1) * (pct / 100.0)
        f = math.floor(k)
        c = math.ceil(k)
        if f == c:
            return sorted_values[int(k)]
        return sorted_values[f] * (c - k) + sorted_values[c] * (k - f)
