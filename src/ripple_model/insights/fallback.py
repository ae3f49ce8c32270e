"""Deterministic offline summaries used when the insight service is unavailable."""

from __future__ import annotations

from ripple_model.baseline import BaselineMetrics
from ripple_model.insights.prompts import pct_change
from ripple_model.model.simulation import SimulationSummary


def fallback_policy_text(summary: SimulationSummary, baseline: BaselineMetrics) -> str:
    gini_mean = summary.metrics["gini"].mean
    income_mean = summary.metrics["income"].mean
    emissions_mean = summary.metrics["emissions"].mean

    gini_change = gini_mean - baseline.gini_coefficient
    income_change = income_mean - baseline.mean_income
    emissions_change = emissions_mean - baseline.co2_per_capita

    if gini_change > 0.01:
        return (
            f"This policy combination increases inequality by "
            f"{pct_change(gini_mean, baseline.gini_coefficient):.1f}%. Consider adding progressive "
            "measures like higher housing subsidies or education programs to offset regressive effects."
        )
    if income_change < -1000:
        return (
            f"While inequality improves, average income declines by ${abs(income_change) / 1000:.1f}k. "
            "Consider balancing wage policies with employment support to maintain income levels."
        )
    if emissions_change < -500:
        return (
            f"This policy shows strong environmental benefits with "
            f"{abs(pct_change(emissions_mean, baseline.co2_per_capita)):.1f}% emissions reduction, "
            "while maintaining economic stability. Consider scaling up green incentives further."
        )
    return (
        f"This policy combination shows positive results with income increasing to "
        f"${income_mean / 1000:.1f}k and inequality decreasing by "
        f"{-pct_change(gini_mean, baseline.gini_coefficient):.1f}%. The trade-offs appear balanced."
    )


def fallback_equity_text(summary: SimulationSummary, baseline: BaselineMetrics) -> str:
    brackets = summary.equity.get("income_bracket", [])
    if not brackets:
        return "No income-bracket breakdown is available for this run."

    top, bottom = brackets[0], brackets[-1]
    if top.percent_change < bottom.percent_change:
        return (
            f"Higher income groups benefit more (+{top.percent_change:.1f}% for {top.group}) compared "
            f"to lower income groups ({bottom.percent_change:.1f}% for {bottom.group}), suggesting "
            "regressive impacts. Consider strengthening progressive measures."
        )
    return (
        f"Lower income groups see greater relative benefits (+{top.percent_change:.1f}% for "
        f"{top.group}), indicating progressive policy outcomes. The policy effectively targets "
        "those most in need."
    )


def fallback_environmental_text(summary: SimulationSummary, baseline: BaselineMetrics) -> str:
    change = pct_change(summary.metrics["emissions"].mean, baseline.co2_per_capita)
    if change < -10:
        return (
            f"Emissions decrease significantly by {abs(change):.1f}%, demonstrating strong "
            "environmental benefits. Transit and EV incentives are working effectively to shift "
            "commuter behavior."
        )
    if change > 5:
        return (
            f"Emissions increase by {change:.1f}%, suggesting environmental policies need "
            "strengthening. Consider increasing carbon taxes or transit subsidies to drive cleaner "
            "transportation choices."
        )
    return (
        f"Emissions remain relatively stable with {abs(change):.1f}% change. Additional "
        "environmental incentives may be needed to achieve meaningful emission reductions."
    )


__all__ = ["fallback_policy_text", "fallback_equity_text", "fallback_environmental_text"]
