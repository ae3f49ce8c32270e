"""Prompt builders that render a simulation outcome as natural language."""

from __future__ import annotations

from typing import List

from ripple_model.baseline import BaselineMetrics
from ripple_model.entities import PolicySettings
from ripple_model.model.simulation import GroupImpact, SimulationSummary


def pct_change(new: float, old: float) -> float:
    """Relative change in percent; 0 when the reference value is 0."""

    return (new - old) / old * 100 if old else 0.0


def _policy_block(policy: PolicySettings) -> str:
    return "\n".join(
        [
            f"- Minimum Wage: ${policy.min_wage:g}/hr (baseline: $15/hr)",
            f"- Carbon Tax: ${policy.carbon_tax:g}/mile/year",
            f"- Housing Subsidy: ${policy.housing_subsidy:g}/month",
            f"- Income Tax Rate: {policy.tax_rate * 100:.0f}%",
            f"- Education Subsidy: ${policy.education_subsidy:g}/year",
            f"- Transit Subsidy: ${policy.transit_subsidy:g}/year",
            f"- EV Incentive: ${policy.ev_incentive:g}",
            f"- Green Jobs Incentive: {policy.green_jobs_incentive:g}%",
        ]
    )


def _impact_lines(impacts: List[GroupImpact]) -> str:
    lines = []
    for item in impacts:
        sign = "+" if item.mean_income_change > 0 else ""
        lines.append(
            f"- {item.group}: {sign}${item.mean_income_change / 1000:.1f}k ({item.percent_change:.1f}%)"
        )
    return "\n".join(lines) or "- (no groups)"


def policy_prompt(summary: SimulationSummary, baseline: BaselineMetrics, policy: PolicySettings) -> str:
    m = summary.metrics
    rows = [
        (
            "Average Income",
            f"${m['income'].mean / 1000:.1f}k (was ${baseline.mean_income / 1000:.1f}k)",
            pct_change(m["income"].mean, baseline.mean_income),
        ),
        (
            "Gini Coefficient",
            f"{m['gini'].mean:.3f} (was {baseline.gini_coefficient:.3f})",
            pct_change(m["gini"].mean, baseline.gini_coefficient),
        ),
        (
            "Employment Rate",
            f"{m['employment'].mean * 100:.1f}% (was {baseline.employment_rate * 100:.1f}%)",
            pct_change(m["employment"].mean, baseline.employment_rate),
        ),
        (
            "CO2 Emissions",
            f"{m['emissions'].mean / 1000:.2f} tons (was {baseline.co2_per_capita / 1000:.2f} tons)",
            pct_change(m["emissions"].mean, baseline.co2_per_capita),
        ),
        (
            "Rent Burden",
            f"{m['rent_burden'].mean * 100:.1f}% (was {baseline.mean_rent_burden * 100:.1f}%)",
            pct_change(m["rent_burden"].mean, baseline.mean_rent_burden),
        ),
    ]
    results = "\n".join(f"- {label}: {text} - Change: {change:.1f}%" for label, text, change in rows)

    brackets = summary.equity.get("income_bracket", [])
    equity = ""
    if brackets:
        best, worst = brackets[0], brackets[-1]
        equity = (
            "\n**Equity Impact:**\n"
            f"- Most Benefited Income Bracket: {best.group} "
            f"({best.mean_income_change / 1000:+.1f}k, {best.percent_change:.1f}%)\n"
            f"- Most Negatively Impacted: {worst.group} "
            f"({worst.mean_income_change / 1000:+.1f}k, {worst.percent_change:.1f}%)\n"
        )

    return (
        "You are a policy analysis expert. Analyze the following simulation results and "
        "provide a concise policy recommendation (2-3 sentences max).\n\n"
        f"**Policy Settings:**\n{_policy_block(policy)}\n\n"
        f"**Results vs Baseline:**\n{results}\n"
        f"{equity}\n"
        "Provide a balanced assessment highlighting:\n"
        "1. Main positive impacts\n"
        "2. Main concerns or trade-offs\n"
        "3. One specific recommendation to improve outcomes\n\n"
        "Keep it concise and actionable."
    )


def equity_prompt(summary: SimulationSummary, baseline: BaselineMetrics, policy: PolicySettings) -> str:
    return (
        "You are an equity policy analyst. Analyze the following demographic impacts and "
        "provide a brief analysis with clear sections.\n\n"
        "Format your response like this:\n"
        "**Overall Assessment:** [1-2 sentences on whether policy is progressive/regressive]\n\n"
        "**Income Disparities:** [Key findings about income bracket impacts]\n\n"
        "**Recommendation:** [One specific suggestion to improve equity]\n\n"
        "Keep it concise - about 4-5 sentences total.\n\n"
        f"**Impact by Income Bracket:**\n{_impact_lines(summary.equity.get('income_bracket', []))}\n\n"
        f"**Impact by Employment Sector:**\n{_impact_lines(summary.equity.get('sector', []))}\n\n"
        "Focus on: 1) Which groups benefit most/least, 2) Any concerning disparities, "
        "3) Whether the policy is progressive or regressive overall."
    )


def environmental_prompt(summary: SimulationSummary, baseline: BaselineMetrics, policy: PolicySettings) -> str:
    m = summary.metrics
    emissions_change = pct_change(m["emissions"].mean, baseline.co2_per_capita)
    energy_change = pct_change(m["energy_use"].mean, baseline.mean_energy_use)
    return (
        "As an environmental policy analyst, provide a brief 2-sentence assessment of these "
        "environmental impacts:\n\n"
        f"**Emissions:** {emissions_change:.1f}% change "
        f"(now {m['emissions'].mean / 1000:.2f} tons CO2/person/year)\n"
        f"**Energy Use:** {energy_change:.1f}% change (now {m['energy_use'].mean:.0f} kWh/month)\n\n"
        "**Policy Factors:**\n"
        f"- Carbon Tax: ${policy.carbon_tax:g}/mile/year\n"
        f"- Transit Subsidy: ${policy.transit_subsidy:g}/year\n"
        f"- EV Incentive: ${policy.ev_incentive:g}\n"
        f"- Green Jobs Incentive: {policy.green_jobs_incentive:g}%\n\n"
        "Highlight: 1) Overall environmental impact, 2) Most effective policy lever."
    )


__all__ = ["pct_change", "policy_prompt", "equity_prompt", "environmental_prompt"]
