"""Short notifications shown after relief and rescue commands."""

from __future__ import annotations

from typing import Dict, List


def _notice(title: str, items: List[str]) -> Dict[str, object]:
    return {"title": title, "items": items}


def loan_notice(finance_gain: float, penalty: int) -> dict:
    return _notice(
        "Bank Loan Approved",
        [f"Finances +{finance_gain:.1f}", f"Resilience Score -{penalty} (Debt Penalty)"],
    )


def bailout_notice(finance_gain: float, image_gain: float, morale_loss: float, penalty: int, debuff_rounds: int) -> dict:
    """Bailout costs morale and locks finance gains for a few rounds."""
    return _notice(
        "Emergency Bailout Approved",
        [
            f"Finances +{finance_gain:.1f}",
            f"Public Image +{image_gain:.1f}",
            f"Morale -{morale_loss:.1f}",
            f"Resilience Score -{penalty}",
            f"Investors freeze finance gains for {debuff_rounds} rounds",
        ],
    )


def final_rescue_notice() -> dict:
    return _notice(
        "Federal Rescue Accepted",
        ["Critical Metrics Reset to 3", "Resilience Score Halved", "Continuing Game..."],
    )
