"""Static crisis scenarios (the built-in content deck).

Scenarios are written as plain literals and converted into immutable
records at import time. Impact maps only list the metrics a choice moves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .metrics import MetricKind


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class Choice:
    id: str
    text: str
    risk: RiskLevel
    impacts: Dict[MetricKind, float]


@dataclass(frozen=True)
class Scenario:
    id: str
    title: str
    description: str
    category: str
    choices: Tuple[Choice, ...]

    def find_choice(self, choice_id: str) -> Optional[Choice]:
        return next((c for c in self.choices if c.id == choice_id), None)


_SCENARIOS: Dict[str, Scenario] = {}

M = MetricKind.MORALE
F = MetricKind.FINANCES
S = MetricKind.SUPPLY_CHAIN
P = MetricKind.PUBLIC_IMAGE


def build_scenario(raw: dict) -> Scenario:
    """Convert a literal scenario definition into an immutable Scenario."""
    choices = tuple(
        Choice(
            id=c["id"],
            text=c["text"],
            risk=RiskLevel(c["risk"]),
            impacts={MetricKind(k): float(v) for k, v in c["impacts"].items()},
        )
        for c in raw["choices"]
    )
    if not 1 <= len(choices) <= 4:
        raise ValueError(f"Scenario {raw['id']} must have 1-4 choices, got {len(choices)}")
    return Scenario(
        id=raw["id"],
        title=raw["title"],
        description=raw["description"],
        category=raw["category"],
        choices=choices,
    )


def _register(raw: dict) -> None:
    scenario = build_scenario(raw)
    _SCENARIOS[scenario.id] = scenario


_register(
    {
        "id": "supplier-bankrupt",
        "title": "Key Supplier Goes Bankrupt",
        "description": "Your sole supplier of a critical component has filed for bankruptcy. Production halts in two weeks.",
        "category": "Supply Chain",
        "choices": [
            {"id": "emergency-contract", "text": "Sign an expensive emergency contract with a competitor's supplier", "risk": "Low", "impacts": {F: -2, S: 2}},
            {"id": "buy-supplier", "text": "Acquire the bankrupt supplier's assets", "risk": "High", "impacts": {F: -3, S: 3, M: 1}},
            {"id": "ration-stock", "text": "Ration existing stock and delay orders", "risk": "Medium", "impacts": {S: -1, P: -1}},
            {"id": "redesign", "text": "Redesign the product to drop the component", "risk": "High", "impacts": {S: 1, F: -1, M: -1}},
        ],
    }
)

_register(
    {
        "id": "data-breach",
        "title": "Customer Data Breach",
        "description": "Security reports that customer records were exfiltrated overnight. The press has not found out yet.",
        "category": "Public Relations",
        "choices": [
            {"id": "disclose", "text": "Disclose immediately and offer free credit monitoring", "risk": "Low", "impacts": {F: -2, P: 1}},
            {"id": "quiet-fix", "text": "Patch quietly and hope it stays out of the news", "risk": "High", "impacts": {P: -3, M: -1}},
            {"id": "blame-vendor", "text": "Publicly blame the hosting vendor", "risk": "Medium", "impacts": {P: -1, S: -1}},
        ],
    }
)

_register(
    {
        "id": "union-strike",
        "title": "Union Threatens Strike",
        "description": "Factory workers demand a 15% raise and vote to strike at the end of the month.",
        "category": "Human Resources",
        "choices": [
            {"id": "meet-demands", "text": "Meet the demands in full", "risk": "Low", "impacts": {M: 2, F: -2}},
            {"id": "negotiate", "text": "Negotiate a smaller raise with profit sharing", "risk": "Medium", "impacts": {M: 1, F: -1}},
            {"id": "hire-replacements", "text": "Hire temporary replacement workers", "risk": "High", "impacts": {M: -3, S: 1, P: -2}},
            {"id": "automate", "text": "Announce an accelerated automation program", "risk": "High", "impacts": {M: -2, F: -1, S: 2}},
        ],
    }
)

_register(
    {
        "id": "viral-complaint",
        "title": "Viral Product Complaint",
        "description": "A video of your product failing spectacularly has ten million views.",
        "category": "Public Relations",
        "choices": [
            {"id": "recall", "text": "Issue a voluntary recall", "risk": "Low", "impacts": {F: -2, P: 2, S: -1}},
            {"id": "ceo-apology", "text": "CEO records a personal apology video", "risk": "Medium", "impacts": {P: 1, M: 1}},
            {"id": "legal-takedown", "text": "Send legal takedown notices", "risk": "High", "impacts": {P: -3}},
        ],
    }
)

_register(
    {
        "id": "cash-crunch",
        "title": "Quarterly Cash Crunch",
        "description": "A large customer is 90 days late on payment and payroll is due Friday.",
        "category": "Finance",
        "choices": [
            {"id": "credit-line", "text": "Draw on the credit line at a high rate", "risk": "Low", "impacts": {F: 1, M: 0.5}},
            {"id": "delay-payroll", "text": "Delay payroll by a week", "risk": "High", "impacts": {M: -3, F: 1}},
            {"id": "factor-invoices", "text": "Sell the receivables to a factoring firm", "risk": "Medium", "impacts": {F: 2, P: -1}},
            {"id": "cut-marketing", "text": "Freeze all marketing spend", "risk": "Medium", "impacts": {F: 1, P: -1}},
        ],
    }
)

_register(
    {
        "id": "port-closure",
        "title": "Port Closure",
        "description": "A storm has closed the port that handles 60% of your inbound freight.",
        "category": "Supply Chain",
        "choices": [
            {"id": "air-freight", "text": "Switch to air freight temporarily", "risk": "Low", "impacts": {F: -2, S: 1}},
            {"id": "wait-it-out", "text": "Wait for the port to reopen", "risk": "Medium", "impacts": {S: -2, P: -1}},
            {"id": "reroute", "text": "Reroute through a distant port by rail", "risk": "Medium", "impacts": {S: 1, F: -1, M: -1}},
        ],
    }
)

_register(
    {
        "id": "exec-scandal",
        "title": "Executive Scandal",
        "description": "Your CFO is photographed at a competitor's headquarters. Rumours of insider trading spread.",
        "category": "Governance",
        "choices": [
            {"id": "independent-review", "text": "Commission an independent review and place the CFO on leave", "risk": "Low", "impacts": {P: 1, M: -1, F: -1}},
            {"id": "fire-cfo", "text": "Fire the CFO immediately", "risk": "Medium", "impacts": {P: 2, M: -2}},
            {"id": "stand-by", "text": "Stand by your executive publicly", "risk": "High", "impacts": {P: -3, M: 1}},
        ],
    }
)

_register(
    {
        "id": "competitor-price-war",
        "title": "Competitor Starts a Price War",
        "description": "Your largest competitor slashed prices by 30% overnight.",
        "category": "Market",
        "choices": [
            {"id": "match-prices", "text": "Match their prices", "risk": "Medium", "impacts": {F: -3, P: 1}},
            {"id": "premium-positioning", "text": "Double down on premium quality messaging", "risk": "Low", "impacts": {P: 1, F: -1}},
            {"id": "loyalty-program", "text": "Launch a loyalty program for existing customers", "risk": "Low", "impacts": {F: -1, P: 1, M: 0.5}},
            {"id": "ignore", "text": "Ignore it and hold course", "risk": "High", "impacts": {F: -2, M: -1}},
        ],
    }
)

_register(
    {
        "id": "factory-fire",
        "title": "Factory Fire",
        "description": "A fire damages your main production line. Nobody was hurt, but output is down by half.",
        "category": "Operations",
        "choices": [
            {"id": "overtime", "text": "Run the remaining line on overtime", "risk": "Medium", "impacts": {M: -2, S: 1}},
            {"id": "outsource", "text": "Outsource production to a contract manufacturer", "risk": "Low", "impacts": {F: -2, S: 2}},
            {"id": "insurance-wait", "text": "Wait for the insurance payout before rebuilding", "risk": "High", "impacts": {S: -3, F: 1}},
        ],
    }
)

_register(
    {
        "id": "regulatory-fine",
        "title": "Regulatory Investigation",
        "description": "Regulators open an investigation into your emissions reporting.",
        "category": "Legal",
        "choices": [
            {"id": "cooperate", "text": "Cooperate fully and self-report findings", "risk": "Low", "impacts": {F: -1, P: 1}},
            {"id": "lawyer-up", "text": "Hire an aggressive legal team", "risk": "Medium", "impacts": {F: -2, P: -1}},
            {"id": "green-overhaul", "text": "Announce a company-wide sustainability overhaul", "risk": "Medium", "impacts": {F: -2, P: 2, M: 1}},
        ],
    }
)

_register(
    {
        "id": "talent-exodus",
        "title": "Talent Exodus",
        "description": "Three senior engineers resigned this week and recruiters are circling the rest of the team.",
        "category": "Human Resources",
        "choices": [
            {"id": "retention-bonus", "text": "Pay retention bonuses to key staff", "risk": "Low", "impacts": {F: -2, M: 2}},
            {"id": "remote-work", "text": "Offer permanent remote work", "risk": "Medium", "impacts": {M: 2, S: -1}},
            {"id": "let-them-go", "text": "Let them go and promote from within", "risk": "High", "impacts": {M: -1, S: -1, F: 1}},
        ],
    }
)

_register(
    {
        "id": "hostile-bid",
        "title": "Hostile Takeover Bid",
        "description": "An activist fund has built a 12% stake and demands a seat on the board.",
        "category": "Governance",
        "choices": [
            {"id": "negotiate-seat", "text": "Offer them a board seat", "risk": "Low", "impacts": {F: 1, M: -1}},
            {"id": "poison-pill", "text": "Adopt a poison pill defence", "risk": "Medium", "impacts": {F: -2, P: -1, M: 1}},
            {"id": "white-knight", "text": "Seek a friendly acquirer", "risk": "High", "impacts": {F: 2, M: -2, P: -1}},
            {"id": "buyback", "text": "Launch a share buyback", "risk": "Medium", "impacts": {F: -3, P: 1}},
        ],
    }
)


def all_scenarios() -> List[Scenario]:
    """Return the full content deck in registration order."""
    return list(_SCENARIOS.values())


def get_all_summaries() -> List[dict]:
    """Return lightweight summaries for listing."""
    return [
        {
            "id": s.id,
            "title": s.title,
            "category": s.category,
            "choice_count": len(s.choices),
        }
        for s in _SCENARIOS.values()
    ]


def load_scenario(scenario_id: str) -> Optional[Scenario]:
    """Return the full scenario for a given id."""
    return _SCENARIOS.get(scenario_id)
