"""
assistant.py
------------

A scripted trading assistant. It does not reason or call out to anything:
the user's message is matched against an ordered table of keyword rules and
the first match picks a response template, filled in from the portfolio
statistics of the user's trades.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from .analytics import compute_portfolio_stats
from .formatting import format_percent
from .models import PortfolioStats, TradeRecord


@dataclass(frozen=True)
class AssistantReply:
    category: str
    content: str


@dataclass(frozen=True)
class Rule:
    """Keyword rule. Keywords are regex fragments matched at the start of a word."""
    category: str
    keywords: Tuple[str, ...]
    render: Callable[[PortfolioStats], str]

    def matches(self, message: str) -> bool:
        return re.search(r"\b(?:" + "|".join(self.keywords) + ")", message) is not None


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.2f}"


def _analysis(s: PortfolioStats) -> str:
    verdict = (
        "Your win rate is below 50%. Focus on quality setups and cut losses with discipline."
        if s.win_rate < 50
        else "Your win rate is healthy. Keep running the strategy that is working."
    )
    return (
        "Trading analysis:\n"
        f"- Closed trades: {s.total_trades} ({s.open_trades} still open)\n"
        f"- Win rate: {format_percent(s.win_rate)}\n"
        f"- Net P&L: {_signed(s.net_profit)}\n"
        f"- Risk:reward: {s.risk_reward_ratio:.2f}:1\n"
        f"\n{verdict}"
    )


def _risk(s: PortfolioStats) -> str:
    rr_tip = (
        "Widen your targets or tighten your stops to reach at least 1:1.5."
        if s.risk_reward_ratio < 1.5
        else "Your risk:reward is good, keep it there."
    )
    return (
        "Risk management:\n"
        f"- Average loss: {s.average_loss:.2f}\n"
        f"- Average win: {s.average_win:.2f}\n"
        "\n"
        "1. Risk at most 2% of the balance per trade\n"
        f"2. {rr_tip}\n"
        "3. Size positions consistently\n"
        "4. No revenge trading after a losing streak"
    )


def _psychology(s: PortfolioStats) -> str:
    opener = (
        "You are in a drawdown. That is normal in trading. What matters:"
        if s.net_profit < 0
        else "Performance is positive, but keep your head straight:"
    )
    return (
        f"Psychology check:\n{opener}\n"
        "- Skip FOMO, wait for a valid setup\n"
        "- Accept losses as part of the process\n"
        "- Stick to your trading rules\n"
        "- Step away when emotions take over"
    )


def _education(s: PortfolioStats) -> str:
    opener = (
        "Your win rate is high. Stay consistent and avoid overconfidence."
        if s.win_rate > 60
        else "Ways to lift your win rate:"
    )
    return (
        f"Tips for today:\n{opener}\n"
        "1. Analyse the market before the session\n"
        "2. Set target and stop before entry\n"
        "3. Trade the session that suits your strategy\n"
        "4. Journal the reasoning behind every trade"
    )


def _motivation(s: PortfolioStats) -> str:
    opener = (
        "Your profits show you are on the right track. Stay consistent!"
        if s.net_profit > 0
        else "Every professional trader goes through drawdowns. The difference is they keep going."
    )
    return (
        f"Motivation:\n{opener}\n"
        "- Every loss is a lesson\n"
        "- Consistency beats short-term results\n"
        "- Focus on process, not outcome"
    )


HELP_TEXT = (
    "I can help with:\n"
    '- "analysis": your performance statistics\n'
    '- "risk": risk management advice\n'
    '- "psychology": trading mindset\n'
    '- "tips": trading education\n'
    '- "motivation": a push to keep going'
)

# checked in order, first match wins
RULES: List[Rule] = [
    Rule("analysis", ("analy", "perform", r"stats\b", "statisti", "analisa"), _analysis),
    # "a lot" is an amount, not a position size
    Rule("risk", ("risk", "risiko", r"(?<!a )lots?\b", "size", "sizing"), _risk),
    Rule("psychology", ("psycho", "psikologi", "emotion", "emosi", "feeling"), _psychology),
    Rule("education", (r"tips?\b", "learn", "belajar", "edukasi"), _education),
    Rule("motivation", ("motivat", "motivasi", "semangat", r"down\b"), _motivation),
]


def reply(message: str, trades: Sequence[TradeRecord]) -> AssistantReply:
    """Pick a scripted response for ``message`` given the user's trades."""
    text = (message or "").lower()
    stats = compute_portfolio_stats(trades)
    for rule in RULES:
        if rule.matches(text):
            return AssistantReply(rule.category, rule.render(stats))
    return AssistantReply("help", HELP_TEXT)


def welcome(trades: Sequence[TradeRecord]) -> AssistantReply:
    return AssistantReply(
        "welcome",
        f"Hi! I have looked at your {len(trades)} trades. "
        "Ask me for an analysis, risk advice, psychology, tips or motivation.",
    )
