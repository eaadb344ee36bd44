from __future__ import annotations
import requests
from typing import Dict, Any, List

from trend_engine.ledger import TrendState
from trend_engine.scheduler import CycleReport

def post_webhook(webhook_url: str, payload: Dict[str, Any]) -> None:
    if not webhook_url:
        raise RuntimeError("SLACK_WEBHOOK_URL is empty.")
    r = requests.post(webhook_url, json=payload, timeout=15)
    r.raise_for_status()

def blocks_for_cycle(report: CycleReport, state: TrendState, limit: int = 10) -> List[Dict[str, Any]]:
    lines = []
    for key in report.new_breakouts[:limit]:
        rec = state.breakouts.get(key)
        if rec is None:
            continue
        lines.append(f"- *{rec.term}*  (via `{rec.category}`, value {rec.value:.0f})")
    if len(report.new_breakouts) > limit:
        lines.append(f"... (+{len(report.new_breakouts) - limit} more)")

    return [
        {"type": "header", "text": {"type": "plain_text", "text": f"🚨 {len(report.new_breakouts)} new breakout term(s)"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines) or "-"}},
        {"type": "context", "elements": [{"type": "mrkdwn", "text": (
            f"tracked {len(state.terms)} autocomplete terms "
            f"(+{len(report.new_terms)} new / {len(report.lost_terms)} not seen this cycle)"
        )}]},
    ]

class SlackCycleNotifier:
    """Posts a summary when a committed cycle discovered new breakouts."""

    def __init__(self, webhook_url: str, channel: str):
        self.webhook_url = webhook_url
        self.channel = channel

    def __call__(self, report: CycleReport, state: TrendState) -> None:
        if not report.new_breakouts:
            return
        blocks = blocks_for_cycle(report, state)
        post_webhook(self.webhook_url, {"channel": self.channel, "blocks": blocks, "text": "Photo booth trend alert"})
