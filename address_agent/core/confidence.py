"""
Confidence Gate Module
Accepts or rejects a submitted decision against the run's threshold.

DESIGN DECISIONS:
- Pure threshold comparison, confidence >= threshold accepts
- Rejection is not an error: the model gets a tool result explaining why
- Threshold is run-scoped configuration, never global state
"""

import json
from typing import Any

from pydantic import BaseModel

from .protocol import AgentDecision


def accept(decision: AgentDecision, threshold: float) -> bool:
    return decision.confidence >= threshold


class GateVerdict(BaseModel):
    """Outcome of gating one decision"""
    accepted: bool
    confidence: float
    threshold: float
    reason: str = ""


class ConfidenceGate:
    """Applies the minimum-confidence policy to submitted decisions"""

    def __init__(self, threshold: float = 75, rejection_hint: str = "Gather more evidence and try again."):
        self.threshold = threshold
        self.rejection_hint = rejection_hint

    def evaluate(self, decision: AgentDecision) -> GateVerdict:
        if accept(decision, self.threshold):
            return GateVerdict(accepted=True, confidence=decision.confidence, threshold=self.threshold)

        return GateVerdict(
            accepted=False,
            confidence=decision.confidence,
            threshold=self.threshold,
            reason=(
                f"Confidence {decision.confidence:g}% is below the "
                f"{self.threshold:g}% threshold. {self.rejection_hint}"
            ),
        )

    def rejection_payload(self, verdict: GateVerdict) -> dict[str, Any]:
        """Data of the synthesized tool result returned to the model"""
        return {
            "rejected": True,
            "reason": verdict.reason,
            "confidence": verdict.confidence,
            "threshold": verdict.threshold,
        }

    def rejection_content(self, verdict: GateVerdict) -> str:
        return json.dumps(self.rejection_payload(verdict))

    def rejection_summary(self, verdict: GateVerdict) -> str:
        return f"Decision rejected: {verdict.confidence:g}% < {verdict.threshold:g}%"
