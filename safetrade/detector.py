"""
detector.py — Message Fraud Scoring Engine
==========================================

Scores a single chat message against the pattern table and produces a
verdict the message-send pathway acts on.

Scoring mechanics:
    1. Input that is not a non-empty string scores 0
    2. Only the first max_chars characters are scanned
    3. Text is normalized (case, accents, quotes, whitespace)
    4. Each rule contributes its weight once, however many cues it matched
    5. The total maps to a risk tier through RiskThresholds
    6. Critical verdicts are blocked in production; in development they pass
       with an explanatory reason instead

Failure policy:
    Any internal error is logged and turned into a low, unblocked verdict.
    Fraud screening must never be the reason a legitimate message fails.

Thread safety:
    The detector holds no mutable state after construction; the compiled
    pattern table is shared read-only.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from safetrade.config import Config, DEVELOPMENT, PRODUCTION
from safetrade.matchers import normalize_text
from safetrade.patterns import PATTERN_TABLE, FraudRule

logger = logging.getLogger(__name__)

DEV_MODE_NOTE = "(Development mode: would be blocked in production)"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RiskThresholds:
    """Upper score bounds (inclusive) of the low, medium and high tiers."""
    low_max: int = 10
    medium_max: int = 35
    high_max: int = 60

    def __post_init__(self) -> None:
        if not (0 <= self.low_max < self.medium_max < self.high_max):
            raise ValueError(
                "Risk thresholds must satisfy 0 <= low_max < medium_max < high_max, "
                f"got {self.low_max}/{self.medium_max}/{self.high_max}"
            )

    def level_for(self, score: int) -> RiskLevel:
        if score <= self.low_max:
            return RiskLevel.LOW
        if score <= self.medium_max:
            return RiskLevel.MEDIUM
        if score <= self.high_max:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL


@dataclass
class FraudSignal:
    """One matched rule."""
    pattern_id: str
    weight: int
    matched_text: List[str] = field(default_factory=list)  # Distinct cues that fired
    reason: str = ""


@dataclass
class PatternEvaluation:
    """Raw pattern-table result, before tiering and blocking policy."""
    score: int = 0
    flags: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    signals: List[FraudSignal] = field(default_factory=list)

    def add(self, signal: FraudSignal) -> None:
        if signal.pattern_id in self.flags:
            return
        self.score += signal.weight
        self.flags.append(signal.pattern_id)
        self.reasons.append(signal.reason)
        self.signals.append(signal)


@dataclass
class FraudVerdict:
    score: int = 0
    risk_level: RiskLevel = RiskLevel.LOW
    blocked: bool = False
    flags: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    signals: List[FraudSignal] = field(default_factory=list)

    @property
    def warning(self) -> Optional[str]:
        """Sender-facing notice for medium and high risk; None otherwise."""
        if self.risk_level in (RiskLevel.MEDIUM, RiskLevel.HIGH):
            return f"This message was flagged as {self.risk_level.value} risk"
        return None

    def to_payload(self) -> dict:
        """Wire format used by the fraud-detection endpoint."""
        payload = {
            "score": self.score,
            "riskLevel": self.risk_level.value,
            "blocked": self.blocked,
            "flags": list(self.flags),
            "reasons": list(self.reasons),
        }
        if self.warning:
            payload["warning"] = self.warning
        return payload

    @classmethod
    def from_payload(cls, payload: dict) -> "FraudVerdict":
        """Rebuild a verdict from the endpoint's fraudScore object.

        Raises ValueError/KeyError/TypeError on a payload that does not
        follow the wire format.
        """
        score = int(payload["score"])
        if score < 0:
            raise ValueError(f"negative fraud score: {score}")
        return cls(
            score=score,
            risk_level=RiskLevel(payload["riskLevel"]),
            blocked=bool(payload["blocked"]),
            flags=[str(f) for f in payload.get("flags", [])],
            reasons=[str(r) for r in payload.get("reasons", [])],
        )


class FraudDetector:
    """
    Deterministic rule-based scorer for marketplace chat messages.

    The runtime mode is fixed at construction: PRODUCTION blocks critical
    messages, DEVELOPMENT lets them through with DEV_MODE_NOTE appended.
    """

    def __init__(
        self,
        mode: str = PRODUCTION,
        rules: Sequence[FraudRule] = PATTERN_TABLE,
        thresholds: Optional[RiskThresholds] = None,
        max_chars: int = 5000,
    ) -> None:
        if mode not in (PRODUCTION, DEVELOPMENT):
            raise ValueError(f"Unknown runtime mode: {mode!r}")
        if max_chars < 1:
            raise ValueError("max_chars must be positive")
        pattern_ids = [rule.pattern_id for rule in rules]
        if len(set(pattern_ids)) != len(pattern_ids):
            raise ValueError("Pattern ids must be unique")
        if any(rule.weight <= 0 for rule in rules):
            raise ValueError("Pattern weights must be positive")

        self.mode = mode
        self.rules = tuple(rules)
        self.thresholds = thresholds or RiskThresholds()
        self.max_chars = max_chars

    @property
    def is_production(self) -> bool:
        return self.mode == PRODUCTION

    def evaluate(self, text: str) -> PatternEvaluation:
        """Run the pattern table over text and sum the weights of matched rules."""
        evaluation = PatternEvaluation()
        if not isinstance(text, str) or not text:
            return evaluation

        normalized = normalize_text(text[: self.max_chars])
        if not normalized:
            return evaluation

        for rule in self.rules:
            cues = rule.matcher.find(normalized)
            if not cues:
                continue
            suffix = "match" if len(cues) == 1 else "matches"
            evaluation.add(FraudSignal(
                pattern_id=rule.pattern_id,
                weight=rule.weight,
                matched_text=cues,
                reason=f"{rule.description} ({len(cues)} {suffix})",
            ))
        return evaluation

    def assess(self, text: str) -> FraudVerdict:
        """Score text and apply tiering plus the blocking policy.

        Never raises: on an internal error the verdict fails open.
        """
        try:
            evaluation = self.evaluate(text)
            risk_level = self.thresholds.level_for(evaluation.score)
            verdict = FraudVerdict(
                score=evaluation.score,
                risk_level=risk_level,
                flags=evaluation.flags,
                reasons=evaluation.reasons,
                signals=evaluation.signals,
            )

            if risk_level is RiskLevel.CRITICAL:
                if self.is_production:
                    verdict.blocked = True
                else:
                    verdict.reasons.append(DEV_MODE_NOTE)
            return verdict

        except Exception as exc:
            logger.error(f"Fraud evaluation failed, failing open: {exc}", exc_info=True)
            return FraudVerdict()


# Module-level singleton configured from the environment
fraud_detector = FraudDetector(mode=Config.RUNTIME_MODE, max_chars=Config.MAX_SCAN_CHARS)
