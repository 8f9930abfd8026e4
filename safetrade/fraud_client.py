"""Fraud check client used by the message-send pathway.

Screens a message either in-process (default) or by POSTing to a sibling
/api/messaging/fraud-detection endpoint. Every failure mode returns None:
the caller then sends the message without a fraud score (fail open).

Also hosts the fraud-attempt audit record shared by the endpoint and the
in-process path."""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests

from safetrade.config import Config
from safetrade.detector import FraudDetector, FraudVerdict, RiskLevel, fraud_detector

logger = logging.getLogger(__name__)

# Characters of message content kept in an audit record
AUDIT_CONTENT_CHARS: int = 100


def log_fraud_attempt(
    sender_id: Optional[str],
    conversation_id: Optional[str],
    content: str,
    verdict: FraudVerdict,
) -> None:
    """Write a high/critical verdict to the audit log. No-op for lower tiers."""
    if verdict.risk_level not in (RiskLevel.HIGH, RiskLevel.CRITICAL):
        return

    excerpt = content or ""
    if len(excerpt) > AUDIT_CONTENT_CHARS:
        excerpt = excerpt[:AUDIT_CONTENT_CHARS] + "..."

    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "senderId": sender_id,
        "conversationId": conversation_id,
        "riskLevel": verdict.risk_level.value,
        "score": verdict.score,
        "blocked": verdict.blocked,
        "flags": verdict.flags,
        "reasons": verdict.reasons,
        "content": excerpt,
    }
    logger.warning(f"FRAUD_ATTEMPT: {json.dumps(record, default=str)}")


class FraudCheckClient:
    """Runs fraud screening for one message, never raising."""

    def __init__(
        self,
        detector: Optional[FraudDetector] = None,
        service_url: str = "",
        timeout: float = 5.0,
        api_key: Optional[str] = None,
    ) -> None:
        self.detector = detector or fraud_detector
        self.service_url = service_url
        self.timeout = timeout
        self.api_key = api_key

    @property
    def is_remote(self) -> bool:
        return bool(self.service_url)

    def check(
        self,
        content: str,
        sender_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        participant_ids: Optional[List[str]] = None,
    ) -> Optional[FraudVerdict]:
        """Return the verdict for content, or None if screening was unavailable."""
        if self.is_remote:
            return self._check_remote(content, sender_id, conversation_id, participant_ids or [])
        return self._check_local(content, sender_id, conversation_id)

    def _check_local(
        self,
        content: str,
        sender_id: Optional[str],
        conversation_id: Optional[str],
    ) -> Optional[FraudVerdict]:
        short_id = (conversation_id or "")[:8]
        try:
            verdict = self.detector.assess(content)
        except Exception as exc:
            logger.error(f"[{short_id}] In-process fraud check failed: {exc}", exc_info=True)
            return None

        log_fraud_attempt(sender_id, conversation_id, content, verdict)
        return verdict

    def _check_remote(
        self,
        content: str,
        sender_id: Optional[str],
        conversation_id: Optional[str],
        participant_ids: List[str],
    ) -> Optional[FraudVerdict]:
        short_id = (conversation_id or "")[:8]
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key

        try:
            response = requests.post(
                self.service_url,
                json={
                    "content": content,
                    "senderId": sender_id,
                    "conversationId": conversation_id,
                    "participantIds": participant_ids,
                },
                timeout=self.timeout,
                headers=headers,
            )
        except requests.exceptions.Timeout:
            logger.error(f"[{short_id}] Fraud service timed out after {self.timeout}s")
            return None
        except requests.exceptions.RequestException as exc:
            logger.error(f"[{short_id}] Fraud service network error: {exc}")
            return None

        if response.status_code != 200:
            logger.warning(
                f"[{short_id}] Fraud service unavailable: "
                f"{response.status_code} {response.text[:200]}"
            )
            return None

        try:
            return FraudVerdict.from_payload(response.json()["fraudScore"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(f"[{short_id}] Fraud service returned a malformed verdict: {exc}")
            return None


# Module-level singleton configured from the environment
fraud_client = FraudCheckClient(
    detector=fraud_detector,
    service_url=Config.FRAUD_SERVICE_URL,
    timeout=Config.FRAUD_SERVICE_TIMEOUT,
    api_key=Config.API_KEY,
)
