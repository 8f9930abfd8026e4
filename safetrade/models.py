"""Pydantic request/response models for the SafeTrade fraud guard API."""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import List, Optional


# Request models

class FraudDetectionRequest(BaseModel):
    """Incoming payload on POST /api/messaging/fraud-detection.

    Only content affects scoring; the identifiers are kept for auditing.
    """

    model_config = ConfigDict(extra="ignore")

    content: str = Field(default="")
    senderId: Optional[str] = Field(default=None)
    conversationId: Optional[str] = Field(default=None)
    participantIds: List[str] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value):
        """Missing or non-text content is scored as an empty message."""
        if not isinstance(value, str):
            return ""
        return value

    @field_validator("participantIds", mode="before")
    @classmethod
    def _coerce_participants(cls, value):
        if value is None:
            return []
        return value


class CreateConversationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    listingId: Optional[str] = Field(default=None)
    buyerId: Optional[str] = Field(default=None)
    sellerId: Optional[str] = Field(default=None)


class SendMessageRequest(BaseModel):
    """Incoming payload on POST /api/messaging/send."""

    model_config = ConfigDict(extra="ignore")

    conversationId: Optional[str] = Field(default=None)
    senderId: Optional[str] = Field(default=None)
    content: Optional[str] = Field(default=None)
    messageType: str = Field(default="text")


# Response models

class FraudScore(BaseModel):
    """Full verdict as returned by the fraud-detection endpoint."""

    score: int
    riskLevel: str
    blocked: bool
    flags: List[str] = Field(default_factory=list)
    reasons: List[str] = Field(default_factory=list)
    warning: Optional[str] = None


class FraudDetectionResponse(BaseModel):
    success: bool = True
    fraudScore: FraudScore


class Conversation(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    seller_id: str
    created_at: str
    updated_at: str
    last_message_preview: Optional[str] = None


class StoredMessage(BaseModel):
    """A persisted chat message with the fraud fields attached at send time."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    message_type: str
    is_read: bool = False
    fraud_score: Optional[int] = None
    fraud_flags: List[str] = Field(default_factory=list)
    fraud_risk_level: Optional[str] = None
    created_at: str


class MessageFraudSummary(BaseModel):
    """Sender-facing fraud summary; flags are omitted when nothing matched."""

    riskLevel: str
    score: int
    flags: Optional[List[str]] = None
    warning: Optional[str] = None


class SendMessageResponse(BaseModel):
    success: bool = True
    message: StoredMessage
    fraudScore: Optional[MessageFraudSummary] = None  # None when screening was unavailable


class MessageListResponse(BaseModel):
    conversationId: str
    messages: List[StoredMessage] = Field(default_factory=list)
