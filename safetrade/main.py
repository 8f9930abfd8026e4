"""FastAPI entry point. Exposes GET / (health), the fraud-detection endpoint,
and the message-send pathway that screens chat messages before storing them."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from safetrade.auth import verify_api_key
from safetrade.config import Config
from safetrade.detector import FraudDetector, fraud_detector
from safetrade.fraud_client import FraudCheckClient, fraud_client, log_fraud_attempt
from safetrade.models import (
    Conversation,
    CreateConversationRequest,
    FraudDetectionRequest,
    FraudDetectionResponse,
    FraudScore,
    MessageFraudSummary,
    MessageListResponse,
    SendMessageRequest,
    SendMessageResponse,
    StoredMessage,
)
from safetrade.store import ConversationStore, conversation_store

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "Message blocked for security reasons"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"{Config.SERVICE_NAME} v{Config.VERSION} started | mode={fraud_detector.mode} "
        f"| fraud checks={'remote' if fraud_client.is_remote else 'in-process'}"
    )
    yield


app = FastAPI(
    title="SafeTrade Fraud Guard API",
    description="Rule-based fraud screening for marketplace chat messages",
    version=Config.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies (overridden in tests)

def get_fraud_detector() -> FraudDetector:
    return fraud_detector


def get_fraud_client() -> FraudCheckClient:
    return fraud_client


def get_store() -> ConversationStore:
    return conversation_store


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error(f"422 VALIDATION ERROR | {request.url.path} | {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(), "message": "Invalid request payload."},
    )


@app.get("/")
async def health_check(detector: FraudDetector = Depends(get_fraud_detector)) -> dict:
    return {
        "status": "online",
        "service": Config.SERVICE_NAME,
        "version": Config.VERSION,
        "mode": detector.mode,
    }


@app.post(
    "/api/messaging/fraud-detection",
    response_model=FraudDetectionResponse,
    response_model_exclude_none=True,
)
async def detect_fraud(
    request: FraudDetectionRequest,
    api_key: str = Depends(verify_api_key),
    detector: FraudDetector = Depends(get_fraud_detector),
) -> FraudDetectionResponse:
    """Score one message. Missing content is scored as an empty message."""
    verdict = detector.assess(request.content)
    log_fraud_attempt(request.senderId, request.conversationId, request.content, verdict)
    return FraudDetectionResponse(success=True, fraudScore=FraudScore(**verdict.to_payload()))


@app.post(
    "/api/messaging/conversations",
    response_model=Conversation,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    request: CreateConversationRequest,
    api_key: str = Depends(verify_api_key),
    store: ConversationStore = Depends(get_store),
) -> Conversation:
    if not request.listingId or not request.buyerId or not request.sellerId:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        conversation = store.create_conversation(
            request.listingId, request.buyerId, request.sellerId
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(f"[{conversation['id'][:8]}] CONVERSATION created listing={request.listingId}")
    return Conversation(**conversation)


@app.get(
    "/api/messaging/conversations/{conversation_id}/messages",
    response_model=MessageListResponse,
)
async def list_messages(
    conversation_id: str,
    api_key: str = Depends(verify_api_key),
    store: ConversationStore = Depends(get_store),
) -> MessageListResponse:
    if store.get_conversation(conversation_id) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return MessageListResponse(
        conversationId=conversation_id,
        messages=[StoredMessage(**m) for m in store.get_messages(conversation_id)],
    )


@app.post("/api/messaging/send", response_model=SendMessageResponse)
def send_message(
    request: SendMessageRequest,
    api_key: str = Depends(verify_api_key),
    store: ConversationStore = Depends(get_store),
    client: FraudCheckClient = Depends(get_fraud_client),
):
    """Authorize, screen and store a chat message.

    Pipeline stages:
    1. Validation - all of conversationId, senderId, content are required
    2. Authorization - sender must be a participant (before any screening)
    3. Fraud screening - fail open when the check is unavailable
    4. Policy - reject blocked messages, store everything else
    """
    if not request.conversationId or not request.senderId or not (request.content or "").strip():
        raise HTTPException(status_code=400, detail="Missing required fields")

    short_id = request.conversationId[:8]
    try:
        participant_ids = store.participant_ids(request.conversationId)
        if not participant_ids:
            raise HTTPException(status_code=404, detail="Conversation not found")

        if request.senderId not in participant_ids:
            logger.warning(f"[{short_id}] Send rejected: sender is not a participant")
            raise HTTPException(
                status_code=403,
                detail="Unauthorized: Not a participant in this conversation",
            )

        verdict = client.check(
            request.content,
            sender_id=request.senderId,
            conversation_id=request.conversationId,
            participant_ids=participant_ids,
        )

        if verdict is not None and verdict.blocked:
            logger.warning(
                f"[{short_id}] BLOCKED  score={verdict.score}  level={verdict.risk_level.value}"
            )
            # Flags and reasons stay internal so the rule set is not revealed
            return JSONResponse(
                status_code=400,
                content={"success": False, "blocked": True, "error": BLOCKED_MESSAGE},
            )

        if verdict is None:
            logger.warning(f"[{short_id}] Fraud screening unavailable, sending unscored")

        content = request.content.strip()
        message = store.add_message(
            request.conversationId,
            request.senderId,
            content,
            message_type=request.messageType,
            fraud_score=verdict.score if verdict else None,
            fraud_flags=verdict.flags if verdict else None,
            fraud_risk_level=verdict.risk_level.value if verdict else None,
        )

        summary = None
        if verdict is not None:
            summary = MessageFraudSummary(
                riskLevel=verdict.risk_level.value,
                score=verdict.score,
                flags=verdict.flags or None,
                warning=verdict.warning,
            )

        logger.info(
            f"[{short_id}] SENT  msg_len={len(content)}  "
            f"risk={verdict.risk_level.value if verdict else 'unscored'}"
        )
        return SendMessageResponse(
            success=True,
            message=StoredMessage(**message),
            fraudScore=summary,
        )

    except HTTPException:
        raise
    except Exception as exc:
        logger.error(f"[{short_id}] Unhandled error in send_message: {exc}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error") from exc


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
