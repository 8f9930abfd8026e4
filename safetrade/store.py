"""Thread-safe in-memory conversation and message store.

Stands in for the hosted database behind the message-send pathway. Keeps
conversations (listing, buyer, seller, preview, timestamps) and their
messages together with the fraud fields attached at send time.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

# Characters of the latest message kept on the conversation
PREVIEW_LENGTH: int = 100


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationStore:
    """Conversations keyed by id, each with an append-only message list.

    Returned records are copies; callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._conversations: Dict[str, dict] = {}
        self._messages: Dict[str, List[dict]] = {}
        self._lock = threading.Lock()

    def create_conversation(self, listing_id: str, buyer_id: str, seller_id: str) -> dict:
        if buyer_id == seller_id:
            raise ValueError("Buyer and seller must be different users")

        now = _now()
        conversation = {
            "id": str(uuid.uuid4()),
            "listing_id": listing_id,
            "buyer_id": buyer_id,
            "seller_id": seller_id,
            "created_at": now,
            "updated_at": now,
            "last_message_preview": None,
        }
        with self._lock:
            self._conversations[conversation["id"]] = conversation
            self._messages[conversation["id"]] = []
        return dict(conversation)

    def get_conversation(self, conversation_id: str) -> Optional[dict]:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            return dict(conversation) if conversation else None

    def participant_ids(self, conversation_id: str) -> List[str]:
        conversation = self.get_conversation(conversation_id)
        if not conversation:
            return []
        return [conversation["buyer_id"], conversation["seller_id"]]

    def add_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        message_type: str = "text",
        fraud_score: Optional[int] = None,
        fraud_flags: Optional[List[str]] = None,
        fraud_risk_level: Optional[str] = None,
    ) -> dict:
        """Append a message and refresh the conversation preview.

        Raises KeyError for an unknown conversation.
        """
        now = _now()
        message = {
            "id": str(uuid.uuid4()),
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "message_type": message_type,
            "is_read": False,
            "fraud_score": fraud_score,
            "fraud_flags": list(fraud_flags or []),
            "fraud_risk_level": fraud_risk_level,
            "created_at": now,
        }
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise KeyError(conversation_id)
            self._messages[conversation_id].append(message)
            conversation["updated_at"] = now
            conversation["last_message_preview"] = content[:PREVIEW_LENGTH]
        return dict(message, fraud_flags=list(message["fraud_flags"]))

    def get_messages(self, conversation_id: str) -> List[dict]:
        with self._lock:
            return [
                dict(m, fraud_flags=list(m["fraud_flags"]))
                for m in self._messages.get(conversation_id, [])
            ]


# Module-level singleton
conversation_store = ConversationStore()
