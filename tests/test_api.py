"""
Tests for the HTTP surface: health, fraud detection, conversations and send.
"""

import logging
from unittest.mock import MagicMock, patch

import requests

from safetrade.auth import INVALID_KEY_DETAIL, MISSING_KEY_DETAIL
from safetrade.config import DEVELOPMENT
from safetrade.detector import DEV_MODE_NOTE, FraudDetector
from safetrade.fraud_client import FraudCheckClient
from safetrade.main import BLOCKED_MESSAGE

LEGIT_VIEWING = "Hi, I am interested in your motorcycle. When can we arrange a viewing?"
CRITICAL_SCAM = "URGENT!!! Wire $5000 to Western Union NOW!!! No inspection needed, trust me!"
PRICE_PITCH = "I can give you a special discount if you pay cash only. Best price guaranteed!"


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "online"
    assert data["mode"] == "production"


class TestAuthentication:

    def test_missing_api_key(self, client):
        response = client.post("/api/messaging/fraud-detection", json={"content": "hi"})
        assert response.status_code == 401
        assert response.json()["detail"] == MISSING_KEY_DETAIL

    def test_invalid_api_key(self, client):
        response = client.post(
            "/api/messaging/fraud-detection",
            json={"content": "hi"},
            headers={"x-api-key": "wrong"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == INVALID_KEY_DETAIL

    def test_non_ascii_key_is_rejected(self, client):
        response = client.post(
            "/api/messaging/fraud-detection",
            json={"content": "hi"},
            headers={"x-api-key": "cl\u00e9".encode("utf-8")},
        )
        assert response.status_code == 401

    def test_rejection_is_logged_with_route(self, client, caplog):
        with caplog.at_level(logging.WARNING, logger="safetrade.auth"):
            client.get("/api/messaging/conversations/abc/messages", headers={"x-api-key": "wrong"})
        assert any(
            "/api/messaging/conversations/abc/messages" in r.getMessage() for r in caplog.records
        )

    def test_health_check_needs_no_key(self, client):
        assert client.get("/").status_code == 200


class TestFraudDetectionEndpoint:

    URL = "/api/messaging/fraud-detection"

    def test_low_risk_message(self, client, auth_headers):
        response = client.post(self.URL, headers=auth_headers, json={
            "content": LEGIT_VIEWING,
            "senderId": "user-123",
            "conversationId": "conv-123",
            "participantIds": ["user-123", "user-456"],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fraudScore"]["riskLevel"] == "low"
        assert data["fraudScore"]["blocked"] is False
        assert data["fraudScore"]["score"] < 20
        assert "warning" not in data["fraudScore"]

    def test_critical_message_blocked_in_production(self, client, auth_headers):
        response = client.post(self.URL, headers=auth_headers, json={"content": CRITICAL_SCAM})
        score = response.json()["fraudScore"]
        assert score["riskLevel"] == "critical"
        assert score["blocked"] is True
        assert score["score"] > 60

    def test_development_mode_does_not_block(self, make_client, auth_headers):
        client = make_client(detector=FraudDetector(mode=DEVELOPMENT))
        response = client.post(self.URL, headers=auth_headers, json={"content": CRITICAL_SCAM})
        score = response.json()["fraudScore"]
        assert score["blocked"] is False
        assert DEV_MODE_NOTE in score["reasons"]

    def test_medium_risk_carries_warning(self, client, auth_headers):
        response = client.post(self.URL, headers=auth_headers, json={"content": PRICE_PITCH})
        score = response.json()["fraudScore"]
        assert "PRICE_MANIPULATION" in score["flags"]
        assert score["warning"] == f"This message was flagged as {score['riskLevel']} risk"

    def test_missing_content_scores_as_empty(self, client, auth_headers):
        for payload in ({}, {"content": None}, {"content": 12345}):
            response = client.post(self.URL, headers=auth_headers, json=payload)
            assert response.status_code == 200
            score = response.json()["fraudScore"]
            assert score["score"] == 0
            assert score["riskLevel"] == "low"
            assert score["flags"] == []

    def test_identifiers_do_not_change_score(self, client, auth_headers):
        first = client.post(self.URL, headers=auth_headers, json={
            "content": PRICE_PITCH, "senderId": "a", "conversationId": "c1",
        }).json()
        second = client.post(self.URL, headers=auth_headers, json={
            "content": PRICE_PITCH, "senderId": "b", "participantIds": ["x", "y", "z"],
        }).json()
        assert first["fraudScore"] == second["fraudScore"]


class TestConversations:

    URL = "/api/messaging/conversations"

    def test_create_conversation(self, client, auth_headers, store):
        response = client.post(self.URL, headers=auth_headers, json={
            "listingId": "listing-9", "buyerId": "buyer-9", "sellerId": "seller-9",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["buyer_id"] == "buyer-9"
        assert store.get_conversation(data["id"]) is not None

    def test_create_requires_all_fields(self, client, auth_headers):
        response = client.post(self.URL, headers=auth_headers, json={"listingId": "l"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields"

    def test_buyer_cannot_be_seller(self, client, auth_headers):
        response = client.post(self.URL, headers=auth_headers, json={
            "listingId": "l", "buyerId": "same", "sellerId": "same",
        })
        assert response.status_code == 400

    def test_list_messages(self, client, auth_headers, store, conversation):
        store.add_message(conversation["id"], "buyer-1", "hello there")
        response = client.get(f"{self.URL}/{conversation['id']}/messages", headers=auth_headers)
        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["content"] for m in messages] == ["hello there"]

    def test_list_messages_unknown_conversation(self, client, auth_headers):
        response = client.get(f"{self.URL}/missing/messages", headers=auth_headers)
        assert response.status_code == 404


class TestSendMessage:

    URL = "/api/messaging/send"

    def _send(self, client, headers, conversation_id, sender_id="buyer-1", content=LEGIT_VIEWING):
        return client.post(self.URL, headers=headers, json={
            "conversationId": conversation_id,
            "senderId": sender_id,
            "content": content,
        })

    def test_low_risk_message_is_stored(self, client, auth_headers, store, conversation):
        response = self._send(client, auth_headers, conversation["id"])
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fraudScore"]["riskLevel"] == "low"
        assert data["fraudScore"]["flags"] is None
        assert data["fraudScore"]["warning"] is None

        stored = store.get_messages(conversation["id"])
        assert len(stored) == 1
        assert stored[0]["fraud_score"] == 0
        assert stored[0]["fraud_risk_level"] == "low"
        assert store.get_conversation(conversation["id"])["last_message_preview"] == LEGIT_VIEWING

    def test_medium_risk_message_is_stored_with_warning(self, client, auth_headers, store, conversation):
        response = self._send(client, auth_headers, conversation["id"], content=PRICE_PITCH)
        assert response.status_code == 200
        data = response.json()
        assert "medium risk" in data["fraudScore"]["warning"]
        assert "PRICE_MANIPULATION" in data["fraudScore"]["flags"]
        assert data["message"]["fraud_flags"] == ["PRICE_MANIPULATION"]
        assert store.get_messages(conversation["id"])[0]["fraud_risk_level"] == "medium"

    def test_blocked_message_is_rejected_and_not_stored(self, client, auth_headers, store, conversation):
        response = self._send(client, auth_headers, conversation["id"], content=CRITICAL_SCAM)
        assert response.status_code == 400
        assert response.json() == {"success": False, "blocked": True, "error": BLOCKED_MESSAGE}
        assert store.get_messages(conversation["id"]) == []

    def test_development_mode_stores_critical_message(self, make_client, auth_headers, store, conversation):
        client = make_client(detector=FraudDetector(mode=DEVELOPMENT))
        response = self._send(client, auth_headers, conversation["id"], content=CRITICAL_SCAM)
        assert response.status_code == 200
        assert response.json()["fraudScore"]["riskLevel"] == "critical"
        assert store.get_messages(conversation["id"])[0]["fraud_risk_level"] == "critical"

    def test_missing_fields(self, client, auth_headers, conversation):
        response = client.post(self.URL, headers=auth_headers, json={"content": "hello"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing required fields"

        response = self._send(client, auth_headers, conversation["id"], content="   ")
        assert response.status_code == 400

    def test_unknown_conversation(self, client, auth_headers):
        response = self._send(client, auth_headers, "no-such-conversation")
        assert response.status_code == 404
        assert response.json()["detail"] == "Conversation not found"

    def test_non_participant_rejected_before_screening(self, make_client, auth_headers, store, conversation):
        fraud_client = MagicMock(spec=FraudCheckClient)
        client = make_client(fraud_client=fraud_client)
        response = self._send(client, auth_headers, conversation["id"], sender_id="stranger",
                              content=CRITICAL_SCAM)
        assert response.status_code == 403
        assert response.json()["detail"] == "Unauthorized: Not a participant in this conversation"
        fraud_client.check.assert_not_called()
        assert store.get_messages(conversation["id"]) == []

    def test_screening_receives_participants(self, make_client, auth_headers, conversation):
        fraud_client = MagicMock(spec=FraudCheckClient)
        fraud_client.check.return_value = None
        client = make_client(fraud_client=fraud_client)
        self._send(client, auth_headers, conversation["id"], sender_id="seller-1")
        _, kwargs = fraud_client.check.call_args
        assert kwargs["sender_id"] == "seller-1"
        assert kwargs["conversation_id"] == conversation["id"]
        assert kwargs["participant_ids"] == ["buyer-1", "seller-1"]

    def test_participants_come_from_store(self, client, auth_headers, store, conversation, monkeypatch):
        monkeypatch.setattr(store, "participant_ids", lambda conversation_id: ["buyer-1", "moderator-1"])
        response = self._send(client, auth_headers, conversation["id"], sender_id="moderator-1")
        assert response.status_code == 200

        response = self._send(client, auth_headers, conversation["id"], sender_id="seller-1")
        assert response.status_code == 403

    def test_detector_outage_fails_open(self, make_client, auth_headers, store, conversation):
        fraud_client = MagicMock(spec=FraudCheckClient)
        fraud_client.check.return_value = None
        client = make_client(fraud_client=fraud_client)

        response = self._send(client, auth_headers, conversation["id"], content=CRITICAL_SCAM)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fraudScore"] is None
        stored = store.get_messages(conversation["id"])[0]
        assert stored["fraud_score"] is None
        assert stored["fraud_risk_level"] is None

    @patch("safetrade.fraud_client.requests.post")
    def test_remote_service_down_fails_open(self, mock_post, make_client, auth_headers, conversation):
        mock_post.side_effect = requests.exceptions.ConnectionError("connection refused")
        client = make_client(fraud_client=FraudCheckClient(service_url="http://fraud.invalid/check"))

        response = self._send(client, auth_headers, conversation["id"])

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["fraudScore"] is None
        mock_post.assert_called_once()

    def test_storage_failure_returns_500(self, client, auth_headers, store, conversation, monkeypatch):
        def _broken(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(store, "add_message", _broken)
        response = self._send(client, auth_headers, conversation["id"])
        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"

    def test_invalid_payload_returns_422(self, client, auth_headers, conversation):
        response = client.post(self.URL, headers=auth_headers, json={
            "conversationId": conversation["id"],
            "senderId": "buyer-1",
            "content": "hello",
            "messageType": ["not", "a", "string"],
        })
        assert response.status_code == 422
        assert response.json()["message"] == "Invalid request payload."
