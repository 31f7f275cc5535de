#!/usr/bin/env python3
"""
Test script for the HTTP surface: /api/chat, /api/lead, /health and the request perimeter
"""
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from supportbot.context import ChatContext
from supportbot.errors import GenerationFailure
from supportbot.main import create_app
from supportbot.models.chat_models import KnowledgeRecord
from supportbot.security import RateLimiter
from supportbot.system_prompt import APOLOGY_REPLY

PRICING_KB = (KnowledgeRecord(question="Vad kostar det?", answer="99 kr/mån"),)


async def fake_embed(texts):
    return [[1.0, 0.5] for _ in texts]


def _context(records=PRICING_KB, reply=None, dummy_mode=False):
    generator = MagicMock()
    if reply is None:
        generator.generate = AsyncMock(side_effect=GenerationFailure("401 invalid api key"))
    else:
        generator.generate = AsyncMock(return_value=reply)
    return ChatContext.create(records=records, embed=fake_embed, generator=generator, dummy_mode=dummy_mode)


def _client(context):
    return TestClient(create_app(context=context, wait_for_embeddings=True))


def test_health():
    with _client(_context()) as client:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True, "kbRows": 1}
    print("✅ Health endpoint")


def test_chat_generated_reply():
    context = _context(reply="Det kostar 99 kr/mån per användare.")
    with _client(context) as client:
        assert len(context.index) == 1, "Embeddings built during startup"
        response = client.post("/api/chat", json={"message": "vad kostar det", "history": []})
        assert response.status_code == 200
        assert response.json() == {"reply": "Det kostar 99 kr/mån per användare."}
    print("✅ Chat reply from generation backend")


def test_chat_failing_backend_uses_keyword_answer():
    with _client(_context()) as client:
        response = client.post("/api/chat", json={"message": "vad kostar det"})
        assert response.status_code == 200
        assert response.json() == {"reply": "99 kr/mån"}
    print("✅ Failing backend -> keyword answer, still 200")


def test_chat_failing_backend_empty_kb_apologizes():
    with _client(_context(records=())) as client:
        response = client.post("/api/chat", json={"message": "vad kostar det"})
        assert response.status_code == 200
        assert response.json() == {"reply": APOLOGY_REPLY}
    print("✅ Failing backend + empty KB -> apology")


def test_chat_missing_message_is_400():
    context = _context(reply="should not be used")
    with _client(context) as client:
        for body in ({}, {"message": ""}, {"history": [{"role": "user", "content": "hej"}]}):
            response = client.post("/api/chat", json=body)
            assert response.status_code == 400
            assert response.json() == {"error": "message saknas"}

        response = client.post("/api/chat", content=b"not json", headers={"content-type": "application/json"})
        assert response.status_code == 400

    context.composer.generator.generate.assert_not_awaited()
    print("✅ Missing message -> 400")


def test_chat_dummy_mode():
    context = _context(reply="should not be used", dummy_mode=True)
    with _client(context) as client:
        assert len(context.index) == 0, "No embeddings in dummy mode"
        response = client.post("/api/chat", json={"message": "vad kostar det"})
        assert response.json() == {"reply": "99 kr/mån"}
    context.composer.generator.generate.assert_not_awaited()
    print("✅ Dummy mode answers from CSV")


def test_lead_capture():
    context = _context()
    with _client(context) as client:
        response = client.post("/api/lead", json={"name": "Anna", "email": "anna@example.se", "need": "demo"})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["lead"]["email"] == "anna@example.se"
        assert body["lead"]["phone"] is None
        assert body["lead"]["id"].isdigit()

        response = client.post("/api/lead", json={"name": "Utan kontakt"})
        assert response.status_code == 400
        assert response.json() == {"error": "Minst e-post eller telefon krävs"}

    assert len(context.leads) == 1
    assert context.leads.all()[0].name == "Anna"
    print("✅ Lead capture requires email or phone")


def test_body_size_limit():
    with _client(_context()) as client:
        response = client.post("/api/chat", json={"message": "x" * (1024 * 1024 + 10)})
        assert response.status_code == 413
    print("✅ Oversized body rejected")


def test_rate_limiter_window():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    assert limiter.allow("1.2.3.4", now=0.0)
    assert limiter.allow("1.2.3.4", now=1.0)
    assert not limiter.allow("1.2.3.4", now=2.0)
    # Other clients have their own window
    assert limiter.allow("5.6.7.8", now=2.0)
    # Oldest hit expires after the window
    assert limiter.allow("1.2.3.4", now=60.5)
    print("✅ Rate limiter sliding window")


def test_rate_limit_returns_429():
    app = create_app(
        context=_context(),
        wait_for_embeddings=True,
        rate_limiter=RateLimiter(max_requests=3, window_seconds=60),
        trust_proxy=False,
    )
    with TestClient(app) as client:
        statuses = [client.get("/health").status_code for _ in range(4)]
        assert statuses == [200, 200, 200, 429]
        assert "error" in client.get("/health").json()
    print("✅ Request over the limit -> 429")


def test_rotating_forwarded_for_is_still_limited():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    app = create_app(context=_context(), wait_for_embeddings=True, rate_limiter=limiter, trust_proxy=False)
    with TestClient(app) as client:
        statuses = [
            client.get("/health", headers={"X-Forwarded-For": f"10.0.0.{i}"}).status_code
            for i in range(20)
        ]
    assert statuses[:3] == [200, 200, 200]
    assert set(statuses[3:]) == {429}
    assert len(limiter) == 1, "Spoofed headers must not create new limiter keys"
    print("✅ Forged X-Forwarded-For does not bypass the limit")


def test_trusted_proxy_keys_on_forwarded_for():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    app = create_app(context=_context(), wait_for_embeddings=True, rate_limiter=limiter, trust_proxy=True)
    with TestClient(app) as client:
        assert client.get("/health", headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}).status_code == 200
        assert client.get("/health", headers={"X-Forwarded-For": "9.9.9.9"}).status_code == 429
        assert client.get("/health", headers={"X-Real-IP": "8.8.8.8"}).status_code == 200
    print("✅ Behind a trusted proxy each forwarded client has its own window")


def test_rate_limiter_drops_idle_clients():
    limiter = RateLimiter(max_requests=5, window_seconds=60)
    for i in range(20):
        limiter.allow(f"10.0.0.{i}", now=float(i))
    assert len(limiter) == 20

    # A window later every earlier client is idle and gets removed
    assert limiter.allow("1.1.1.1", now=100.0)
    assert len(limiter) == 1
    print("✅ Idle limiter keys are swept")


if __name__ == "__main__":
    test_health()
    test_chat_generated_reply()
    test_chat_failing_backend_uses_keyword_answer()
    test_chat_failing_backend_empty_kb_apologizes()
    test_chat_missing_message_is_400()
    test_chat_dummy_mode()
    test_lead_capture()
    test_body_size_limit()
    test_rate_limiter_window()
    test_rate_limit_returns_429()
    test_rotating_forwarded_for_is_still_limited()
    test_trusted_proxy_keys_on_forwarded_for()
    test_rate_limiter_drops_idle_clients()
