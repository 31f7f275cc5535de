#!/usr/bin/env python3
"""
Test script for startup wiring of the chat context
"""
import asyncio
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock, patch

from supportbot.context import ChatContext


def test_create_loads_csv_and_warms_up():
    fd, path = tempfile.mkstemp(suffix=".csv")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("question,answer\nVad kostar det?,99 kr/mån\nHur bokar jag?,Via länken\n")

    embed = AsyncMock(return_value=[[1.0, 0.0], [0.0, 1.0]])
    try:
        context = ChatContext.create(kb_path=path, embed=embed, generator=MagicMock(), dummy_mode=False)
    finally:
        os.remove(path)

    assert len(context.records) == 2
    assert len(context.index) == 0, "Index is empty until warm_up"

    indexed = asyncio.run(context.warm_up())
    assert indexed == 2
    assert context.retriever.index is context.index
    assert context.composer.records is context.records
    print("✅ Context loads KB and builds embeddings on warm_up")


def test_warm_up_fails_open():
    embed = AsyncMock(side_effect=PermissionError("invalid api key"))
    context = ChatContext.create(
        kb_path="/nonexistent.csv",
        embed=embed,
        generator=MagicMock(),
        dummy_mode=False,
    )
    assert context.records == ()
    assert asyncio.run(context.warm_up()) == 0
    embed.assert_not_awaited()

    from supportbot.models.chat_models import KnowledgeRecord
    context = ChatContext.create(
        records=(KnowledgeRecord(question="q", answer="a"),),
        embed=embed,
        generator=MagicMock(),
        dummy_mode=False,
    )
    assert asyncio.run(context.warm_up()) == 0
    embed.assert_awaited_once()
    print("✅ Embedding failure leaves an empty index")


def test_missing_api_key_forces_dummy_mode():
    with patch("supportbot.config.OPENAI_API_KEY", None), patch("supportbot.config.DUMMY_MODE", False):
        context = ChatContext.create(records=(), embed=AsyncMock())
    assert context.dummy_mode
    assert context.composer.dummy_mode
    assert context.composer.generator is None
    print("✅ No API key -> dummy mode")


def test_dummy_mode_never_embeds():
    from supportbot.models.chat_models import KnowledgeRecord
    embed = AsyncMock()
    context = ChatContext.create(
        records=(KnowledgeRecord(question="q", answer="a"),),
        embed=embed,
        dummy_mode=True,
    )
    assert asyncio.run(context.warm_up()) == 0
    embed.assert_not_awaited()
    print("✅ Dummy mode skips embeddings")


if __name__ == "__main__":
    test_create_loads_csv_and_warms_up()
    test_warm_up_fails_open()
    test_missing_api_key_forces_dummy_mode()
    test_dummy_mode_never_embeds()
