from __future__ import annotations
import logging
from typing import AsyncIterator

from fastapi import HTTPException, Request

from .gemini_client import GeminiClient
from .knowledge_store import KnowledgeStore
from .practice import PracticeJournal

logger = logging.getLogger("barprep.deps")


def get_knowledge_store(request: Request) -> KnowledgeStore:
	return request.app.state.knowledge_store


def get_journal(request: Request) -> PracticeJournal:
	return request.app.state.journal


async def get_answer_engine() -> AsyncIterator[GeminiClient]:
	try:
		client = GeminiClient()
	except ValueError as exc:
		logger.warning("answer engine unavailable: %s", exc)
		raise HTTPException(status_code=503, detail=str(exc))
	try:
		yield client
	finally:
		await client.aclose()
