from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..deps import get_answer_engine, get_knowledge_store
from ..gemini_client import AnswerEngineError
from ..grounding import RuleExtraction, extract_rule
from ..knowledge_store import KnowledgeStore


logger = logging.getLogger("barprep.routers.rules")

router = APIRouter(prefix="/rules", tags=["rules"])


class RuleSearchRequest(BaseModel):
	term: str


@router.post("/extract", response_model=RuleExtraction)
async def extract(
	req: RuleSearchRequest,
	store: KnowledgeStore = Depends(get_knowledge_store),
	engine=Depends(get_answer_engine),
):
	term = (req.term or "").strip()
	if not term:
		raise HTTPException(status_code=400, detail="term is required")
	try:
		return await extract_rule(store, engine, term)
	except AnswerEngineError as exc:
		logger.warning("rule extraction failed for %r: %s", term, exc)
		raise HTTPException(status_code=502, detail=f"Rule extraction failed: {exc}")
