from __future__ import annotations
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..deps import get_answer_engine, get_knowledge_store
from ..gemini_client import AnswerEngineError
from ..grounding import (
	EssayAnalysisResult,
	EssayPattern,
	NoGroundingContext,
	SubtopicAnalysis,
	analyze_essay,
	analyze_subtopics,
	identify_patterns,
)
from ..knowledge_store import KnowledgeStore
from ..settings import settings
from ..subjects import Subject


logger = logging.getLogger("barprep.routers.essay")

router = APIRouter(prefix="/essay", tags=["essay"])


class AnalyzeEssayRequest(BaseModel):
	prompt: str
	essay: str
	subject: Subject


class SubjectRequest(BaseModel):
	subject: Subject


@router.post("/analyze", response_model=EssayAnalysisResult)
async def analyze(
	req: AnalyzeEssayRequest,
	store: KnowledgeStore = Depends(get_knowledge_store),
	engine=Depends(get_answer_engine),
):
	prompt = (req.prompt or "").strip()
	essay = (req.essay or "").strip()
	if not prompt or not essay:
		raise HTTPException(status_code=400, detail="prompt and essay are required")
	# Optional safety clamp to avoid extremely long prompts
	if len(essay) > settings.max_essay_chars:
		essay = essay[: settings.max_essay_chars]
	try:
		return await analyze_essay(store, engine, prompt=prompt, essay=essay, subject=req.subject)
	except NoGroundingContext as exc:
		raise HTTPException(status_code=409, detail=str(exc))
	except AnswerEngineError as exc:
		logger.warning("essay analysis failed: %s", exc)
		raise HTTPException(status_code=502, detail=f"Essay analysis failed: {exc}")


@router.post("/patterns", response_model=List[EssayPattern])
async def patterns(
	req: SubjectRequest,
	store: KnowledgeStore = Depends(get_knowledge_store),
	engine=Depends(get_answer_engine),
):
	try:
		return await identify_patterns(store, engine, req.subject)
	except AnswerEngineError as exc:
		logger.warning("pattern scan failed: %s", exc)
		raise HTTPException(status_code=502, detail=f"Pattern scan failed: {exc}")


@router.post("/subtopics", response_model=List[SubtopicAnalysis])
async def subtopics(
	req: SubjectRequest,
	store: KnowledgeStore = Depends(get_knowledge_store),
	engine=Depends(get_answer_engine),
):
	try:
		return await analyze_subtopics(store, engine, req.subject)
	except AnswerEngineError as exc:
		logger.warning("subtopic analysis failed: %s", exc)
		raise HTTPException(status_code=502, detail=f"Subtopic analysis failed: {exc}")
