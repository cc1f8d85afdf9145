from __future__ import annotations
import logging
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from ..deps import get_answer_engine, get_journal
from ..gemini_client import AnswerEngineError
from ..grounding import MBEQuestionInsight, analyze_mbe_question
from ..knowledge_store import DuplicateIdentifier
from ..practice import MBELogEntry, MBEQuestionAnalysis, PracticeJournal
from ..stats import MBE_SUBJECTS, OverallStats, SubjectStats, overall_stats, subject_stats
from ..subjects import Subject


logger = logging.getLogger("barprep.routers.mbe")

router = APIRouter(prefix="/mbe", tags=["mbe"])


class LogCreate(BaseModel):
	date: str = Field(default_factory=lambda: date.today().isoformat())
	subject: Subject
	questions_completed: int = Field(ge=0)
	correct_count: int = Field(ge=0)
	time_spent: int = Field(default=0, ge=0)
	topics: Optional[str] = None


class LogUpdate(BaseModel):
	date: Optional[str] = None
	subject: Optional[Subject] = None
	questions_completed: Optional[int] = Field(default=None, ge=0)
	correct_count: Optional[int] = Field(default=None, ge=0)
	time_spent: Optional[int] = Field(default=None, ge=0)
	topics: Optional[str] = None


class StatsResponse(BaseModel):
	overall: OverallStats
	subjects: List[SubjectStats]


class AnalyzeQuestionRequest(BaseModel):
	subject: Subject
	text: Optional[str] = None
	image_base64: Optional[str] = None
	mime_type: str = "image/png"


class AnalysisCreate(BaseModel):
	subject: Subject
	question_text: str
	image_url: Optional[str] = None
	pattern_identified: str = ""
	distractor_type: str = ""
	ai_analysis: str = ""
	user_notes: str = ""


class AnalysisUpdate(BaseModel):
	subject: Optional[Subject] = None
	question_text: Optional[str] = None
	pattern_identified: Optional[str] = None
	distractor_type: Optional[str] = None
	ai_analysis: Optional[str] = None
	user_notes: Optional[str] = None


def _changes(model: BaseModel) -> dict:
	return {k: v for k, v in model.model_dump(exclude_unset=True).items() if v is not None}


# ---- Practice logs ----

@router.get("/logs", response_model=List[MBELogEntry])
async def list_logs(journal: PracticeJournal = Depends(get_journal)):
	return journal.logs.list()


@router.post("/logs", response_model=MBELogEntry, status_code=201)
async def create_log(req: LogCreate, journal: PracticeJournal = Depends(get_journal)):
	try:
		entry = MBELogEntry(id=uuid.uuid4().hex, **req.model_dump())
	except ValidationError as exc:
		raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_context=False))
	return journal.logs.add(entry)


@router.patch("/logs/{log_id}", response_model=MBELogEntry)
async def update_log(log_id: str, req: LogUpdate, journal: PracticeJournal = Depends(get_journal)):
	try:
		updated = journal.logs.update(log_id, _changes(req))
	except ValidationError as exc:
		raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_context=False))
	if updated is None:
		raise HTTPException(status_code=404, detail="log not found")
	return updated


@router.delete("/logs/{log_id}")
async def delete_log(log_id: str, journal: PracticeJournal = Depends(get_journal)):
	return {"removed": journal.logs.remove(log_id)}


@router.get("/stats", response_model=StatsResponse)
async def get_stats(journal: PracticeJournal = Depends(get_journal)):
	logs = journal.logs.list()
	return StatsResponse(
		overall=overall_stats(logs),
		subjects=[subject_stats(logs, s) for s in MBE_SUBJECTS],
	)


# ---- Question pattern tracker ----

@router.post("/analyze", response_model=MBEQuestionInsight)
async def analyze_question(req: AnalyzeQuestionRequest, engine=Depends(get_answer_engine)):
	if not (req.text or "").strip() and not req.image_base64:
		raise HTTPException(status_code=400, detail="text or image_base64 is required")
	try:
		return await analyze_mbe_question(
			engine,
			req.subject,
			text=(req.text or "").strip() or None,
			image_base64=req.image_base64,
			mime_type=req.mime_type,
		)
	except AnswerEngineError as exc:
		logger.warning("MBE question analysis failed: %s", exc)
		raise HTTPException(status_code=502, detail=f"Error analyzing question: {exc}")


@router.get("/analyses", response_model=List[MBEQuestionAnalysis])
async def list_analyses(journal: PracticeJournal = Depends(get_journal)):
	return journal.analyses.list()


@router.post("/analyses", response_model=MBEQuestionAnalysis, status_code=201)
async def save_analysis(req: AnalysisCreate, journal: PracticeJournal = Depends(get_journal)):
	entry = MBEQuestionAnalysis(id=uuid.uuid4().hex, **req.model_dump())
	try:
		return journal.analyses.add(entry)
	except DuplicateIdentifier as exc:
		raise HTTPException(status_code=409, detail=str(exc))


@router.patch("/analyses/{analysis_id}", response_model=MBEQuestionAnalysis)
async def update_analysis(analysis_id: str, req: AnalysisUpdate, journal: PracticeJournal = Depends(get_journal)):
	updated = journal.analyses.update(analysis_id, _changes(req))
	if updated is None:
		raise HTTPException(status_code=404, detail="analysis not found")
	return updated


@router.delete("/analyses/{analysis_id}")
async def delete_analysis(analysis_id: str, journal: PracticeJournal = Depends(get_journal)):
	return {"removed": journal.analyses.remove(analysis_id)}
