from __future__ import annotations
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from ..deps import get_journal
from ..practice import CalendarEvent, EventType, PracticeJournal
from ..stats import events_on, scheduled_hours
from ..subjects import Subject


router = APIRouter(prefix="/schedule", tags=["schedule"])


class EventCreate(BaseModel):
	title: str = Field(min_length=1)
	date: str = Field(default_factory=lambda: date.today().isoformat())
	time: str = "09:00"
	duration: int = 60
	type: EventType = "MBE"
	subject: Subject


class EventUpdate(BaseModel):
	title: Optional[str] = Field(default=None, min_length=1)
	date: Optional[str] = None
	time: Optional[str] = None
	duration: Optional[int] = None
	type: Optional[EventType] = None
	subject: Optional[Subject] = None
	completed: Optional[bool] = None


class DayResponse(BaseModel):
	date: str
	events: List[CalendarEvent]
	hours: float


def _invalid(exc: ValidationError) -> HTTPException:
	return HTTPException(status_code=400, detail=exc.errors(include_url=False, include_context=False))


@router.get("/events", response_model=List[CalendarEvent])
async def list_events(journal: PracticeJournal = Depends(get_journal)):
	return journal.events.list()


@router.post("/events", response_model=CalendarEvent, status_code=201)
async def create_event(req: EventCreate, journal: PracticeJournal = Depends(get_journal)):
	try:
		event = CalendarEvent(id=uuid.uuid4().hex, **req.model_dump())
	except ValidationError as exc:
		raise _invalid(exc)
	return journal.events.add(event)


@router.patch("/events/{event_id}", response_model=CalendarEvent)
async def update_event(event_id: str, req: EventUpdate, journal: PracticeJournal = Depends(get_journal)):
	changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
	try:
		updated = journal.events.update(event_id, changes)
	except ValidationError as exc:
		raise _invalid(exc)
	if updated is None:
		raise HTTPException(status_code=404, detail="event not found")
	return updated


@router.delete("/events/{event_id}")
async def delete_event(event_id: str, journal: PracticeJournal = Depends(get_journal)):
	return {"removed": journal.events.remove(event_id)}


@router.get("/today", response_model=DayResponse)
async def today(day: Optional[date] = None, journal: PracticeJournal = Depends(get_journal)):
	target = day or date.today()
	events = events_on(journal.events.list(), target)
	return DayResponse(date=target.isoformat(), events=events, hours=scheduled_hours(events))
