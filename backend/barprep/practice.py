from __future__ import annotations
import logging
from datetime import date
from typing import Any, Generic, Iterable, List, Literal, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .knowledge_store import DuplicateIdentifier
from .subjects import Subject

logger = logging.getLogger("barprep.practice")


class MBELogEntry(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	date: str  # YYYY-MM-DD
	subject: Subject
	questions_completed: int = Field(ge=0)
	correct_count: int = Field(ge=0)
	time_spent: int = Field(default=0, ge=0)  # minutes
	topics: Optional[str] = None

	@model_validator(mode="after")
	def _check_counts(self) -> "MBELogEntry":
		if self.correct_count > self.questions_completed:
			raise ValueError("correct_count cannot exceed questions_completed")
		return self


class MBEQuestionAnalysis(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	subject: Subject
	question_text: str
	image_url: Optional[str] = None  # data URL
	pattern_identified: str = ""
	distractor_type: str = ""
	ai_analysis: str = ""
	user_notes: str = ""
	date_added: str = Field(default_factory=lambda: date.today().isoformat())


EventType = Literal["MBE", "Essay", "Review", "Other"]


class CalendarEvent(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	title: str
	date: str  # YYYY-MM-DD
	time: str = Field(default="09:00", pattern=r"^\d{2}:\d{2}$")
	duration: int = Field(default=60, gt=0)  # minutes
	type: EventType = "Other"
	subject: Subject
	completed: bool = False


T = TypeVar("T", MBELogEntry, MBEQuestionAnalysis, CalendarEvent)


class RecordList(Generic[T]):
	"""Ordered in-memory records of one model type, keyed by `id`."""

	def __init__(self, model: type, initial: Optional[Iterable[T]] = None, *, newest_first: bool = True) -> None:
		self._model = model
		self._newest_first = newest_first
		self._items: List[T] = []
		for item in initial or ():
			if self.get(item.id) is not None:
				raise DuplicateIdentifier(item.id)
			self._items.append(item)

	def __len__(self) -> int:
		return len(self._items)

	def list(self) -> List[T]:
		return list(self._items)

	def get(self, item_id: str) -> Optional[T]:
		for item in self._items:
			if item.id == item_id:
				return item
		return None

	def add(self, item: T) -> T:
		if self.get(item.id) is not None:
			raise DuplicateIdentifier(item.id)
		if self._newest_first:
			self._items = [item, *self._items]
		else:
			self._items = [*self._items, item]
		return item

	def update(self, item_id: str, changes: Mapping[str, Any]) -> Optional[T]:
		current = self.get(item_id)
		if current is None:
			return None
		merged = {**current.model_dump(), **{k: v for k, v in changes.items() if k != "id"}}
		updated = self._model.model_validate(merged)
		self._items = [updated if item.id == item_id else item for item in self._items]
		return updated

	def remove(self, item_id: str) -> bool:
		before = len(self._items)
		self._items = [item for item in self._items if item.id != item_id]
		return len(self._items) != before


SAMPLE_LOGS: List[MBELogEntry] = [
	MBELogEntry(id="1", date="2024-10-20", subject=Subject.CONTRACTS, questions_completed=15, correct_count=9, time_spent=30, topics="Formation, Consideration"),
	MBELogEntry(id="2", date="2024-10-21", subject=Subject.TORTS, questions_completed=20, correct_count=14, time_spent=45, topics="Negligence, Strict Liability"),
	MBELogEntry(id="3", date="2024-10-22", subject=Subject.EVIDENCE, questions_completed=10, correct_count=4, time_spent=20, topics="Hearsay Exceptions"),
	MBELogEntry(id="4", date="2024-10-23", subject=Subject.CONTRACTS, questions_completed=25, correct_count=18, time_spent=50, topics="UCC vs Common Law"),
]


def sample_events(today: Optional[date] = None) -> List[CalendarEvent]:
	day = (today or date.today()).isoformat()
	return [
		CalendarEvent(id="1", title="Active Recall: Formation", date=day, time="09:00", duration=45, type="MBE", subject=Subject.CONTRACTS),
		CalendarEvent(id="2", title="Essay Writing: Negligence", date=day, time="10:00", duration=60, type="Essay", subject=Subject.TORTS),
	]


class PracticeJournal:
	"""MBE practice logs, saved question analyses and study calendar."""

	def __init__(
		self,
		logs: Optional[Iterable[MBELogEntry]] = None,
		analyses: Optional[Iterable[MBEQuestionAnalysis]] = None,
		events: Optional[Iterable[CalendarEvent]] = None,
	) -> None:
		self.logs: RecordList[MBELogEntry] = RecordList(MBELogEntry, logs)
		self.analyses: RecordList[MBEQuestionAnalysis] = RecordList(MBEQuestionAnalysis, analyses)
		# Calendar keeps entry order; the day view sorts by time
		self.events: RecordList[CalendarEvent] = RecordList(CalendarEvent, events, newest_first=False)

	@classmethod
	def seeded(cls, today: Optional[date] = None) -> "PracticeJournal":
		logger.debug("seeding practice journal with sample logs and events")
		return cls(logs=SAMPLE_LOGS, events=sample_events(today))
