from __future__ import annotations
from collections import Counter
from datetime import date
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from .knowledge_store import KnowledgeDocument
from .practice import CalendarEvent, MBELogEntry
from .subjects import Subject

GOAL_PER_SUBJECT = 500
MBE_SUBJECTS: List[Subject] = [
	Subject.CIVIL_PROCEDURE,
	Subject.CONSTITUTIONAL_LAW,
	Subject.CONTRACTS,
	Subject.CRIMINAL_LAW,
	Subject.EVIDENCE,
	Subject.PROPERTY,
	Subject.TORTS,
]
MBE_SUBJECT_COUNT = len(MBE_SUBJECTS)


class SubjectStats(BaseModel):
	subject: Subject
	total_questions: int
	accuracy: float  # percent
	goal_percent: float


class OverallStats(BaseModel):
	total_questions: int
	total_correct: int
	accuracy: float
	hours_spent: float
	goal_total: int = GOAL_PER_SUBJECT * MBE_SUBJECT_COUNT


class FrequencyStat(BaseModel):
	subject: Subject
	count: int
	percentage: int


def _percent(part: int, whole: int) -> float:
	return (part / whole) * 100 if whole > 0 else 0.0


def subject_stats(logs: Iterable[MBELogEntry], subject: Subject) -> SubjectStats:
	subject_logs = [l for l in logs if l.subject == subject]
	total_q = sum(l.questions_completed for l in subject_logs)
	total_correct = sum(l.correct_count for l in subject_logs)
	return SubjectStats(
		subject=subject,
		total_questions=total_q,
		accuracy=_percent(total_correct, total_q),
		goal_percent=_percent(total_q, GOAL_PER_SUBJECT),
	)


def overall_stats(logs: Sequence[MBELogEntry]) -> OverallStats:
	total_q = sum(l.questions_completed for l in logs)
	total_correct = sum(l.correct_count for l in logs)
	minutes = sum(l.time_spent for l in logs)
	return OverallStats(
		total_questions=total_q,
		total_correct=total_correct,
		accuracy=_percent(total_correct, total_q),
		hours_spent=round(minutes / 60, 1),
	)


def frequency_stats(docs: Sequence[KnowledgeDocument]) -> List[FrequencyStat]:
	"""Share of uploaded essays per subject, most frequent first."""
	total = len(docs)
	if total == 0:
		return []
	counts = Counter(d.subject for d in docs)
	stats = [
		FrequencyStat(subject=s, count=counts.get(s, 0), percentage=round(counts.get(s, 0) / total * 100))
		for s in Subject
	]
	# sorted() is stable, so ties keep enumeration order
	return sorted(stats, key=lambda s: s.count, reverse=True)


def allocate_study_hours(stats: Sequence[FrequencyStat], subject: Subject, weekly_hours: float) -> float:
	match = next((s for s in stats if s.subject == subject), None)
	percentage = match.percentage if match else 0
	return round(weekly_hours * percentage / 100, 1)


def events_on(events: Iterable[CalendarEvent], day: Optional[date] = None) -> List[CalendarEvent]:
	target = (day or date.today()).isoformat()
	return sorted((e for e in events if e.date == target), key=lambda e: e.time)


def scheduled_hours(events: Iterable[CalendarEvent]) -> float:
	return round(sum(e.duration for e in events) / 60, 1)
