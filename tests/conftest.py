import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from barprep.deps import get_answer_engine
from barprep.knowledge_store import KnowledgeDocument, KnowledgeStore
from barprep.main import create_app
from barprep.practice import PracticeJournal
from barprep.subjects import Subject


class FakeEngine:
	"""Answer engine stand-in that records prompts and replays canned replies."""

	def __init__(self, *replies: Any) -> None:
		self.replies: List[Any] = list(replies)
		self.calls: List[Dict[str, Any]] = []

	def _next(self) -> str:
		if not self.replies:
			return "{}"
		reply = self.replies.pop(0)
		return reply if isinstance(reply, str) else json.dumps(reply)

	async def generate(
		self,
		prompt: str,
		*,
		thinking_budget: Optional[int] = None,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
	) -> str:
		self.calls.append(
			{"prompt": prompt, "system_instruction": system_instruction, "response_schema": response_schema}
		)
		return self._next()

	async def generate_multimodal(self, parts, **kwargs) -> str:
		self.calls.append({"parts": parts, **kwargs})
		return self._next()


def make_doc(doc_id: str, subject: Subject, *, selected: bool = True, content: Optional[str] = None, year: Optional[str] = "July 2020") -> KnowledgeDocument:
	return KnowledgeDocument(
		id=doc_id,
		title=f"Essay {doc_id}",
		subject=subject,
		content=content or f"Rule text for {doc_id}",
		year=year,
		is_selected=selected,
	)


@pytest.fixture
def scenario_store() -> KnowledgeStore:
	return KnowledgeStore.create(
		[
			KnowledgeDocument(id="1", title="July 2019 - Q1", subject=Subject.TORTS, year="July 2019", is_selected=True, content="Negligence rule..."),
			KnowledgeDocument(id="2", title="Feb 2018 - Q3", subject=Subject.CONTRACTS, year="Feb 2018", is_selected=False, content="UCC rule..."),
		]
	)


@pytest.fixture
def engine() -> FakeEngine:
	return FakeEngine()


@pytest.fixture
def app(scenario_store, engine):
	application = create_app(store=scenario_store, journal=PracticeJournal())
	application.dependency_overrides[get_answer_engine] = lambda: engine
	return application


@pytest.fixture
def client(app):
	with TestClient(app) as test_client:
		yield test_client
