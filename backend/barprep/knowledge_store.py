from __future__ import annotations
import itertools
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .subjects import Subject

logger = logging.getLogger("barprep.knowledge")

Listener = Callable[[], None]


class KnowledgeDocument(BaseModel):
	"""A unit of ground-truth text, usually one official model answer."""

	model_config = ConfigDict(frozen=True)

	id: str
	title: str  # e.g. "July 2018 - Question 2"
	subject: Subject
	content: str
	year: Optional[str] = None
	is_selected: bool = True


class DuplicateIdentifier(ValueError):
	def __init__(self, doc_id: str) -> None:
		super().__init__(f"document id already exists: {doc_id}")
		self.doc_id = doc_id


class Subscriptions:
	"""Listener registry keyed by subscription handle."""

	def __init__(self) -> None:
		self._listeners: Dict[int, Listener] = {}
		self._handles = itertools.count(1)

	def __len__(self) -> int:
		return len(self._listeners)

	def add(self, listener: Listener) -> Callable[[], None]:
		handle = next(self._handles)
		self._listeners[handle] = listener

		def unsubscribe() -> None:
			self._listeners.pop(handle, None)

		return unsubscribe

	def notify(self) -> None:
		# Snapshot so listeners may (un)subscribe while being notified
		for listener in list(self._listeners.values()):
			listener()


def render_document_block(doc: KnowledgeDocument) -> str:
	label = f"{doc.title} ({doc.year})" if doc.year else doc.title
	return f"--- START DOCUMENT: {label} --- \n {doc.content} \n --- END DOCUMENT ---"


class KnowledgeStore:
	"""Owns the uploaded reference documents and assembles grounding context.

	Every AI-backed feature reads its facts from `get_full_context_text`; the
	store itself never talks to the answer engine.
	"""

	def __init__(self, initial_docs: Optional[Iterable[KnowledgeDocument]] = None) -> None:
		self._docs: List[KnowledgeDocument] = []
		self._subscriptions = Subscriptions()
		seen: set[str] = set()
		for doc in initial_docs or ():
			if doc.id in seen:
				raise DuplicateIdentifier(doc.id)
			seen.add(doc.id)
			self._docs.append(doc)

	@classmethod
	def create(cls, initial_docs: Optional[Iterable[KnowledgeDocument]] = None) -> "KnowledgeStore":
		return cls(initial_docs)

	def __len__(self) -> int:
		return len(self._docs)

	def list_documents(self) -> List[KnowledgeDocument]:
		return list(self._docs)

	def get_document(self, doc_id: str) -> Optional[KnowledgeDocument]:
		for doc in self._docs:
			if doc.id == doc_id:
				return doc
		return None

	def add_document(self, doc: KnowledgeDocument) -> None:
		if self.get_document(doc.id) is not None:
			raise DuplicateIdentifier(doc.id)
		self._docs = [doc, *self._docs]
		logger.debug("added document %s (%s)", doc.id, doc.subject)
		self._notify()

	def update_document(
		self,
		doc_id: str,
		updates: Optional[Mapping[str, Any]] = None,
		**fields: Any,
	) -> Optional[KnowledgeDocument]:
		"""Merge `updates` over the document with `doc_id`.

		Unknown ids are ignored (listeners are still notified). The identifier
		itself cannot be changed. Returns the new value, or None when nothing
		matched.
		"""
		changes = {**(updates or {}), **fields}
		changes.pop("id", None)
		updated: Optional[KnowledgeDocument] = None
		docs: List[KnowledgeDocument] = []
		for doc in self._docs:
			if doc.id == doc_id and updated is None:
				merged = {**doc.model_dump(), **{k: v for k, v in changes.items() if k in KnowledgeDocument.model_fields}}
				updated = KnowledgeDocument.model_validate(merged)
				docs.append(updated)
			else:
				docs.append(doc)
		self._docs = docs
		if updated is None:
			logger.debug("update skipped, no document %s", doc_id)
		self._notify()
		return updated

	def remove_document(self, doc_id: str) -> bool:
		before = len(self._docs)
		self._docs = [d for d in self._docs if d.id != doc_id]
		removed = len(self._docs) != before
		if removed:
			logger.debug("removed document %s", doc_id)
		self._notify()
		return removed

	def selected_documents(self, subject: Optional[Subject] = None) -> List[KnowledgeDocument]:
		selected = [d for d in self._docs if d.is_selected]
		if not subject:
			return selected
		matching = [d for d in selected if d.subject == subject]
		if not matching:
			# Fall back to every selected document rather than an empty context
			return selected
		return matching

	def get_full_context_text(self, subject: Optional[Subject] = None) -> str:
		return "\n\n".join(render_document_block(d) for d in self.selected_documents(subject))

	def subscribe(self, listener: Listener) -> Callable[[], None]:
		return self._subscriptions.add(listener)

	def _notify(self) -> None:
		self._subscriptions.notify()
