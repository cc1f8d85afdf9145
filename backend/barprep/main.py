from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from .knowledge_store import KnowledgeStore
from .logging_setup import configure_logging
from .practice import PracticeJournal
from .seed_docs import INITIAL_DOCS
from .settings import settings
from .routers import health
from .routers import knowledge
from .routers import essay
from .routers import rules
from .routers import mbe
from .routers import schedule

logger = logging.getLogger("barprep")


def create_app(store: Optional[KnowledgeStore] = None, journal: Optional[PracticeJournal] = None) -> FastAPI:
	"""Build an app with its own knowledge store and practice journal."""
	configure_logging(level=settings.log_level)

	if store is None:
		store = KnowledgeStore.create(INITIAL_DOCS if settings.knowledge_seed_enabled else None)
	if journal is None:
		journal = PracticeJournal.seeded() if settings.practice_seed_enabled else PracticeJournal()

	app = FastAPI(title="Bar Prep Dashboard API")
	app.state.knowledge_store = store
	app.state.journal = journal

	app.include_router(health.router)
	app.include_router(knowledge.router)
	app.include_router(essay.router)
	app.include_router(rules.router)
	app.include_router(mbe.router)
	app.include_router(schedule.router)

	@app.get("/", include_in_schema=False)
	async def redirect_root_to_docs():
		return RedirectResponse(url="/docs")

	@app.get("/info")
	def root():
		return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}

	store.subscribe(lambda: logger.debug("knowledge store now holds %d documents", len(store)))
	logger.info("app ready with %d knowledge documents", len(store))
	return app


app = create_app()
