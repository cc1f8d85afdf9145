from fastapi import APIRouter, Request

from ..settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
	store = request.app.state.knowledge_store
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"documents": len(store),
	}
