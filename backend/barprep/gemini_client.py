from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings

logger = logging.getLogger("barprep.gemini")


class AnswerEngineError(RuntimeError):
	"""The generative backend failed or returned something unusable."""


class GeminiClient:
	def __init__(self, api_key: Optional[str] = None, *, base_url: Optional[str] = None, model: Optional[str] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = settings.gemini_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout)

	async def generate(
		self,
		prompt: str,
		*,
		thinking_budget: Optional[int] = None,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		payload = self._with_options(payload, system_instruction, response_schema)
		fallback_prompt = prompt if not system_instruction else f"{system_instruction}\n\n{prompt}"
		return await self._post_payload(
			payload,
			thinking_budget=thinking_budget,
			fallback_prompt=fallback_prompt,
		)

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		thinking_budget: Optional[int] = None,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
		allow_fallback: bool = False,
	) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		payload = self._with_options(payload, system_instruction, response_schema)
		return await self._post_payload(
			payload,
			thinking_budget=thinking_budget,
			fallback_prompt=None,
			allow_fallback=allow_fallback,
		)

	@staticmethod
	def _with_options(
		payload: Dict[str, Any],
		system_instruction: Optional[str],
		response_schema: Optional[Dict[str, Any]],
	) -> Dict[str, Any]:
		if system_instruction:
			payload = {**payload, "systemInstruction": {"parts": [{"text": system_instruction}]}}
		if response_schema is not None:
			payload = {
				**payload,
				"generationConfig": {
					"responseMimeType": "application/json",
					"responseSchema": response_schema,
				},
			}
		return payload

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		thinking_budget: Optional[int] = None,
		fallback_prompt: Optional[str],
		allow_fallback: bool = True,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		if thinking_budget is not None:
			try:
				budget_tokens = int(thinking_budget)
			except (TypeError, ValueError):
				budget_tokens = 0
			payload = {**payload, "thinkingConfig": {"budgetTokens": budget_tokens}}
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			if thinking_budget is not None and "thinkingConfig" in payload:
				fallback_payload = dict(payload)
				fallback_payload.pop("thinkingConfig", None)
				try:
					r = await self._client.post(self.base_url, params=params, headers=headers, json=fallback_payload)
					r.raise_for_status()
				except httpx.HTTPError as err:
					last_error = err
			else:
				last_error = http_err
		except httpx.RequestError as net_err:
			last_error = net_err
		if last_error is None:
			try:
				data = r.json()
				return data["candidates"][0]["content"]["parts"][0]["text"]
			except (ValueError, KeyError, IndexError, TypeError):
				last_error = AnswerEngineError(f"Unexpected Gemini response: {r.text}")
		if not allow_fallback or not self._fallback_enabled or fallback_prompt is None:
			if isinstance(last_error, AnswerEngineError):
				raise last_error
			raise AnswerEngineError(f"Gemini call failed: {last_error}") from last_error
		logger.info("Gemini call failed (%s); retrying via OpenRouter", last_error)
		return await self._fallback_generate(fallback_prompt, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise AnswerEngineError("Fallback requested but OpenRouter is not configured") from primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise AnswerEngineError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err
