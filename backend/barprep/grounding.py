"""
Closed-loop analysis features.

Every feature here reads its facts from the knowledge store's context text and
hands it to the answer engine together with a task prompt and a response
schema. An empty context means there is nothing to ground on; features refuse
to call the engine in that case.
"""

from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .gemini_client import AnswerEngineError
from .knowledge_store import KnowledgeStore
from .subjects import Subject

logger = logging.getLogger("barprep.grounding")


CA_BAR_SYSTEM_INSTRUCTION = (
	"You are a specialized Data Extraction and Analysis Engine for the California Bar Exam.\n"
	"CRITICAL PROTOCOL:\n"
	"1. You have NO independent knowledge of the law. You must act as if you have amnesia about general legal principles.\n"
	"2. You can ONLY answer based on the \"Context Documents\" provided in the prompt.\n"
	"3. If a rule, fact pattern, or definition is NOT found in the Context Documents, you must explicitly state \"Not found in uploaded materials\" or return false.\n"
	"4. Do NOT hallucinate. Do NOT use outside training data.\n"
	"5. Your goal is to mirror the exact phrasing and logic found in the \"Context Documents\" (which are Official Model Answers).\n"
	"6. ALWAYS provide the source citation (Exam Year/Question) for any rule you extract."
)

PATTERN_SYSTEM_INSTRUCTION = "You are a Pattern Recognition Engine. Analyze the dataset provided."
SUBTOPIC_SYSTEM_INSTRUCTION = "You are a Data Extraction Engine. Extract subtopic frequencies."


class NoGroundingContext(RuntimeError):
	def __init__(self, subject: Optional[Subject] = None) -> None:
		if subject:
			msg = f"No uploaded essays found for {subject}. Please upload Model Answers to the Knowledge Base first."
		else:
			msg = "No uploaded essays found. Please upload Model Answers to the Knowledge Base first."
		super().__init__(msg)
		self.subject = subject


class AnswerEngine(Protocol):
	async def generate(
		self,
		prompt: str,
		*,
		thinking_budget: Optional[int] = None,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
	) -> str: ...

	async def generate_multimodal(
		self,
		parts: List[Dict[str, Any]],
		*,
		role: str = "user",
		thinking_budget: Optional[int] = None,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
		allow_fallback: bool = False,
	) -> str: ...


class EssayAnalysisResult(BaseModel):
	score: int
	feedback_summary: str
	missed_issues: List[str] = Field(default_factory=list)
	strengths: List[str] = Field(default_factory=list)
	weaknesses: List[str] = Field(default_factory=list)
	ca_distinctions_note: str = ""


class RuleExtraction(BaseModel):
	found: bool
	rule_statement: Optional[str] = None
	source_doc_title: Optional[str] = None
	confidence: Optional[float] = None


class EssayPattern(BaseModel):
	name: str
	frequency: int = 0
	description: str = ""
	related_essays: List[str] = Field(default_factory=list)


class SubtopicAnalysis(BaseModel):
	subtopic: str
	count: int = 0
	percentage: float = 0.0
	related_docs: List[str] = Field(default_factory=list)


class MBEQuestionInsight(BaseModel):
	extracted_text: str = ""
	pattern_type: str = ""
	distractor_type: str = ""
	analysis: str = ""


# Response schemas in the Generative Language REST format
ESSAY_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"score": {"type": "INTEGER"},
		"feedback_summary": {"type": "STRING"},
		"missed_issues": {"type": "ARRAY", "items": {"type": "STRING"}},
		"strengths": {"type": "ARRAY", "items": {"type": "STRING"}},
		"weaknesses": {"type": "ARRAY", "items": {"type": "STRING"}},
		"ca_distinctions_note": {
			"type": "STRING",
			"description": "Mention if the student followed CA distinctions found in the context",
		},
	},
	"required": ["score", "feedback_summary", "missed_issues", "strengths"],
}

RULE_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"found": {"type": "BOOLEAN"},
		"rule_statement": {"type": "STRING"},
		"source_doc_title": {"type": "STRING", "description": "The Exam Year/Question title where this rule was found"},
		"confidence": {"type": "NUMBER"},
	},
	"required": ["found"],
}

PATTERN_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"name": {"type": "STRING"},
			"frequency": {"type": "INTEGER", "description": "Estimated percentage of essays this pattern appears in within the dataset"},
			"description": {"type": "STRING"},
			"related_essays": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "Titles of documents where this was found"},
		},
	},
}

SUBTOPIC_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"subtopic": {"type": "STRING"},
			"count": {"type": "INTEGER", "description": "Number of essays containing this issue"},
			"percentage": {"type": "NUMBER", "description": "Percentage of total essays for this subject"},
			"related_docs": {"type": "ARRAY", "items": {"type": "STRING"}, "description": "Titles of essays containing this issue"},
		},
	},
}

MBE_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"extracted_text": {"type": "STRING", "description": "The transcribed text of the question"},
		"pattern_type": {"type": "STRING", "description": "e.g. 'Character Evidence Exception'"},
		"distractor_type": {"type": "STRING", "description": "e.g. 'Right result, wrong reason'"},
		"analysis": {"type": "STRING", "description": "Brief explanation of the legal logic"},
	},
}


def parse_json_payload(text: str) -> Any:
	"""Decode engine output, tolerating ```json fences and surrounding prose."""
	text = (text or "").strip()
	try:
		return json.loads(text)
	except ValueError:
		pass
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			return json.loads(code_block.group(1))
		except ValueError:
			pass
	for opener, closer in (("{", "}"), ("[", "]")):
		first = text.find(opener)
		last = text.rfind(closer)
		if first != -1 and last > first:
			try:
				return json.loads(text[first : last + 1])
			except ValueError:
				continue
	raise AnswerEngineError("Answer engine did not return valid JSON.")


def _as_list(data: Any) -> List[Dict[str, Any]]:
	if isinstance(data, dict):
		# Some responses wrap the array in a single key
		for value in data.values():
			if isinstance(value, list):
				data = value
				break
	if not isinstance(data, list):
		raise AnswerEngineError("Answer engine returned an unexpected shape; expected a list.")
	return [item for item in data if isinstance(item, dict)]


M = TypeVar("M", bound=BaseModel)


def _validated(model: Type[M], data: Any, what: str) -> M:
	try:
		return model.model_validate(data)
	except ValidationError as exc:
		raise AnswerEngineError(f"{what} response has invalid fields: {exc.error_count()} error(s)") from exc


def _essay_prompt(context: str, prompt: str, essay: str) -> str:
	return (
		"CONTEXT DOCUMENTS (Official California Model Answers):\n"
		f"\"\"\"\n{context}\n\"\"\"\n\n"
		"STUDENT TASK:\n"
		f"Question: {prompt}\n"
		f"Student Answer: {essay}\n\n"
		"INSTRUCTIONS:\n"
		"Compare the Student Answer to the patterns and rules found in the CONTEXT DOCUMENTS.\n"
		"1. Identify issues the student missed that typically appear in the Context Documents for this subject.\n"
		"2. Critique the rule statements. Are they consistent with the rules defined in the Context Documents?\n"
		"3. If the Context Documents mention a specific California distinction (e.g. Prop 8, CEC 1240), check if the student used it.\n"
		"4. Provide a predicted score (40-100) based on how closely the student mimics the style of the Context Documents."
	)


def _rule_prompt(context: str, term: str) -> str:
	return (
		"CONTEXT DOCUMENTS:\n"
		f"\"\"\"\n{context}\n\"\"\"\n\n"
		f"USER QUERY: Find the exact rule definition for \"{term}\".\n\n"
		"INSTRUCTIONS:\n"
		f"1. Search the CONTEXT DOCUMENTS for the definition of \"{term}\".\n"
		"2. Extract the rule statement VERBATIM or closely paraphrased from the text.\n"
		"3. Identify which specific Document Title the rule came from (e.g. \"July 2012 Question 2\").\n"
		"4. If the term is not defined in the text, return \"found\": false.\n"
		"5. Do NOT generate a rule from general knowledge."
	)


def _pattern_prompt(context: str, subject: Subject) -> str:
	return (
		f"CONTEXT DOCUMENTS (Model Answers for {subject}):\n"
		f"\"\"\"\n{context}\n\"\"\"\n\n"
		"TASK:\n"
		"Analyze these documents as a set. Identify recurring fact patterns, organizational structures, or rule clusters that appear multiple times.\n"
		"For example: \"In Torts essays, Negligence is almost always paired with a Vicarious Liability issue.\""
	)


def _subtopic_prompt(context: str, subject: Subject) -> str:
	return (
		f"CONTEXT DOCUMENTS (Model Answers for {subject}):\n"
		f"\"\"\"\n{context}\n\"\"\"\n\n"
		"TASK:\n"
		f"Analyze the provided documents for {subject}.\n"
		"Identify the major legal sub-issues (e.g. for Contracts: Formation, Breach, Remedies) that appear in these essays.\n"
		"Count how many essays contain each sub-issue."
	)


MBE_PROMPT = (
	"Analyze this MBE Bar Exam Question.\n"
	"1. OCR: If an image is provided, transcribe the question text accurately.\n"
	"2. Pattern Recognition: Identify the specific \"Fact Pattern\" type (e.g., \"Battle of the Forms\", \"Negligence Per Se\").\n"
	"3. Distractor Analysis: Explain the likely \"trick\" or common wrong answer trap used here.\n"
	"4. Provide a brief analysis of the core legal issue."
)


async def analyze_essay(
	store: KnowledgeStore,
	engine: AnswerEngine,
	*,
	prompt: str,
	essay: str,
	subject: Subject,
) -> EssayAnalysisResult:
	"""Grade a student essay only against the uploaded model answers."""
	context = store.get_full_context_text(subject)
	if not context:
		logger.info("essay analysis refused: no grounding context for %s", subject)
		raise NoGroundingContext(subject)
	raw = await engine.generate(
		_essay_prompt(context, prompt, essay),
		system_instruction=CA_BAR_SYSTEM_INSTRUCTION,
		response_schema=ESSAY_SCHEMA,
	)
	data = parse_json_payload(raw)
	if not isinstance(data, dict):
		raise AnswerEngineError("Answer engine returned an unexpected shape; expected an object.")
	try:
		return EssayAnalysisResult.model_validate(data)
	except ValidationError as exc:
		raise AnswerEngineError(f"Essay analysis missing required fields: {exc.error_count()} error(s)") from exc


async def extract_rule(store: KnowledgeStore, engine: AnswerEngine, term: str) -> RuleExtraction:
	"""Look up a rule statement across every selected document."""
	context = store.get_full_context_text()
	if not context:
		logger.info("rule extraction skipped for %r: no selected documents", term)
		return RuleExtraction(found=False)
	raw = await engine.generate(
		_rule_prompt(context, term),
		system_instruction=CA_BAR_SYSTEM_INSTRUCTION,
		response_schema=RULE_SCHEMA,
	)
	data = parse_json_payload(raw)
	if not isinstance(data, dict):
		raise AnswerEngineError("Answer engine returned an unexpected shape; expected an object.")
	try:
		result = RuleExtraction.model_validate(data)
	except ValidationError as exc:
		raise AnswerEngineError("Rule extraction response is missing 'found'.") from exc
	if not result.found:
		return RuleExtraction(found=False)
	return result


async def identify_patterns(store: KnowledgeStore, engine: AnswerEngine, subject: Subject) -> List[EssayPattern]:
	context = store.get_full_context_text(subject)
	if not context:
		return []
	raw = await engine.generate(
		_pattern_prompt(context, subject),
		system_instruction=PATTERN_SYSTEM_INSTRUCTION,
		response_schema=PATTERN_SCHEMA,
	)
	items = _as_list(parse_json_payload(raw))
	return [_validated(EssayPattern, item, "Pattern scan") for item in items if item.get("name")]


async def analyze_subtopics(store: KnowledgeStore, engine: AnswerEngine, subject: Subject) -> List[SubtopicAnalysis]:
	# Only run when the subject itself has documents; the context fallback
	# would otherwise report subtopics from unrelated subjects.
	if not any(d.subject == subject for d in store.list_documents()):
		return []
	context = store.get_full_context_text(subject)
	if not context:
		return []
	raw = await engine.generate(
		_subtopic_prompt(context, subject),
		system_instruction=SUBTOPIC_SYSTEM_INSTRUCTION,
		response_schema=SUBTOPIC_SCHEMA,
	)
	items = _as_list(parse_json_payload(raw))
	return [_validated(SubtopicAnalysis, item, "Subtopic analysis") for item in items if item.get("subtopic")]


def strip_data_url(image_base64: str) -> str:
	# "data:image/png;base64,AAAA" -> "AAAA"
	if "," in image_base64 and image_base64.startswith("data:"):
		return image_base64.split(",", 1)[1]
	return image_base64


async def analyze_mbe_question(
	engine: AnswerEngine,
	subject: Subject,
	*,
	text: Optional[str] = None,
	image_base64: Optional[str] = None,
	mime_type: str = "image/png",
) -> MBEQuestionInsight:
	"""Classify an MBE question's fact pattern and distractor trap.

	Works from pasted text, a screenshot, or both; the screenshot is
	transcribed by the engine.
	"""
	parts: List[Dict[str, Any]] = []
	if text:
		parts.append({"text": f"Question Text: {text}"})
	if image_base64:
		parts.append({"inlineData": {"data": strip_data_url(image_base64), "mimeType": mime_type}})
	if not parts:
		raise ValueError("No content provided")
	parts.append({"text": f"Subject: {subject}\n{MBE_PROMPT}"})
	raw = await engine.generate_multimodal(parts, response_schema=MBE_SCHEMA)
	data = parse_json_payload(raw)
	if not isinstance(data, dict):
		raise AnswerEngineError("Answer engine returned an unexpected shape; expected an object.")
	insight = _validated(MBEQuestionInsight, data, "MBE question analysis")
	if not insight.extracted_text and text:
		insight = insight.model_copy(update={"extracted_text": text})
	return insight
