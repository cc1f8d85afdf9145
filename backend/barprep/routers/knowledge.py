from __future__ import annotations
import logging
import uuid
from io import BytesIO
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from ..deps import get_knowledge_store
from ..knowledge_store import DuplicateIdentifier, KnowledgeDocument, KnowledgeStore
from ..stats import FrequencyStat, allocate_study_hours, frequency_stats
from ..subjects import Subject

try:
	import pytesseract  # type: ignore
	from PIL import Image  # type: ignore
except ImportError:
	# Defer import errors until an image is actually uploaded
	pytesseract = None  # type: ignore
	Image = None  # type: ignore

try:
	from pypdf import PdfReader  # type: ignore
except ImportError:
	PdfReader = None  # type: ignore

try:
	import docx  # type: ignore  # python-docx
except ImportError:
	docx = None  # type: ignore


logger = logging.getLogger("barprep.routers.knowledge")

router = APIRouter(prefix="/knowledge", tags=["knowledge"])

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp")
DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class DocumentCreate(BaseModel):
	id: Optional[str] = None
	title: str = Field(min_length=1)
	subject: Subject
	content: str = Field(min_length=1)
	year: Optional[str] = None
	is_selected: bool = True


class DocumentUpdate(BaseModel):
	title: Optional[str] = Field(default=None, min_length=1)
	subject: Optional[Subject] = None
	content: Optional[str] = Field(default=None, min_length=1)
	year: Optional[str] = None
	is_selected: Optional[bool] = None


class DocumentListResponse(BaseModel):
	docs: List[KnowledgeDocument]


class ContextResponse(BaseModel):
	subject: Optional[Subject] = None
	document_ids: List[str]
	context: str


class FrequencyResponse(BaseModel):
	total_documents: int
	stats: List[FrequencyStat]
	weekly_hours: float
	allocation: Dict[str, float]


def _add(store: KnowledgeStore, doc: KnowledgeDocument) -> KnowledgeDocument:
	try:
		store.add_document(doc)
	except DuplicateIdentifier as exc:
		raise HTTPException(status_code=409, detail=str(exc))
	return doc


def _extract_text(file: UploadFile, data: bytes) -> str:
	filename = (file.filename or "").lower()
	content_type = (file.content_type or "").lower()
	if content_type.startswith("image/") or filename.endswith(IMAGE_SUFFIXES):
		if pytesseract is None or Image is None:
			raise HTTPException(
				status_code=500,
				detail="OCR dependencies not installed. Install system package 'tesseract-ocr' and Python packages 'pytesseract' and 'Pillow'",
			)
		try:
			img = Image.open(BytesIO(data))
			return pytesseract.image_to_string(img)
		except Exception as e:
			raise HTTPException(status_code=400, detail=f"Failed to OCR image: {e}")
	if content_type == "application/pdf" or filename.endswith(".pdf") or data.startswith(b"%PDF"):
		if PdfReader is None:
			raise HTTPException(status_code=500, detail="PDF support not installed. Install the 'pypdf' package.")
		try:
			reader = PdfReader(BytesIO(data))
			pages = [page.extract_text() or "" for page in reader.pages]
		except Exception as e:
			raise HTTPException(status_code=400, detail=f"Failed to read PDF: {e}")
		return "\n".join(p for p in pages if p.strip())
	if content_type == DOCX_CONTENT_TYPE or filename.endswith(".docx"):
		if docx is None:
			raise HTTPException(status_code=500, detail="DOCX support not installed. Install the 'python-docx' package.")
		try:
			document = docx.Document(BytesIO(data))
		except Exception as e:
			raise HTTPException(status_code=400, detail=f"Failed to read DOCX: {e}")
		return "\n".join(p.text for p in document.paragraphs if p.text.strip())
	# NUL bytes mean binary even when the bytes happen to decode
	if b"\x00" not in data:
		try:
			return data.decode("utf-8")
		except UnicodeDecodeError:
			pass
	raise HTTPException(
		status_code=415,
		detail="Unsupported file type. Upload plain text, PDF, DOCX, or an image.",
	)


@router.get("/docs", response_model=DocumentListResponse)
async def list_docs(store: KnowledgeStore = Depends(get_knowledge_store)):
	return DocumentListResponse(docs=store.list_documents())


@router.get("/docs/{doc_id}", response_model=KnowledgeDocument)
async def get_doc(doc_id: str, store: KnowledgeStore = Depends(get_knowledge_store)):
	doc = store.get_document(doc_id)
	if doc is None:
		raise HTTPException(status_code=404, detail="Knowledge document not found")
	return doc


@router.post("/docs", response_model=KnowledgeDocument, status_code=201)
async def create_doc(req: DocumentCreate, store: KnowledgeStore = Depends(get_knowledge_store)):
	doc = KnowledgeDocument(
		id=req.id or uuid.uuid4().hex,
		title=req.title.strip(),
		subject=req.subject,
		content=req.content,
		year=req.year,
		is_selected=req.is_selected,
	)
	return _add(store, doc)


@router.post("/docs/upload", response_model=KnowledgeDocument, status_code=201)
async def upload_doc(
	file: UploadFile = File(...),
	subject: Subject = Form(...),
	title: Optional[str] = Form(None),
	year: Optional[str] = Form(None),
	store: KnowledgeStore = Depends(get_knowledge_store),
):
	"""Add a model answer from a text, PDF or DOCX file, or a scanned page (OCR)."""
	data = await file.read()
	if not data:
		raise HTTPException(status_code=400, detail="Uploaded file is empty.")
	text = _extract_text(file, data).strip()
	if not text:
		raise HTTPException(status_code=400, detail="No text could be extracted from the upload.")
	doc = KnowledgeDocument(
		id=uuid.uuid4().hex,
		title=(title or file.filename or "Uploaded document").strip(),
		subject=subject,
		content=text,
		year=year,
	)
	logger.info("ingested upload %s as %s (%d chars)", file.filename, doc.id, len(text))
	return _add(store, doc)


@router.patch("/docs/{doc_id}")
async def update_doc(doc_id: str, req: DocumentUpdate, store: KnowledgeStore = Depends(get_knowledge_store)):
	# Unknown ids are accepted and reported as not updated
	changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None or k == "year"}
	updated = store.update_document(doc_id, changes)
	return {"updated": updated is not None, "doc": updated}


@router.delete("/docs/{doc_id}")
async def delete_doc(doc_id: str, store: KnowledgeStore = Depends(get_knowledge_store)) -> Dict[str, Any]:
	return {"removed": store.remove_document(doc_id)}


@router.get("/context", response_model=ContextResponse)
async def get_context(subject: Optional[Subject] = None, store: KnowledgeStore = Depends(get_knowledge_store)):
	docs = store.selected_documents(subject)
	return ContextResponse(
		subject=subject,
		document_ids=[d.id for d in docs],
		context=store.get_full_context_text(subject),
	)


@router.get("/stats", response_model=FrequencyResponse)
async def get_frequency_stats(
	weekly_hours: float = 20,
	store: KnowledgeStore = Depends(get_knowledge_store),
):
	if weekly_hours < 0:
		raise HTTPException(status_code=400, detail="weekly_hours must be non-negative")
	docs = store.list_documents()
	stats = frequency_stats(docs)
	allocation = {s.subject.value: allocate_study_hours(stats, s.subject, weekly_hours) for s in stats}
	return FrequencyResponse(
		total_documents=len(docs),
		stats=stats,
		weekly_hours=weekly_hours,
		allocation=allocation,
	)
