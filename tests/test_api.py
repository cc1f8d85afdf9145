import base64
from types import SimpleNamespace

from barprep.main import create_app
from barprep.routers import knowledge as knowledge_router


def test_health_reports_document_count(client):
	resp = client.get("/health")

	assert resp.status_code == 200
	assert resp.json()["documents"] == 2


def test_list_and_get_documents(client):
	docs = client.get("/knowledge/docs").json()["docs"]

	assert [d["id"] for d in docs] == ["1", "2"]
	assert client.get("/knowledge/docs/2").json()["subject"] == "Contracts"
	assert client.get("/knowledge/docs/missing").status_code == 404


def test_create_document_goes_first_and_conflicts_on_duplicate(client):
	payload = {"id": "3", "title": "Feb 2020 - Q2", "subject": "Evidence", "content": "Hearsay is...", "year": "Feb 2020"}

	created = client.post("/knowledge/docs", json=payload)
	duplicate = client.post("/knowledge/docs", json=payload)

	assert created.status_code == 201
	assert duplicate.status_code == 409
	assert [d["id"] for d in client.get("/knowledge/docs").json()["docs"]] == ["3", "1", "2"]


def test_create_document_generates_id_and_validates_subject(client):
	created = client.post("/knowledge/docs", json={"title": "T", "subject": "Torts", "content": "C"}).json()
	assert created["id"]
	assert created["is_selected"] is True

	bad = client.post("/knowledge/docs", json={"title": "T", "subject": "Astrology", "content": "C"})
	assert bad.status_code == 422


def test_patch_is_partial_and_lenient(client):
	resp = client.patch("/knowledge/docs/2", json={"is_selected": True}).json()

	assert resp["updated"] is True
	assert resp["doc"]["content"] == "UCC rule..."
	assert client.patch("/knowledge/docs/nope", json={"title": "x"}).json() == {"updated": False, "doc": None}


def test_delete_is_idempotent(client):
	assert client.delete("/knowledge/docs/1").json() == {"removed": True}
	assert client.delete("/knowledge/docs/1").json() == {"removed": False}


def test_context_endpoint_applies_fallback(client):
	body = client.get("/knowledge/context", params={"subject": "Contracts"}).json()

	assert body["document_ids"] == ["1"]
	assert "Negligence rule..." in body["context"]
	assert "UCC rule..." not in body["context"]


def test_upload_text_document(client):
	files = {"file": ("answer.txt", b"Battery is a harmful or offensive contact.", "text/plain")}

	resp = client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts", "year": "July 2021"})

	assert resp.status_code == 201
	body = resp.json()
	assert body["title"] == "answer.txt"
	assert body["content"].startswith("Battery")
	assert client.get("/knowledge/docs").json()["docs"][0]["id"] == body["id"]


def test_upload_empty_file_rejected(client):
	files = {"file": ("empty.txt", b"", "text/plain")}

	assert client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"}).status_code == 400


class FakePdfPage:
	def __init__(self, text):
		self.text = text

	def extract_text(self):
		return self.text


def test_upload_pdf_extracts_page_text(client, monkeypatch):
	monkeypatch.setattr(
		knowledge_router,
		"PdfReader",
		lambda stream: SimpleNamespace(pages=[FakePdfPage("Duty of care."), FakePdfPage(None), FakePdfPage("Breach.")]),
	)
	files = {"file": ("answer.pdf", b"%PDF-1.7 binary\x00\xff", "application/pdf")}

	resp = client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"})

	assert resp.status_code == 201
	assert resp.json()["content"] == "Duty of care.\nBreach."
	assert "%PDF" not in client.get("/knowledge/context").json()["context"]


def test_upload_pdf_without_pdf_support_is_not_stored(client, monkeypatch):
	monkeypatch.setattr(knowledge_router, "PdfReader", None)
	files = {"file": ("answer.pdf", b"%PDF-1.7 binary\x00\xff", "application/pdf")}

	resp = client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"})

	assert resp.status_code == 500
	assert len(client.get("/knowledge/docs").json()["docs"]) == 2


def test_upload_pdf_without_text_layer_rejected(client, monkeypatch):
	monkeypatch.setattr(knowledge_router, "PdfReader", lambda stream: SimpleNamespace(pages=[FakePdfPage("")]))
	files = {"file": ("scan.pdf", b"%PDF-1.7", "application/pdf")}

	assert client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"}).status_code == 400


def test_upload_docx_extracts_paragraphs(client, monkeypatch):
	paragraphs = [SimpleNamespace(text="Offer and acceptance."), SimpleNamespace(text=" "), SimpleNamespace(text="Consideration.")]
	monkeypatch.setattr(knowledge_router, "docx", SimpleNamespace(Document=lambda stream: SimpleNamespace(paragraphs=paragraphs)))
	files = {"file": ("answer.docx", b"PK\x03\x04\x00zip", "application/octet-stream")}

	resp = client.post("/knowledge/docs/upload", files=files, data={"subject": "Contracts"})

	assert resp.status_code == 201
	assert resp.json()["content"] == "Offer and acceptance.\nConsideration."


def test_upload_docx_without_docx_support_is_not_stored(client, monkeypatch):
	monkeypatch.setattr(knowledge_router, "docx", None)
	files = {"file": ("answer.docx", b"PK\x03\x04\x00zip", knowledge_router.DOCX_CONTENT_TYPE)}

	assert client.post("/knowledge/docs/upload", files=files, data={"subject": "Contracts"}).status_code == 500
	assert len(client.get("/knowledge/docs").json()["docs"]) == 2


def test_upload_image_without_ocr_support_is_not_stored(client, monkeypatch):
	monkeypatch.setattr(knowledge_router, "pytesseract", None)
	files = {"file": ("page.png", b"\x89PNG\r\n\x1a\n", "image/png")}

	assert client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"}).status_code == 500
	assert len(client.get("/knowledge/docs").json()["docs"]) == 2


def test_upload_binary_file_is_unsupported(client):
	files = {"file": ("answer.bin", b"\xff\xfe\x00\x81garbage", "application/octet-stream")}

	resp = client.post("/knowledge/docs/upload", files=files, data={"subject": "Torts"})

	assert resp.status_code == 415
	assert "garbage" not in client.get("/knowledge/context").json()["context"]
	assert len(client.get("/knowledge/docs").json()["docs"]) == 2


def test_frequency_stats_endpoint(client):
	body = client.get("/knowledge/stats", params={"weekly_hours": 10}).json()

	assert body["total_documents"] == 2
	assert body["stats"][0]["percentage"] == 50
	assert body["allocation"]["Torts"] == 5.0


def test_essay_analysis_endpoint(client, engine):
	engine.replies.append({"score": 81, "feedback_summary": "Good", "missed_issues": [], "strengths": ["IRAC"]})

	resp = client.post("/essay/analyze", json={"prompt": "Q", "essay": "Answer", "subject": "Torts"})

	assert resp.status_code == 200
	assert resp.json()["score"] == 81
	assert "Negligence rule..." in engine.calls[0]["prompt"]


def test_essay_analysis_without_grounding_is_refused(app, client, engine):
	client.patch("/knowledge/docs/1", json={"is_selected": False})

	resp = client.post("/essay/analyze", json={"prompt": "Q", "essay": "Answer", "subject": "Torts"})

	assert resp.status_code == 409
	assert "Knowledge Base" in resp.json()["detail"]
	assert engine.calls == []


def test_essay_analysis_engine_failure_is_bad_gateway(client, engine):
	engine.replies.append("not json at all")

	resp = client.post("/essay/analyze", json={"prompt": "Q", "essay": "Answer", "subject": "Torts"})

	assert resp.status_code == 502


def test_essay_analysis_requires_text(client):
	assert client.post("/essay/analyze", json={"prompt": " ", "essay": "A", "subject": "Torts"}).status_code == 400


def test_patterns_and_subtopics(client, engine):
	engine.replies.extend([[{"name": "Negligence cluster", "frequency": 100}], [{"subtopic": "Duty", "count": 1}]])

	patterns = client.post("/essay/patterns", json={"subject": "Torts"}).json()
	subtopics = client.post("/essay/subtopics", json={"subject": "Torts"}).json()

	assert patterns[0]["name"] == "Negligence cluster"
	assert subtopics[0]["subtopic"] == "Duty"


def test_mistyped_engine_fields_are_bad_gateway(client, engine):
	engine.replies.extend(
		[
			[{"name": "Negligence cluster", "frequency": "often"}],
			{"pattern_type": ["a", "b"], "analysis": 3},
		]
	)

	assert client.post("/essay/patterns", json={"subject": "Torts"}).status_code == 502
	assert client.post("/mbe/analyze", json={"subject": "Contracts", "text": "Q text"}).status_code == 502


def test_rule_extraction_endpoint(client, engine):
	engine.replies.append({"found": True, "rule_statement": "Negligence rule...", "source_doc_title": "July 2019 - Q1", "confidence": 0.95})

	body = client.post("/rules/extract", json={"term": "Negligence"}).json()

	assert body["found"] is True
	assert body["source_doc_title"] == "July 2019 - Q1"
	assert client.post("/rules/extract", json={"term": ""}).status_code == 400


def test_mbe_logs_crud_and_stats(client):
	created = client.post(
		"/mbe/logs",
		json={"date": "2025-01-02", "subject": "Torts", "questions_completed": 20, "correct_count": 15, "time_spent": 40},
	)
	assert created.status_code == 201
	log_id = created.json()["id"]

	assert client.post("/mbe/logs", json={"subject": "Torts", "questions_completed": 2, "correct_count": 3}).status_code == 400
	assert client.patch(f"/mbe/logs/{log_id}", json={"correct_count": 16}).json()["correct_count"] == 16
	assert client.patch("/mbe/logs/missing", json={"correct_count": 1}).status_code == 404

	stats = client.get("/mbe/stats").json()
	assert stats["overall"]["total_questions"] == 20
	torts = next(s for s in stats["subjects"] if s["subject"] == "Torts")
	assert torts["accuracy"] == 80.0

	assert client.delete(f"/mbe/logs/{log_id}").json() == {"removed": True}
	assert client.get("/mbe/logs").json() == []


def test_mbe_question_analysis_and_saved_analyses(client, engine):
	engine.replies.append({"extracted_text": "Q text", "pattern_type": "Battle of the Forms", "distractor_type": "Trap", "analysis": "UCC 2-207"})
	image = base64.b64encode(b"fake-png").decode()

	insight = client.post("/mbe/analyze", json={"subject": "Contracts", "image_base64": f"data:image/png;base64,{image}"}).json()
	assert insight["pattern_type"] == "Battle of the Forms"
	assert client.post("/mbe/analyze", json={"subject": "Contracts"}).status_code == 400

	saved = client.post(
		"/mbe/analyses",
		json={"subject": "Contracts", "question_text": insight["extracted_text"], "pattern_identified": insight["pattern_type"]},
	).json()
	assert client.patch(f"/mbe/analyses/{saved['id']}", json={"user_notes": "review 2-207"}).json()["user_notes"] == "review 2-207"
	assert [a["id"] for a in client.get("/mbe/analyses").json()] == [saved["id"]]
	assert client.delete(f"/mbe/analyses/{saved['id']}").json() == {"removed": True}


def test_schedule_today(client):
	client.post("/schedule/events", json={"title": "Late essay", "date": "2025-03-01", "time": "18:00", "duration": 60, "type": "Essay", "subject": "Torts"})
	early = client.post("/schedule/events", json={"title": "MBE set", "date": "2025-03-01", "time": "08:00", "duration": 30, "subject": "Evidence"}).json()
	client.post("/schedule/events", json={"title": "Elsewhere", "date": "2025-03-02", "subject": "Evidence"})

	day = client.get("/schedule/today", params={"day": "2025-03-01"}).json()

	assert [e["title"] for e in day["events"]] == ["MBE set", "Late essay"]
	assert day["hours"] == 1.5

	done = client.patch(f"/schedule/events/{early['id']}", json={"completed": True}).json()
	assert done["completed"] is True
	assert client.patch(f"/schedule/events/{early['id']}", json={"time": "noon"}).status_code == 400


def test_missing_api_key_is_service_unavailable(scenario_store, monkeypatch):
	from barprep import gemini_client

	monkeypatch.setattr(gemini_client.settings, "gemini_api_key", None)
	app = create_app(store=scenario_store)

	from fastapi.testclient import TestClient

	with TestClient(app) as test_client:
		resp = test_client.post("/rules/extract", json={"term": "Negligence"})

	assert resp.status_code == 503


def test_each_app_gets_its_own_store():
	first = create_app()
	second = create_app()

	assert first.state.knowledge_store is not second.state.knowledge_store
	first.state.knowledge_store.remove_document("feb-2025-q1")
	assert second.state.knowledge_store.get_document("feb-2025-q1") is not None
