# testgenius/api/routes.py
import io
import logging
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse

from ..services.test_service import TestService, get_test_service
from ..core.schemas import (
    AnswerRequest, GenerationOptionsRequest, LanguageRequest, NavigateRequest,
    SelectMethodRequest, TestConfiguration, TopicRequest,
)
from ..core.utils import DateTimeUtils

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

def _pdf_response(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )

@router.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "timestamp": DateTimeUtils.get_current_timestamp()
    }

# ==================== Sessions ====================

@router.post("/sessions")
async def create_session(service: TestService = Depends(get_test_service)):
    """Start a new wizard session at method selection"""
    return service.create_session()

@router.get("/sessions/{session_id}")
async def get_session(session_id: str, service: TestService = Depends(get_test_service)):
    return service.snapshot(session_id)

@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, service: TestService = Depends(get_test_service)):
    service.delete_session(session_id)
    return {"deleted": True, "sessionId": session_id}

@router.post("/sessions/{session_id}/method")
async def select_method(session_id: str, body: SelectMethodRequest,
                        service: TestService = Depends(get_test_service)):
    return await service.select_method(session_id, body.mode)

@router.post("/sessions/{session_id}/document")
async def upload_document(session_id: str, file: UploadFile = File(...),
                          service: TestService = Depends(get_test_service)):
    """Upload a PDF/TXT document and extract its questions"""
    data = await file.read()
    logger.info(f"📄 Document upload for session {session_id}: {file.filename} ({len(data)} bytes)")
    return await service.submit_document(session_id, file.filename, data, file.content_type)

@router.post("/sessions/{session_id}/syllabus")
async def upload_syllabus(session_id: str, file: UploadFile = File(...),
                          service: TestService = Depends(get_test_service)):
    data = await file.read()
    logger.info(f"📄 Syllabus upload for session {session_id}: {file.filename} ({len(data)} bytes)")
    return await service.submit_syllabus(session_id, file.filename, data, file.content_type)

@router.post("/sessions/{session_id}/topic")
async def submit_topic(session_id: str, body: TopicRequest,
                       service: TestService = Depends(get_test_service)):
    return await service.submit_topic(session_id, body.topic)

@router.post("/sessions/{session_id}/options")
async def submit_options(session_id: str, body: GenerationOptionsRequest,
                         service: TestService = Depends(get_test_service)):
    """Generate questions for the collected syllabus or topic"""
    return await service.submit_options(session_id, body.count, body.difficulty, body.preferred_language)

@router.post("/sessions/{session_id}/language")
async def choose_language(session_id: str, body: LanguageRequest,
                          service: TestService = Depends(get_test_service)):
    return await service.choose_language(session_id, body.language)

@router.post("/sessions/{session_id}/back")
async def return_to_input(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.return_to_input(session_id)

@router.post("/sessions/{session_id}/configuration")
async def configure(session_id: str, body: TestConfiguration,
                    service: TestService = Depends(get_test_service)):
    return await service.configure(session_id, body)

@router.post("/sessions/{session_id}/start")
async def start_test(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.start_test(session_id)

@router.post("/sessions/{session_id}/answers")
async def select_answer(session_id: str, body: AnswerRequest,
                        service: TestService = Depends(get_test_service)):
    return await service.select_answer(session_id, body.question_id, body.answer)

@router.post("/sessions/{session_id}/navigate")
async def navigate(session_id: str, body: NavigateRequest,
                   service: TestService = Depends(get_test_service)):
    return await service.navigate(session_id, body.index)

@router.post("/sessions/{session_id}/submit")
async def submit_test(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.submit_test(session_id)

@router.post("/sessions/{session_id}/score/ai")
async def score_with_ai(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.request_ai_scoring(session_id)

@router.post("/sessions/{session_id}/score/key")
async def score_with_key(session_id: str, file: UploadFile = File(...),
                         service: TestService = Depends(get_test_service)):
    """Score against an uploaded TXT/JSON answer key"""
    data = await file.read()
    return await service.score_with_key(session_id, file.filename, data, file.content_type)

@router.post("/sessions/{session_id}/retake")
async def retake(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.retake(session_id)

@router.post("/sessions/{session_id}/new")
async def new_test(session_id: str, service: TestService = Depends(get_test_service)):
    return await service.new_test(session_id)

@router.get("/sessions/{session_id}/results/pdf")
def download_results_pdf(session_id: str, service: TestService = Depends(get_test_service)):
    """Download PDF of the session's results"""
    pdf_bytes = service.results_pdf(session_id)
    return _pdf_response(pdf_bytes, f"test_results_{session_id[:8]}.pdf")

# ==================== History ====================
# Store reads and PDF rendering block, so these run in the threadpool

@router.get("/history")
def list_history(service: TestService = Depends(get_test_service)):
    """Stored tests, most recent first"""
    entries = service.list_history()
    return {
        "count": len(entries),
        "entries": entries,
        "timestamp": DateTimeUtils.get_current_timestamp()
    }

@router.get("/history/{entry_id}")
def get_history_entry(entry_id: str, service: TestService = Depends(get_test_service)):
    entry = service.get_history_entry(entry_id)
    return entry.model_dump(mode="json", by_alias=True)

@router.get("/history/{entry_id}/pdf")
def download_history_pdf(entry_id: str, service: TestService = Depends(get_test_service)):
    pdf_bytes = service.history_pdf(entry_id)
    return _pdf_response(pdf_bytes, f"test_results_{entry_id[:8]}.pdf")

@router.post("/history/{entry_id}/retake")
async def retake_from_history(entry_id: str, service: TestService = Depends(get_test_service)):
    """Open a new session on a stored test's questions"""
    return await service.retake_from_history(entry_id)
