# testgenius/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import config
from .core.database import get_history_store, close_history_store
from .core.ai_services import get_ai_service, close_ai_service
from .core.errors import (
    GatewayError, HistoryEntryNotFoundError, IllegalTransitionError, InputValidationError,
    PersistenceError, ReportError, SessionNotFoundError,
)
from .core.utils import ResponseFormatter
from .api.routes import router

# Setup logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info("🚀 TestGenius API starting...")

    try:
        # Validate configuration
        validation = config.validate()
        if not validation["valid"]:
            raise Exception(f"Configuration invalid: {validation['issues']}")

        logger.info("✅ Configuration validated")

        # Initialize history store
        logger.info("🔄 Initializing history store...")
        history_store = get_history_store()
        logger.info(f"✅ History store ready ({history_store.backend})")

        # Initialize AI service
        logger.info("🔄 Initializing AI service...")
        ai_service = get_ai_service()
        ai_health = ai_service.health_check()

        if ai_health["status"] != "healthy":
            raise Exception(f"AI service validation failed: {ai_health}")

        logger.info("✅ AI service ready")

        from .services.test_service import get_test_service
        test_service = get_test_service()
        test_service.registry.start_cleanup_thread()

        logger.info("✅ All systems operational")
        logger.info(f"📊 Questions per test: {config.MIN_QUESTIONS}-{config.MAX_QUESTIONS}, "
                    f"history capacity: {config.HISTORY_CAPACITY}")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise Exception(f"Application startup failed: {e}")

    yield

    # Cleanup on shutdown
    logger.info("👋 Shutting down...")
    try:
        test_service.registry.stop_cleanup_thread()
        close_history_store()
        close_ai_service()
        logger.info("✅ Graceful shutdown completed")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")

# Create FastAPI application
app = FastAPI(
    title=config.API_TITLE,
    description=config.API_DESCRIPTION,
    version=config.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGIN_LIST,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router)

# Exception handlers
def _error(status_code: int, error: str, message: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ResponseFormatter.format_error_response(message, error, error_type)
    )

@app.exception_handler(IllegalTransitionError)
async def illegal_transition_handler(request: Request, exc: IllegalTransitionError):
    logger.warning(f"Illegal transition: {exc}")
    return _error(409, "Conflict", str(exc), "illegal_transition")

@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    """Handle validation errors"""
    logger.warning(f"Validation error: {exc}")
    return _error(400, "Validation Error", str(exc), "validation_error")

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(str(e.get("msg", "")) for e in errors) or "Invalid request"
    logger.warning(f"Request validation error: {message}")
    return _error(400, "Validation Error", message, "validation_error")

@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    logger.warning(f"Session not found: {exc}")
    return _error(404, "Resource Not Found", str(exc), "not_found_error")

@app.exception_handler(HistoryEntryNotFoundError)
async def history_not_found_handler(request: Request, exc: HistoryEntryNotFoundError):
    logger.warning(f"History entry not found: {exc}")
    return _error(404, "Resource Not Found", str(exc), "not_found_error")

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error(f"AI service error: {exc}")
    return _error(502, "AI Service Error", str(exc), "gateway_error")

@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error(f"History storage error: {exc}")
    return _error(503, "Storage Unavailable", str(exc), "persistence_error")

@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    logger.error(f"Report error: {exc}")
    return _error(500, "Report Generation Failed", "Could not generate the PDF report", "report_error")

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error(500, "Internal Server Error", "An unexpected error occurred", "server_error")

@app.get("/health")
async def health_check():
    """Comprehensive health check"""
    try:
        from .services.test_service import get_test_service
        service_health = get_test_service().health_check()
        status = "healthy"
        if service_health["ai_service"].get("status") != "healthy" or service_health["history"].get("status") != "healthy":
            status = "degraded"
        return {
            "status": status,
            "service": "testgenius_api",
            "version": config.API_VERSION,
            **service_health
        }

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "service": "testgenius_api",
                "error": str(e)
            }
        )

@app.get("/info")
async def api_info():
    """API information and capabilities"""
    return {
        "name": config.API_TITLE,
        "version": config.API_VERSION,
        "description": config.API_DESCRIPTION,
        "features": {
            "document_extraction": True,
            "syllabus_generation": True,
            "topic_generation": True,
            "ai_scoring": True,
            "answer_key_scoring": True,
            "negative_marking": True,
            "timed_tests": True,
            "history": True,
            "pdf_export": True
        },
        "configuration": {
            "min_questions": config.MIN_QUESTIONS,
            "max_questions": config.MAX_QUESTIONS,
            "max_upload_mb": config.MAX_UPLOAD_MB,
            "max_timer_minutes": config.MAX_TIMER_MINUTES,
            "default_negative_mark": config.DEFAULT_NEGATIVE_MARK,
            "history_capacity": config.HISTORY_CAPACITY,
            "history_backend": config.HISTORY_BACKEND,
            "using_dummy_data": config.USE_DUMMY_DATA
        },
        "endpoints": {
            "create_session": "POST /api/sessions",
            "get_session": "GET /api/sessions/{session_id}",
            "history": "GET /api/history",
            "health": "GET /health",
            "docs": "GET /docs"
        }
    }

if __name__ == "__main__":
    import uvicorn

    logger.info("🚀 Starting TestGenius API")
    logger.info(f"🌐 Server: http://{config.API_HOST}:{config.API_PORT}")
    logger.info(f"📚 Docs: http://{config.API_HOST}:{config.API_PORT}/docs")

    uvicorn.run(
        "testgenius.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower()
    )
