from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.academic_blocks.router import router as academic_blocks_router
from app.api.v1.academic_results.router import router as academic_results_router
from app.api.v1.audit.router import router as audit_router
from app.api.v1.documents.router import router as documents_router
from app.api.v1.subject_enrollments.router import router as subject_enrollments_router
from app.core.config import settings
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings)
    app = FastAPI(title="Academic Eligibility & Documents")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Routers
    app.include_router(subject_enrollments_router)
    app.include_router(academic_results_router)
    app.include_router(academic_blocks_router)
    app.include_router(documents_router)
    app.include_router(audit_router)

    return app


app = create_app()
