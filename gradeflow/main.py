import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gradeflow.core.config import STORAGE_DIR
from gradeflow.core.logging_middleware import LoggingMiddleware
from gradeflow.db.init_db import init_db
from gradeflow.routers.assignments import router as assignments_router
from gradeflow.routers.auth import router as auth_router
from gradeflow.routers.courses import router as courses_router
from gradeflow.routers.grading_function import router as grading_function_router
from gradeflow.routers.lecturer import router as lecturer_router
from gradeflow.routers.submissions import router as submissions_router
from gradeflow.services.errors import ValidationError, WorkflowError

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title="gradeflow")

# Middleware
app.add_middleware(LoggingMiddleware)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    body = {"detail": exc.detail, "error": exc.kind}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    init_db()


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(courses_router, prefix="/courses", tags=["courses"])
app.include_router(assignments_router, tags=["assignments"])
app.include_router(submissions_router, tags=["submissions"])
app.include_router(lecturer_router)
app.include_router(grading_function_router)

# Uploaded objects
app.mount("/files", StaticFiles(directory=STORAGE_DIR, check_dir=False), name="files")
