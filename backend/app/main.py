"""
FastAPI entrypoint for the travel expense request backend.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import ErrorKind, WorkflowError
from app.core.utils import format_error
from app.api.router import api_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Travel Expense Flow API",
    description="Backend API for corporate travel requests and expense receipts",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Turn domain errors into JSON responses; persistence details are not exposed."""
    if exc.kind == ErrorKind.PERSISTENCE:
        logger.error("Internal failure on %s %s: %r", request.method, request.url.path, exc.cause)
        return JSONResponse(status_code=exc.status_code, content=format_error("Internal server error"))
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.message))


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Travel Expense Flow API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
