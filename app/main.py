# app/main.py

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging, load_settings
from .db import create_tables, make_engine, make_session_factory
from .errors import (
    DateResolutionFailed,
    ExtractionFailed,
    InvalidDate,
    RepositoryError,
    StageError,
    UploadFailed,
)
from .models import HealthResponse, ReceiptOut
from .services.dates import USER_SOURCE
from .services.ocr_llm import OCRService
from .services.receipt_service import ReceiptService
from .services.repository import SqlReceiptRepository
from .services.storage_service import StorageService

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, settings: Settings):
    """Wires the GCS, Gemini and database adapters into the receipt service."""
    settings.validate()
    engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
    create_tables(engine)
    repository = SqlReceiptRepository(make_session_factory(engine))
    storage_service = StorageService(
        bucket_name=settings.GCS_BUCKET_NAME,
        credentials_json_string=settings.GOOGLE_CREDENTIALS_JSON,
        make_public=settings.GCS_MAKE_PUBLIC,
    )
    ocr_service = OCRService(
        api_key=settings.GEMINI_API_KEY,
        model_name=settings.GEMINI_MODEL,
        preprocess=settings.IMAGE_PREPROCESS,
    )
    app.state.repository = repository
    app.state.receipt_service = ReceiptService(repository, ocr_service, storage_service)
    app.state.request_timeout = settings.REQUEST_TIMEOUT_SECONDS
    return engine, storage_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.receipt_service is not None:
        yield
        return

    settings = app.state.settings or load_settings()
    configure_logging(settings.LOG_LEVEL)
    engine, storage_service = build_services(app, settings)
    logger.info("Receipt service ready")
    yield
    storage_service.close()
    engine.dispose()
    logger.info("Shutting down")


# --- Dependencies ---

def get_receipt_service(request: Request) -> ReceiptService:
    return request.app.state.receipt_service


def get_repository(request: Request) -> SqlReceiptRepository:
    return request.app.state.repository


def get_deadline(request: Request) -> Optional[float]:
    timeout = request.app.state.request_timeout
    return time.monotonic() + timeout if timeout else None


# --- Error mapping ---

def status_for(error: StageError) -> int:
    if isinstance(error, DateResolutionFailed):
        cause = error.cause
        if isinstance(cause, InvalidDate) and cause.source == USER_SOURCE:
            return 400
        return 422
    if isinstance(error, (UploadFailed, ExtractionFailed)):
        return 502
    # PersistenceFailed and anything unexpected
    return 500


async def stage_error_handler(request: Request, exc: StageError):
    logger.error("Receipt creation failed at stage %s: %s", exc.stage, exc)
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": str(exc), "stage": exc.stage},
    )


# --- Routes ---

router = APIRouter()


@router.get("/")
def read_root():
    return {"status": "ok", "message": "Welcome to the Receipt Scanner API!"}


@router.get("/health", response_model=HealthResponse)
def health(repository: SqlReceiptRepository = Depends(get_repository)):
    database = "ok"
    try:
        repository.ping()
    except RepositoryError as e:
        logger.error("Health check: database unavailable: %s", e)
        database = f"error: {e}"

    if database != "ok":
        body = HealthResponse(status="error", checks={"database": database})
        return JSONResponse(status_code=503, content=body.model_dump())
    return HealthResponse(status="ok", checks={"database": database})


@router.post("/receipts", response_model=ReceiptOut, status_code=201)
def create_receipt(
    receipt_image: UploadFile = File(..., alias="receiptImage"),
    payer: str = Form(...),
    payment_method: str = Form(..., alias="paymentMethod"),
    date: str = Form(""),
    service: ReceiptService = Depends(get_receipt_service),
    deadline: Optional[float] = Depends(get_deadline),
):
    """
    Stores the receipt image, extracts its fields with Gemini and saves the
    receipt. `date` (YYYY-MM-DD) overrides the date read from the image.
    """
    record = service.create_receipt(
        date=date,
        payer=payer,
        payment_method=payment_method,
        image=receipt_image.file,
        filename=receipt_image.filename or "",
        deadline=deadline,
    )
    return ReceiptOut.from_record(record)


@router.get("/receipts/{receipt_id}", response_model=ReceiptOut)
def get_receipt(receipt_id: str, repository: SqlReceiptRepository = Depends(get_repository)):
    record = repository.get(receipt_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return ReceiptOut.from_record(record)


def create_app(receipt_service: Optional[ReceiptService] = None,
               repository: Optional[SqlReceiptRepository] = None,
               request_timeout: Optional[float] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the API. Without a receipt_service the adapters are created from
    the environment when the app starts.
    """
    app = FastAPI(title="Receipt Scanner API", lifespan=lifespan)
    if repository is None and receipt_service is not None:
        repository = receipt_service.repository
    app.state.receipt_service = receipt_service
    app.state.repository = repository
    app.state.request_timeout = request_timeout
    app.state.settings = settings

    app.add_exception_handler(StageError, stage_error_handler)
    app.include_router(router)
    return app


app = create_app()
