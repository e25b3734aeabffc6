"""FastAPI adapter exposing the gateway over HTTP."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .. import catalog
from ..config import Settings
from ..dispatcher import UpstreamDispatcher
from ..exceptions import ValidationFailed
from ..logger import logger
from ..models import ErrorCategory
from ..service import MAX_PAGE_SIZE, InferenceService
from .sqlalchemy_ledger import SQLAlchemyRequestLedger, create_schema

USER_ID_HEADER = "X-User-Id"
USER_ADMIN_HEADER = "X-User-Admin"

CATEGORY_STATUS_CODES = {
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.MODEL_LOADING: 503,
    ErrorCategory.MODEL_NOT_FOUND: 404,
    ErrorCategory.INVALID_INPUT: 400,
    ErrorCategory.SERVER_ERROR: 502,
    ErrorCategory.NETWORK_ERROR: 502,
    ErrorCategory.UNKNOWN: 502,
}


@dataclass(frozen=True)
class Identity:
    """Caller identity supplied by the fronting authentication layer."""

    owner_id: str
    is_admin: bool = False


def get_identity(request: Request) -> Optional[Identity]:
    """
    Read the trusted identity headers set by the authentication layer.

    Applications with their own session handling override this dependency.
    """
    owner_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not owner_id:
        return None
    is_admin = request.headers.get(USER_ADMIN_HEADER, "").strip().lower() in ("1", "true", "yes")
    return Identity(owner_id=owner_id, is_admin=is_admin)


def require_identity(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Administrator privileges required")
    return identity


def get_service(request: Request) -> InferenceService:
    return request.app.state.service


class InferenceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    output: str
    model: str
    time_taken_seconds: Optional[float] = Field(None, alias="timeTakenSeconds")
    attempts: int
    request_id: int = Field(..., alias="requestId")


router = APIRouter(tags=["Inference"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/models")
async def list_models() -> List[Dict]:
    return catalog.categories()


@router.post("/inference", response_model=InferenceResponse)
async def create_inference(
    payload: Any = Body(...),
    identity: Identity = Depends(require_identity),
    service: InferenceService = Depends(get_service),
):
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    try:
        result = await service.submit(payload, owner_id=identity.owner_id)
    except ValidationFailed as exc:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "details": [{"field": error.field, "message": error.message} for error in exc.errors],
            },
        )
    except Exception:
        logger.exception("inference request from {} failed", identity.owner_id)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    if not result.succeeded:
        return JSONResponse(
            status_code=CATEGORY_STATUS_CODES[result.error.category],
            content={
                "error": result.error.message,
                "category": result.error.category.value,
                "requestId": result.record_id,
            },
        )

    return InferenceResponse(
        output=result.output or "",
        model=result.model_id,
        time_taken_seconds=result.time_taken_seconds,
        attempts=result.attempts,
        request_id=result.record_id,
    )


@router.get("/inference/history")
def inference_history(
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(require_identity),
    service: InferenceService = Depends(get_service),
) -> List[Dict]:
    return [record.to_dict() for record in service.get_history(identity.owner_id, limit)]


@router.get("/inference/admin/history", dependencies=[Depends(require_admin)])
def admin_inference_history(
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    service: InferenceService = Depends(get_service),
) -> List[Dict]:
    return [record.to_dict() for record in service.get_all_history(limit)]


@router.get("/inference/admin/metrics", dependencies=[Depends(require_admin)])
def admin_inference_metrics(
    service: InferenceService = Depends(get_service),
) -> Dict:
    return service.get_metrics()


def build_service(settings: Settings) -> InferenceService:
    """Wire the SQLAlchemy ledger and the httpx dispatcher from settings."""
    connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
    engine = create_engine(settings.database_url, connect_args=connect_args)
    create_schema(engine)
    ledger = SQLAlchemyRequestLedger(sessionmaker(engine))
    dispatcher = UpstreamDispatcher(timeout=settings.upstream_timeout_seconds)
    return InferenceService(ledger=ledger, dispatcher=dispatcher, settings=settings)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[InferenceService] = None,
    prefix: str = "/api",
) -> FastAPI:
    settings = settings or Settings.from_env()
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("gateway ready, upstream {}", settings.upstream_base_url)
        yield
        aclose = getattr(service.dispatcher, "aclose", None)
        if aclose is not None:
            await aclose()

    app = FastAPI(title="InferGate", version="0.1.0", lifespan=lifespan)
    app.state.service = service
    app.include_router(router, prefix=prefix)
    return app
