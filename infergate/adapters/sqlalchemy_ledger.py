"""SQLAlchemy adapter for the request ledger."""

import json
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    bindparam,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..exceptions import LedgerStateError, RecordNotFoundError
from ..logger import logger
from ..models import ErrorCategory, GenerationParams, InferenceRequestRecord, NormalizedRequest

metadata = MetaData()

inference_requests = Table(
    "inference_requests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String(128), nullable=True, index=True),
    Column("model", String(256), nullable=False),
    Column("input", Text, nullable=False),
    Column("params", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("completed_at", DateTime(timezone=True), nullable=True),
    Column("output", Text, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("error_category", String(32), nullable=True),
    Column("latency_ms", Integer, nullable=True),
)

_SELECT_RECORDS = """
    SELECT id, owner_id, model, input, params, created_at, completed_at,
           output, error_message, error_category, latency_ms
    FROM inference_requests
"""


def create_schema(engine: Engine) -> None:
    metadata.create_all(engine)


class SQLAlchemyRequestLedger:
    """
    Stores one row per submission and maps rows back to domain records.

    Each operation opens its own session from ``session_factory``, so the
    ledger may be called from worker threads.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self, request: NormalizedRequest, owner_id: Optional[str]) -> int:
        # The id comes from the table's primary key sequence.
        with self.session_factory() as db:
            result = db.execute(
                inference_requests.insert().values(
                    owner_id=owner_id,
                    model=request.model_id,
                    input=request.input_text,
                    params=json.dumps(request.params.to_dict()),
                    created_at=_utcnow(),
                )
            )
            db.commit()
            record_id = int(result.inserted_primary_key[0])
        logger.debug("[{}] ledger entry created for owner {}", record_id, owner_id)
        return record_id

    def complete(self, record_id: int, output: str, latency_ms: int) -> None:
        self._finish(
            record_id,
            {
                "output": output,
                "error_message": None,
                "error_category": None,
                "latency_ms": latency_ms,
            },
        )

    def fail(
        self,
        record_id: int,
        message: str,
        category: ErrorCategory,
        latency_ms: Optional[int] = None,
    ) -> None:
        self._finish(
            record_id,
            {
                "output": None,
                "error_message": message,
                "error_category": ErrorCategory(category).value,
                "latency_ms": latency_ms,
            },
        )

    def get(self, record_id: int) -> InferenceRequestRecord:
        with self.session_factory() as db:
            row = db.execute(
                _typed(text(_SELECT_RECORDS + " WHERE id = :record_id")),
                {"record_id": record_id},
            ).first()
        if row is None:
            raise RecordNotFoundError(record_id)
        return _to_record(row)

    def recent(
        self,
        owner_id: Optional[str] = None,
        limit: int = 10,
    ) -> Sequence[InferenceRequestRecord]:
        query = _SELECT_RECORDS
        params = {"limit": limit}
        if owner_id is not None:
            query += " WHERE owner_id = :owner_id"
            params["owner_id"] = owner_id
        query += " ORDER BY created_at DESC, id DESC LIMIT :limit"

        with self.session_factory() as db:
            rows = db.execute(_typed(text(query)), params).fetchall()
        return [_to_record(row) for row in rows]

    def _finish(self, record_id: int, values: dict) -> None:
        # Only pending rows may receive a terminal update.
        with self.session_factory() as db:
            result = db.execute(
                text(
                    """
                    UPDATE inference_requests
                    SET completed_at = :completed_at,
                        output = :output,
                        error_message = :error_message,
                        error_category = :error_category,
                        latency_ms = :latency_ms
                    WHERE id = :record_id AND completed_at IS NULL
                    """
                ).bindparams(bindparam("completed_at", type_=DateTime(timezone=True))),
                {"record_id": record_id, "completed_at": _utcnow(), **values},
            )
            if result.rowcount == 0:
                db.rollback()
                exists = db.execute(
                    text("SELECT 1 FROM inference_requests WHERE id = :record_id"),
                    {"record_id": record_id},
                ).first()
                if exists is None:
                    raise RecordNotFoundError(record_id)
                raise LedgerStateError(record_id)
            db.commit()


def _typed(clause):
    return clause.columns(
        created_at=DateTime(timezone=True),
        completed_at=DateTime(timezone=True),
    )


def _to_record(row) -> InferenceRequestRecord:
    return InferenceRequestRecord(
        id=int(row.id),
        owner_id=row.owner_id,
        model_id=row.model,
        input_text=row.input,
        params=_parse_params(row.params),
        created_at=_as_utc(row.created_at),
        completed_at=_as_utc(row.completed_at) if row.completed_at else None,
        output_text=row.output,
        error_message=row.error_message,
        error_category=ErrorCategory(row.error_category) if row.error_category else None,
        latency_ms=row.latency_ms,
    )


def _parse_params(raw_params) -> GenerationParams:
    if raw_params is None:
        return GenerationParams()
    if isinstance(raw_params, str):
        try:
            raw_params = json.loads(raw_params)
        except json.JSONDecodeError:
            return GenerationParams()
    if not isinstance(raw_params, dict):
        return GenerationParams()

    defaults = GenerationParams()
    stop = raw_params.get("stop_sequences") or []
    if isinstance(stop, str):
        stop = [token.strip() for token in stop.split(",") if token.strip()]
    return GenerationParams(
        temperature=raw_params.get("temperature", defaults.temperature),
        max_tokens=raw_params.get("max_tokens", defaults.max_tokens),
        top_p=raw_params.get("top_p", defaults.top_p),
        frequency_penalty=raw_params.get("frequency_penalty", defaults.frequency_penalty),
        presence_penalty=raw_params.get("presence_penalty", defaults.presence_penalty),
        stop_sequences=tuple(stop),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
