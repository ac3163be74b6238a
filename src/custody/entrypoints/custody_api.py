"""
Custody Ledger API Entrypoint - Thin API with Command Dispatch
API receives requests, dispatches commands through the message bus and
delegates reads to views.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import create_engine

import config
from custody import views
from custody.adapters import orm
from custody.domain import commands
from custody.domain.exceptions import (
    AlreadyExists,
    CustodyError,
    IdentityUnavailable,
    InvalidState,
    NotFound,
    StoreUnavailable,
    Unauthorized,
)
from custody.service_layer import messagebus
from custody.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

logging.basicConfig(
    level=getattr(logging, config.get_log_level()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Custody Ledger API",
    description="Pharmaceutical batch custody, recall and audit trail",
    version="1.0.0"
)

ERROR_STATUS_MAP = {
    Unauthorized: 403,
    AlreadyExists: 409,
    NotFound: 404,
    InvalidState: 409,
    IdentityUnavailable: 401,
    StoreUnavailable: 503,
}


def map_custody_error(error: CustodyError) -> HTTPException:
    """Map a custody error to an HTTPException carrying its kind."""
    status_code = ERROR_STATUS_MAP.get(type(error), 500)
    return HTTPException(
        status_code=status_code,
        detail={"kind": error.kind, "message": str(error)},
    )


def get_unit_of_work() -> AbstractUnitOfWork:
    return SqlAlchemyUnitOfWork()


@app.on_event("startup")
async def startup_event():
    engine = create_engine(config.get_postgres_uri())
    orm.create_tables(engine)
    logger.info("Custody ledger database initialized")


# ---------- Request/Response models ----------

class RegisterBatchRequest(BaseModel):
    identifier: str = Field(min_length=1)
    product_name: str
    batch_number: str
    manufacture_date: str   # YYYY-MM-DD
    expiry_date: str        # YYYY-MM-DD
    composition: str


class TransferRequest(BaseModel):
    destination: str = Field(min_length=1)


class RecallRequest(BaseModel):
    reason: str


class CommandResponse(BaseModel):
    identifier: str
    result: Optional[str] = None


def _dispatch(cmd: commands.Command, uow: AbstractUnitOfWork) -> Any:
    try:
        results = messagebus.handle(cmd, uow)
    except CustodyError as e:
        raise map_custody_error(e)
    return results[0]


# ---------- Endpoints ----------

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "custody-ledger-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/v1/batches", response_model=CommandResponse, status_code=201)
def register_batch(
    request: RegisterBatchRequest,
    x_caller_credential: str = Header(default=""),
    uow: AbstractUnitOfWork = Depends(get_unit_of_work),
):
    """Manufacturer registers a new batch."""
    cmd = commands.RegisterBatch(credential=x_caller_credential, **request.model_dump())
    identifier = _dispatch(cmd, uow)
    return CommandResponse(identifier=identifier)


@app.post("/api/v1/batches/{identifier}/transfer", response_model=CommandResponse)
def transfer_custody(
    identifier: str,
    request: TransferRequest,
    x_caller_credential: str = Header(default=""),
    uow: AbstractUnitOfWork = Depends(get_unit_of_work),
):
    """Current custodian ships the batch to another party."""
    cmd = commands.TransferCustody(
        credential=x_caller_credential,
        identifier=identifier,
        destination=request.destination,
    )
    return CommandResponse(identifier=identifier, result=_dispatch(cmd, uow))


@app.post("/api/v1/batches/{identifier}/recall", response_model=CommandResponse)
def recall_batch(
    identifier: str,
    request: RecallRequest,
    x_caller_credential: str = Header(default=""),
    uow: AbstractUnitOfWork = Depends(get_unit_of_work),
):
    """Regulator recalls the batch."""
    cmd = commands.RecallBatch(
        credential=x_caller_credential,
        identifier=identifier,
        reason=request.reason,
    )
    return CommandResponse(identifier=identifier, result=_dispatch(cmd, uow))


@app.post("/api/v1/batches/{identifier}/deliver", response_model=CommandResponse)
def mark_delivered(
    identifier: str,
    x_caller_credential: str = Header(default=""),
    uow: AbstractUnitOfWork = Depends(get_unit_of_work),
):
    cmd = commands.MarkDelivered(credential=x_caller_credential, identifier=identifier)
    return CommandResponse(identifier=identifier, result=_dispatch(cmd, uow))


@app.get("/api/v1/batches/{identifier}")
def track_batch(identifier: str, uow: AbstractUnitOfWork = Depends(get_unit_of_work)) -> Dict[str, Any]:
    """
    Retrieve the full record of a batch.

    Following Cosmic Python pattern: API layer is thin, delegates to views.
    """
    try:
        return views.track_batch(identifier, uow)
    except CustodyError as e:
        raise map_custody_error(e)


@app.get("/api/v1/batches/{identifier}/history")
def batch_history(identifier: str, uow: AbstractUnitOfWork = Depends(get_unit_of_work)):
    try:
        history = views.batch_history(identifier, uow)
    except CustodyError as e:
        raise map_custody_error(e)
    return {"identifier": identifier, "count": len(history), "history": history}


def main():
    """Run the API with uvicorn."""
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=config.get_log_level().lower())


if __name__ == "__main__":
    main()
