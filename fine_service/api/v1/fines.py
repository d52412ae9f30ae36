"""/v1/fines - CRUD and payment endpoints with business rules applied"""

import time
import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, Iterator, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from fine_service.api.v1.schemas import (
    CalculateRequest,
    CalculateResponse,
    DeleteResponse,
    FineCreate,
    FineMutationResponse,
    FineReplace,
    FineResponse,
    FineUpdate,
)
from fine_service.api.dependencies import (
    get_business_service,
    get_fine_repository,
    get_offender_repository,
    get_request_id,
)
from fine_service.infrastructure.database.session import get_db
from fine_service.infrastructure.database.models import FineRow
from fine_service.infrastructure.database.repositories import (
    FineRepository,
    OffenderRepository,
    fine_to_record,
)
from fine_service.domain.business_rules import FineBusinessService
from fine_service.domain.calculator import calculate_fine
from fine_service.domain.exceptions import (
    FineNotFoundError,
    InvalidFlags,
    InvalidInput,
    LookupFailure,
)
from fine_service.domain.flags import merge_flags, normalize_flags, serialize_flags
from fine_service.domain.models import FineStatus
from fine_service.infrastructure.observability.metrics import (
    lookup_failures_counter,
    newly_applied_rules,
    record_operation,
    record_rules_applied,
)
from fine_service.infrastructure.observability.logging import log_fine_evaluated

router = APIRouter()


@contextmanager
def fine_transaction(db: Optional[Session], operation: str, request_id: str) -> Iterator[None]:
    """
    Run one request's writes as a single transaction.

    Commits on success; rolls back and maps domain errors to HTTP errors
    otherwise, so a record from a failed evaluation is never persisted.
    Read-only operations pass db=None and get the same error mapping.
    """
    try:
        yield
        if db is not None:
            db.commit()
        record_operation(operation, "success")

    except FineNotFoundError as e:
        _rollback(db)
        record_operation(operation, "not_found")
        raise HTTPException(status_code=404, detail=str(e))

    except (InvalidInput, InvalidFlags) as e:
        _rollback(db)
        record_operation(operation, "invalid")
        logging.warning(f"Invalid fine data: {e}", extra={"request_id": request_id, "operation": operation})
        raise HTTPException(status_code=422, detail=str(e))

    except LookupFailure as e:
        _rollback(db)
        lookup_failures_counter.inc()
        record_operation(operation, "error")
        logging.error(f"Offender lookup failed: {e}", extra={"request_id": request_id, "operation": operation})
        raise HTTPException(status_code=503, detail="Offender lookup unavailable")

    except HTTPException:
        _rollback(db)
        raise

    except Exception as e:
        _rollback(db)
        record_operation(operation, "error")
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "operation": operation})
        raise HTTPException(status_code=500, detail="Internal server error")


def _rollback(db: Optional[Session]) -> None:
    if db is not None:
        db.rollback()


def _load_fine(fine_repo: FineRepository, fine_id: int) -> FineRow:
    row = fine_repo.get_by_id(fine_id)
    if row is None:
        raise FineNotFoundError(f"Fine {fine_id} not found")
    return row


def _evaluate_and_save(
    service: FineBusinessService,
    fine_repo: FineRepository,
    row: FineRow,
    record: Dict[str, Any],
    request_id: str,
    operation: str,
) -> FineResponse:
    """Apply business rules to a record, persist it onto the row, return the response model"""
    start_time = time.time()

    evaluated = service.apply_business_rules(record)
    if evaluated != fine_to_record(row):
        fine_repo.save(row, evaluated)

    # Input flags already passed validation inside apply_business_rules
    rules = newly_applied_rules(
        normalize_flags(record.get("business_flags")),
        normalize_flags(evaluated["business_flags"]),
    )
    record_rules_applied(rules)

    duration_ms = (time.time() - start_time) * 1000
    log_fine_evaluated(request_id, operation, row.id, rules, evaluated["status"], duration_ms)

    return FineResponse(**fine_to_record(row))


def _apply_changes(
    record: Dict[str, Any],
    changes: Dict[str, Any],
    offender_repo: OffenderRepository,
) -> Dict[str, Any]:
    """Merge validated request fields into a stored record"""
    updated = dict(record)

    offender_name = changes.pop("offender_name", None)
    offender_dob = changes.pop("offender_dob", None)
    if offender_name:
        updated["offender_id"] = offender_repo.upsert(offender_name, offender_dob).id

    # Flags only ever accumulate; a request cannot clear an applied rule
    if "business_flags" in changes:
        requested = normalize_flags(changes.pop("business_flags"))
        current = normalize_flags(record["business_flags"])
        updated["business_flags"] = serialize_flags(merge_flags(current, requested))

    for key, value in changes.items():
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, FineStatus):
            value = value.value
        updated[key] = value

    # Stamp payment date on the transition to paid; only paid fines carry one
    if updated["status"] != FineStatus.PAID.value:
        updated["date_paid"] = None
    elif record["status"] != FineStatus.PAID.value or not updated.get("date_paid"):
        updated["date_paid"] = date.today().isoformat()

    return updated


@router.post("/fines/calculate", response_model=CalculateResponse)
def calculate(body: CalculateRequest, request: Request):
    """
    Quote the amount owed today for a fine, without storing anything.

    Returns:
        Amount with the overdue fee included when the grace period has passed
    """
    with fine_transaction(None, "calculate", get_request_id(request)):
        amount = calculate_fine(body.amount, body.date_issued, body.status)

    return CalculateResponse(amount=amount)


@router.post("/fines", response_model=FineMutationResponse, status_code=201)
def create_fine(
    body: FineCreate,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    offender_repo: OffenderRepository = Depends(get_offender_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """
    Create a fine for an offender (created on first use, matched by name).

    Flow:
    1. Upsert offender
    2. Insert fine (date_paid stamped when created as paid)
    3. Apply business rules and persist the result
    """
    request_id = get_request_id(request)

    with fine_transaction(db, "create", request_id):
        offender = offender_repo.upsert(body.offender_name, body.offender_dob)

        row = fine_repo.create(
            offender_id=offender.id,
            offence_type=body.offence_type,
            fine_amount=body.fine_amount,
            date_issued=body.date_issued,
            status=body.status.value,
            date_paid=date.today() if body.status is FineStatus.PAID else None,
        )

        record = fine_to_record(row)
        if body.business_flags is not None:
            record["business_flags"] = body.business_flags

        fine = _evaluate_and_save(service, fine_repo, row, record, request_id, "create")

    return FineMutationResponse(fine=fine, message="Fine created successfully")


@router.get("/fines", response_model=list[FineResponse])
def list_fines(
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """List all fines with business rules brought up to date"""
    request_id = get_request_id(request)

    with fine_transaction(db, "list", request_id):
        fines = [
            _evaluate_and_save(service, fine_repo, row, fine_to_record(row), request_id, "list")
            for row in fine_repo.list_all()
        ]

    return fines


@router.get("/fines/{fine_id}", response_model=FineResponse)
def get_fine(
    fine_id: int,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """Retrieve a single fine with business rules brought up to date"""
    request_id = get_request_id(request)

    with fine_transaction(db, "get", request_id):
        row = _load_fine(fine_repo, fine_id)
        fine = _evaluate_and_save(service, fine_repo, row, fine_to_record(row), request_id, "get")

    return fine


def _update(
    fine_id: int,
    changes: Dict[str, Any],
    request_id: str,
    operation: str,
    db: Session,
    fine_repo: FineRepository,
    offender_repo: OffenderRepository,
    service: FineBusinessService,
) -> FineMutationResponse:
    with fine_transaction(db, operation, request_id):
        row = _load_fine(fine_repo, fine_id)
        record = _apply_changes(fine_to_record(row), changes, offender_repo)
        fine = _evaluate_and_save(service, fine_repo, row, record, request_id, operation)

    return FineMutationResponse(fine=fine, message="Fine updated successfully")


@router.put("/fines/{fine_id}", response_model=FineMutationResponse)
def replace_fine(
    fine_id: int,
    body: FineReplace,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    offender_repo: OffenderRepository = Depends(get_offender_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """Update a fine; offence_type, fine_amount and date_issued are required"""
    return _update(
        fine_id, body.model_dump(exclude_unset=True, exclude_none=True), get_request_id(request), "update",
        db, fine_repo, offender_repo, service,
    )


@router.patch("/fines/{fine_id}", response_model=FineMutationResponse)
def patch_fine(
    fine_id: int,
    body: FineUpdate,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    offender_repo: OffenderRepository = Depends(get_offender_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """Partially update a fine"""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    return _update(
        fine_id, changes, get_request_id(request), "partial_update",
        db, fine_repo, offender_repo, service,
    )


@router.patch("/fines/{fine_id}/pay", response_model=FineMutationResponse)
def mark_fine_paid(
    fine_id: int,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
    service: FineBusinessService = Depends(get_business_service),
):
    """
    Mark a fine as paid today.

    The early payment discount applies when this lands within 14 days of issue.
    """
    request_id = get_request_id(request)

    with fine_transaction(db, "pay", request_id):
        row = _load_fine(fine_repo, fine_id)
        record = fine_to_record(row)
        if record["status"] != FineStatus.PAID.value or not record["date_paid"]:
            record["status"] = FineStatus.PAID.value
            record["date_paid"] = date.today().isoformat()
        fine = _evaluate_and_save(service, fine_repo, row, record, request_id, "pay")

    return FineMutationResponse(fine=fine, message="Fine marked as paid")


@router.delete("/fines/{fine_id}", response_model=DeleteResponse)
def delete_fine(
    fine_id: int,
    request: Request,
    db: Session = Depends(get_db),
    fine_repo: FineRepository = Depends(get_fine_repository),
):
    """Delete a fine"""
    request_id = get_request_id(request)

    with fine_transaction(db, "delete", request_id):
        fine_repo.delete(_load_fine(fine_repo, fine_id))

    return DeleteResponse(message="Fine deleted successfully")
