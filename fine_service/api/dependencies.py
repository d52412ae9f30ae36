"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from fine_service.domain.business_rules import FineBusinessService
from fine_service.infrastructure.database.repositories import FineRepository, OffenderRepository
from fine_service.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_fine_repository(db: Session = Depends(get_db)) -> FineRepository:
    """Provide fine repository bound to the request's session"""
    return FineRepository(db)


def get_offender_repository(db: Session = Depends(get_db)) -> OffenderRepository:
    """Provide offender repository bound to the request's session"""
    return OffenderRepository(db)


def get_business_service(fine_repo: FineRepository = Depends(get_fine_repository)) -> FineBusinessService:
    """Provide business rules with the request's fine repository as offender lookup"""
    return FineBusinessService(fine_repo)
