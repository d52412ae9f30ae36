"""Data access layer for offenders and fines"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fine_service.infrastructure.database.models import FineRow, Offender
from fine_service.domain.exceptions import LookupFailure
from fine_service.domain.models import FineStatus
from fine_service.utils.date_utils import parse_iso_date


def fine_to_record(row: FineRow) -> Dict[str, Any]:
    """Flatten a fine row (plus offender name) into the mapping the business rules consume"""
    return {
        "id": row.id,
        "offender_id": row.offender_id,
        "offender_name": row.offender.name if row.offender else None,
        "offence_type": row.offence_type,
        "fine_amount": Decimal(row.fine_amount),
        "date_issued": row.date_issued.isoformat(),
        "date_paid": row.date_paid.isoformat() if row.date_paid else None,
        "status": row.status,
        "business_flags": row.business_flags,
    }


class OffenderRepository:
    """Repository for offenders"""

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, name: str, date_of_birth: Optional[date] = None) -> Offender:
        """Find offender by name (refreshing date of birth if given) or create one"""
        offender = self.db.query(Offender).filter(Offender.name == name).first()
        if offender:
            if date_of_birth is not None:
                offender.date_of_birth = date_of_birth
            return offender

        offender = Offender(name=name, date_of_birth=date_of_birth)
        self.db.add(offender)
        self.db.flush()  # Get ID without committing
        return offender


class FineRepository:
    """Repository for fines; also serves as the offender lookup for business rules"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        offender_id: int,
        offence_type: str,
        fine_amount: Decimal,
        date_issued: date,
        status: str = FineStatus.UNPAID.value,
        date_paid: Optional[date] = None,
        business_flags: str = "{}",
    ) -> FineRow:
        """Insert a fine and flush so it gets an id"""
        row = FineRow(
            offender_id=offender_id,
            offence_type=offence_type,
            fine_amount=fine_amount,
            date_issued=date_issued,
            status=status,
            date_paid=date_paid,
            business_flags=business_flags,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get_by_id(self, fine_id: int) -> Optional[FineRow]:
        """Fetch a single fine"""
        return self.db.query(FineRow).filter(FineRow.id == fine_id).first()

    def list_all(self) -> List[FineRow]:
        """Fetch every fine, oldest first"""
        return self.db.query(FineRow).order_by(FineRow.id).all()

    def save(self, row: FineRow, record: Mapping[str, Any]) -> FineRow:
        """Copy an evaluated fine record back onto its row"""
        row.offender_id = record["offender_id"]
        row.offence_type = record["offence_type"]
        row.fine_amount = record["fine_amount"]
        row.date_issued = parse_iso_date(record["date_issued"])
        row.date_paid = parse_iso_date(record["date_paid"]) if record.get("date_paid") else None
        row.status = record["status"]
        row.business_flags = record["business_flags"]
        self.db.flush()
        self.db.expire(row, ["offender"])  # offender_id may have changed
        return row

    def delete(self, row: FineRow) -> None:
        """Remove a fine"""
        self.db.delete(row)
        self.db.flush()

    def count_unpaid_fines(self, offender_id: int, exclude_fine_id: Optional[int] = None) -> int:
        """
        Count an offender's fines that are not paid (unpaid or overdue).

        Raises:
            LookupFailure: On any database error
        """
        try:
            query = (
                self.db.query(func.count(FineRow.id))
                .filter(FineRow.offender_id == offender_id)
                .filter(FineRow.status != FineStatus.PAID.value)
            )
            if exclude_fine_id is not None:
                query = query.filter(FineRow.id != exclude_fine_id)
            return int(query.scalar() or 0)
        except SQLAlchemyError as e:
            raise LookupFailure(f"Could not count unpaid fines for offender {offender_id}: {e}") from e
