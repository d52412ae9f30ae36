"""SQLAlchemy ORM models for offenders and their fines"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Offender(Base):
    """Person a fine is issued to, unique by name"""

    __tablename__ = "offenders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    date_of_birth = Column(Date, nullable=True)

    fines = relationship("FineRow", back_populates="offender", cascade="all, delete-orphan")


class FineRow(Base):
    """Persisted fine; business_flags holds the canonical flags JSON"""

    __tablename__ = "fines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    offender_id = Column(Integer, ForeignKey("offenders.id", ondelete="CASCADE"), nullable=False, index=True)
    offence_type = Column(String(255), nullable=False)
    fine_amount = Column(Numeric(12, 2), nullable=False)
    date_issued = Column(Date, nullable=False)
    date_paid = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="unpaid")
    business_flags = Column(Text, nullable=False, default="{}")

    offender = relationship("Offender", back_populates="fines")
