"""
Investment domain model.

Represents one fixed-term investment (fixed or recurring deposit) persisted
in the ``investments`` table.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime
from sqlmodel import Field, SQLModel

from invtracker.core.dates import utcnow


class InvestmentKind(str, Enum):
    """Investment kinds offered by the client forms."""

    FD = "FD"
    RD = "RD"


class ReturnKind(str, Enum):
    """Return kinds offered by the client forms."""

    ORDINARY = "Ordinary"
    CUMULATIVE = "Cumulative"


def new_investment_id() -> str:
    return str(uuid.uuid4())


class Investment(SQLModel, table=True):
    """
    SQLModel / SQLAlchemy table definition for investments.

    - ``id`` is an opaque string assigned on insert and never changed.
    - ``investment_kind`` / ``return_kind`` are stored as open strings; the
      enums above only describe the client's choice set.
    - ``created_at`` / ``updated_at`` are owned by the store.
    """

    __tablename__ = "investments"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(investment_name) > 0", name="ck_investments_name_not_empty"),
        CheckConstraint("length(holder_name) > 0", name="ck_investments_holder_not_empty"),
        CheckConstraint("investment_amount >= 0", name="ck_investments_amount_non_negative"),
        CheckConstraint("return_amount >= 0", name="ck_investments_return_non_negative"),
        CheckConstraint("return_rate >= 0", name="ck_investments_rate_non_negative"),
    )

    id: str = Field(default_factory=new_investment_id, primary_key=True, max_length=64)
    investment_name: str = Field(max_length=255)
    holder_name: str = Field(index=True, max_length=255)
    investment_kind: str = Field(max_length=32)
    return_kind: str = Field(max_length=32)
    investment_amount: int = Field(sa_type=BigInteger)  # type: ignore[arg-type]
    return_amount: int = Field(sa_type=BigInteger)  # type: ignore[arg-type]
    return_rate: int
    start_date: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    end_date: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,  # list_all orders by insertion time
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return (
            f"<Investment id={self.id} name='{self.investment_name}' "
            f"holder='{self.holder_name}' kind={self.investment_kind}>"
        )
