"""
Module: stock_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.  Provides
    the integer primary key convention and the type annotation map that keeps
    column types consistent across the schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer primary keys: order and actor identifiers cross the API boundary
      as integers, so every model uses an autoincrementing integer key.
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(38, 9).  NEVER use float for stock quantities.
    - Timezone-aware timestamps: datetime maps to DateTime(timezone=True).

Failure modes:
    - IntegrityError if a model attempts to INSERT a duplicate primary key.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer(), "sqlite")

# Stock quantity: 38 digits total, 9 decimal places
Quantity = Numeric(38, 9)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base.  Base provides an
        integer primary key and a type_annotation_map that enforces
        consistent column types across the entire schema.

    Guarantees:
        - id is an autoincrementing integer on every supported dialect.
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Quantity,
        datetime: DateTime(timezone=True),
        int: IdType,
    }

    id: Mapped[int] = mapped_column(
        IdType,
        primary_key=True,
        autoincrement=True,
    )
