"""SQLAlchemy table definitions.

The service keeps every document in one table.  The domain dataclasses in
studyquest/models/ convert to and from the JSONB ``body``; the store in
pg_store.py only deals in keys and bodies.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studyquest.db.engine import Base


class DocumentRow(Base):
    __tablename__ = "documents"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    collection: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )  # courses|weeks|progress|submissions|missions|users
    body: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
