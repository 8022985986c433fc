from sqlalchemy import JSON, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class DiagramRecord(Base):
    __tablename__ = "diagrams"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    database_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    database_edition: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # ISO-8601 strings, ordered lexically
    created_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    updated_at: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False)
