from datetime import datetime
from sqlalchemy import JSON, Boolean, DateTime, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from farmrelay.models.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

class Printer(Base):
    __tablename__ = "printers"
    __table_args__ = (
        Index("ix_printers_host_id", "host_id"),
    )

    remote_address: Mapped[str] = mapped_column(Text, primary_key=True)
    host_id: Mapped[str | None] = mapped_column(Text, nullable=True)   # owning host, not a FK

    online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[dict] = mapped_column(JSONType, nullable=False)      # {"type": "Online" | "Offline" | ...}
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # user-managed metadata, never touched by presence transitions
    friendly_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    loaded_filament: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
