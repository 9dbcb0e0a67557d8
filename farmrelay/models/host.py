from datetime import datetime
from sqlalchemy import Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from farmrelay.models.base import Base

class Host(Base):
    __tablename__ = "hosts"

    host_id: Mapped[str] = mapped_column(Text, primary_key=True)
    online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
