from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PacketRow(Base):
    __tablename__ = "packets"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    frequency: Mapped[float | None] = mapped_column(Float, nullable=True)
