from sqlalchemy import Column, DateTime, String, Uuid

from batch_print.db.base import Base


class PrintEntryModel(Base):
    __tablename__ = "printing"

    id = Column(Uuid(as_uuid=True), primary_key=True)
    # Время хранится без зоны и всегда трактуется как UTC
    created = Column(DateTime(timezone=False), nullable=False)
    type = Column(String, nullable=False)
    sorting_field = Column(String, nullable=True)
    content = Column(String, nullable=False)
