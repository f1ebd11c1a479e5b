from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scoreboard.db.base import Base
from scoreboard.models.common import UpdatedAtMixin


class StorageEntry(UpdatedAtMixin, Base):
    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
