from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class VoiceCacheEntry(Base):
    __tablename__ = "voice_cache"

    # voice_ + sha256 hex of text, character and emotion
    key: Mapped[str] = mapped_column(String(70), primary_key=True)

    # data URI or the BROWSER_SYNTHESIS sentinel
    value: Mapped[str] = mapped_column(Text, nullable=False)

    # Unix timestamp, used for TTL expiry
    created_at: Mapped[float] = mapped_column(Float, nullable=False, index=True)
