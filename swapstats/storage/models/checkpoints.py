from sqlalchemy import BigInteger, Column, String

from swapstats.storage.base import Base, DocumentMixin


class CheckpointRow(DocumentMixin, Base):
    """Single-row table: where the last complete collector run stopped."""
    __tablename__ = "checkpoints"

    id                = Column(String(32), primary_key=True)   # always "last_check"
    last_check_at     = Column(BigInteger, nullable=False)     # epoch seconds
    last_block_number = Column(BigInteger, nullable=False)
