from sqlalchemy import Column, Integer, String

from swapstats.storage.base import Base, DocumentMixin


class PairRow(DocumentMixin, Base):
    __tablename__ = "pairs"

    address        = Column(String(42), primary_key=True)      # 0x-checksum
    index          = Column(Integer,    nullable=False, unique=True)  # factory discovery order
    pair           = Column(String(128), nullable=False)        # "WGO-USDC"
    token0_address = Column(String(42), nullable=False)
    token1_address = Column(String(42), nullable=False)

    def __repr__(self) -> str:
        return f"<Pair #{self.index} {self.pair} {self.address}>"
