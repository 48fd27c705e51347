"""Token holding model"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime

from token_vesting.models.database import Base, U64


class TokenAccount(Base):
    """Balance of one mint controlled by one owner.

    Wallet holdings live at the owner's associated address; escrow vaults
    live at a schedule's derived vault address and are owned by the schedule
    address.
    """
    __tablename__ = "token_accounts"

    address = Column(String(44), primary_key=True)
    mint = Column(String(44), nullable=False, index=True)
    owner = Column(String(44), nullable=False, index=True)
    amount = Column(U64, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<TokenAccount {self.address[:8]}... owner={self.owner[:8]}... ({self.amount})>"
