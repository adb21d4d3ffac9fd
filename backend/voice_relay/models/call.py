from sqlalchemy import Column, Integer, String, DateTime
from voice_relay.db.session import Base

class Call(Base):
    __tablename__ = "calls"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    caller_id = Column(String, nullable=False, index=True)
    callee_id = Column(String, nullable=False, index=True)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    status = Column(String, nullable=False)  # initiated, completed, rejected, missed
    created_at = Column(DateTime, nullable=False)  # set by the ledger
