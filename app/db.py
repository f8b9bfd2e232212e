# app/db.py

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class ReceiptRow(Base):
    __tablename__ = "receipts"

    id = Column(String(36), primary_key=True)
    date = Column(String(10), nullable=False, index=True)
    store = Column(String(255), nullable=False, default="")
    items = Column(Text, nullable=False, default="")
    total_amount = Column(Integer, nullable=False, default=0)
    payer = Column(String(255), nullable=False)
    payment_method = Column(String(255), nullable=False)
    image_url = Column(String(1024), nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


def make_engine(database_url: str, echo: bool = False):
    # SQLite needs check_same_thread=False when used from the FastAPI threadpool
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True, echo=echo)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    Base.metadata.create_all(bind=engine)
