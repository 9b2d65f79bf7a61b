from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from mock_backend.settings import MOCK_DB_URL

connect_args = {"check_same_thread": False} if MOCK_DB_URL.startswith("sqlite") else {}
engine = create_engine(MOCK_DB_URL, connect_args=connect_args, future=True, echo=False)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
