from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from app.core.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Bound every statement so a slow database cannot hold a request open indefinitely
connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("postgresql"):
    connect_args["options"] = f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    poolclass=QueuePool,
    pool_size=10,  # Number of connections to maintain persistently
    max_overflow=20,  # Maximum number of connections to create beyond pool_size
    pool_timeout=30,  # Seconds to wait before giving up on getting a connection
    pool_pre_ping=True,  # Verify connections before using them (handles stale connections)
    pool_recycle=3600,  # Recycle connections after 1 hour to prevent stale connections
    connect_args=connect_args,
    echo=False,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
