from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from classroom.core.config.settings import get_settings

# Create engine
engine = create_engine(get_settings().DATABASE_URL, pool_pre_ping=True)

# Create session
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
