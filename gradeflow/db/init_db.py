from gradeflow.db.base import Base
from gradeflow.db.session import engine


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
