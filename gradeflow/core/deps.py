from gradeflow.db.session import SessionLocal
from gradeflow.services.grading_client import GradingClient
from gradeflow.services.storage import LocalObjectStore


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_grader():
    grader = GradingClient()
    try:
        yield grader
    finally:
        grader.close()


def get_object_store() -> LocalObjectStore:
    return LocalObjectStore()
