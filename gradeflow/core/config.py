import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/gradeflow.db")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")))

# Object storage
STORAGE_DIR = Path(os.getenv("STORAGE_DIR", str(BASE_DIR / "storage")))
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "http://localhost:8000/files")

# Upload limits (independent upload paths, do not share)
SUBMISSION_MAX_FILE_BYTES = int(os.getenv("SUBMISSION_MAX_FILE_BYTES", str(10 * 1024 * 1024)))
COURSE_MATERIAL_MAX_FILE_BYTES = int(
    os.getenv("COURSE_MATERIAL_MAX_FILE_BYTES", str(50 * 1024 * 1024))
)

# Grading function
GRADING_FUNCTION_URL = os.getenv(
    "GRADING_FUNCTION_URL", "http://localhost:8000/functions/v1/grade-submission"
)
GRADING_TIMEOUT_SECONDS = float(os.getenv("GRADING_TIMEOUT_SECONDS", "30"))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
GRADING_MODEL = os.getenv("GRADING_MODEL", "gpt-4o-mini")
