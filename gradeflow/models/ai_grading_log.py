from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from gradeflow.db.base_class import Base


class AIGradingLog(Base):
    """One row per successful call of the grading function."""

    __tablename__ = "ai_grading_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    assignment_title = Column(String(255), nullable=False)
    student_answer = Column(Text, nullable=False)
    rubric_context = Column(Text, nullable=True)

    ai_score = Column(Integer, nullable=True)
    ai_feedback = Column(Text, nullable=True)
    model_used = Column(String(100), nullable=False)
    processing_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
