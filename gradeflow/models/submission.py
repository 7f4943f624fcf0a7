from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from gradeflow.db.base_class import Base

PENDING = "pending"
GRADED = "graded"
REVIEWED = "reviewed"
STATUSES = (PENDING, GRADED, REVIEWED)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)

    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    content_text = Column(Text, nullable=True)
    file_url = Column(String(1024), nullable=True)
    # what the grader is sent; fixed at submit so a retry grades the same answer
    answer_text = Column(Text, nullable=True)

    # AI grading (nullable until graded, never overwritten by a review)
    ai_score = Column(Integer, nullable=True)
    ai_feedback = Column(Text, nullable=True)

    # Lecturer override
    manual_score = Column(Integer, nullable=True)
    manual_feedback = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=PENDING, index=True)
    needs_attention = Column(Boolean, nullable=False, default=False)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("User", back_populates="submissions")
