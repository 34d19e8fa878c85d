"""ResponseRow model for storing submitted form responses.

Each row is one respondent's complete submission. Rows are never updated
after insert and are deleted together with their form (CASCADE).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    DateTime,
    ForeignKey,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedbackhub.models.database import Base
from feedbackhub.schemas.form import ResponseRecord


class ResponseRow(Base):
    """Model for a submitted response.

    Attributes:
        id: Response identifier (primary key)
        form_id: Foreign key to forms table
        answers: JSON map of field id to answer
        user_id: Respondent user id (NULL for anonymous forms)
        submitted_at: When the response was submitted
        form: Relationship to parent FormRecord
    """

    __tablename__ = "form_responses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    form_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("forms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to forms table"
    )

    answers: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Field id to answer"
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        comment="Respondent user id"
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the response was submitted"
    )

    form: Mapped["FormRecord"] = relationship(
        "FormRecord",
        back_populates="responses",
    )

    __table_args__ = (
        Index("idx_form_submitted", "form_id", "submitted_at"),
    )

    @classmethod
    def from_record(cls, record: ResponseRecord) -> "ResponseRow":
        return cls(
            id=record.id,
            form_id=record.form_id,
            answers=dict(record.answers),
            user_id=record.user_id,
            submitted_at=record.timestamp,
        )

    def to_record(self) -> ResponseRecord:
        return ResponseRecord(
            id=self.id,
            form_id=self.form_id,
            answers=self.answers,
            user_id=self.user_id,
            timestamp=self.submitted_at,
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<ResponseRow(id={self.id}, "
            f"form_id={self.form_id}, "
            f"answers={len(self.answers or {})})>"
        )
