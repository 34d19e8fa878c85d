"""FormRecord model for storing form definitions.

Fields are stored as a JSON list in form order, in the same camelCase shape
the API accepts, so a stored form converts straight back to a FormSchema.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Index,
    String,
    Text,
    Boolean,
    DateTime,
    JSON,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedbackhub.models.database import Base
from feedbackhub.schemas.form import FormSchema


class FormRecord(Base):
    """Model for a form definition.

    Attributes:
        id: Form identifier (primary key)
        title: Form title
        description: Optional description
        fields: JSON list of field definitions in display order
        is_anonymous: Whether responses drop respondent identity
        created_by: Owner user id
        created_at: Creation timestamp
        updated_at: Last update timestamp
        responses: Responses submitted for this form
    """

    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    title: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
        comment="Form title"
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Form description"
    )
    fields: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered field definitions"
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether respondent identity is dropped"
    )
    created_by: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
        comment="Owner user id"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the form was created"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
        comment="Last update timestamp"
    )

    responses: Mapped[list["ResponseRow"]] = relationship(
        "ResponseRow",
        back_populates="form",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_forms_owner_created", "created_by", "created_at"),
    )

    @classmethod
    def from_schema(cls, form: FormSchema) -> "FormRecord":
        return cls(
            id=form.id,
            title=form.title,
            description=form.description,
            fields=[field.model_dump(by_alias=True, exclude_none=True) for field in form.fields],
            is_anonymous=form.is_anonymous,
            created_by=form.created_by,
            created_at=form.created_at,
            updated_at=form.updated_at,
        )

    def to_schema(self) -> FormSchema:
        return FormSchema.model_validate({
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fields": self.fields,
            "isAnonymous": self.is_anonymous,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        })

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<FormRecord(id={self.id}, "
            f"title={self.title!r}, "
            f"fields={len(self.fields or [])}, "
            f"created_by={self.created_by})>"
        )
