from __future__ import annotations

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courseseed.db.base import Base
from courseseed.db.mixins import TimestampMixin

if TYPE_CHECKING:
    from courseseed.modules.exercises.models import LessonExercise
    from courseseed.modules.quizzes.models import Quiz


# Association table for lesson tags (many-to-many)
lesson_tag = Table(
    "lesson_tag",
    Base.metadata,
    Column("lesson_id", Uuid, ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class CourseLevel(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class Language(TimestampMixin, Base):
    __tablename__ = "languages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    courses: Mapped[list["Course"]] = relationship("Course", back_populates="language")


class Tag(TimestampMixin, Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)


class Course(TimestampMixin, Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    language_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("languages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    level: Mapped[CourseLevel] = mapped_column(
        Enum(CourseLevel, name="course_level"),
        nullable=False,
        default=CourseLevel.beginner,
    )
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    language: Mapped["Language"] = relationship("Language", back_populates="courses")

    lessons: Mapped[list["Lesson"]] = relationship(
        "Lesson",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lesson.sort_order",
    )

    quiz: Mapped["Quiz | None"] = relationship(
        "Quiz",
        back_populates="course",
        cascade="all, delete-orphan",
        uselist=False,
    )


class Lesson(TimestampMixin, Base):
    __tablename__ = "lessons"
    __table_args__ = (
        UniqueConstraint("course_id", "slug", name="uq_lessons_course_slug"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # path to a markdown file, or inline markdown when no file exists
    md_file_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    content_md: Mapped[str | None] = mapped_column(Text, nullable=True)

    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # pedagogical sequence inside the course, 1-based
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    course: Mapped["Course"] = relationship("Course", back_populates="lessons")

    tags: Mapped[list["Tag"]] = relationship("Tag", secondary=lesson_tag)

    exercise: Mapped["LessonExercise | None"] = relationship(
        "LessonExercise",
        back_populates="lesson",
        cascade="all, delete-orphan",
        uselist=False,
    )
