"""
Database models for feedgraph (authoritative ORM definitions).

This module defines the SQLAlchemy Base with a naming convention for stable
Alembic autogenerate diffs, and exposes `target_metadata` for Alembic.

Models carry columns and constraints only. Relationships between rows are
resolved by key through the entity registry and the batch loader, so no ORM
`relationship()` attributes are declared here.
"""

import uuid
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for deterministic constraint/index names in Alembic diffs
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

MEMBER_TYPE_IDS = ("BASIC", "BUSINESS")


class Base(DeclarativeBase):
    """Base class for all database models with type checking support."""

    metadata = MetaData(naming_convention=naming_convention)


class MemberTypes(Base):
    __tablename__ = "member_types"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="member_types_pkey"),
        CheckConstraint("id IN ('BASIC', 'BUSINESS')", name="member_types_id_check"),
    )

    id: Mapped[str] = mapped_column(String(16))
    discount: Mapped[float] = mapped_column(Float, nullable=False)
    posts_limit_per_month: Mapped[int] = mapped_column(Integer, nullable=False)


class Users(Base):
    __tablename__ = "users"
    __table_args__ = (PrimaryKeyConstraint("id", name="users_pkey"),)

    id: Mapped[UUID] = mapped_column(
        Uuid, default=uuid.uuid4, server_default=text("gen_random_uuid()")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[float] = mapped_column(Float, nullable=False)


class Profiles(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="profiles_user_id_fkey"
        ),
        ForeignKeyConstraint(
            ["member_type_id"],
            ["member_types.id"],
            ondelete="RESTRICT",
            name="profiles_member_type_id_fkey",
        ),
        PrimaryKeyConstraint("id", name="profiles_pkey"),
        UniqueConstraint("user_id", name="profiles_user_id_key"),
        Index("idx_profiles_member_type", "member_type_id"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid, default=uuid.uuid4, server_default=text("gen_random_uuid()")
    )
    is_male: Mapped[bool] = mapped_column(Boolean, nullable=False)
    year_of_birth: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    member_type_id: Mapped[str] = mapped_column(String(16), nullable=False)


class Posts(Base):
    __tablename__ = "posts"
    __table_args__ = (
        ForeignKeyConstraint(
            ["author_id"], ["users.id"], ondelete="CASCADE", name="posts_author_id_fkey"
        ),
        PrimaryKeyConstraint("id", name="posts_pkey"),
        Index("idx_posts_author", "author_id"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid, default=uuid.uuid4, server_default=text("gen_random_uuid()")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)


class SubscribersOnAuthors(Base):
    __tablename__ = "subscribers_on_authors"
    __table_args__ = (
        ForeignKeyConstraint(
            ["subscriber_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="subscribers_on_authors_subscriber_id_fkey",
        ),
        ForeignKeyConstraint(
            ["author_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="subscribers_on_authors_author_id_fkey",
        ),
        PrimaryKeyConstraint("subscriber_id", "author_id", name="subscribers_on_authors_pkey"),
        Index("idx_subscribers_on_authors_author", "author_id"),
    )

    subscriber_id: Mapped[UUID] = mapped_column(Uuid)
    author_id: Mapped[UUID] = mapped_column(Uuid)


# Table name -> model, used by the SQLAlchemy storage gateway
MODELS_BY_TABLE: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (MemberTypes, Users, Profiles, Posts, SubscribersOnAuthors)
}

# Expose for Alembic
target_metadata = Base.metadata
