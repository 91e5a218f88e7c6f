"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates every table: user_profiles, date_me_docs, applications,
       content_analysis, matchmaking_scores, analysis_jobs, dating_forms,
       form_applications.
How:   PostgreSQL types throughout: UUID keys (gen_random_uuid), JSONB
       documents, TEXT[] string lists, TIMESTAMPTZ.

Rollback: downgrade() drops all tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=None if nullable else sa.text("CURRENT_TIMESTAMP"),
        nullable=nullable,
    )


def _jsonb(name: str, default: str = "'{}'::jsonb", nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.JSONB(),
        server_default=None if nullable else sa.text(default),
        nullable=nullable,
    )


def _text_array(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.ARRAY(sa.Text()),
        server_default=sa.text("'{}'::text[]"),
        nullable=False,
    )


def _fk(name: str, target: str, ondelete: str, nullable: bool) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    # ── user_profiles ─────────────────────────────────────────────────────
    op.create_table(
        "user_profiles",
        _id(),
        sa.Column(
            "auth_user_id",
            sa.String(255),
            nullable=False,
            unique=True,
            comment="Subject claim of the identity provider token",
        ),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.String(50), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("relationship_type", sa.String(100), nullable=True),
        sa.Column("personality_type", sa.String(100), nullable=True),
        sa.Column("education", sa.String(255), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        _text_array("interests"),
        _text_array("hobbies"),
        _text_array("values"),
        _text_array("looking_for"),
        _text_array("deal_breakers"),
        _jsonb("lifestyle"),
        _jsonb("preferences"),
        _jsonb("preferred_age_range", nullable=True),
        sa.Column("twitter_handle", sa.String(50), nullable=True),
        sa.Column("instagram_handle", sa.String(50), nullable=True),
        sa.Column("personal_website", sa.Text(), nullable=True),
        sa.Column("spotify_profile", sa.Text(), nullable=True),
        _jsonb("other_links", "'[]'::jsonb"),
        _jsonb("social_media_urls"),
        sa.Column("profile_completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("digital_footprint_score", sa.Integer(), nullable=True),
        _timestamp("last_analysis_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_user_profiles_auth_user_id", "user_profiles", ["auth_user_id"])

    # ── date_me_docs ──────────────────────────────────────────────────────
    op.create_table(
        "date_me_docs",
        _id(),
        _fk("user_id", "user_profiles.id", "CASCADE", nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("about_me", sa.Text(), server_default=sa.text("''"), nullable=False),
        _jsonb("header_content"),
        _text_array("interests"),
        _text_array("deal_breakers"),
        _jsonb("form_questions", "'[]'::jsonb"),
        _jsonb("social_links"),
        _jsonb("preferences"),
        _jsonb("settings"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("view_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("application_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_date_me_docs_user_id", "date_me_docs", ["user_id"])
    op.create_index("idx_date_me_docs_slug", "date_me_docs", ["slug"])

    # ── applications ──────────────────────────────────────────────────────
    op.create_table(
        "applications",
        _id(),
        _fk("date_me_doc_id", "date_me_docs.id", "CASCADE", nullable=False),
        _fk("applicant_user_id", "user_profiles.id", "SET NULL", nullable=True),
        sa.Column("applicant_name", sa.String(100), nullable=False),
        sa.Column("applicant_email", sa.String(320), nullable=False),
        _jsonb("answers"),
        _jsonb("social_links", "'[]'::jsonb"),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'pending'"),
            nullable=False,
            comment="pending, reviewed, shortlisted, rejected, matched",
        ),
        sa.Column("match_score", sa.Float(), nullable=True),
        _jsonb("compatibility_data", nullable=True),
        sa.Column("analysis_completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_applications_doc_id", "applications", ["date_me_doc_id"])
    op.create_index("idx_applications_status", "applications", ["status"])

    # ── content_analysis ──────────────────────────────────────────────────
    op.create_table(
        "content_analysis",
        _id(),
        _fk("user_id", "user_profiles.id", "CASCADE", nullable=True),
        _fk("application_id", "applications.id", "CASCADE", nullable=True),
        sa.Column("source_type", sa.String(50), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=True),
        _jsonb("extracted_content"),
        _jsonb("content_metadata"),
        _jsonb("psychological_profile", nullable=True),
        _text_array("interests"),
        _jsonb("communication_style"),
        _text_array("values"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_content_analysis_user_id", "content_analysis", ["user_id"])
    op.create_index("idx_content_analysis_application_id", "content_analysis", ["application_id"])

    # ── matchmaking_scores ────────────────────────────────────────────────
    op.create_table(
        "matchmaking_scores",
        _id(),
        _fk("application_id", "applications.id", "CASCADE", nullable=False),
        _fk("doc_owner_id", "user_profiles.id", "SET NULL", nullable=True),
        _fk("applicant_id", "user_profiles.id", "SET NULL", nullable=True),
        sa.Column("text_match_score", sa.Integer(), nullable=True),
        sa.Column("url_context_score", sa.Integer(), nullable=True),
        sa.Column("overall_score", sa.Integer(), nullable=False),
        _jsonb("compatibility_breakdown"),
        sa.Column("recommendation", sa.String(50), nullable=True),
        _jsonb("green_flags", "'[]'::jsonb"),
        _jsonb("red_flags", "'[]'::jsonb"),
        _jsonb("date_ideas", "'[]'::jsonb"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_matchmaking_scores_application_id", "matchmaking_scores", ["application_id"])

    # ── analysis_jobs ─────────────────────────────────────────────────────
    op.create_table(
        "analysis_jobs",
        _id(),
        sa.Column(
            "job_type",
            sa.String(50),
            nullable=False,
            comment="content_extraction, footprint_analysis",
        ),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), server_default=sa.text("'queued'"), nullable=False),
        sa.Column(
            "priority",
            sa.Integer(),
            server_default=sa.text("5"),
            nullable=False,
            comment="Lower numbers are claimed first",
        ),
        sa.Column("attempts", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("started_at", nullable=True),
        _timestamp("completed_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_analysis_jobs_status", "analysis_jobs", ["status", "priority"])

    # ── dating_forms ──────────────────────────────────────────────────────
    op.create_table(
        "dating_forms",
        _id(),
        _fk("owner_id", "user_profiles.id", "CASCADE", nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _jsonb("fields", "'[]'::jsonb"),
        sa.Column("status", sa.String(20), server_default=sa.text("'draft'"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_dating_forms_owner_id", "dating_forms", ["owner_id"])

    # ── form_applications ─────────────────────────────────────────────────
    op.create_table(
        "form_applications",
        _id(),
        _fk("form_id", "dating_forms.id", "CASCADE", nullable=False),
        _fk("form_owner_id", "user_profiles.id", "CASCADE", nullable=False),
        _fk("applicant_user_id", "user_profiles.id", "SET NULL", nullable=True),
        _jsonb("applicant_data"),
        sa.Column(
            "status",
            sa.String(20),
            server_default=sa.text("'new'"),
            nullable=False,
            comment="new, shortlisted, archived",
        ),
        sa.Column("ai_score", sa.Integer(), nullable=True),
        _jsonb("match_factors", "'[]'::jsonb"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_form_applications_owner", "form_applications", ["form_owner_id", "status"]
    )


def downgrade() -> None:
    """Drops every table in reverse dependency order. All data is lost."""
    op.drop_table("form_applications")
    op.drop_table("dating_forms")
    op.drop_table("analysis_jobs")
    op.drop_table("matchmaking_scores")
    op.drop_table("content_analysis")
    op.drop_table("applications")
    op.drop_table("date_me_docs")
    op.drop_table("user_profiles")
