"""Initial provider portal schema.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Creates:
- providers       (practice information, qualifications, profile image URLs)
- users           (portal accounts; admins receive signup notifications)
- client_reviews  (rows imported from the client reviews spreadsheet)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("provider_name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("practice_name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("specialties", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("board_certifications", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("npi_number", sa.String(20), nullable=True),
        sa.Column("hospital_affiliations", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("education_and_training", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("headshot_url", sa.Text(), nullable=True, comment="Set by the profile-content step"),
        sa.Column("gallery_url", sa.Text(), nullable=True, comment="Set by the profile-content step"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_providers_email", "providers", ["email"], unique=True)
    op.create_index("ix_providers_npi_number", "providers", ["npi_number"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default="user",
            comment="User role: user, provider",
        ),
        sa.Column(
            "provider_id",
            sa.Integer(),
            sa.ForeignKey("providers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("contact_phone", sa.String(30), nullable=True),
        sa.Column("contact_address", sa.String(500), nullable=True),
        sa.Column("contact_specialties", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("premium_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_provider_id", "users", ["provider_id"])
    op.create_index("ix_users_is_admin", "users", ["is_admin"])
    op.create_index("ix_users_role_admin", "users", ["role", "is_admin"])

    op.create_table(
        "client_reviews",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "provider_id",
            sa.Integer(),
            sa.ForeignKey("providers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("review", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True, comment="Satisfaction rating 1-5"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_client_reviews_provider_id", "client_reviews", ["provider_id"])


def downgrade() -> None:
    op.drop_index("ix_client_reviews_provider_id", table_name="client_reviews")
    op.drop_table("client_reviews")

    op.drop_index("ix_users_role_admin", table_name="users")
    op.drop_index("ix_users_is_admin", table_name="users")
    op.drop_index("ix_users_provider_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_providers_npi_number", table_name="providers")
    op.drop_index("ix_providers_email", table_name="providers")
    op.drop_table("providers")
