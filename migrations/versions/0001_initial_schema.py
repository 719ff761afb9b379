"""initial certificate designer schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import text


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("normal_move_amount", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("shift_move_amount", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column(
            "default_background_visible",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "certificate_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("background_image_url", sa.Text(), nullable=False),
        sa.Column("width", sa.Float(), nullable=False),
        sa.Column("height", sa.Float(), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_table(
        "certificates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("template_id", sa.String(36), nullable=False),
        sa.Column("recipient_name", sa.String(255), nullable=False),
        sa.Column("issued_to", sa.String(255), nullable=True),
        sa.Column("field_values", sa.JSON(), nullable=False),
        sa.Column(
            "background_visible", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("certificate_number", sa.String(64), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_certificates_template_id", "certificates", ["template_id"])
    op.create_index(
        "ix_certificates_certificate_number",
        "certificates",
        ["certificate_number"],
        unique=True,
    )
    op.get_bind().execute(
        text(
            "INSERT INTO settings (id, normal_move_amount, shift_move_amount, default_background_visible) "
            "VALUES (1, 0.5, 1.0, :visible)"
        ),
        {"visible": True},
    )


def downgrade() -> None:
    op.drop_index("ix_certificates_certificate_number", table_name="certificates")
    op.drop_index("ix_certificates_template_id", table_name="certificates")
    op.drop_table("certificates")
    op.drop_table("certificate_templates")
    op.drop_table("settings")
