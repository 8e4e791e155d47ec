"""Create documents table

Revision ID: 20261018_documents
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_documents"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("collection", sa.String(255), nullable=False),
        sa.Column("doc_id", sa.String(128), nullable=False),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_documents_collection", "documents", ["collection"])


def downgrade():
    op.drop_index("ix_documents_collection", table_name="documents")
    op.drop_table("documents")
