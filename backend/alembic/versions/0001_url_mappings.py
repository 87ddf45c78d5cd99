from alembic import op
import sqlalchemy as sa


revision = "0001_url_mappings"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "url_mappings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("short_code", sa.String(length=10), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("short_code", name="uq_url_mappings_short_code"),
        sa.UniqueConstraint("fingerprint", name="uq_url_mappings_fingerprint"),
    )


def downgrade() -> None:
    op.drop_table("url_mappings")
