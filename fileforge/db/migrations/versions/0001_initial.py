"""Initial schema."""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    op.create_table(
        "file_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("original_path", sa.String(length=500), nullable=False),
        sa.Column("processed_filename", sa.String(length=255), nullable=True),
        sa.Column("processed_path", sa.String(length=500), nullable=True),
        sa.Column("operation_type", sa.String(length=32), nullable=False),
        sa.Column("operation_details", sa.JSON(), nullable=False),
        sa.Column("mime_type", sa.String(length=128), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("processed_size", sa.BigInteger(), nullable=True),
        sa.Column("processing_time", sa.Float(), nullable=True),
        sa.Column("files_extracted", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_file_history_user_id", "file_history", ["user_id"], unique=False)
    op.create_index("ix_file_history_operation_type", "file_history", ["operation_type"], unique=False)
    op.create_index("ix_file_history_status", "file_history", ["status"], unique=False)
    op.create_index("ix_file_history_created_at", "file_history", ["created_at"], unique=False)

    op.create_table(
        "processing_jobs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("job_id", sa.String(length=80), nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column(
            "file_history_id",
            sa.String(length=36),
            sa.ForeignKey("file_history.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("logs", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_processing_jobs_job_id", "processing_jobs", ["job_id"], unique=True)
    op.create_index("ix_processing_jobs_batch_id", "processing_jobs", ["batch_id"], unique=False)
    op.create_index("ix_processing_jobs_file_history_id", "processing_jobs", ["file_history_id"], unique=False)
    op.create_index("ix_processing_jobs_operation_type", "processing_jobs", ["operation_type"], unique=False)
    op.create_index("ix_processing_jobs_status", "processing_jobs", ["status"], unique=False)
    op.create_index("ix_processing_jobs_created_at", "processing_jobs", ["created_at"], unique=False)

    op.create_table(
        "file_metadata",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "file_history_id",
            sa.String(length=36),
            sa.ForeignKey("file_history.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("metadata_key", sa.String(length=128), nullable=False),
        sa.Column("metadata_value", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_file_metadata_file_history_id", "file_metadata", ["file_history_id"], unique=False)
    op.create_index("ix_file_metadata_created_at", "file_metadata", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_table("file_metadata")
    op.drop_table("processing_jobs")
    op.drop_table("file_history")
    op.drop_table("users")
