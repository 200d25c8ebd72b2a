"""create devices and temperature_logs tables with indexes

Revision ID: 2026_10_19_0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "2026_10_19_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "devices",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("owner_id", sa.String(length=100), nullable=True),
        sa.Column(
            "category",
            sa.Enum(
                "TRANSPORT",
                "FREEZER",
                "FRIDGE",
                name="device_category",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_devices_owner_id", "devices", ["owner_id"], unique=False)

    op.create_table(
        "temperature_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "device_id",
            sa.String(length=36),
            sa.ForeignKey("devices.id"),
            nullable=False,
        ),
        sa.Column("temperature", sa.Float(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("breach", sa.Boolean(), nullable=False),
        sa.Column(
            "acknowledged",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_temperature_logs_device_id", "temperature_logs", ["device_id"], unique=False
    )
    op.create_index(
        "ix_temperature_logs_timestamp", "temperature_logs", ["timestamp"], unique=False
    )
    op.create_index(
        "ix_temperature_logs_breach", "temperature_logs", ["breach"], unique=False
    )


def downgrade():
    op.drop_index("ix_temperature_logs_breach", table_name="temperature_logs")
    op.drop_index("ix_temperature_logs_timestamp", table_name="temperature_logs")
    op.drop_index("ix_temperature_logs_device_id", table_name="temperature_logs")
    op.drop_table("temperature_logs")
    op.drop_index("ix_devices_owner_id", table_name="devices")
    op.drop_table("devices")
