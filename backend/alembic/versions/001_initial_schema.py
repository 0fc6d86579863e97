"""initial yard capacity and receiving schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

AUDIT_ACTIONS = (
    "request_approved", "request_rejected",
    "truck_received", "shipment_received",
    "notification_failed", "calendar_synced", "calendar_sync_failed",
    "appointment_rescheduled", "rack_occupancy_adjusted",
)


def _in(column: str, values) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "yards",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
    )

    op.create_table(
        "areas",
        sa.Column("id", sa.String(40), primary_key=True),
        sa.Column("yard_id", sa.String(20), sa.ForeignKey("yards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_index("ix_areas_yard_id", "areas", ["yard_id"])

    op.create_table(
        "racks",
        sa.Column("id", sa.String(60), primary_key=True),
        sa.Column("area_id", sa.String(40), sa.ForeignKey("areas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("allocation_mode", sa.String(10), nullable=False, server_default="LINEAR"),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("occupied", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("capacity_meters", sa.Float(), nullable=False, server_default="0"),
        sa.Column("occupied_meters", sa.Float(), nullable=False, server_default="0"),
        sa.Column("length_meters", sa.Float(), nullable=True),
        sa.Column("width_meters", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(_in("allocation_mode", ("SLOT", "LINEAR")), name="chk_rack_allocation_mode"),
        sa.CheckConstraint("occupied >= 0", name="chk_rack_occupied_non_negative"),
        sa.CheckConstraint("occupied <= capacity", name="chk_rack_occupied_within_capacity"),
        sa.CheckConstraint("occupied_meters >= 0", name="chk_rack_occupied_meters_non_negative"),
        sa.CheckConstraint("occupied_meters <= capacity_meters", name="chk_rack_occupied_meters_within_capacity"),
    )
    op.create_index("ix_racks_area_id", "racks", ["area_id"])

    op.create_table(
        "storage_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("reference_id", sa.String(100), nullable=False),
        sa.Column("company_id", sa.Uuid(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("required_joints", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_joint_length_m", sa.Float(), nullable=True),
        sa.Column("storage_start_date", sa.Date(), nullable=True),
        sa.Column("storage_end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("assigned_rack_ids", sa.JSON(), nullable=False),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(255), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("required_joints >= 0", name="chk_request_required_joints_non_negative"),
        sa.CheckConstraint(
            _in("status", ("PENDING", "APPROVED", "REJECTED", "COMPLETED")),
            name="chk_request_status",
        ),
    )
    op.create_index("ix_storage_requests_reference_id", "storage_requests", ["reference_id"])
    op.create_index("ix_storage_requests_company_id", "storage_requests", ["company_id"])
    op.create_index("ix_storage_requests_status", "storage_requests", ["status"])

    op.create_table(
        "rack_reservations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("rack_id", sa.String(60), sa.ForeignKey("racks.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "request_id",
            sa.Uuid(),
            sa.ForeignKey("storage_requests.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("reserved_quantity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("reserved_quantity >= 0", name="chk_reservation_quantity_non_negative"),
        sa.CheckConstraint(_in("status", ("ACTIVE", "RELEASED")), name="chk_reservation_status"),
        sa.CheckConstraint("end_date IS NULL OR end_date >= start_date", name="chk_reservation_date_order"),
    )
    op.create_index("ix_rack_reservations_request_id", "rack_reservations", ["request_id"])
    op.create_index("idx_rack_reservations_dates", "rack_reservations", ["rack_id", "start_date", "end_date"])

    op.create_table(
        "shipments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("request_id", sa.Uuid(), sa.ForeignKey("storage_requests.id"), nullable=False),
        sa.Column("company_id", sa.Uuid(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("calendar_sync_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("latest_customer_notification_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            _in("status", ("DRAFT", "SCHEDULING", "SCHEDULED", "IN_TRANSIT", "RECEIVED", "CANCELLED")),
            name="chk_shipment_status",
        ),
        sa.CheckConstraint(
            _in("calendar_sync_status", ("PENDING", "SYNCED")),
            name="chk_shipment_calendar_sync_status",
        ),
    )
    op.create_index("ix_shipments_request_id", "shipments", ["request_id"])
    op.create_index("ix_shipments_company_id", "shipments", ["company_id"])
    op.create_index("ix_shipments_status", "shipments", ["status"])

    op.create_table(
        "shipment_trucks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shipment_id", sa.Uuid(), sa.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sequence_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="INBOUND"),
        sa.Column("trucking_company", sa.String(255), nullable=True),
        sa.Column("driver_name", sa.String(255), nullable=True),
        sa.Column("driver_phone", sa.String(50), nullable=True),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manifest_received", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            _in("status", ("INBOUND", "SCHEDULED", "ON_SITE", "RECEIVED", "CANCELLED")),
            name="chk_truck_status",
        ),
        sa.UniqueConstraint("shipment_id", "sequence_number", name="uq_truck_shipment_sequence"),
    )
    op.create_index("ix_shipment_trucks_shipment_id", "shipment_trucks", ["shipment_id"])
    op.create_index("ix_shipment_trucks_status", "shipment_trucks", ["status"])

    op.create_table(
        "dock_appointments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shipment_id", sa.Uuid(), sa.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "truck_id",
            sa.Uuid(),
            sa.ForeignKey("shipment_trucks.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("calendar_sync_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("calendar_event_id", sa.String(255), nullable=True),
        sa.Column("slot_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("slot_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("after_hours", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reminder_24h_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_1h_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(_in("status", ("PENDING", "CONFIRMED", "COMPLETED")), name="chk_appointment_status"),
        sa.CheckConstraint(
            _in("calendar_sync_status", ("PENDING", "SYNCED")),
            name="chk_appointment_calendar_sync_status",
        ),
    )
    op.create_index("ix_dock_appointments_shipment_id", "dock_appointments", ["shipment_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_id", sa.Uuid(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("request_id", sa.Uuid(), sa.ForeignKey("storage_requests.id"), nullable=True),
        sa.Column("rack_id", sa.String(60), sa.ForeignKey("racks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reference_id", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("length_m", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING_DELIVERY"),
        sa.Column("drop_off_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pick_up_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            _in("status", ("PENDING_DELIVERY", "IN_STORAGE", "PICKED_UP")),
            name="chk_inventory_status",
        ),
    )
    op.create_index("ix_inventory_items_company_id", "inventory_items", ["company_id"])
    op.create_index("ix_inventory_items_request_id", "inventory_items", ["request_id"])
    op.create_index("ix_inventory_items_rack_id", "inventory_items", ["rack_id"])
    op.create_index("ix_inventory_items_status", "inventory_items", ["status"])

    op.create_table(
        "shipment_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shipment_id", sa.Uuid(), sa.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("truck_id", sa.Uuid(), sa.ForeignKey("shipment_trucks.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "inventory_id",
            sa.Uuid(),
            sa.ForeignKey("inventory_items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PLANNED"),
        sa.CheckConstraint(
            _in("status", ("PLANNED", "IN_TRANSIT", "IN_STORAGE")),
            name="chk_shipment_item_status",
        ),
    )
    op.create_index("ix_shipment_items_shipment_id", "shipment_items", ["shipment_id"])
    op.create_index("ix_shipment_items_truck_id", "shipment_items", ["truck_id"])

    op.create_table(
        "shipment_documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("shipment_id", sa.Uuid(), sa.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_type", sa.String(50), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("storage_path", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_shipment_documents_shipment_id", "shipment_documents", ["shipment_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(30), nullable=False),
        sa.Column("entity_id", sa.String(60), nullable=False),
        sa.Column("entity_name", sa.String(255), nullable=True),
        sa.Column("actor", sa.String(255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(_in("action", AUDIT_ACTIONS), name="chk_audit_action"),
    )
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])

    op.create_table(
        "rack_occupancy_adjustments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("rack_id", sa.String(60), sa.ForeignKey("racks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("adjusted_by", sa.String(255), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("allocation_mode", sa.String(10), nullable=False),
        sa.Column("old_value", sa.Float(), nullable=False),
        sa.Column("new_value", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_rack_occupancy_adjustments_rack_id", "rack_occupancy_adjustments", ["rack_id"])


def downgrade() -> None:
    for table in (
        "rack_occupancy_adjustments",
        "audit_events",
        "shipment_documents",
        "shipment_items",
        "inventory_items",
        "dock_appointments",
        "shipment_trucks",
        "shipments",
        "rack_reservations",
        "storage_requests",
        "racks",
        "areas",
        "yards",
        "companies",
    ):
        op.drop_table(table)
