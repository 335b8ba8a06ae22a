from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "userrole": ("admin", "staff", "trainer", "member"),
    "bookingstatus": ("confirmed", "cancelled", "completed", "no_show", "waitlisted"),
    "waitliststatus": ("waiting", "notified", "booked", "cancelled"),
    "classpasstype": ("bundle", "monthly"),
    "passstatus": ("active", "expired"),
    "credittransactiontype": ("purchase", "usage", "refund"),
    "notificationtype": ("info", "success", "warning", "error", "in_app"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=128)),
        sa.Column("last_name", sa.String(length=128)),
        sa.Column("role", _enum("userrole"), server_default="member"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "trainers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True),
        sa.Column("bio", sa.Text()),
        sa.Column("specialization", sa.String(length=255)),
        sa.Column("experience", sa.Integer()),
        sa.Column("certification", sa.String(length=255)),
    )

    op.create_table(
        "classes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("duration", sa.Integer()),
        sa.Column("max_capacity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("max_capacity > 0", name="ck_class_capacity_positive"),
    )

    op.create_table(
        "class_schedules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id")),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id")),
        sa.Column("start_time", sa.DateTime(timezone=True)),
        sa.Column("end_time", sa.DateTime(timezone=True)),
        sa.Column("day_of_week", sa.String(length=16)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_class_schedules_start_time", "class_schedules", ["start_time"])
    op.create_index(
        "ix_class_schedule_trainer_time", "class_schedules", ["trainer_id", "start_time", "end_time"]
    )

    op.create_table(
        "class_bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column(
            "class_schedule_id",
            sa.Integer(),
            sa.ForeignKey("class_schedules.id", ondelete="CASCADE"),
        ),
        sa.Column("status", _enum("bookingstatus"), server_default="confirmed"),
        sa.Column("booked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "class_schedule_id", name="uq_booking_member_schedule"),
    )
    op.create_index("ix_class_bookings_class_schedule_id", "class_bookings", ["class_schedule_id"])

    op.create_table(
        "class_waitlist",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column(
            "class_schedule_id",
            sa.Integer(),
            sa.ForeignKey("class_schedules.id", ondelete="CASCADE"),
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", _enum("waitliststatus"), server_default="waiting"),
        sa.Column("notified_at", sa.DateTime(timezone=True)),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "class_schedule_id", name="uq_waitlist_member_schedule"),
    )
    op.create_index("ix_class_waitlist_class_schedule_id", "class_waitlist", ["class_schedule_id"])

    op.create_table(
        "class_packages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("pass_type", _enum("classpasstype"), server_default="bundle"),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id")),
        sa.Column("credits_included", sa.Integer()),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("validity_days", sa.Integer()),
        sa.Column("monthly_unlimited", sa.Boolean(), server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "member_class_passes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column("class_package_id", sa.Integer(), sa.ForeignKey("class_packages.id")),
        sa.Column("purchased_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("total_credits", sa.Integer()),
        sa.Column("remaining_credits", sa.Integer()),
        sa.Column("monthly_unlimited", sa.Boolean(), server_default=sa.false()),
        sa.Column("status", _enum("passstatus"), server_default="active"),
        sa.CheckConstraint("remaining_credits >= 0", name="ck_pass_remaining_non_negative"),
    )
    op.create_index("ix_member_class_passes_member_id", "member_class_passes", ["member_id"])

    op.create_table(
        "class_credit_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column("member_class_pass_id", sa.Integer(), sa.ForeignKey("member_class_passes.id")),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("class_bookings.id")),
        sa.Column("transaction_type", _enum("credittransactiontype")),
        sa.Column("credits_delta", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("notes", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_class_credit_transactions_member_id", "class_credit_transactions", ["member_id"]
    )
    op.create_index(
        "ix_class_credit_transactions_booking_id", "class_credit_transactions", ["booking_id"]
    )

    op.create_table(
        "class_favorites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("classes.id", ondelete="CASCADE")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "class_id", name="uq_favorite_member_class"),
    )

    op.create_table(
        "instructor_ratings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE")),
        sa.Column(
            "class_schedule_id",
            sa.Integer(),
            sa.ForeignKey("class_schedules.id", ondelete="CASCADE"),
        ),
        sa.Column("trainer_id", sa.Integer(), sa.ForeignKey("trainers.id")),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "class_schedule_id", name="uq_rating_member_schedule"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),
    )
    op.create_index("ix_instructor_ratings_trainer_id", "instructor_ratings", ["trainer_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("role", _enum("userrole")),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", _enum("notificationtype"), server_default="info"),
        sa.Column("action_url", sa.String(length=255)),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_instructor_ratings_trainer_id", table_name="instructor_ratings")
    op.drop_table("instructor_ratings")
    op.drop_table("class_favorites")
    op.drop_index("ix_class_credit_transactions_booking_id", table_name="class_credit_transactions")
    op.drop_index("ix_class_credit_transactions_member_id", table_name="class_credit_transactions")
    op.drop_table("class_credit_transactions")
    op.drop_index("ix_member_class_passes_member_id", table_name="member_class_passes")
    op.drop_table("member_class_passes")
    op.drop_table("class_packages")
    op.drop_index("ix_class_waitlist_class_schedule_id", table_name="class_waitlist")
    op.drop_table("class_waitlist")
    op.drop_index("ix_class_bookings_class_schedule_id", table_name="class_bookings")
    op.drop_table("class_bookings")
    op.drop_index("ix_class_schedule_trainer_time", table_name="class_schedules")
    op.drop_index("ix_class_schedules_start_time", table_name="class_schedules")
    op.drop_table("class_schedules")
    op.drop_table("classes")
    op.drop_table("trainers")
    op.drop_table("members")
    op.drop_table("users")
    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
