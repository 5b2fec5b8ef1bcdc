"""Esquema inicial: profiles, events, bookings, políticas RLS y trigger de perfiles

Pensado para Supabase (PostgreSQL con schema auth y auth.uid()).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

booking_status = postgresql.ENUM("pending", "confirmed", "cancelled", name="booking_status", create_type=False)

POLICIES = [
    # profiles
    """CREATE POLICY "Public profiles are viewable by everyone"
       ON profiles FOR SELECT USING (true)""",
    """CREATE POLICY "Users can update own profile"
       ON profiles FOR UPDATE USING (auth.uid() = id)""",
    # events
    """CREATE POLICY "Events are viewable by everyone"
       ON events FOR SELECT USING (true)""",
    """CREATE POLICY "Admins can insert events"
       ON events FOR INSERT WITH CHECK (
         EXISTS (SELECT 1 FROM profiles WHERE profiles.id = auth.uid() AND profiles.is_admin = true)
       )""",
    """CREATE POLICY "Admins can update events"
       ON events FOR UPDATE USING (
         EXISTS (SELECT 1 FROM profiles WHERE profiles.id = auth.uid() AND profiles.is_admin = true)
       )""",
    """CREATE POLICY "Admins can delete events"
       ON events FOR DELETE USING (
         EXISTS (SELECT 1 FROM profiles WHERE profiles.id = auth.uid() AND profiles.is_admin = true)
       )""",
    # bookings
    """CREATE POLICY "Users can view own bookings"
       ON bookings FOR SELECT USING (auth.uid() = user_id)""",
    """CREATE POLICY "Users can insert own bookings"
       ON bookings FOR INSERT WITH CHECK (auth.uid() = user_id)""",
    """CREATE POLICY "Users can update own bookings"
       ON bookings FOR UPDATE USING (auth.uid() = user_id)""",
]

HANDLE_NEW_USER = """
CREATE OR REPLACE FUNCTION handle_new_user()
RETURNS trigger AS $$
BEGIN
  INSERT INTO public.profiles (id, full_name, avatar_url)
  VALUES (new.id, new.raw_user_meta_data->>'full_name', new.raw_user_meta_data->>'avatar_url')
  ON CONFLICT (id) DO NOTHING;
  RETURN new;
END;
$$ language plpgsql security definer
"""

ON_AUTH_USER_CREATED = """
CREATE OR REPLACE TRIGGER on_auth_user_created
  AFTER INSERT ON auth.users
  FOR EACH ROW EXECUTE PROCEDURE handle_new_user()
"""


def upgrade() -> None:
    op.execute("CREATE TYPE booking_status AS ENUM ('pending', 'confirmed', 'cancelled')")

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), sa.ForeignKey("auth.users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("username", sa.Text(), unique=True),
        sa.Column("full_name", sa.Text()),
        sa.Column("avatar_url", sa.Text()),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_table(
        "events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text()),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.Text()),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("capacity >= 0", name="events_capacity_non_negative"),
        sa.CheckConstraint("price >= 0", name="events_price_non_negative"),
    )
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", booking_status, nullable=False, server_default="pending"),
        sa.Column("preferences", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])

    for table in ("profiles", "events", "bookings"):
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
    for policy in POLICIES:
        op.execute(policy)

    op.execute(HANDLE_NEW_USER)
    op.execute(ON_AUTH_USER_CREATED)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users")
    op.execute("DROP FUNCTION IF EXISTS handle_new_user()")
    for t in ["bookings", "events", "profiles"]:
        op.drop_table(t)
    op.execute("DROP TYPE IF EXISTS booking_status")
