# =============================================================================
# scripts/setup_garden_tables.py
# Creates the Garden tables, guards and procedures in Supabase
# =============================================================================
"""
Prints (and saves) the SQL that the data layer expects on the remote side:
every entity table, the uniqueness guards that make weekly habit propagation
and priority assignment idempotent, and the two RPC procedures.

Option 1: Generate SQL only (copy to Supabase SQL Editor)
    python scripts/setup_garden_tables.py --sql-only

Option 2: Check which tables already exist
    python scripts/setup_garden_tables.py --check
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from postgrest.exceptions import APIError

from garden_core.config import load_settings
from garden_core.errors import ConfigurationError
from garden_core.offline.entities import ENTITY_SPECS
from garden_core.offline.remote_store import create_remote_store

CREATE_TABLES_SQL = """
-- ============================================================================
-- GARDEN TABLES
-- ============================================================================

CREATE TABLE IF NOT EXISTS meals (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    meal_type TEXT,
    date DATE NOT NULL,
    notes TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS grocery_items (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    quantity TEXT,
    checked BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS expense_categories (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    color TEXT NOT NULL DEFAULT '#9B9B9B',
    is_default BOOLEAN DEFAULT FALSE,
    sort_order INTEGER DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(user_id, name)
);

CREATE TABLE IF NOT EXISTS expenses (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    amount DECIMAL(10, 2) NOT NULL,
    category_id UUID REFERENCES expense_categories(id) ON DELETE SET NULL,
    description TEXT,
    date DATE NOT NULL DEFAULT CURRENT_DATE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    amount DECIMAL(10, 2) NOT NULL,
    category_id UUID REFERENCES expense_categories(id) ON DELETE SET NULL,
    billing_day INTEGER NOT NULL CHECK (billing_day >= 1 AND billing_day <= 31),
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

-- One row per (habit, week); the same habit in another week is another row
CREATE TABLE IF NOT EXISTS habits (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    reminder_text TEXT,
    reminder_time TIME,
    reminder_enabled BOOLEAN DEFAULT FALSE,
    sort_order INTEGER DEFAULT 0,
    week_start_date DATE NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(user_id, week_start_date, name)
);

-- Presence of a row means the habit was done that day
CREATE TABLE IF NOT EXISTS habit_completions (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    habit_id UUID NOT NULL REFERENCES habits(id) ON DELETE CASCADE,
    date DATE NOT NULL,
    notes TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(habit_id, date)
);

CREATE TABLE IF NOT EXISTS habit_reminders (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    week_start_date DATE NOT NULL,
    content TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(user_id, week_start_date)
);

CREATE TABLE IF NOT EXISTS reflections (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    type TEXT NOT NULL CHECK (type IN ('gratitude', 'weekly', 'looking_forward', 'affirmation')),
    content TEXT NOT NULL,
    date DATE NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS notes (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    entity_type TEXT NOT NULL,
    entity_id UUID NOT NULL,
    content TEXT NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS notification_settings (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    enabled BOOLEAN DEFAULT TRUE,
    time TEXT,
    days TEXT[],
    custom_text TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS stretching_routines (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS stretching_exercises (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    routine_id UUID NOT NULL REFERENCES stretching_routines(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    duration_seconds INTEGER DEFAULT 30,
    order_index INTEGER DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_settings (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    setting_key TEXT NOT NULL,
    setting_value TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(user_id, setting_key)
);

CREATE TABLE IF NOT EXISTS priorities (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    color TEXT NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS priority_weeks (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    priority_id UUID NOT NULL REFERENCES priorities(id) ON DELETE CASCADE,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    week_start_date DATE NOT NULL,
    rank_order INTEGER NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE(priority_id, week_start_date, user_id)
);

CREATE TABLE IF NOT EXISTS time_blocks (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    date DATE NOT NULL,
    start_time TIME NOT NULL,
    end_time TIME NOT NULL,
    color TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

-- days_of_week flags are Sunday first: [Sun, Mon, Tue, Wed, Thu, Fri, Sat]
CREATE TABLE IF NOT EXISTS recurring_time_blocks (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    start_time TIME NOT NULL,
    end_time TIME NOT NULL,
    days_of_week BOOLEAN[] NOT NULL DEFAULT '{false, false, false, false, false, false, false}',
    is_active BOOLEAN NOT NULL DEFAULT true,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_habits_week ON habits(user_id, week_start_date);
CREATE INDEX IF NOT EXISTS idx_priority_weeks_week ON priority_weeks(user_id, week_start_date);
CREATE INDEX IF NOT EXISTS idx_time_blocks_date ON time_blocks(user_id, date);

-- ============================================================================
-- PROCEDURES
-- ============================================================================

-- Copies a week's habits forward. Serialized per (user, target week) and a
-- no-op when the target week already has habits, so concurrent or repeated
-- calls produce a single set of copies. Both procedures run as definer, so
-- they refuse any user id other than the caller's.
CREATE OR REPLACE FUNCTION copy_habits_to_week(
    p_user_id UUID,
    p_source_week_start DATE,
    p_target_week_start DATE
)
RETURNS INTEGER AS $$
DECLARE
    copied INTEGER := 0;
BEGIN
    IF p_user_id IS DISTINCT FROM auth.uid() THEN
        RAISE EXCEPTION 'not authorized' USING ERRCODE = '42501';
    END IF;

    PERFORM pg_advisory_xact_lock(hashtext(p_user_id::text || ':' || p_target_week_start::text));

    IF EXISTS (
        SELECT 1 FROM habits
        WHERE user_id = p_user_id AND week_start_date = p_target_week_start
    ) THEN
        RETURN 0;
    END IF;

    INSERT INTO habits (user_id, name, color, reminder_text, reminder_time,
                        reminder_enabled, sort_order, week_start_date)
    SELECT user_id, name, color, reminder_text, reminder_time,
           reminder_enabled, sort_order, p_target_week_start
    FROM habits
    WHERE user_id = p_user_id AND week_start_date = p_source_week_start
    ON CONFLICT (user_id, week_start_date, name) DO NOTHING;

    GET DIAGNOSTICS copied = ROW_COUNT;
    RETURN copied;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;

GRANT EXECUTE ON FUNCTION copy_habits_to_week(UUID, DATE, DATE) TO authenticated;

CREATE OR REPLACE FUNCTION upsert_user_setting(
    p_user_id UUID,
    p_setting_key TEXT,
    p_setting_value TEXT
)
RETURNS user_settings AS $$
DECLARE
    result user_settings;
BEGIN
    IF p_user_id IS DISTINCT FROM auth.uid() THEN
        RAISE EXCEPTION 'not authorized' USING ERRCODE = '42501';
    END IF;

    INSERT INTO user_settings (user_id, setting_key, setting_value)
    VALUES (p_user_id, p_setting_key, p_setting_value)
    ON CONFLICT (user_id, setting_key)
    DO UPDATE SET
        setting_value = EXCLUDED.setting_value,
        updated_at = NOW()
    RETURNING * INTO result;

    RETURN result;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;

GRANT EXECUTE ON FUNCTION upsert_user_setting(UUID, TEXT, TEXT) TO authenticated;
"""


def row_level_security_sql() -> str:
    """Owner-only RLS policy for every table that has an owner column."""
    statements = []
    for spec in ENTITY_SPECS.values():
        statements.append(f"ALTER TABLE {spec.table} ENABLE ROW LEVEL SECURITY;")
        if spec.owner_column:
            statements.append(
                f'CREATE POLICY "Owners manage their {spec.table}" ON {spec.table}\n'
                f"    FOR ALL USING (auth.uid() = {spec.owner_column})\n"
                f"    WITH CHECK (auth.uid() = {spec.owner_column});"
            )
    statements.append(
        'CREATE POLICY "Owners manage their habit_completions" ON habit_completions\n'
        "    FOR ALL USING (habit_id IN (SELECT id FROM habits WHERE user_id = auth.uid()));"
    )
    statements.append(
        'CREATE POLICY "Owners manage their stretching_exercises" ON stretching_exercises\n'
        "    FOR ALL USING (routine_id IN (SELECT id FROM stretching_routines WHERE user_id = auth.uid()));"
    )
    return "\n".join(statements)


def full_sql() -> str:
    return CREATE_TABLES_SQL + "\n-- ROW LEVEL SECURITY\n" + row_level_security_sql() + "\n"


def print_sql():
    """Print the SQL for manual execution in Supabase SQL Editor."""
    print("=" * 70)
    print(" SQL TO CREATE THE GARDEN TABLES")
    print(" Copy this SQL and run it in Supabase SQL Editor")
    print("=" * 70)
    print()
    print(full_sql())


async def check_tables() -> int:
    """Report which tables are reachable with the configured credentials."""
    try:
        remote = await create_remote_store(load_settings())
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        print("Configure .streamlit/secrets.toml or SUPABASE_URL / SUPABASE_KEY.")
        return 1

    missing = 0
    for spec in ENTITY_SPECS.values():
        try:
            await remote.client.table(spec.table).select("id").limit(1).execute()
            print(f"  OK       {spec.table}")
        except APIError as e:
            missing += 1
            print(f"  MISSING  {spec.table} ({e.message})")

    return 1 if missing else 0


def main():
    parser = argparse.ArgumentParser(description="Create the Garden tables in Supabase")
    parser.add_argument("--sql-only", action="store_true", help="Only print SQL")
    parser.add_argument("--check", action="store_true", help="Check which tables exist")

    args = parser.parse_args()

    if args.check:
        sys.exit(asyncio.run(check_tables()))

    print_sql()

    if args.sql_only:
        return

    sql_file = os.path.join(os.path.dirname(__file__), "setup_garden_tables.sql")
    with open(sql_file, "w", encoding="utf-8") as f:
        f.write(full_sql())
    print(f"\nSQL also saved to: {sql_file}")


if __name__ == "__main__":
    main()
