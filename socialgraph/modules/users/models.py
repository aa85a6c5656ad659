# Supabase table: user_profiles
# This file documents the expected database schema
# Actual operations are handled via the entity store (socialgraph.database)

"""
Expected Supabase table structure:

user_profiles:
- id: text (primary key) - Supabase Auth user id
- display_name: text (not null)
- created_at: timestamptz (default: now())
- updated_at: timestamptz (nullable)
"""
