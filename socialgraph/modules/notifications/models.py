# Supabase table: notifications
# This file documents the expected database schema
# Actual operations are handled via the entity store (socialgraph.database)

"""
Expected Supabase table structure:

notifications:
- id: text (primary key)
- recipient_id: text (foreign key to user_profiles.id, not null)
- source_user_id: text (foreign key to user_profiles.id, not null)
- type: text (not null) - location_request, location_shared, location_denied,
  invite_request, invite_accepted, invite_denied, invite_auto_accepted,
  member_joined
- payload: jsonb (not null) - tagged by payload->>'type', always equal to type
- is_read: boolean (not null, default: false)
- created_at: timestamptz (default: now())
- index on (recipient_id, is_read)
"""
