# Supabase table: workflow_requests
# This file documents the expected database schema
# Actual operations are handled via the entity store (socialgraph.database)

"""
Expected Supabase table structure:

workflow_requests:
- id: text (primary key)
- kind: text (not null) - values: location, invite
- subject_id: text (not null) - opaque id of the post / invite being requested
- requester_id: text (foreign key to user_profiles.id, not null)
- owner_id: text (foreign key to user_profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, accepted, denied
- created_at: timestamptz (default: now())
- responded_at: timestamptz (nullable) - set once, on decision (or on insert when auto-accepted)
- collective_id: text (foreign key to collectives.id, nullable) - invites only; the requester joins it on acceptance
- check constraint requester_id <> owner_id
- index on (kind, subject_id, requester_id)
- index on (owner_id, status)
- unique index on (kind, subject_id, requester_id) where status = 'pending'
"""
