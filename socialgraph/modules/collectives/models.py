# Supabase tables: collectives, memberships
# This file documents the expected database schema
# Actual operations are handled via the entity store (socialgraph.database)

"""
Expected Supabase table structure:

collectives:
- id: text (primary key)
- kind: text (not null) - values: group, community, album
- name: text (not null)
- description: text (nullable)
- creator_id: text (foreign key to user_profiles.id, not null) - never reassigned
- capacity: integer (nullable, check capacity >= 1) - null means unbounded
- is_public: boolean (not null, default: false)
- is_active: boolean (not null, default: true) - soft deactivation flag
- created_at: timestamptz (default: now())
- updated_at: timestamptz (nullable)

memberships:
- id: text (primary key)
- collective_id: text (foreign key to collectives.id, not null)
- user_id: text (foreign key to user_profiles.id, not null)
- role: text (not null, default: 'member') - values: admin, member
- joined_at: timestamptz (default: now())
- unique constraint on (collective_id, user_id)
"""
