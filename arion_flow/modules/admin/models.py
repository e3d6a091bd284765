# Supabase tables: profiles, organizations, organization_users (plus Supabase Auth users)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

organizations:
- id: uuid (primary key)
- name: text (not null, unique)
- created_at: timestamp (default: now())

organization_users:
- user_id: uuid (foreign key to auth.users.id)
- organization_id: uuid (foreign key to organizations.id)
- role: text - "admin" or "member"
- unique constraint on (user_id, organization_id)

RPC:
- delete_user_and_profile(user_id uuid): removes the auth user and its profile
"""
