# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key, references auth.users.id)
- first_name: text (nullable)
- last_name: text (nullable)
- job_title: text (nullable)
- phone: text (nullable)
- authorized: boolean (not null, default: false) - gates access beyond the pending-approval screen
- role: text (not null, default: 'workspace_user') - values: arion_admin, org_admin, workspace_user
- last_login: timestamp (nullable)
- created_at: timestamp (default: now())

Rows are created at signup/invite time (upsert on id) and never deleted
directly: the delete_user_and_profile RPC removes the profile together with
the auth.users row.
"""
