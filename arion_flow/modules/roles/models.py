# Supabase table: roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

roles:
- name: text (primary key) - "arion_admin", "org_admin", "workspace_user"
- label: text (nullable) - display name for the admin screens
- description: text (nullable)
"""
