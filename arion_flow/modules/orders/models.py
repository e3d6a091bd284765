# Supabase table: orders
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- organization_id: uuid (foreign key to organizations.id, nullable)
- name: text (not null)
- datacenter_id: text (not null) - one of EUR-IS-1, EU-RO-1, EU-CZ-1, US-KS-2, US-CA-2
- storage_gb: integer (not null)
- gpu_type: text (not null)
- status: text (not null, default: 'pending') - values: pending, running, failed, deleted
- pod_id: text (nullable) - cleared once the pod is terminated
- volume_id: text (nullable) - cleared once the network volume is deleted
- workspace_url: text (nullable)
- runtime_status: text (nullable) - last desiredStatus seen by telemetry
- uptime_seconds: integer (nullable)
- failure_reason: text (nullable)
- last_checked: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
