# Supabase Auth
# Accounts live in Supabase's auth.users table; this service never stores
# passwords or tokens itself.

"""
Supabase Auth calls used here:
- auth.sign_in_with_password() - Authenticate users (login)
- auth.get_user() - Resolve the current user from a bearer JWT
- auth.admin.sign_out() - Revoke a session (logout)
- auth.admin.create_user() - Self-service signup (service role)
- auth.admin.delete_user() - Compensate a partially completed signup

Application data attached to an account lives in public tables:
- profiles (id = auth.users.id)
- organizations / organization_users
"""
