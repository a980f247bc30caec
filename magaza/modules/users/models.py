# Supabase tables: user_profiles, favorites, purchases (read side), auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key, references auth.users.id)
- username: text (unique, case-insensitive index)
- email: text (nullable) - copied from auth.users at sign up
- full_name: text (nullable)
- avatar_url: text (nullable)
- phone: text (nullable) - digits only, 10 digits without leading 0
- bio: text (nullable)
- is_developer: boolean (default false)
- developer_approved: boolean (default false)
- role: text (nullable, 'admin' for administrators)
- is_admin: boolean (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

favorites:
- id: uuid (primary key)
- user_id: uuid (references user_profiles.id)
- automation_id: uuid (references automations.id)
- created_at: timestamp (default: now())
- unique (user_id, automation_id)
"""
