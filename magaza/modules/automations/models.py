# Supabase tables: automations, reviews, download_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

automations:
- id: uuid (primary key)
- developer_id: uuid (references user_profiles.id)
- category_id: uuid (nullable, references categories.id)
- title: text (not null)
- slug: text (unique)
- description, long_description, documentation, demo_url: text (nullable)
- price: numeric (TRY)
- image_path, image_url: text (nullable)
- file_path: text (nullable) - path in the automation-files bucket or s3:// URL
- tags: text[]
- is_published: boolean (default false)
- admin_approved: boolean (default false) - set by approve_automation / reject_automation RPCs
- is_featured: boolean
- total_sales: integer (default 0) - incremented by increment_automation_sales RPC
- rating_avg: numeric (nullable)
- rating_count: integer (default 0)
- created_at / updated_at: timestamp

categories:
- id: uuid, name: text, slug: text (unique), description: text, color: text, icon: text

reviews:
- id: uuid, automation_id: uuid, user_id: uuid
- rating: integer (1..5), comment: text (nullable)
- unique (automation_id, user_id)
- created_at / updated_at: timestamp

download_logs:
- id: uuid, user_id: uuid, automation_id: uuid, created_at: timestamp
"""
