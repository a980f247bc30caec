# Authentication is handled by Supabase Auth (auth.users table)
# This module only reads auth.users through the SDK and writes user_profiles

"""
Redirect targets used by the auth callback (frontend paths):

- /auth/signin?error=oauth_failed&message=...   failed OAuth / e-mail link
- /auth/reset-password                          valid recovery link
- /auth/reset-password?error=invalid_token      expired recovery link
- /admin/dashboard                              admin after login
- /dashboard                                    everyone else
"""
