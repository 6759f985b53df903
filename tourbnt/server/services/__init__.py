"""
Request scoped services used by the API endpoints.

- accounts: registration, login, email verification and password reset
- auth: session cookies, current user resolution and role checks
- deps: annotated dependency aliases
- mailer: SMTP delivery of verification and password reset mail
- media_storage: Cloudinary uploads with per-user credentials
- sellers: seller application lifecycle
"""
