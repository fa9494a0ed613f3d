"""
auth — Host authentication module.

Provides:
  • Signed session tokens and admin anti-forgery nonces
  • Password hashing (bcrypt)
  • ``get_current_user`` / ``require_admin`` FastAPI dependencies
"""
