"""
sso — Google Workspace single sign-on for the host application.

Provides:
  • Encrypted-at-rest storage of per-workspace OAuth clients
  • The login override: workspace picker → provider redirect → callback
  • Local user resolution by verified email address
  • A guard that keeps privileged accounts off the shop's password login
"""
