"""
Checklist Auth

Cross-platform Google OAuth client with backend session management and
auth state reconciliation for the checklist app.
"""

__version__ = "0.1.0"
