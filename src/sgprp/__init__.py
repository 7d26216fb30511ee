"""SGP-RP - police and citizen portal backend for a roleplay community.

Provides the citizen-facing API plus the RH and Staff administrative
backends: recruitment, career management, registration tokens,
announcements, job postings, incident reports and audit logs.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
