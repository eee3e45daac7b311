"""
Access Grants module - Company requests for a student's certificates.

A company asks; the student approves or denies; an approved grant can be
revoked. Denied and revoked grants are final.

API Endpoints:
- POST /access-requests - Request access (company)
- GET /access-requests/company - The company's requests (company)
- GET /access-requests/student - Requests addressed to the student (student)
- POST /access-requests/{id}/respond - Approve or deny (student)
- POST /access-requests/{id}/revoke - Revoke approved access (student)
"""

from certvault.modules.access_grants.models import AccessGrant, GrantStatus

__all__ = ["AccessGrant", "GrantStatus"]
