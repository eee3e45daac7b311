"""
Certificates module - Issuance and retrieval of certificate files.

Issuing a certificate computes a SHA-256 digest of the uploaded bytes,
stores the bytes under a unique key scoped by school and student, and
writes an immutable Certificate record linking the two.

API Endpoints:
- POST /certificates - Issue a certificate (school)
- GET /certificates/mine - Certificates of the signed-in student (student)
- GET /certificates/students/{student_id} - A student's certificates (company, approved grant)
- GET /certificates/{id}/file - Download the stored file
- POST /certificates/{id}/verify - Re-hash the stored file against its recorded digest
"""

from certvault.modules.certificates.models import Certificate

__all__ = ["Certificate"]
