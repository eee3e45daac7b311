"""
Students module - Enrollment of students by their school and student lookup.

API Endpoints:
- POST /students - Enroll a student (school)
- GET /students - List the school's students with certificate counts (school)
- GET /students/search - Find students by email or student ID (company)
"""

from certvault.modules.students.models import StudentRecord

__all__ = ["StudentRecord"]
