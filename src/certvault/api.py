from fastapi import APIRouter

from certvault.modules.access_grants.router import router as access_grants_router
from certvault.modules.auth.router import router as auth_router
from certvault.modules.certificates.router import router as certificates_router
from certvault.modules.dashboards.router import router as dashboards_router
from certvault.modules.students.router import router as students_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(students_router, prefix="/students", tags=["Students"])

api_router.include_router(certificates_router, prefix="/certificates", tags=["Certificates"])

api_router.include_router(
    access_grants_router, prefix="/access-requests", tags=["Access Requests"]
)

api_router.include_router(dashboards_router, prefix="/dashboard", tags=["Dashboards"])
