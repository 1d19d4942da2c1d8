"""Role dashboard endpoints."""

from fastapi import APIRouter

from coursehub.auth.dependencies import AdminUser, CurrentUser, InstructorUser
from coursehub.dashboard.dependencies import DashboardServiceDep
from coursehub.dashboard.schemas import AdminDashboard, InstructorDashboard, StudentDashboard


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/student", response_model=StudentDashboard, summary="Student dashboard")
async def student_dashboard(
    user: CurrentUser,
    dashboard_service: DashboardServiceDep,
) -> StudentDashboard:
    return await dashboard_service.student(user)


@router.get("/instructor", response_model=InstructorDashboard, summary="Instructor dashboard")
async def instructor_dashboard(
    user: InstructorUser,
    dashboard_service: DashboardServiceDep,
) -> InstructorDashboard:
    return await dashboard_service.instructor(user)


@router.get("/admin", response_model=AdminDashboard, summary="Admin dashboard")
async def admin_dashboard(
    _admin: AdminUser,
    dashboard_service: DashboardServiceDep,
) -> AdminDashboard:
    return await dashboard_service.admin()
