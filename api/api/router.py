# Import individual route modules
from fastapi import APIRouter
from api.api.routes import enrollment_requests, enrollments

api_router = APIRouter()

# Include all route modules
api_router.include_router(enrollment_requests.router, prefix="/enrollment-requests", tags=["enrollment-requests"])
api_router.include_router(enrollments.router, prefix="/enrollments", tags=["enrollments"])
