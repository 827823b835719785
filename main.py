import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.database import create_db_and_tables
from core.errors import validation_exception_handler, generic_exception_handler
from routes.auth import router as auth_router
from routes.password import router as password_router
from routes.directory import (
    company_admin_router,
    manager_router,
    project_manager_router,
    developer_router,
    dashboard_router,
)
from routes.company import router as company_router
from routes.projects import router as project_router
from routes.tasks import router as tasks_router
from routes.profile import router as profile_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

UPLOADS_DIR = Path("uploads")


# =========================================
# 🏁 Lifespan (DB initialization)
# =========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("✅ Database tables created on startup.")
    yield
    logger.info("✅ Application shutting down.")


# =========================================
#  ✅ FastAPI App
# =========================================
app = FastAPI(lifespan=lifespan, title="ProjeX Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-auth-token"],
)


@app.middleware("http")
async def cross_origin_policy_headers(request: Request, call_next):
    # Google sign-in popups need to talk back to the opener
    response = await call_next(request)
    response.headers["Cross-Origin-Opener-Policy"] = "same-origin-allow-popups"
    response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    return response


# =========================================
# ⚠️ Exception handlers
# =========================================
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


# =========================================
# 📦 Routers
# =========================================
app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(password_router, prefix="/api/password", tags=["Password"])
app.include_router(company_admin_router, prefix="/api/admin/companyadmins", tags=["Company Admins"])
app.include_router(manager_router, prefix="/api/companyadmin/managers", tags=["Managers"])
app.include_router(dashboard_router, prefix="/api/companyadmin", tags=["Dashboard"])
app.include_router(project_manager_router, prefix="/api/manager/projectmanagers", tags=["Project Managers"])
app.include_router(developer_router, prefix="/api/manager/developers", tags=["Developers"])
app.include_router(company_router, prefix="/api/company", tags=["Company"])
app.include_router(project_router, prefix="/api/project", tags=["Projects"])
app.include_router(tasks_router, prefix="/api/task", tags=["Tasks"])
app.include_router(profile_router, prefix="/api/profile", tags=["Profile"])


# Serve the entire uploads directory at /static
(UPLOADS_DIR / "profile_pictures").mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(UPLOADS_DIR)), name="static")


# =========================================
# 🩺 Health Check
# =========================================
@app.get("/api/health")
def health_check():
    return {"status": "ok", "message": "Server is running"}
