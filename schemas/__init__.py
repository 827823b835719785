from .company_schema import (
    CompanyDetails, PaymentIntentRequest, PaymentIntentResponse, CompanyData,
    CompleteCreationRequest, CompanyRead, CompanyUpdate,
    UpdatePlanRequest, UpdatePaymentMethodRequest,
)
from .profile_schema import ProfileRead
from .project_schema import (
    ProjectCreate, ProjectRead, ProjectUpdate, ProjectSummary, ProjectPage,
    CommentCreate, CommentRead, Pagination,
)
from .task_schema import (
    TaskCreate, TaskRead, TaskUpdate, TaskPage, TaskList,
    TaskCounts, AssigneeTaskSummary,
)
from .user_schema import (
    UserLogin, UserRead, UserSummary,
    SignupInitiate, SignupVerify, SignupResend, GoogleTokenRequest,
    DirectoryUserCreate, DirectoryUserUpdate,
    PasswordReset, ExtendTokenRequest,
)

__all__ = [
    # Company
    "CompanyDetails", "PaymentIntentRequest", "PaymentIntentResponse", "CompanyData",
    "CompleteCreationRequest", "CompanyRead", "CompanyUpdate",
    "UpdatePlanRequest", "UpdatePaymentMethodRequest",

    # Profile
    "ProfileRead",

    # Project
    "ProjectCreate", "ProjectRead", "ProjectUpdate", "ProjectSummary", "ProjectPage",
    "CommentCreate", "CommentRead", "Pagination",

    # Task
    "TaskCreate", "TaskRead", "TaskUpdate", "TaskPage", "TaskList",
    "TaskCounts", "AssigneeTaskSummary",

    # User
    "UserLogin", "UserRead", "UserSummary",
    "SignupInitiate", "SignupVerify", "SignupResend", "GoogleTokenRequest",
    "DirectoryUserCreate", "DirectoryUserUpdate",
    "PasswordReset", "ExtendTokenRequest",
]
