# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user accounts, service categories, audit trail.

Every endpoint in this router is guarded by ``require_admin``.  A request
without a verified session, or from a role other than ADMIN / SUPER_ADMIN,
receives 403 before any business logic runs.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased, joinedload

from admin.schemas import (
    AuditLogListResponse,
    AuditLogRow,
    CreateServiceCategoryRequest,
    CreateUserRequest,
    CreateUserResponse,
    ServiceCategoryListResponse,
    ServiceCategoryResponse,
    ToggleStatusRequest,
    ToggleStatusResponse,
    UpdateServiceCategoryRequest,
    UserDetailResponse,
    UserListResponse,
)
from core.errors import Conflict, InternalError, NotFound, SelfDeactivation, ValidationError, WeakPassword
from core.logger import logger
from core.security import (
    generate_password,
    get_client_ip,
    hash_password,
    require_admin,
    validate_password_strength,
)
from database import get_db
from models.audit_log import AuditLog
from models.officer_profile import OfficerProfile
from models.service_category import ServiceCategory
from models.user import OFFICER_ROLES, User

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# PATCH /api/admin/users/{user_id}/toggle-status
# ---------------------------------------------------------------------------


@router.patch("/users/{user_id}/toggle-status", response_model=ToggleStatusResponse)
def toggle_status(
    user_id: int,
    body: ToggleStatusRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Activate or deactivate an account.

    Guard: nobody can deactivate their own account, SUPER_ADMIN included.
    Sessions already issued to a deactivated user keep passing the page gate
    until they expire or are refreshed; the API rejects them immediately.
    """
    if not isinstance(body.is_active, bool):
        raise ValidationError("Invalid request: isActive must be a boolean")

    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise NotFound("User not found")

    if target.id == admin.id and not body.is_active:
        raise SelfDeactivation()

    action = "activate_user" if body.is_active else "deactivate_user"
    try:
        target.is_active = body.is_active
        db.add(AuditLog(actor_id=admin.id, target_user_id=target.id, action=action,
                        request_ip=get_client_ip(request)))
        db.commit()
        db.refresh(target)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error toggling status of user %d", user_id)
        raise InternalError("Failed to update user status")

    logger.info("%s: %s by %s", action, target.email, admin.email)
    return ToggleStatusResponse(
        message=f"User {'activated' if target.is_active else 'deactivated'} successfully",
        user=target,
    )


# ---------------------------------------------------------------------------
# GET /api/admin/users  – list all users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Return every user row, newest first (no password data – handled by the schema)."""
    users = (
        db.query(User)
        .options(joinedload(User.officer_profile))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return UserListResponse(users=users)


# ---------------------------------------------------------------------------
# GET /api/admin/users/{user_id}
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return UserDetailResponse(user=user)


# ---------------------------------------------------------------------------
# POST /api/admin/users  – create a staff or citizen account
# ---------------------------------------------------------------------------


@router.post("/users", response_model=CreateUserResponse)
def create_user(
    body: CreateUserRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Create an account.  Officer and admin roles also get an OfficerProfile.
    If no password is supplied one is generated and returned in this
    response only.
    """
    email = body.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise Conflict("User with this email already exists")

    generated = body.password is None
    password = generate_password() if generated else body.password
    err = validate_password_strength(password)
    if err:
        raise WeakPassword(err)

    try:
        user = User(
            email=email,
            password_hash=hash_password(password),
            full_name=body.full_name,
            phone=body.phone,
            role=body.role,
            is_active=body.is_active,
            # The admin vouches for the address; an inactive account stays
            # inactive until an admin toggles it.
            email_verified_at=datetime.now(timezone.utc),
        )
        if body.role in OFFICER_ROLES:
            user.officer_profile = OfficerProfile(
                designation=body.designation or "Officer",
                department=body.department or "General",
                office_location=body.office_location,
            )
        db.add(user)
        db.flush()  # get user.id before commit
        db.add(AuditLog(actor_id=admin.id, target_user_id=user.id, action="create_user",
                        detail=f"role={body.role.value}", request_ip=get_client_ip(request)))
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating user %s", email)
        raise InternalError("Failed to create user")

    logger.info("create_user: %s (%s) by %s", email, body.role.value, admin.email)
    return CreateUserResponse(
        message="User created successfully",
        user=user,
        password=password if generated else None,
    )


# ---------------------------------------------------------------------------
# GET /api/admin/audit-logs  – audit trail, newest first
# ---------------------------------------------------------------------------


@router.get("/audit-logs", response_model=AuditLogListResponse)
def list_audit_logs(
    limit: int = Query(200, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    Actor  = aliased(User)
    Target = aliased(User)

    rows = (
        db.query(AuditLog, Actor.email, Target.email)
        .outerjoin(Actor,  AuditLog.actor_id       == Actor.id)
        .outerjoin(Target, AuditLog.target_user_id == Target.id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )

    return AuditLogListResponse(logs=[
        AuditLogRow(
            id=log.id,
            actor_email=actor_email,
            target_email=target_email,
            action=log.action,
            detail=log.detail,
            request_ip=log.request_ip,
            created_at=log.created_at,
        )
        for log, actor_email, target_email in rows
    ])


# ---------------------------------------------------------------------------
# Service categories  – the catalogue citizens apply against
# ---------------------------------------------------------------------------


def _category_name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    """Names are unique ignoring case."""
    query = db.query(ServiceCategory.id).filter(func.lower(ServiceCategory.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(ServiceCategory.id != exclude_id)
    return query.first() is not None


@router.post(
    "/service-categories",
    response_model=ServiceCategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_service_category(
    body: CreateServiceCategoryRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    name = body.name.strip()
    if not name:
        raise ValidationError("Service category name is required")
    if _category_name_taken(db, name):
        raise Conflict("Service category with this name already exists")

    try:
        category = ServiceCategory(
            name=name,
            description=body.description,
            sla_days=body.sla_days,
            is_active=body.is_active,
        )
        db.add(category)
        db.flush()
        db.add(AuditLog(actor_id=admin.id, action="create_service_category",
                        detail=f"id={category.id} name={name}", request_ip=get_client_ip(request)))
        db.commit()
        db.refresh(category)
    except IntegrityError:
        db.rollback()
        raise Conflict("Service category with this name already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating service category %s", name)
        raise InternalError("Failed to create service category")

    logger.info("create_service_category: %s by %s", name, admin.email)
    return ServiceCategoryResponse(message="Service category created successfully", category=category)


@router.get("/service-categories", response_model=ServiceCategoryListResponse)
def list_service_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    is_active: Optional[bool] = Query(None, alias="isActive"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All categories including inactive ones, newest first, paginated."""
    query = db.query(ServiceCategory)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(ServiceCategory.name).like(pattern),
            func.lower(ServiceCategory.description).like(pattern),
        ))
    if is_active is not None:
        query = query.filter(ServiceCategory.is_active.is_(is_active))

    total = query.count()
    categories = (
        query.order_by(ServiceCategory.created_at.desc(), ServiceCategory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ServiceCategoryListResponse(
        categories=categories,
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit),
    )


@router.patch("/service-categories/{category_id}", response_model=ServiceCategoryResponse)
def update_service_category(
    category_id: int,
    body: UpdateServiceCategoryRequest,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    category = db.query(ServiceCategory).filter(ServiceCategory.id == category_id).first()
    if not category:
        raise NotFound("Service category not found")

    changes = body.model_dump(exclude_unset=True)
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise ValidationError("Service category name is required")
        if _category_name_taken(db, changes["name"], exclude_id=category.id):
            raise Conflict("Service category with this name already exists")
    if changes.get("sla_days", 0) is None or changes.get("is_active", False) is None:
        raise ValidationError("Invalid request: slaDays and isActive cannot be null")

    try:
        for field, value in changes.items():
            setattr(category, field, value)
        db.add(AuditLog(actor_id=admin.id, action="update_service_category",
                        detail=f"id={category.id} fields={','.join(sorted(changes))}",
                        request_ip=get_client_ip(request)))
        db.commit()
        db.refresh(category)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating service category %d", category_id)
        raise InternalError("Failed to update service category")

    logger.info("update_service_category: %d by %s", category_id, admin.email)
    return ServiceCategoryResponse(message="Service category updated successfully", category=category)
