"""User management routes."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from teamhub.core.audit import AuditEntry, record_audit, snapshot
from teamhub.core.availability import current_availability
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user, require_super_admin
from teamhub.core.errors import ConflictError, NotFoundError, ValidationError
from teamhub.core.memberships import TeamMembershipService
from teamhub.core.roles import RoleCode
from teamhub.core.security import get_password_hash
from teamhub.models.skill import Skill, UserSkill
from teamhub.models.user import User
from teamhub.schemas.availability import AvailabilityRead
from teamhub.schemas.skill import UserSkillRead
from teamhub.schemas.team_member import TeamMembershipRead
from teamhub.schemas.user import UserCreate, UserDetail, UserResponse, UserSummary, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

USER_FIELDS = ("email", "full_name", "role", "is_active", "hire_date")


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found", {"user_id": user_id})
    return user


def _summaries(db: Session, users: List[User]) -> List[UserSummary]:
    """Attach each user's current team and skill names."""
    user_ids = [u.user_id for u in users]
    team_names = TeamMembershipService(db).current_team_names(user_ids)
    skill_names: dict = {}
    for user_id, name in db.query(UserSkill.user_id, Skill.name).join(
        Skill, UserSkill.skill_id == Skill.skill_id
    ).filter(UserSkill.user_id.in_(user_ids)).order_by(Skill.name).all():
        skill_names.setdefault(user_id, []).append(name)

    results = []
    for user in users:
        results.append(UserSummary(
            **UserResponse.model_validate(user).model_dump(),
            current_team=team_names.get(user.user_id),
            skills=skill_names.get(user.user_id, []),
        ))
    return results


@router.get("/", response_model=List[UserSummary])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List all users with their current team and skills."""
    return _summaries(db, db.query(User).order_by(User.full_name).all())


@router.get("/role/{role}", response_model=List[UserSummary])
def list_users_by_role(
    role: RoleCode,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    users = db.query(User).filter(User.role == role.value).order_by(User.full_name).all()
    return _summaries(db, users)


@router.get("/search/{query}", response_model=List[UserSummary])
def search_users(
    query: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Case-insensitive substring match on name or email."""
    pattern = f"%{query.strip()}%"
    users = db.query(User).filter(
        or_(User.full_name.ilike(pattern), User.email.ilike(pattern))
    ).order_by(User.full_name).all()
    return _summaries(db, users)


@router.get("/{user_id}", response_model=UserDetail)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """User with membership history, skills and today's availability."""
    user = _get_user_or_404(db, user_id)

    history = TeamMembershipService(db).history_for_user(user_id)
    user_skills = db.query(UserSkill).options(joinedload(UserSkill.skill)).join(
        Skill, UserSkill.skill_id == Skill.skill_id
    ).filter(UserSkill.user_id == user_id).order_by(Skill.name).all()
    availability = current_availability(db, user_id)

    team_history = []
    for membership in history:
        row = TeamMembershipRead.model_validate(membership)
        row.team_name = membership.team.name if membership.team else None
        team_history.append(row)
    skills = []
    for user_skill in user_skills:
        row = UserSkillRead.model_validate(user_skill)
        row.skill_name = user_skill.skill.name
        row.category = user_skill.skill.category
        skills.append(row)

    return UserDetail(
        **UserResponse.model_validate(user).model_dump(),
        team_history=team_history,
        skills=skills,
        availability=AvailabilityRead.model_validate(availability) if availability else None,
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Create a new user (super admin only)."""
    if db.query(User).filter(User.email == user_data.email).first():
        raise ConflictError("Email already registered", {"email": user_data.email})

    user = User(
        email=user_data.email,
        full_name=user_data.full_name,
        password_hash=get_password_hash(user_data.password),
        role=user_data.role.value,
        hire_date=user_data.hire_date,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    record_audit(db, [AuditEntry(
        table_name="users",
        record_id=user.user_id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(user, USER_FIELDS),
        summary=f"Created user {user.email}",
    )])
    return user


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Update a user (super admin only). Passwords are never written to the audit log."""
    user = _get_user_or_404(db, user_id)
    update_data = {k: v for k, v in user_data.model_dump(exclude_unset=True).items() if v is not None}

    if "email" in update_data and update_data["email"] != user.email:
        if db.query(User).filter(User.email == update_data["email"]).first():
            raise ConflictError("Email already registered", {"email": update_data["email"]})
    if "role" in update_data:
        update_data["role"] = update_data["role"].value

    before = snapshot(user, USER_FIELDS)
    password_changed = "password" in update_data
    if password_changed:
        update_data["password_hash"] = get_password_hash(update_data.pop("password"))
    for field, value in update_data.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)

    after = snapshot(user, USER_FIELDS)
    if password_changed:
        after["password"] = "changed"
    record_audit(db, [AuditEntry(
        table_name="users",
        record_id=user.user_id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=after,
        summary=f"Updated user {user.email}",
    )])
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Deactivate a user with no active team membership.

    The row is kept so change requests and audit entries stay attributable.
    """
    user = _get_user_or_404(db, user_id)
    if user.user_id == current_user.user_id:
        raise ValidationError("Cannot delete your own account")
    if TeamMembershipService(db).active_membership_for_user(user_id):
        raise ConflictError("Cannot delete user with active team memberships", {"user_id": user_id})

    before = snapshot(user, USER_FIELDS)
    user.is_active = False
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="users",
        record_id=user_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values={"is_active": False},
        summary=f"Deactivated user {before['email']}",
    )])
    logger.info("User %s deactivated by user %s", user_id, current_user.user_id)
