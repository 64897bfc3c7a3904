"""Skill catalogue and user skill routes."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, joinedload

from teamhub.core.audit import AuditEntry, record_audit, snapshot
from teamhub.core.catalogue import assert_name_available, usage_counts
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user, require_super_admin
from teamhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from teamhub.core.memberships import TeamMembershipService
from teamhub.core.roles import can_manage_user
from teamhub.models.skill import Skill, UserSkill
from teamhub.models.user import User
from teamhub.schemas.skill import (
    SkillCreate,
    SkillDetail,
    SkillHolder,
    SkillRead,
    SkillUpdate,
    UserSkillAssign,
    UserSkillRead,
    UserSkillUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SKILL_FIELDS = ("name", "category", "description")
USER_SKILL_FIELDS = ("user_id", "skill_id", "proficiency_level", "years_experience")


def _get_skill_or_404(db: Session, skill_id: int) -> Skill:
    skill = db.get(Skill, skill_id)
    if not skill:
        raise NotFoundError("Skill not found", {"skill_id": skill_id})
    return skill


def _get_user_skill_or_404(db: Session, user_id: int, skill_id: int) -> UserSkill:
    user_skill = db.query(UserSkill).options(joinedload(UserSkill.skill)).filter(
        UserSkill.user_id == user_id,
        UserSkill.skill_id == skill_id,
    ).first()
    if not user_skill:
        raise NotFoundError("User skill not found", {"user_id": user_id, "skill_id": skill_id})
    return user_skill


def _require_user_access(current_user: User, user_id: int) -> None:
    if not can_manage_user(current_user, user_id):
        raise ForbiddenError("You can only manage your own skills", {"user_id": user_id})


def _with_counts(db: Session, skills: List[Skill]) -> List[dict]:
    counts = usage_counts(db, UserSkill.skill_id, UserSkill.user_id)
    results = []
    for skill in skills:
        skill_data = SkillRead.model_validate(skill).model_dump()
        skill_data["user_count"] = counts.get(skill.skill_id, 0)
        results.append(skill_data)
    return results


def _user_skill_read(user_skill: UserSkill) -> UserSkillRead:
    response = UserSkillRead.model_validate(user_skill)
    if user_skill.skill:
        response.skill_name = user_skill.skill.name
        response.category = user_skill.skill.category
    return response


@router.get("/", response_model=List[SkillRead])
def list_skills(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List skills with the number of users holding each."""
    return _with_counts(db, db.query(Skill).order_by(Skill.name).all())


@router.get("/category/{category}", response_model=List[SkillRead])
def list_skills_by_category(
    category: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    skills = db.query(Skill).filter(Skill.category == category).order_by(Skill.name).all()
    return _with_counts(db, skills)


@router.get("/user/{user_id}", response_model=List[UserSkillRead])
def list_user_skills(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not db.get(User, user_id):
        raise NotFoundError("User not found", {"user_id": user_id})
    user_skills = db.query(UserSkill).options(joinedload(UserSkill.skill)).join(
        Skill, UserSkill.skill_id == Skill.skill_id
    ).filter(UserSkill.user_id == user_id).order_by(Skill.name).all()
    return [_user_skill_read(us) for us in user_skills]


@router.get("/{skill_id}", response_model=SkillDetail)
def get_skill(
    skill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Skill with its holders, most proficient first."""
    skill = _get_skill_or_404(db, skill_id)
    holders = db.query(UserSkill, User).join(
        User, UserSkill.user_id == User.user_id
    ).filter(UserSkill.skill_id == skill_id).order_by(
        UserSkill.proficiency_level.desc(), User.full_name
    ).all()
    team_names = TeamMembershipService(db).current_team_names([user.user_id for _, user in holders])

    skill_data = SkillRead.model_validate(skill).model_dump()
    skill_data["user_count"] = len(holders)
    skill_data["users"] = [
        SkillHolder(
            user_id=user.user_id,
            full_name=user.full_name,
            email=user.email,
            role=user.role,
            proficiency_level=user_skill.proficiency_level,
            years_experience=user_skill.years_experience,
            team_name=team_names.get(user.user_id),
        )
        for user_skill, user in holders
    ]
    return skill_data


@router.post("/", response_model=SkillRead, status_code=status.HTTP_201_CREATED)
def create_skill(
    payload: SkillCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    assert_name_available(db, Skill, payload.name, "Skill")
    skill = Skill(**payload.model_dump())
    db.add(skill)
    db.commit()
    db.refresh(skill)

    record_audit(db, [AuditEntry(
        table_name="skills",
        record_id=skill.skill_id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(skill, SKILL_FIELDS),
        summary=f"Created skill '{skill.name}'",
    )])
    return skill


@router.patch("/{skill_id}", response_model=SkillRead)
def update_skill(
    skill_id: int,
    payload: SkillUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    skill = _get_skill_or_404(db, skill_id)
    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "name" in update_data:
        assert_name_available(db, Skill, update_data["name"], "Skill", exclude_id=skill_id)

    before = snapshot(skill, SKILL_FIELDS)
    for field, value in update_data.items():
        setattr(skill, field, value)
    db.commit()
    db.refresh(skill)

    record_audit(db, [AuditEntry(
        table_name="skills",
        record_id=skill.skill_id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(skill, SKILL_FIELDS),
        summary=f"Updated skill '{skill.name}'",
    )])
    return _with_counts(db, [skill])[0]


@router.delete("/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_skill(
    skill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Delete a skill no user holds."""
    skill = _get_skill_or_404(db, skill_id)
    holders = db.query(UserSkill).filter(UserSkill.skill_id == skill_id).count()
    if holders:
        raise ConflictError(
            "Cannot delete skill that is assigned to users",
            {"skill_id": skill_id, "holders": holders},
        )

    before = snapshot(skill, SKILL_FIELDS)
    db.delete(skill)
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="skills",
        record_id=skill_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Deleted skill '{before['name']}'",
    )])


@router.post("/user/{user_id}", response_model=UserSkillRead, status_code=status.HTTP_201_CREATED)
def add_user_skill(
    user_id: int,
    payload: UserSkillAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record that a user holds a skill."""
    _require_user_access(current_user, user_id)
    if not db.get(User, user_id):
        raise NotFoundError("User not found", {"user_id": user_id})
    _get_skill_or_404(db, payload.skill_id)

    user_skill = UserSkill(user_id=user_id, **payload.model_dump())
    db.add(user_skill)
    try:
        db.commit()
    except sa_exc.IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "User already has this skill",
            {"user_id": user_id, "skill_id": payload.skill_id},
        ) from exc
    db.refresh(user_skill)

    record_audit(db, [AuditEntry(
        table_name="user_skills",
        record_id=user_skill.id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(user_skill, USER_SKILL_FIELDS),
        summary=f"Added skill {payload.skill_id} to user {user_id}",
    )])
    return _user_skill_read(user_skill)


@router.patch("/user/{user_id}/{skill_id}", response_model=UserSkillRead)
def update_user_skill(
    user_id: int,
    skill_id: int,
    payload: UserSkillUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _require_user_access(current_user, user_id)
    user_skill = _get_user_skill_or_404(db, user_id, skill_id)

    before = snapshot(user_skill, USER_SKILL_FIELDS)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user_skill, field, value)
    db.commit()
    db.refresh(user_skill)

    record_audit(db, [AuditEntry(
        table_name="user_skills",
        record_id=user_skill.id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(user_skill, USER_SKILL_FIELDS),
        summary=f"Updated skill {skill_id} for user {user_id}",
    )])
    return _user_skill_read(user_skill)


@router.delete("/user/{user_id}/{skill_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user_skill(
    user_id: int,
    skill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _require_user_access(current_user, user_id)
    user_skill = _get_user_skill_or_404(db, user_id, skill_id)

    record_id = user_skill.id
    before = snapshot(user_skill, USER_SKILL_FIELDS)
    db.delete(user_skill)
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="user_skills",
        record_id=record_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Removed skill {skill_id} from user {user_id}",
    )])
    logger.info("Skill %s removed from user %s by user %s", skill_id, user_id, current_user.user_id)
