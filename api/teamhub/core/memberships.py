"""Team membership ledger writer."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, joinedload

from teamhub.core.errors import ConflictError, NotFoundError, ValidationError
from teamhub.core.time import utc_today
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMembership
from teamhub.models.user import User

logger = logging.getLogger(__name__)


class TeamMembershipService:
    """Single-writer service for team memberships.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_team(self, team_id: Optional[int]) -> Team:
        team = self.db.get(Team, team_id) if team_id is not None else None
        if team is None:
            raise NotFoundError("Team not found", {"team_id": team_id})
        return team

    def _get_user(self, user_id: Optional[int]) -> User:
        user = self.db.get(User, user_id) if user_id is not None else None
        if user is None:
            raise NotFoundError("User not found", {"user_id": user_id})
        return user

    def _lock_active_memberships(self, user_id: int) -> List[TeamMembership]:
        return self.db.query(TeamMembership).filter(
            TeamMembership.user_id == user_id,
            TeamMembership.is_active.is_(True),
        ).order_by(TeamMembership.membership_id.asc()).with_for_update().all()

    def _flush_new_membership(self, membership: TeamMembership) -> None:
        self.db.add(membership)
        try:
            self.db.flush()
        except sa_exc.IntegrityError as exc:
            # Partial unique index caught a concurrent writer; session must be rolled back
            raise ConflictError(
                "User already has an active team membership",
                {"user_id": membership.user_id},
            ) from exc

    def active_membership_for_user(self, user_id: int) -> Optional[TeamMembership]:
        return self.db.query(TeamMembership).filter(
            TeamMembership.user_id == user_id,
            TeamMembership.is_active.is_(True),
        ).first()

    def add_member(self, team_id: int, user_id: int, start_date: Optional[date] = None) -> TeamMembership:
        """Start an active membership; fails if the user is active anywhere."""
        team = self._get_team(team_id)
        user = self._get_user(user_id)

        existing = self._lock_active_memberships(user.user_id)
        if existing:
            current = existing[0]
            raise ConflictError(
                "User is already a member of another team"
                if current.team_id != team.team_id
                else "User is already a member of this team",
                {"user_id": user.user_id, "team_id": current.team_id},
            )

        membership = TeamMembership(
            team_id=team.team_id,
            user_id=user.user_id,
            start_date=start_date or utc_today(),
            end_date=None,
            is_active=True,
        )
        self._flush_new_membership(membership)
        logger.info("User %s joined team %s", user.user_id, team.team_id)
        return membership

    def end_membership(self, team_id: int, user_id: int, end_date: Optional[date] = None) -> TeamMembership:
        """Close the user's active membership at the given team."""
        end_date = end_date or utc_today()
        locked = self._lock_active_memberships(user_id)
        membership = next((m for m in locked if m.team_id == team_id), None)
        if membership is None:
            raise NotFoundError(
                "Active team membership not found",
                {"team_id": team_id, "user_id": user_id},
            )
        if end_date < membership.start_date:
            raise ValidationError(
                "End date cannot be before the membership start date",
                {"start_date": membership.start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        membership.end_date = end_date
        membership.is_active = False
        self.db.flush()
        logger.info("User %s left team %s on %s", user_id, team_id, end_date)
        return membership

    def move_member(
        self,
        user_id: int,
        from_team_id: int,
        to_team_id: int,
        move_date: date,
    ) -> tuple[TeamMembership, TeamMembership]:
        """End the membership at from_team and start one at to_team on move_date."""
        if from_team_id == to_team_id:
            raise ValidationError(
                "Source and destination teams must differ",
                {"team_id": from_team_id},
            )
        self._get_user(user_id)
        old_membership = self.end_membership(from_team_id, user_id, move_date)
        # Destination is checked after the close so a missing team aborts the whole move
        to_team = self._get_team(to_team_id)

        new_membership = TeamMembership(
            team_id=to_team.team_id,
            user_id=user_id,
            start_date=move_date,
            end_date=None,
            is_active=True,
        )
        self._flush_new_membership(new_membership)
        logger.info("User %s moved from team %s to team %s", user_id, from_team_id, to_team_id)
        return old_membership, new_membership

    def members_of_team(self, team_id: int) -> List[TeamMembership]:
        self._get_team(team_id)
        return self.db.query(TeamMembership).options(
            joinedload(TeamMembership.user)
        ).join(User, TeamMembership.user_id == User.user_id).filter(
            TeamMembership.team_id == team_id,
            TeamMembership.is_active.is_(True),
        ).order_by(User.full_name).all()

    def history_for_user(self, user_id: int) -> List[TeamMembership]:
        self._get_user(user_id)
        return self.db.query(TeamMembership).options(
            joinedload(TeamMembership.team)
        ).filter(
            TeamMembership.user_id == user_id
        ).order_by(TeamMembership.start_date.desc(), TeamMembership.membership_id.desc()).all()

    def active_member_count(self, team_id: int) -> int:
        return self.db.query(TeamMembership).filter(
            TeamMembership.team_id == team_id,
            TeamMembership.is_active.is_(True),
        ).count()

    def current_team_names(self, user_ids: Optional[Iterable[int]] = None) -> Dict[int, str]:
        """Map of user_id -> name of the team the user is active in."""
        query = self.db.query(TeamMembership.user_id, Team.name).join(
            Team, TeamMembership.team_id == Team.team_id
        ).filter(TeamMembership.is_active.is_(True))
        if user_ids is not None:
            query = query.filter(TeamMembership.user_id.in_(list(user_ids)))
        return dict(query.all())

    def team_stats(self, team_id: int, as_of: Optional[date] = None) -> dict:
        """Active headcount by role and average tenure (whole years since hire)."""
        as_of = as_of or utc_today()
        members = self.members_of_team(team_id)

        by_role: Dict[str, int] = {}
        tenures = []
        for membership in members:
            user = membership.user
            by_role[user.role] = by_role.get(user.role, 0) + 1
            if user.hire_date is not None:
                hired = user.hire_date
                years = as_of.year - hired.year - ((as_of.month, as_of.day) < (hired.month, hired.day))
                tenures.append(years)

        return {
            "team_id": team_id,
            "total_members": len(members),
            "by_role": by_role,
            "avg_tenure_years": round(sum(tenures) / len(tenures), 2) if tenures else None,
        }
