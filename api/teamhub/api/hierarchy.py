"""Team hierarchy endpoints."""
from typing import List, Tuple

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamhub.core.audit import record_audit
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user, require_super_admin
from teamhub.core.team_hierarchy import TeamHierarchyService
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas.hierarchy import (
    HierarchyEdgeCreate,
    HierarchyEdgeRead,
    HierarchyTeam,
    TeamHierarchyView,
    TreeNode,
)
from teamhub.schemas.team import TeamBasic

router = APIRouter()


def _levelled(pairs: List[Tuple[Team, int]]) -> List[HierarchyTeam]:
    return [
        HierarchyTeam(team_id=team.team_id, name=team.name, description=team.description, level=level)
        for team, level in pairs
    ]


@router.get("/", response_model=List[TreeNode])
def get_hierarchy_tree(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Whole hierarchy flattened from the roots down."""
    return TeamHierarchyService(db).tree()


@router.post("/", response_model=HierarchyEdgeRead, status_code=status.HTTP_201_CREATED)
def create_hierarchy_edge(
    payload: HierarchyEdgeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Place child_team_id under parent_team_id. Rejected if it would close a cycle."""
    edge, entry = TeamHierarchyService(db).add_edge(
        payload.parent_team_id, payload.child_team_id, actor_id=current_user.user_id
    )
    record_audit(db, [entry])
    return edge


@router.delete("/{parent_team_id}/{child_team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_hierarchy_edge(
    parent_team_id: int,
    child_team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    entry = TeamHierarchyService(db).remove_edge(
        parent_team_id, child_team_id, actor_id=current_user.user_id
    )
    record_audit(db, [entry])


@router.get("/roots", response_model=List[TeamBasic])
def get_root_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Teams with no parent."""
    return TeamHierarchyService(db).roots()


@router.get("/leaves", response_model=List[TeamBasic])
def get_leaf_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Teams with no children."""
    return TeamHierarchyService(db).leaves()


@router.get("/team/{team_id}", response_model=TeamHierarchyView)
def get_team_hierarchy(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """All ancestors and descendants of a team with their distance."""
    service = TeamHierarchyService(db)
    return TeamHierarchyView(
        parents=_levelled(service.ancestors(team_id)),
        children=_levelled(service.descendants(team_id)),
    )
