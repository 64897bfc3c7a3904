"""Team hierarchy integrity checks and reachability queries.

The containment graph is read into an adjacency map on every call and walked
in Python, so the same checks run on Postgres and SQLite.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from teamhub.core.audit import AuditEntry
from teamhub.core.errors import ConflictError, IntegrityError, NotFoundError
from teamhub.models.team import Team
from teamhub.models.team_hierarchy import TeamHierarchy

logger = logging.getLogger(__name__)

Graph = Dict[int, List[int]]


def find_path(graph: Graph, start: int, target: int) -> Optional[List[int]]:
    """Return a path start -> ... -> target following graph edges, or None."""
    if start == target:
        return [start]
    visited: Set[int] = {start}
    stack: List[Tuple[int, List[int]]] = [(start, [start])]
    while stack:
        current, path = stack.pop()
        for neighbor in graph.get(current, []):
            if neighbor == target:
                return path + [neighbor]
            if neighbor not in visited:
                visited.add(neighbor)
                stack.append((neighbor, path + [neighbor]))
    return None


def find_cycle(graph: Graph, start: int) -> Optional[List[int]]:
    """Return any cycle reachable from start, or None.

    Iterative three-colour DFS; nodes reached twice through different parents
    (a diamond) are not reported.
    """
    on_stack: Set[int] = set()
    done: Set[int] = set()
    path: List[int] = []
    stack: List[Tuple[int, int]] = [(start, 0)]
    while stack:
        node, index = stack.pop()
        if index == 0:
            on_stack.add(node)
            path.append(node)
        neighbors = graph.get(node, [])
        if index < len(neighbors):
            stack.append((node, index + 1))
            neighbor = neighbors[index]
            if neighbor in on_stack:
                return path[path.index(neighbor):] + [neighbor]
            if neighbor not in done:
                stack.append((neighbor, 0))
        else:
            on_stack.discard(node)
            done.add(node)
            path.pop()
    return None


def walk_levels(graph: Graph, start: int) -> Dict[int, int]:
    """Breadth-first depths of every node reachable from start.

    Depth 0 is a direct neighbour. A node reachable by several paths keeps its
    shallowest depth.
    """
    depths: Dict[int, int] = {}
    queue = deque((neighbor, 0) for neighbor in graph.get(start, []))
    while queue:
        node, depth = queue.popleft()
        if node == start:
            raise IntegrityError(
                "Team hierarchy contains a cycle",
                {"team_id": start, "cycle": find_cycle(graph, start)},
            )
        if node in depths:
            continue
        depths[node] = depth
        for neighbor in graph.get(node, []):
            if neighbor not in depths:
                queue.append((neighbor, depth + 1))
    cycle = find_cycle(graph, start)
    if cycle:
        raise IntegrityError("Team hierarchy contains a cycle", {"team_id": start, "cycle": cycle})
    return depths


class TeamHierarchyService:
    """Guards parent/child edges between teams and answers tree queries."""

    def __init__(self, db: Session):
        self.db = db

    def _load_graph(self) -> Tuple[Graph, Graph]:
        children: Graph = {}
        parents: Graph = {}
        rows = self.db.query(
            TeamHierarchy.parent_team_id, TeamHierarchy.child_team_id
        ).order_by(TeamHierarchy.parent_team_id, TeamHierarchy.child_team_id).all()
        for parent_id, child_id in rows:
            children.setdefault(parent_id, []).append(child_id)
            parents.setdefault(child_id, []).append(parent_id)
        return children, parents

    def _lock_edges(self) -> None:
        # Serializes check-then-insert across concurrent writers
        if self.db.bind is not None and self.db.bind.dialect.name == "postgresql":
            self.db.execute(text("LOCK TABLE team_hierarchy IN SHARE ROW EXCLUSIVE MODE"))

    def _get_team(self, team_id: int, label: str = "Team") -> Team:
        team = self.db.get(Team, team_id)
        if team is None:
            raise NotFoundError(f"{label} not found", {"team_id": team_id})
        return team

    def cycle_path(self, parent_team_id: int, child_team_id: int) -> Optional[List[int]]:
        """Cycle that adding parent -> child would close, as a list of team ids."""
        if parent_team_id == child_team_id:
            return [parent_team_id, child_team_id]
        children, _ = self._load_graph()
        path = find_path(children, child_team_id, parent_team_id)
        if path is None:
            return None
        return [parent_team_id] + path

    def can_add_edge(self, parent_team_id: int, child_team_id: int) -> bool:
        return self.cycle_path(parent_team_id, child_team_id) is None

    def add_edge(self, parent_team_id: int, child_team_id: int, actor_id: int) -> Tuple[TeamHierarchy, AuditEntry]:
        """Insert parent -> child after checking it keeps the graph acyclic. Commits."""
        try:
            self._lock_edges()
            parent = self._get_team(parent_team_id, "Parent team")
            child = self._get_team(child_team_id, "Child team")

            if parent_team_id == child_team_id:
                raise ConflictError("Team cannot be its own parent", {"team_id": parent_team_id})

            existing = self.db.query(TeamHierarchy).filter(
                TeamHierarchy.parent_team_id == parent_team_id,
                TeamHierarchy.child_team_id == child_team_id,
            ).first()
            if existing:
                raise ConflictError(
                    "Hierarchy relationship already exists",
                    {"parent_team_id": parent_team_id, "child_team_id": child_team_id},
                )

            cycle = self.cycle_path(parent_team_id, child_team_id)
            if cycle:
                raise ConflictError(
                    "This would create a circular reference",
                    {"cycle_path": cycle},
                )

            edge = TeamHierarchy(parent_team_id=parent_team_id, child_team_id=child_team_id)
            self.db.add(edge)
            self.db.flush()
            entry = AuditEntry(
                table_name="team_hierarchy",
                record_id=edge.id,
                action="CREATE",
                actor_id=actor_id,
                new_values={
                    "parent_team_id": parent_team_id,
                    "parent_team_name": parent.name,
                    "child_team_id": child_team_id,
                    "child_team_name": child.name,
                },
                summary=f"Placed team '{child.name}' under '{parent.name}'",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(edge)
        logger.info("Added hierarchy edge %s -> %s", parent_team_id, child_team_id)
        return edge, entry

    def remove_edge(self, parent_team_id: int, child_team_id: int, actor_id: int) -> AuditEntry:
        edge = self.db.query(TeamHierarchy).filter(
            TeamHierarchy.parent_team_id == parent_team_id,
            TeamHierarchy.child_team_id == child_team_id,
        ).first()
        if edge is None:
            raise NotFoundError(
                "Hierarchy relationship not found",
                {"parent_team_id": parent_team_id, "child_team_id": child_team_id},
            )

        entry = AuditEntry(
            table_name="team_hierarchy",
            record_id=edge.id,
            action="DELETE",
            actor_id=actor_id,
            old_values={"parent_team_id": parent_team_id, "child_team_id": child_team_id},
            summary="Removed hierarchy relationship",
        )
        self.db.delete(edge)
        self.db.commit()
        logger.info("Removed hierarchy edge %s -> %s", parent_team_id, child_team_id)
        return entry

    def _teams_by_depth(self, depths: Dict[int, int]) -> List[Tuple[Team, int]]:
        if not depths:
            return []
        teams = self.db.query(Team).filter(Team.team_id.in_(list(depths))).all()
        return sorted(
            ((team, depths[team.team_id]) for team in teams),
            key=lambda pair: (pair[1], pair[0].name),
        )

    def ancestors(self, team_id: int) -> List[Tuple[Team, int]]:
        """Every team above team_id with its distance (0 = direct parent)."""
        self._get_team(team_id)
        _, parents = self._load_graph()
        return self._teams_by_depth(walk_levels(parents, team_id))

    def descendants(self, team_id: int) -> List[Tuple[Team, int]]:
        """Every team below team_id with its distance (0 = direct child)."""
        self._get_team(team_id)
        children, _ = self._load_graph()
        return self._teams_by_depth(walk_levels(children, team_id))

    def roots(self) -> List[Team]:
        child_ids = select(TeamHierarchy.child_team_id)
        return self.db.query(Team).filter(
            Team.team_id.notin_(child_ids)
        ).order_by(Team.name).all()

    def leaves(self) -> List[Team]:
        parent_ids = select(TeamHierarchy.parent_team_id)
        return self.db.query(Team).filter(
            Team.team_id.notin_(parent_ids)
        ).order_by(Team.name).all()

    def tree(self) -> List[dict]:
        """Flattened tree from the roots down, ordered by level then name."""
        children, _ = self._load_graph()
        teams = {team.team_id: team for team in self.db.query(Team).all()}
        placed: Dict[int, Tuple[int, Optional[int]]] = {}
        queue = deque((team.team_id, 0, None) for team in self.roots())
        while queue:
            team_id, level, parent_id = queue.popleft()
            if team_id in placed:
                continue
            placed[team_id] = (level, parent_id)
            for child_id in children.get(team_id, []):
                if child_id not in placed:
                    queue.append((child_id, level + 1, team_id))

        rows = [
            {
                "team_id": team_id,
                "name": teams[team_id].name,
                "description": teams[team_id].description,
                "parent_team_id": parent_id,
                "level": level,
            }
            for team_id, (level, parent_id) in placed.items()
            if team_id in teams
        ]
        return sorted(rows, key=lambda row: (row["level"], row["name"]))
