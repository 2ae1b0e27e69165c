import logging
from datetime import datetime, timezone

from portal.db.gateway import PortalGateway
from portal.errors import Forbidden, InvalidTransition
from portal.models.enums import QueryDecision, QueryStatus, Role
from portal.models.query import Query
from portal.models.user import User, new_id
from portal.workflow.engine import apply_transition, check_version, load_entity

logger = logging.getLogger(__name__)

def submit_query(gw: PortalGateway, actor: User, text: str) -> Query:
    if actor.role == Role.admin:
        raise Forbidden("Admins answer queries, they do not submit them")
    query = gw.add(Query(id=new_id(), user_id=actor.id, text=text.strip(), status=QueryStatus.pending))
    logger.info(f"Query {query.id} submitted by {actor.id}")
    return query

def resolve_query(gw: PortalGateway, admin: User, query_id: str, decision: QueryDecision,
                  response: str | None = None, expected_version: int | None = None) -> Query:
    """Close a pending query as resolved or rejected, optionally with a response."""
    if admin.role != Role.admin:
        raise Forbidden("Admin access required")
    query = load_entity(gw, Query, query_id)
    check_version(query, expected_version)
    if query.status != QueryStatus.pending:
        raise InvalidTransition("Query has already been answered")

    values = {
        "status": QueryStatus(decision.value),
        "response": (response or "").strip() or None,
        "resolved_by": admin.id,
        "resolved_at": datetime.now(timezone.utc).replace(tzinfo=None),
    }
    query = apply_transition(gw, Query, query_id, values,
                             expected={"status": QueryStatus.pending},
                             expected_version=expected_version)
    logger.info(f"Query {query_id} {decision.value} by {admin.id}")
    return query

def pending_count(queries) -> int:
    return sum(1 for q in queries if q.status == QueryStatus.pending)
