from fastapi import APIRouter, Depends, status
from portal.auth.deps import get_gateway, get_current_user
from portal.db.gateway import PortalGateway
from portal.errors import Forbidden, NotFound
from portal.models.enums import Role
from portal.models.query import Query
from portal.models.user import User
from portal.queries.service import pending_count, resolve_query, submit_query
from portal.schemas.query import QueryCountOut, QueryIn, QueryOut, QueryResolveIn
from portal.visibility.resolver import find_visible, visible_queries

router = APIRouter(prefix="/queries", tags=["queries"])

@router.post("", response_model=QueryOut, status_code=status.HTTP_201_CREATED)
def submit(body: QueryIn, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return submit_query(gw, user, body.text)

@router.get("", response_model=list[QueryOut])
def list_queries(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return visible_queries(gw.list(Query), user)

@router.get("/pending/count", response_model=QueryCountOut)
def count_pending(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    if user.role != Role.admin:
        raise Forbidden("Admin access required")
    return {"pending": pending_count(gw.list(Query))}

@router.get("/{query_id}", response_model=QueryOut)
def get_query(query_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    query = find_visible(visible_queries(gw.list(Query), user), query_id)
    if query is None:
        raise NotFound("Query not found")
    return query

@router.put("/{query_id}", response_model=QueryOut)
def answer(query_id: str, body: QueryResolveIn, gw: PortalGateway = Depends(get_gateway),
           user: User = Depends(get_current_user)):
    return resolve_query(gw, user, query_id, body.status, body.response,
                         expected_version=body.expected_version)
