import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError

from taskroster.models.user import User
from taskroster.query import parse_list_query, parse_select, project
from taskroster.repositories.base import Store
from taskroster.repositories.sql import get_store
from taskroster.schemas.user import UserIn
from taskroster.sync import Synchronizer
from taskroster.utils.ids import is_valid_id
from taskroster.utils.responses import ok, created, no_content, bad_request, not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

USER_NOT_FOUND = "User not found"
FIELDS_REQUIRED = "Name and email are required"
EMAIL_TAKEN = "A user with this email already exists"


def _require_fields(user: UserIn):
    if not user.name or not user.email:
        raise bad_request(FIELDS_REQUIRED)


@router.get("")
def list_users(
    where: Optional[str] = Query(None, description="JSON filter, e.g. {\"pendingTasks\": {\"$size\": 0}}"),
    sort: Optional[str] = Query(None, description="JSON sort, e.g. {\"name\": 1}"),
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"email\": 1}"),
    skip: Optional[int] = None,
    limit: Optional[int] = None,
    count: Optional[str] = None,
    store: Store = Depends(get_store),
):
    # no default page size or ordering for users
    query = parse_list_query(User, where=where, sort=sort, select=select, skip=skip, limit=limit, count=count)
    if query.count:
        return ok(store.users.count(query.where))
    return ok([project(u.to_dict(), query.select) for u in store.users.find(query)])


@router.post("", status_code=201)
def create_user(user: UserIn, store: Store = Depends(get_store)):
    _require_fields(user)
    if store.users.get_by_email(user.email):
        raise bad_request(EMAIL_TAKEN)

    new = User(name=user.name, email=user.email)
    new.set_pending_tasks(user.pending_tasks or [])
    try:
        store.users.add(new)
    except IntegrityError:
        # lost a race on the unique email index
        store.rollback()
        raise bad_request(EMAIL_TAKEN)

    # a new user owns nothing yet, so there is nothing to release
    Synchronizer(store).user_written(new, replaced=False)
    store.commit()
    logger.info("created user=%s pending=%d", new.id, len(new.pending_entries))
    return created(new.to_dict())


@router.get("/{user_id}")
def get_user(user_id: str, select: Optional[str] = None, store: Store = Depends(get_store)):
    if not is_valid_id(user_id):
        raise not_found(USER_NOT_FOUND)
    projection = parse_select(User, select)
    user = store.users.get(user_id)
    if user is None:
        raise not_found(USER_NOT_FOUND)
    return ok(project(user.to_dict(), projection))


@router.put("/{user_id}")
def replace_user(user_id: str, user: UserIn, store: Store = Depends(get_store)):
    if not is_valid_id(user_id):
        raise not_found(USER_NOT_FOUND)
    _require_fields(user)
    if store.users.get_by_email(user.email, exclude_id=user_id):
        raise bad_request(EMAIL_TAKEN)

    current = store.users.get(user_id)
    if current is None:
        raise not_found(USER_NOT_FOUND)

    current.name = user.name
    current.email = user.email
    current.set_pending_tasks(user.pending_tasks or [])
    try:
        store.users.save(current)
    except IntegrityError:
        store.rollback()
        raise bad_request(EMAIL_TAKEN)

    Synchronizer(store).user_written(current)
    store.commit()
    logger.info("replaced user=%s pending=%d", user_id, len(current.pending_entries))
    return ok(current.to_dict())


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: str, store: Store = Depends(get_store)):
    user = store.users.get(user_id)
    if user is None:
        raise not_found(USER_NOT_FOUND)
    Synchronizer(store).user_deleted(user)
    store.users.delete(user)
    store.commit()
    logger.info("deleted user=%s", user_id)
    return no_content()
