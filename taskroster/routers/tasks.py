import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from taskroster.config import TASK_DEFAULT_LIMIT
from taskroster.models.task import Task, UNASSIGNED
from taskroster.query import parse_list_query, parse_select, project
from taskroster.repositories.base import Store
from taskroster.repositories.sql import get_store
from taskroster.schemas.task import TaskIn
from taskroster.sync import Synchronizer
from taskroster.utils.dates import to_utc_naive
from taskroster.utils.ids import is_valid_id
from taskroster.utils.responses import ok, created, no_content, bad_request, not_found

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

TASK_NOT_FOUND = "Task not found"
FIELDS_REQUIRED = "Task name and deadline are required"


def _require_fields(task: TaskIn):
    if not task.name or task.deadline is None:
        raise bad_request(FIELDS_REQUIRED)


def _assignee_name(store: Store, assigned_user: str, supplied: Optional[str], prefer_supplied: bool) -> str:
    """Name cached on the task for its assignee.

    On create the stored user's name wins; on replace a name sent by the
    client wins. Either way an unknown user falls back to the other source.
    """
    if not assigned_user:
        return UNASSIGNED
    if prefer_supplied and supplied:
        return supplied
    user = store.users.get(assigned_user)
    if user is not None:
        return user.name
    return supplied or UNASSIGNED


@router.get("")
def list_tasks(
    where: Optional[str] = Query(None, description="JSON filter, e.g. {\"completed\": false}"),
    sort: Optional[str] = Query(None, description="JSON sort, e.g. {\"deadline\": 1}"),
    select: Optional[str] = Query(None, description="JSON projection, e.g. {\"name\": 1}"),
    skip: Optional[int] = None,
    limit: Optional[int] = None,
    count: Optional[str] = None,
    store: Store = Depends(get_store),
):
    query = parse_list_query(
        Task, where=where, sort=sort, select=select, skip=skip, limit=limit, count=count,
        default_limit=TASK_DEFAULT_LIMIT, default_sort={"dateCreated": -1},
    )
    if query.count:
        return ok(store.tasks.count(query.where))
    return ok([project(t.to_dict(), query.select) for t in store.tasks.find(query)])


@router.post("", status_code=201)
def create_task(task: TaskIn, store: Store = Depends(get_store)):
    _require_fields(task)
    assigned_user = task.assigned_user or ""
    new = Task(
        name=task.name,
        description=task.description or "",
        deadline=to_utc_naive(task.deadline),
        completed=bool(task.completed),
        assigned_user=assigned_user,
        assigned_user_name=_assignee_name(store, assigned_user, task.assigned_user_name, prefer_supplied=False),
    )
    store.tasks.add(new)
    Synchronizer(store).task_written(new)
    store.commit()
    logger.info("created task=%s assigned_user=%r", new.id, new.assigned_user)
    return created(new.to_dict())


@router.get("/{task_id}")
def get_task(task_id: str, select: Optional[str] = None, store: Store = Depends(get_store)):
    if not is_valid_id(task_id):
        raise not_found(TASK_NOT_FOUND)
    projection = parse_select(Task, select)
    task = store.tasks.get(task_id)
    if task is None:
        raise not_found(TASK_NOT_FOUND)
    return ok(project(task.to_dict(), projection))


@router.put("/{task_id}")
def replace_task(task_id: str, task: TaskIn, store: Store = Depends(get_store)):
    if not is_valid_id(task_id):
        raise not_found(TASK_NOT_FOUND)
    _require_fields(task)

    current = store.tasks.get(task_id)
    if current is None:
        raise not_found(TASK_NOT_FOUND)

    previous_assigned_user = current.assigned_user
    current.name = task.name
    current.description = task.description or ""
    current.deadline = to_utc_naive(task.deadline)
    current.completed = bool(task.completed)
    current.assigned_user = task.assigned_user or ""
    current.assigned_user_name = _assignee_name(
        store, current.assigned_user, task.assigned_user_name, prefer_supplied=True
    )
    store.tasks.save(current)

    Synchronizer(store).task_written(current, previous_assigned_user)
    store.commit()
    logger.info(
        "replaced task=%s assigned_user=%r (was %r) completed=%s",
        task_id, current.assigned_user, previous_assigned_user, current.completed,
    )
    return ok(current.to_dict())


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: str, store: Store = Depends(get_store)):
    task = store.tasks.get(task_id)
    if task is None:
        raise not_found(TASK_NOT_FOUND)
    Synchronizer(store).task_deleted(task)
    store.tasks.delete(task)
    store.commit()
    logger.info("deleted task=%s", task_id)
    return no_content()
