from datetime import datetime

import pytest
from sqlalchemy import text

from taskroster.models.task import Task
from taskroster.models.user import User
from taskroster.query import QueryError, parse_list_query, parse_select, project
from taskroster.repositories.sql import SqlStore


@pytest.fixture
def store(db):
    store = SqlStore(db)
    for i, (name, done) in enumerate([("alpha", False), ("beta", True), ("gamma", False)]):
        store.tasks.add(Task(name=name, deadline=datetime(2030, 1, i + 1), completed=done))
    store.commit()
    return store


def names(records):
    return [r.name for r in records]


def test_parse_defaults():
    query = parse_list_query(Task, default_limit=100, default_sort={"dateCreated": -1})
    assert query.where == {}
    assert query.sort == {"dateCreated": -1}
    assert query.limit == 100
    assert query.skip == 0
    assert query.count is False


def test_parse_explicit_sort_overrides_default():
    query = parse_list_query(Task, sort='{"name": 1}', default_sort={"dateCreated": -1})
    assert query.sort == {"name": 1}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"where": "{bad"},
        {"where": "[]"},
        {"where": '{"$where": "1"}'},
        {"where": '{"name": {"first": "a"}}'},
        {"where": '{"completed": {"$in": true}}'},
        {"where": '{"$or": []}'},
        {"where": '{"deadline": {"$gt": "not a date"}}'},
        {"sort": '{"name": 2}'},
        {"sort": '{"name": [1]}'},
        {"select": '{"name": 1, "deadline": 0}'},
        {"select": '{"name": "yes"}'},
        {"skip": -1},
    ],
)
def test_parse_rejects_bad_expressions(kwargs):
    with pytest.raises(QueryError):
        parse_list_query(Task, **kwargs)


@pytest.mark.parametrize(
    "where",
    [
        '{"pendingTasks": {"a": 1}}',
        '{"pendingTasks": {"$in": [{"a": 1}]}}',
        '{"pendingTasks": {"$all": [true]}}',
        '{"pendingTasks": null}',
    ],
)
def test_parse_rejects_bad_list_filters(where):
    with pytest.raises(QueryError):
        parse_list_query(User, where=where)


def test_parse_select_message():
    with pytest.raises(QueryError, match="Invalid JSON in select"):
        parse_select(Task, "nope")
    assert parse_select(Task, None) is None


def test_negative_limit_counts_as_positive():
    assert parse_list_query(Task, limit=-5).limit == 5


def test_project_inclusion_and_exclusion():
    doc = {"id": "1", "name": "a", "description": "d"}
    assert project(doc, None) == doc
    assert project(doc, {"name": 1}) == {"id": "1", "name": "a"}
    assert project(doc, {"name": 1, "_id": 0}) == {"name": "a"}
    assert project(doc, {"description": 0}) == {"id": "1", "name": "a"}
    assert project(doc, {"id": 1}) == {"id": "1"}
    assert project(doc, {"id": 0}) == {"name": "a", "description": "d"}


def test_find_with_filters(store):
    def find(**kwargs):
        return names(store.tasks.find(parse_list_query(Task, sort='{"name": 1}', **kwargs)))

    assert find() == ["alpha", "beta", "gamma"]
    assert find(where='{"completed": true}') == ["beta"]
    assert find(where='{"name": {"$ne": "beta"}}') == ["alpha", "gamma"]
    assert find(where='{"name": {"$nin": ["alpha", "beta"]}}') == ["gamma"]
    assert find(where='{"deadline": {"$gte": "2030-01-02T00:00:00Z"}}') == ["beta", "gamma"]
    assert find(where='{"$nor": [{"name": "alpha"}, {"completed": true}]}') == ["gamma"]
    assert find(where='{"description": {"$exists": false}}') == []
    assert find(skip=1, limit=1) == ["beta"]


def test_count_ignores_paging(store):
    assert store.tasks.count({"completed": False}) == 2
    assert store.tasks.count({}) == 3


def test_sort_directions(store):
    query = parse_list_query(Task, sort='{"deadline": "descending"}')
    assert names(store.tasks.find(query)) == ["gamma", "beta", "alpha"]


def test_invalid_ids_are_not_found(store):
    assert store.tasks.get("nope") is None
    assert store.tasks.get("A" * 32) is None
    assert store.users.get(None) is None


def test_pending_list_round_trip(store):
    user = store.users.add(User(name="Bob", email="bob@x.com"))
    user.set_pending_tasks(["t1", "t2", "t1", "t3"])
    store.users.save(user)
    assert user.pending_tasks == ["t1", "t2", "t3"]

    assert store.users.add_pending_task(user.id, "t2") is False
    assert store.users.add_pending_task(user.id, "t4") is True
    assert store.users.remove_pending_task(user.id, "t1") is True
    assert store.users.remove_pending_task(user.id, "t1") is False
    store.commit()

    fresh = store.users.get(user.id)
    assert fresh.pending_tasks == ["t2", "t3", "t4"]

    fresh.set_pending_tasks(["t4", "t2"])
    store.users.save(fresh)
    store.commit()
    assert store.users.get(user.id).pending_tasks == ["t4", "t2"]


def test_get_by_email_is_case_insensitive(store):
    user = store.users.add(User(name="Bob", email="bob@x.com"))
    assert store.users.get_by_email(" BOB@x.com ") is user
    assert store.users.get_by_email("bob@x.com", exclude_id=user.id) is None


def test_assign_skips_completed_tasks(store):
    tasks = {t.name: t for t in store.tasks.find(parse_list_query(Task))}
    ids = [t.id for t in tasks.values()]

    assert store.tasks.assign(ids, "u" * 32, "Bob") == 2
    store.commit()
    assert sorted(store.tasks.pending_ids_for_user("u" * 32)) == sorted(
        [tasks["alpha"].id, tasks["gamma"].id]
    )

    assert store.tasks.unassign([tasks["alpha"].id]) == 1
    store.commit()
    assert store.tasks.get(tasks["alpha"].id).assigned_user_name == "unassigned"


def test_pending_entries_cascade_at_the_database(store, db):
    user = store.users.add(User(name="Bob", email="bob@x.com"))
    user.set_pending_tasks(["t1", "t2"])
    store.users.save(user)
    store.commit()
    user_id = user.id
    db.expunge_all()

    # bypass the ORM cascade; the foreign key alone must clean up
    db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
    db.commit()

    remaining = db.execute(text("SELECT COUNT(*) FROM user_pending_tasks")).scalar()
    assert remaining == 0
