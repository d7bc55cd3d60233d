# tests/test_columns.py: Column create/update/reorder/delete through the API
import pytest

from ordering_engine import check_invariants
from tests.conftest import get_auth_headers, create_board, add_member, create_task, load_board


def _columns_url(board_id: str) -> str:
    return f"/api/boards/{board_id}/columns"


@pytest.mark.asyncio
async def test_create_column_appends(client, owner, db_session):
    board = await create_board(client, owner)
    resp = await client.post(
        _columns_url(board["id"]),
        json={"name": "Review", "color": "#8b5cf6", "limit": 4},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 201
    column = resp.json()
    assert column["order"] == 3
    assert column["type"] == "custom"
    assert column["isDefault"] is False
    assert column["limit"] == 4
    assert column["taskCount"] == 0

    stored = await load_board(db_session, board["id"])
    assert [c.name for c in stored.columns][-1] == "Review"
    assert check_invariants(stored) == []


@pytest.mark.asyncio
async def test_eleventh_column_rejected(client, owner, db_session):
    board = await create_board(client, owner)
    headers = get_auth_headers(owner)
    for i in range(7):
        resp = await client.post(_columns_url(board["id"]), json={"name": f"Extra {i}"}, headers=headers)
        assert resp.status_code == 201

    resp = await client.post(_columns_url(board["id"]), json={"name": "One too many"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "KB-ORDER-001"

    stored = await load_board(db_session, board["id"])
    assert len(stored.columns) == 10


@pytest.mark.asyncio
async def test_outsider_cannot_create_column(client, owner, outsider):
    board = await create_board(client, owner)
    resp = await client.post(_columns_url(board["id"]), json={"name": "Nope"}, headers=get_auth_headers(outsider))
    assert resp.status_code == 403


# ============================================================
# UPDATE
# ============================================================

@pytest.mark.asyncio
async def test_update_column_name_and_color(client, owner, member):
    board = await create_board(client, owner)
    await add_member(client, board["id"], owner, member)
    column_id = board["columns"][0]["id"]

    resp = await client.put(
        f"{_columns_url(board['id'])}/{column_id}",
        json={"name": "Backlog", "color": "#111111"},
        headers=get_auth_headers(member),
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Backlog"
    assert resp.json()["color"] == "#111111"
    assert resp.json()["type"] == "todo"


@pytest.mark.asyncio
async def test_default_column_type_is_protected(client, owner):
    board = await create_board(client, owner)
    done = board["columns"][2]
    resp = await client.put(
        f"{_columns_url(board['id'])}/{done['id']}",
        json={"type": "custom"},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "KB-ORDER-002"


@pytest.mark.asyncio
async def test_limit_below_task_count_rejected(client, owner, db_session):
    board = await create_board(client, owner)
    column_id = board["columns"][0]["id"]
    for title in ("a", "b", "c"):
        await create_task(client, owner, board["id"], column_id, title)

    url = f"{_columns_url(board['id'])}/{column_id}"
    resp = await client.put(url, json={"limit": 2}, headers=get_auth_headers(owner))
    assert resp.status_code == 400
    assert resp.json()["code"] == "KB-ORDER-004"

    resp = await client.put(url, json={"limit": 3}, headers=get_auth_headers(owner))
    assert resp.status_code == 200
    assert resp.json()["limit"] == 3

    for cleared in (0, None):
        resp = await client.put(url, json={"limit": cleared}, headers=get_auth_headers(owner))
        assert resp.status_code == 400
        assert resp.json()["code"] == "KB-ORDER-004"

    stored = await load_board(db_session, board["id"])
    assert stored.columns[0].limit == 3


@pytest.mark.asyncio
async def test_limit_cleared_on_empty_column(client, owner, db_session):
    board = await create_board(client, owner, columns=[{"name": "Intake", "limit": 2}])
    column_id = board["columns"][0]["id"]

    url = f"{_columns_url(board['id'])}/{column_id}"
    resp = await client.put(url, json={"limit": 0}, headers=get_auth_headers(owner))
    assert resp.status_code == 200
    assert resp.json()["limit"] is None

    stored = await load_board(db_session, board["id"])
    assert stored.columns[0].limit is None


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"limit": 500}, {"limit": -1}, {"name": "x" * 51}])
async def test_out_of_range_column_update_is_bad_request(client, owner, payload):
    board = await create_board(client, owner)
    url = f"{_columns_url(board['id'])}/{board['columns'][0]['id']}"
    resp = await client.put(url, json=payload, headers=get_auth_headers(owner))
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Request validation failed"
    assert body["detail"][0]["loc"][0] == "body"


# ============================================================
# REORDER
# ============================================================

@pytest.mark.asyncio
async def test_reorder_column(client, owner, db_session):
    board = await create_board(client, owner)
    done_id = board["columns"][2]["id"]

    resp = await client.put(
        f"{_columns_url(board['id'])}/reorder",
        json={"columnId": done_id, "newOrder": 0},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 200
    assert resp.json() == {"message": "Column order updated"}

    stored = await load_board(db_session, board["id"])
    assert [c.name for c in stored.columns] == ["Done", "To Do", "In Progress"]
    assert check_invariants(stored) == []


@pytest.mark.asyncio
async def test_reorder_out_of_range(client, owner):
    board = await create_board(client, owner)
    resp = await client.put(
        f"{_columns_url(board['id'])}/reorder",
        json={"columnId": board["columns"][0]["id"], "newOrder": 3},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "KB-ORDER-003"


@pytest.mark.asyncio
async def test_reorder_unknown_column(client, owner):
    board = await create_board(client, owner)
    resp = await client.put(
        f"{_columns_url(board['id'])}/reorder",
        json={"columnId": "nope", "newOrder": 0},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 404


# ============================================================
# DELETE
# ============================================================

@pytest.mark.asyncio
async def test_delete_default_column_leaves_board_unchanged(client, owner, db_session):
    board = await create_board(client, owner)
    in_progress = board["columns"][1]
    before = (await load_board(db_session, board["id"])).to_document()

    resp = await client.delete(f"{_columns_url(board['id'])}/{in_progress['id']}", headers=get_auth_headers(owner))
    assert resp.status_code == 400
    assert resp.json()["code"] == "KB-ORDER-002"

    after = (await load_board(db_session, board["id"])).to_document()
    assert after["columns"] == before["columns"]


@pytest.mark.asyncio
async def test_delete_column_drops_tasks_and_shifts_orders(client, owner, db_session):
    board = await create_board(client, owner)
    todo_id = board["columns"][0]["id"]
    await create_task(client, owner, board["id"], todo_id, "goes away")

    resp = await client.delete(f"{_columns_url(board['id'])}/{todo_id}", headers=get_auth_headers(owner))
    assert resp.status_code == 200

    stored = await load_board(db_session, board["id"])
    assert [c.name for c in stored.columns] == ["In Progress", "Done"]
    assert [c.order for c in stored.columns] == [0, 1]
    assert stored.task_count() == 0


@pytest.mark.asyncio
async def test_member_cannot_delete_column(client, owner, member):
    board = await create_board(client, owner)
    await add_member(client, board["id"], owner, member)
    resp = await client.delete(
        f"{_columns_url(board['id'])}/{board['columns'][0]['id']}",
        headers=get_auth_headers(member),
    )
    assert resp.status_code == 403
