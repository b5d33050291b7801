# tests/test_task_extra.py
# PURPOSE: listing filters, search, pagination metadata and clamping,
# priority ordering, statistics and bulk operations.

import math
from datetime import UTC, datetime, timedelta

from conftest import create_task


def _day(offset: int) -> str:
    return (datetime.now(UTC) + timedelta(days=offset)).date().isoformat()


def _list(client, headers, query: str = ""):
    r = client.get(f"/api/tasks{query}", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def test_ordering_priority_then_newest(client, auth_headers):
    low = create_task(client, auth_headers, "low", priority="low")
    high_old = create_task(client, auth_headers, "high-old", priority="high")
    medium = create_task(client, auth_headers, "medium", priority="medium")
    high_new = create_task(client, auth_headers, "high-new", priority="high")

    ids = [t["id"] for t in _list(client, auth_headers)["data"]]
    assert ids == [high_new["id"], high_old["id"], medium["id"], low["id"]]

    # identical input, identical output
    assert [t["id"] for t in _list(client, auth_headers)["data"]] == ids


def test_filter_by_completed_and_priority(client, auth_headers):
    create_task(client, auth_headers, "done high", priority="high", completed=True)
    create_task(client, auth_headers, "open high", priority="high")
    create_task(client, auth_headers, "open low", priority="low")

    done = _list(client, auth_headers, "?completed=true")
    assert [t["title"] for t in done["data"]] == ["done high"]

    open_ = _list(client, auth_headers, "?completed=false")
    assert {t["title"] for t in open_["data"]} == {"open high", "open low"}

    open_high = _list(client, auth_headers, "?completed=false&priority=high")
    assert [t["title"] for t in open_high["data"]] == ["open high"]
    assert open_high["pagination"]["total"] == 1


def test_invalid_filters_are_rejected(client, auth_headers):
    r = client.get("/api/tasks?priority=urgent", headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid priority filter"

    r2 = client.get("/api/tasks?completed=maybe", headers=auth_headers)
    assert r2.status_code == 400


def test_search_title_or_description_case_insensitive(client, auth_headers):
    create_task(client, auth_headers, "Hello world", description="greeting")
    create_task(client, auth_headers, "Buy milk", description="shopping")
    create_task(client, auth_headers, "Call mom", description="say HELLO")

    titles = {t["title"] for t in _list(client, auth_headers, "?search=hello")["data"]}
    assert titles == {"Hello world", "Call mom"}

    # surrounding whitespace is trimmed before matching
    titles = {t["title"] for t in _list(client, auth_headers, "?search=%20%20milk%20")["data"]}
    assert titles == {"Buy milk"}


def test_short_search_is_ignored(client, auth_headers):
    create_task(client, auth_headers, "Alpha")
    create_task(client, auth_headers, "Beta")

    body = _list(client, auth_headers, "?search=%20a%20")
    assert body["pagination"]["total"] == 2


def test_search_wildcards_match_literally(client, auth_headers):
    create_task(client, auth_headers, "100% done")
    create_task(client, auth_headers, "1000 lines")

    titles = [t["title"] for t in _list(client, auth_headers, "?search=0%25")["data"]]
    assert titles == ["100% done"]


def test_pagination_metadata(client, auth_headers):
    for i in range(7):
        create_task(client, auth_headers, f"Task {i}", priority="high" if i % 2 else "low")

    first = _list(client, auth_headers, "?page=1&limit=3")
    p = first["pagination"]
    assert p == {
        "page": 1,
        "limit": 3,
        "total": 7,
        "totalPages": 3,
        "hasNext": True,
        "hasPrev": False,
    }
    assert len(first["data"]) == 3

    last = _list(client, auth_headers, "?page=3&limit=3")
    assert len(last["data"]) == 1
    assert last["pagination"]["hasNext"] is False
    assert last["pagination"]["hasPrev"] is True

    # pages partition the full listing
    seen = []
    for page in (1, 2, 3):
        seen += [t["id"] for t in _list(client, auth_headers, f"?page={page}&limit=3")["data"]]
    everything = [t["id"] for t in _list(client, auth_headers, "?limit=100")["data"]]
    assert seen == everything


def test_total_matches_filter_not_page(client, auth_headers):
    for i in range(5):
        create_task(client, auth_headers, f"high {i}", priority="high")
    create_task(client, auth_headers, "low one", priority="low")

    body = _list(client, auth_headers, "?priority=high&limit=2")
    assert body["pagination"]["total"] == 5
    assert body["pagination"]["totalPages"] == math.ceil(5 / 2)
    assert all(t["priority"] == "high" for t in body["data"])


def test_out_of_range_paging_is_clamped(client, auth_headers):
    for i in range(12):
        create_task(client, auth_headers, f"T{i}")

    big = _list(client, auth_headers, "?limit=500")
    assert big["pagination"]["limit"] == 10
    assert len(big["data"]) == 10

    zero = _list(client, auth_headers, "?page=0")
    assert zero["pagination"]["page"] == 1
    assert zero["pagination"]["hasPrev"] is False

    junk = _list(client, auth_headers, "?page=abc&limit=-4")
    assert junk["pagination"]["page"] == 1
    assert junk["pagination"]["limit"] == 10


def test_huge_page_number_returns_empty_page(client, auth_headers):
    create_task(client, auth_headers, "Only one")

    body = _list(client, auth_headers, "?page=10000000000000000000")
    assert body["success"] is True
    assert body["data"] == []
    assert body["pagination"]["total"] == 1
    assert body["pagination"]["hasNext"] is False
    assert body["pagination"]["hasPrev"] is True
    assert body["pagination"]["page"] < 2**63


def test_empty_listing_is_not_an_error(client, auth_headers):
    body = _list(client, auth_headers)
    assert body["success"] is True
    assert body["data"] == []
    assert body["message"] == "No tasks yet"
    assert body["pagination"]["total"] == 0
    assert body["pagination"]["totalPages"] == 0
    assert body["pagination"]["hasNext"] is False

    create_task(client, auth_headers, "Something")
    filtered = _list(client, auth_headers, "?completed=true")
    assert filtered["data"] == []
    assert filtered["message"] == "No tasks match the given filters"


def test_stats_empty_shape(client, auth_headers):
    r = client.get("/api/tasks/stats", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {
        "total": 0,
        "completed": 0,
        "pending": 0,
        "byPriority": {"low": 0, "medium": 0, "high": 0},
    }


def test_scenario_listing_and_stats(client, auth_headers, other_headers):
    c = create_task(client, auth_headers, "C", priority="high", due_date=_day(-1))
    create_task(client, auth_headers, "B", priority="low", completed=True)
    a = create_task(client, auth_headers, "A", priority="high", due_date=_day(5))
    # another owner's data never leaks into the numbers
    create_task(client, other_headers, "X", priority="medium")

    pending = _list(client, auth_headers, "?completed=false")["data"]
    # both high; A was created after C so it comes first
    assert [t["id"] for t in pending] == [a["id"], c["id"]]

    stats = client.get("/api/tasks/stats", headers=auth_headers).json()["data"]
    assert stats == {
        "total": 3,
        "completed": 1,
        "pending": 2,
        "byPriority": {"low": 1, "medium": 0, "high": 2},
    }


def test_delete_completed_only_touches_caller(client, auth_headers, other_headers):
    create_task(client, auth_headers, "done 1", completed=True)
    create_task(client, auth_headers, "done 2", completed=True)
    keep = create_task(client, auth_headers, "open")
    theirs = create_task(client, other_headers, "their done", completed=True)

    r = client.delete("/api/tasks/completed", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"deleted": 2}

    ids = [t["id"] for t in _list(client, auth_headers)["data"]]
    assert ids == [keep["id"]]
    assert client.get(f"/api/tasks/{theirs['id']}", headers=other_headers).status_code == 200

    again = client.delete("/api/tasks/completed", headers=auth_headers)
    assert again.json()["data"] == {"deleted": 0}


def test_mark_all_completed(client, auth_headers, other_headers):
    create_task(client, auth_headers, "one")
    create_task(client, auth_headers, "two")
    create_task(client, auth_headers, "three", completed=True)
    theirs = create_task(client, other_headers, "not mine")

    r = client.put("/api/tasks/mark-all-completed", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"updated": 2}

    stats = client.get("/api/tasks/stats", headers=auth_headers).json()["data"]
    assert stats["completed"] == 3
    assert stats["pending"] == 0

    r_theirs = client.get(f"/api/tasks/{theirs['id']}", headers=other_headers)
    assert r_theirs.json()["data"]["completed"] is False
