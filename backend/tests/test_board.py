"""
Tests for board.py - optimistic client against the real app and a mock transport.
"""
import httpx
import json
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from board import DEFAULT_TIMEOUT, TaskBoard
from database import create_task_db, get_task_db
from task_tree import find_task

STAMP = "2026-10-16T12:00:00"


def task_json(task_id, status="TODO", priority="MEDIUM", parent_id=None):
    return {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": None,
        "status": status,
        "priority": priority,
        "dueDate": None,
        "createdAt": STAMP,
        "updatedAt": STAMP,
        "parentId": parent_id,
        "aiSuggestion": None,
        "roadmap": None,
    }


class TestBoardAgainstApp:
    """TaskBoard talking to the FastAPI app through TestClient."""

    @pytest.fixture
    def board(self, test_db, app_client):
        create_task_db("p", "Parent", priority="HIGH")
        create_task_db("c", "Child", priority="LOW", parent_id="p")
        create_task_db("q", "Other", priority="LOW")
        board = TaskBoard(app_client)
        assert board.refresh()
        return board

    def test_refresh_builds_tree(self, board):
        tasks = board.state.tasks
        assert [t.id for t in tasks] == ["q", "p"]
        assert [t.id for t in tasks[1].subtasks] == ["c"]

    def test_toggle_subtask(self, board):
        assert board.toggle("c") is True

        assert get_task_db("c").status == "DONE"
        assert find_task(board.state.tasks, "c").status == "DONE"
        assert board.state.pending == 0

        board.toggle("c")
        assert get_task_db("c").status == "TODO"

    def test_delete(self, board):
        assert board.delete("q") is True

        assert get_task_db("q") is None
        assert [t.id for t in board.state.tasks] == ["p"]

    def test_visible_filters_top_level_only(self, board):
        assert [t.id for t in board.visible("HIGH")] == ["p"]
        assert [t.id for t in board.visible("LOW")] == ["q"]

    def test_add_manual(self, board):
        task = board.add_manual("Water plants")

        assert task.title == "Water plants"
        assert find_task(board.state.tasks, task.id) is not None

    def test_add_through_generate(self, board, fake_model):
        fake_model.reply = json.dumps({"action": "CREATE", "title": "Call the bank", "priority": "HIGH"})

        task = board.add("call the bank asap", timezone="Europe/Paris")

        assert task.priority == "HIGH"
        assert "(User Timezone: Europe/Paris)" in fake_model.prompts[0]
        assert [t.id for t in board.visible("HIGH")] == [task.id, "p"]

    def test_add_failure_returns_none(self, board, fake_model):
        fake_model.reply = "not json"
        assert board.add("whatever") is None
        assert len(board.state.tasks) == 2


class TestConnect:
    def test_connect_builds_client(self):
        with TaskBoard.connect("http://tasks.test", timeout=5.0) as board:
            assert board.http.base_url.host == "tasks.test"
            assert board.http.timeout.read == 5.0
            assert board.state.tasks == []
        assert board.http.is_closed

    def test_connect_default_timeout(self):
        with TaskBoard.connect("http://tasks.test") as board:
            assert board.http.timeout.read == DEFAULT_TIMEOUT


class FlakyServer:
    """Serves a fixed task list; every mutation fails with a 500."""

    def __init__(self, tasks):
        self.tasks = tasks
        self.requests = []
        self.snapshots = []
        self.board = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if request.method == "GET":
            return httpx.Response(200, json=self.tasks)
        # State the client shows while the call is in flight
        self.snapshots.append(self.board.state.tasks)
        return httpx.Response(500, json={"detail": "Database operation failed"})


@pytest.fixture
def flaky():
    server = FlakyServer([task_json("a", priority="HIGH"), task_json("a1", parent_id="a"), task_json("b")])
    board = TaskBoard(httpx.Client(transport=httpx.MockTransport(server), base_url="http://tasks.test"))
    server.board = board
    board.refresh()
    return server, board


class TestBoardFailures:
    def test_toggle_is_optimistic_then_refreshed(self, flaky):
        server, board = flaky

        assert board.toggle("a1") is False

        # Shown as DONE before the server answered
        assert find_task(server.snapshots[0], "a1").status == "DONE"
        # Refresh restored server truth
        assert find_task(board.state.tasks, "a1").status == "TODO"
        assert server.requests[-2:] == [("PUT", "/tasks"), ("GET", "/tasks")]
        assert board.state.pending == 0

    def test_delete_is_optimistic_then_refreshed(self, flaky):
        server, board = flaky

        assert board.delete("b") is False

        assert [t.id for t in server.snapshots[0]] == ["a"]
        assert [t.id for t in board.state.tasks] == ["a", "b"]
        assert server.requests[-2:] == [("DELETE", "/tasks"), ("GET", "/tasks")]

    def test_toggle_unknown_task_only_refreshes(self, flaky):
        server, board = flaky

        assert board.toggle("zzz") is False
        assert server.requests[-1] == ("GET", "/tasks")
        assert ("PUT", "/tasks") not in server.requests

    def test_failed_refresh_keeps_state(self, flaky):
        server, board = flaky
        before = board.state.tasks

        def down(request):
            raise httpx.ConnectError("connection refused", request=request)

        board.http = httpx.Client(transport=httpx.MockTransport(down), base_url="http://tasks.test")

        assert board.refresh() is False
        assert board.state.tasks == before
