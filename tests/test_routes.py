from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from codevis.api.routes import build_repository_router
from codevis.config import AppConfig
from codevis.config import StorageConfig
from codevis.errors import StorageError
from codevis.ingestion.coordinator import IngestionCoordinator
from codevis.main import build_app
from codevis.parsing.dispatcher import ParseDispatcher
from codevis.parsing.job import ParseJob
from codevis.parsing.models import FileModel
from codevis.parsing.models import FunctionModel
from codevis.storage.memory import InMemoryRepositoryStore
from codevis.storage.models import RepositoryRecord


class FakeCloner:
    async def clone(self, uri: str, repo_id: str) -> str:
        return f"/repos/{repo_id}"


class FakeAnalyzer:
    async def analyze(self, path: str, language: str) -> FileModel:
        return FileModel(
            fileName=path,
            parsed=True,
            linesInFile=8,
            functions=[FunctionModel(name="main", startLine=6, endLine=8)],
        )


class ListFailingStore(InMemoryRepositoryStore):
    def list_all(self) -> list[RepositoryRecord]:
        raise StorageError("connection refused")


def _client(store: InMemoryRepositoryStore, root: Path) -> TestClient:
    dispatcher = ParseDispatcher(analyzer=FakeAnalyzer(), repo_root=str(root), batch_size=2)
    app = FastAPI()
    app.include_router(
        build_repository_router(
            store=store,
            coordinator=IngestionCoordinator(store=store, cloner=FakeCloner()),
            parse_job=ParseJob(store=store, dispatcher=dispatcher, repo_root=str(root)),
            event_queue_size=16,
        )
    )
    return TestClient(app)


def _close_payload(exc: WebSocketDisconnect) -> dict[str, object]:
    assert exc.code == 1000
    return json.loads(exc.reason)


def test_submit_repository_streams_cloning_then_created(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    client = _client(store, tmp_path)

    with client.websocket_connect("/repo/add") as ws:
        ws.send_text(json.dumps({"uri": "git@example.com:u/r.git"}))
        first = ws.receive_json()
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    repo_id = store.list_all()[0].id
    assert first == {"statuscode": 202, "statustext": "Accepted", "body": {"id": repo_id, "status": "Cloning"}}
    assert _close_payload(exc_info.value) == {
        "statuscode": 201,
        "statustext": "Created",
        "body": {"id": repo_id, "status": "Done"},
    }


def test_submit_invalid_uri_closes_with_bad_request(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    client = _client(store, tmp_path)

    with client.websocket_connect("/repo/add") as ws:
        ws.send_text(json.dumps({"uri": "not-a-repo"}))
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    payload = _close_payload(exc_info.value)
    assert payload["statuscode"] == 400
    assert payload["body"] == {"id": "", "status": "Expected URI to git repository"}
    assert store.list_all() == []


def test_submit_duplicate_closes_with_conflict(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    existing = store.insert("git@example.com:u/r.git")
    client = _client(store, tmp_path)

    with client.websocket_connect("/repo/add") as ws:
        ws.send_text(json.dumps({"uri": "git@example.com:u/r.git"}))
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    payload = _close_payload(exc_info.value)
    assert payload["statuscode"] == 409
    assert payload["body"] == {"id": existing.id, "status": "Repository already exists"}


@pytest.mark.parametrize("message", ["{not json", json.dumps({"url": "x.git"})])
def test_submit_invalid_message(tmp_path: Path, message: str) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)

    with client.websocket_connect("/repo/add") as ws:
        ws.send_text(message)
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    payload = _close_payload(exc_info.value)
    assert payload["statuscode"] == 400
    assert payload["body"]["status"] == "Invalid message"


def test_submit_binary_message_is_rejected(tmp_path: Path) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)

    with client.websocket_connect("/repo/add") as ws:
        ws.send_bytes(b'{"uri": "git@example.com:u/r.git"}')
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert _close_payload(exc_info.value)["body"]["status"] == "Expected TextMessage"


def test_parse_repository_streams_progress_and_result(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    record = store.insert("https://example.com/u/r.git")
    repo = tmp_path / record.id
    repo.mkdir()
    for name in ["A.java", "b.txt", "c.cpp"]:
        (repo / name).write_text("x\n")
    client = _client(store, tmp_path)

    with client.websocket_connect(f"/repo/{record.id}/initial/") as ws:
        accepted = ws.receive_json()
        snapshots = [ws.receive_json(), ws.receive_json()]
        final = ws.receive_json()
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert accepted == {"statuscode": 202, "statustext": "Accepted", "body": {"id": record.id, "status": "Parsing"}}
    assert [s["body"]["currentFile"] for s in snapshots] == ["A.java", "c.cpp"]
    assert final["statuscode"] == 200
    assert final["body"]["status"] == "Done"
    assert (final["body"]["parsedFileCount"], final["body"]["skippedFileCount"], final["body"]["fileCount"]) == (2, 1, 3)
    assert [f["fileName"] for f in final["body"]["result"]["files"]] == [
        f"{record.id}/A.java",
        f"{record.id}/b.txt",
        f"{record.id}/c.cpp",
    ]
    assert exc_info.value.code == 1000
    assert exc_info.value.reason == "Done"


def test_parse_unknown_repository_closes_not_found(tmp_path: Path) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)

    with client.websocket_connect("/repo/unknown/initial/") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert _close_payload(exc_info.value) == {
        "statuscode": 404,
        "statustext": "Not Found",
        "body": {"id": "unknown", "status": "Failed"},
    }


def test_parse_long_unknown_id_sends_not_found_before_closing(tmp_path: Path) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)
    repo_id = "f" * 200

    with client.websocket_connect(f"/repo/{repo_id}/initial/") as ws:
        payload = json.loads(ws.receive_text())
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert payload == {
        "statuscode": 404,
        "statustext": "Not Found",
        "body": {"id": repo_id, "status": "Failed"},
    }
    assert exc_info.value.code == 1000
    assert exc_info.value.reason == "Failed"


def test_parse_without_clone_closes_internal_error(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    record = store.insert("https://example.com/u/r.git")
    client = _client(store, tmp_path)

    with client.websocket_connect(f"/repo/{record.id}/initial/") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_text()

    assert _close_payload(exc_info.value)["statuscode"] == 500


def test_list_repositories(tmp_path: Path) -> None:
    store = InMemoryRepositoryStore()
    a = store.insert("https://example.com/u/a.git")
    b = store.insert("https://example.com/u/b.git")
    client = _client(store, tmp_path)

    response = client.get("/repo/list")

    assert response.status_code == 200
    assert response.json() == [{"id": a.id, "uri": a.uri}, {"id": b.id, "uri": b.uri}]


def test_list_repositories_storage_error(tmp_path: Path) -> None:
    client = _client(ListFailingStore(), tmp_path)
    assert client.get("/repo/list").status_code == 500


@pytest.mark.parametrize("path", ["/repo/list", "/repo/add", "/repo/abc/initial/"])
def test_unsupported_methods_are_rejected(tmp_path: Path, path: str) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)
    assert client.post(path).status_code == 405
    assert client.delete(path).status_code == 405


@pytest.mark.parametrize("path", ["/repo/add", "/repo/abc/initial/"])
def test_plain_get_on_websocket_endpoint_is_bad_request(tmp_path: Path, path: str) -> None:
    client = _client(InMemoryRepositoryStore(), tmp_path)
    assert client.get(path).status_code == 400


def test_build_app_with_injected_store(tmp_path: Path) -> None:
    config = AppConfig(storage=StorageConfig(repo_root=str(tmp_path), database_dsn="postgresql://unused"))
    app = build_app(config, store=InMemoryRepositoryStore())

    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/repo/list").json() == []
        response = client.get("/repo/list", headers={"Origin": "http://viewer.example"})
        assert response.headers["access-control-allow-origin"] == "*"
