import struct

import pytest
from fastapi.testclient import TestClient

from database import get_db, get_settings
from main import app


@pytest.fixture
def client(session_factory, data_dir, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    settings = get_settings()
    monkeypatch.setattr(settings, "data_dir", str(data_dir))
    monkeypatch.setattr(settings, "max_upload_size", 64 * 1024)

    app.dependency_overrides[get_db] = override_get_db
    # 不使用 with：不觸發 lifespan（不建立正式資料庫、不啟動 reclaimer）
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def turn_id(client):
    game = client.post("/games", json={"name": "demo", "players": ["alice", "bob"]}).json()
    round_obj = client.post("/rounds", json={"gameId": game["id"], "testClassId": "class-1"}).json()
    turns = client.post("/turns", json={"roundId": round_obj["id"], "players": ["alice"]}).json()
    return turns[0]["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_round_lifecycle(client):
    game = client.post("/games", json={"name": "demo", "players": []})
    assert game.status_code == 201
    game_id = game.json()["id"]

    created = [
        client.post("/rounds", json={"gameId": game_id, "testClassId": f"c{i}"}).json()
        for i in range(4)
    ]
    assert [r["order"] for r in created] == [1, 2, 3, 4]

    assert client.delete(f"/rounds/{created[1]['id']}").status_code == 204

    rounds = client.get("/rounds", params={"gameId": game_id}).json()
    assert [r["order"] for r in rounds] == [1, 2, 3]
    assert [r["id"] for r in rounds] == [created[0]["id"], created[2]["id"], created[3]["id"]]


def test_round_errors(client):
    assert client.post("/rounds", json={"gameId": 404, "testClassId": "x"}).status_code == 404
    assert client.get("/rounds/404").status_code == 404
    assert client.delete("/rounds/404").status_code == 404

    game_id = client.post("/games", json={"name": "demo"}).json()["id"]
    round_id = client.post("/rounds", json={"gameId": game_id, "testClassId": "x"}).json()["id"]
    client.post("/rounds", json={"gameId": game_id, "testClassId": "y"})

    response = client.put(f"/rounds/{round_id}", json={"order": 5})
    assert response.status_code == 400

    response = client.put(f"/rounds/{round_id}", json={"order": 2})
    assert response.status_code == 200
    assert response.json()["order"] == 2


def test_upload_and_download(client, turn_id, make_zip):
    payload = make_zip({"report.txt": "ok"})

    response = client.put(
        f"/turns/{turn_id}/files",
        content=payload,
        headers={"Content-Type": "application/zip"}
    )
    assert response.status_code == 200

    response = client.get(f"/turns/{turn_id}/files")
    assert response.status_code == 200
    assert response.content == payload
    assert response.headers["content-type"] == "application/zip"
    assert f'filename="{turn_id}.zip"' in response.headers["content-disposition"]


def test_upload_errors(client, turn_id, make_zip):
    headers = {"Content-Type": "application/zip"}

    assert client.put("/turns/999/files", content=make_zip(), headers=headers).status_code == 404
    assert client.put(f"/turns/{turn_id}/files", content=b"garbage", headers=headers).status_code == 422
    assert client.put(f"/turns/{turn_id}/files", content=b"", headers=headers).status_code == 400

    too_big = make_zip({"big.bin": b"\0" * (128 * 1024)})
    assert client.put(f"/turns/{turn_id}/files", content=too_big, headers=headers).status_code == 413


def test_download_missing(client, turn_id):
    assert client.get(f"/turns/{turn_id}/files").status_code == 404


def test_turn_crud(client, turn_id):
    response = client.put(f"/turns/{turn_id}", json={"scores": "1,2", "isWinner": True})
    assert response.status_code == 200
    body = response.json()
    assert body["scores"] == "1,2"
    assert body["isWinner"] is True

    assert client.get(f"/turns/{turn_id}").status_code == 200
    assert client.delete(f"/turns/{turn_id}").status_code == 204
    assert client.get(f"/turns/{turn_id}").status_code == 404


def test_turn_create_errors(client, turn_id):
    round_id = client.get(f"/turns/{turn_id}").json()["roundId"]

    assert client.post("/turns", json={"roundId": round_id, "players": ["alice"]}).status_code == 409
    assert client.post("/turns", json={"roundId": round_id, "players": ["nobody"]}).status_code == 400
    assert client.post("/turns", json={"roundId": 999, "players": ["bob"]}).status_code == 404


def test_upload_unsupported_zip_version(client, turn_id, make_zip):
    data = bytearray(make_zip({"a.txt": "x"}))
    i = data.index(b"PK\x01\x02")
    data[i + 6:i + 8] = struct.pack("<H", 0xFF)

    response = client.put(
        f"/turns/{turn_id}/files",
        content=bytes(data),
        headers={"Content-Type": "application/zip"}
    )
    assert response.status_code == 422


def test_game_update(client):
    game_id = client.post("/games", json={"name": "demo"}).json()["id"]

    response = client.put(f"/games/{game_id}", json={"name": "renamed", "currentRound": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "renamed"
    assert body["currentRound"] == 2

    assert client.get(f"/games/{game_id}").json()["currentRound"] == 2
    assert client.put("/games/999", json={"name": "x"}).status_code == 404
    assert client.put(f"/games/{game_id}", json={"currentRound": 0}).status_code == 400


def test_json_body_size_limit(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_body_size", 64)

    response = client.post("/games", json={"name": "x" * 128})
    assert response.status_code == 413

    assert client.post("/games", json={"name": "ok"}).status_code == 201


def test_robot_lifecycle(client):
    robots = [
        {"testClassId": "class-1", "difficulty": "easy", "type": "evosuite", "scores": "first"},
        {"testClassId": "class-1", "difficulty": "easy", "type": "evosuite", "scores": "second"},
        {"testClassId": "class-1", "difficulty": "easy", "type": "randoop", "scores": "r"},
    ]
    response = client.post("/robots", json={"robots": robots})
    assert response.status_code == 201
    assert response.json() == {"created": 3}

    params = {"testClassId": "class-1", "difficulty": "easy", "type": "evosuite"}
    body = client.get("/robots", params=params).json()
    assert body["scores"] == "first"
    assert body["type"] == "evosuite"

    params["type"] = "randoop"
    assert client.get("/robots", params=params).json()["scores"] == "r"

    params["type"] = "pitest"
    assert client.get("/robots", params=params).status_code == 400

    params["difficulty"] = "hard"
    params["type"] = "randoop"
    assert client.get("/robots", params=params).status_code == 404

    assert client.delete("/robots", params={"testClassId": "class-1"}).status_code == 204
    assert client.delete("/robots", params={"testClassId": "class-1"}).status_code == 404
