# tests/test_api.py
from fastapi.testclient import TestClient

from craps_api.main import app


def _login(client, username, operator=False):
    r = client.post("/api/bettor/register", json={"username": username, "password": "secret1"})
    assert r.status_code == 201, r.text
    assert r.json()["balance"] == 10000
    assert r.json()["is_operator"] is operator
    r = client.post("/api/bettor/login", json={"username": username, "password": "secret1"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def test_ping():
    with TestClient(app) as client:
        assert client.get("/ping").json()["ok"] is True
        assert client.get("/healthz").json() == {"status": "healthy"}


def test_auth_required():
    with TestClient(app) as client:
        assert client.post("/api/bets/place", json={"target": "bot-0", "amount": 1}).status_code == 401
        r = client.post("/api/bettor/login", json={"username": "nobody", "password": "whatever"})
        assert r.status_code == 401


def test_bet_roll_and_settle_over_http():
    with TestClient(app) as client:
        headers = _login(client, "alice")
        op = _login(client, "croupier", operator=True)

        state = client.get("/api/table/state").json()
        assert state["scheduler_state"] == "awaiting_betting_close"
        assert state["betting_open"] is True
        assert state["phase"] == "idle"

        r = client.post("/api/bets/place", json={"target": "bot-0", "bet_type": "field", "amount": 10}, headers=headers)
        assert r.status_code == 200, r.text
        placed = r.json()
        assert placed["balance"] == 9990
        assert placed["placed_during_phase"] == "idle"

        # validation, duplicate and balance errors
        r = client.post("/api/bets/place", json={"target": "bot-0", "amount": 0}, headers=headers)
        assert r.status_code == 422
        r = client.post("/api/bets/place", json={"target": "bot-0", "bet_type": "field", "amount": 5}, headers=headers)
        assert r.status_code == 409
        r = client.post("/api/bets/place", json={"target": "bot-1", "bet_type": "hardways", "amount": 5}, headers=headers)
        assert r.status_code == 400
        r = client.post("/api/bets/place", json={"target": "bot-1", "amount": 100000}, headers=headers)
        assert r.status_code == 400

        assert len(client.get("/api/bets/open", headers=headers).json()) == 1

        state = client.post("/api/table/start", headers=op).json()
        assert state["scheduler_state"] == "rolling"
        assert state["phase"] == "come_out"
        assert state["series_id"] == placed["series_id"]

        r = client.post("/api/bets/place", json={"target": "bot-2", "amount": 5}, headers=headers)
        assert r.status_code == 409

        tick = client.post("/api/table/roll", headers=op).json()
        assert tick["fired"] is True
        event = tick["event"]
        assert event["roll"]["sequence"] == 1
        # a field bet is decided on every roll
        field = [o for o in event["outcomes"] if o["bet_id"] == placed["bet_id"]]
        assert len(field) == 1
        won = field[0]["won"]

        profile = client.get("/api/bettor/profile", headers=headers).json()
        assert profile["balance"] == (10010 if won else 9990)
        assert profile["series_played"] == 1

        history = client.get("/api/bets/history", headers=headers).json()
        assert history[0]["status"] == (4 if won else 5)
        assert history[0]["payout"] == (20 if won else 0)

        rolls = client.get("/api/table/rolls").json()["list"]
        assert rolls[0]["total"] == event["roll"]["total"]
        assert rolls[0]["source_ref"].startswith("oracle:")

        assert client.post("/api/table/open", headers=op).status_code == 409


def test_table_control_requires_an_operator():
    with TestClient(app) as client:
        bettor = _login(client, "bob")
        op = _login(client, "pitboss", operator=True)

        for path in ("/api/table/open", "/api/table/start", "/api/table/roll", "/api/table/stop"):
            assert client.post(path).status_code == 401, path
            assert client.post(path, headers={"Authorization": "Bearer nonsense"}).status_code == 401, path
            assert client.post(path, headers=bettor).status_code == 403, path

        state = client.get("/api/table/state").json()
        assert state["scheduler_state"] == "awaiting_betting_close"
        assert state["betting_open"] is True

        state = client.post("/api/table/start", headers=op).json()
        assert state["scheduler_state"] == "rolling"
