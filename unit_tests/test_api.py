import pytest
from fastapi.testclient import TestClient

from conftest import make_text_client
import agents.coach_agent as coach_agent
import agents.planner_agent as planner_agent
from api.app import app, store_dependency
from tools.errors import PersistenceFailure

PROFILE = {"user_id": "u1", "name": "Ana", "age": 25, "weight": 70, "height": 170,
           "gender": "male", "activity_level": "sedentary", "goal": "maintain"}


@pytest.fixture
def client(store, monkeypatch):
    monkeypatch.setattr(planner_agent, "_CLIENT",
                        make_text_client(RuntimeError("down"), RuntimeError("down")))
    monkeypatch.setattr(coach_agent, "GeminiTextClient", lambda **kwargs: make_text_client("Olá! 🥗"))
    app.dependency_overrides[store_dependency] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_profile_lifecycle(client):
    assert client.get("/api/v1/profile", params={"user_id": "u1"}).status_code == 404

    created = client.put("/api/v1/profile", json=PROFILE)
    assert created.status_code == 200
    assert created.json()["profile"]["bmr"] == 1643

    fetched = client.get("/api/v1/profile", params={"user_id": "u1"}).json()
    assert fetched["goals"]["calories"] == 1972

    bad = client.put("/api/v1/profile", json={"user_id": "u1", "age": 0})
    assert bad.status_code == 400


def test_meal_flow(client):
    client.put("/api/v1/profile", json=PROFILE)

    logged = client.post("/api/v1/meals", json={"user_id": "u1", "text": "200g arroz"})
    assert logged.status_code == 200
    body = logged.json()
    assert body["macros"]["calories"] == 260
    assert body["progress"]["xp"] == 15

    meals = client.get("/api/v1/meals", params={"user_id": "u1"}).json()
    assert meals["count"] == 1

    summary = client.get("/api/v1/summary", params={"user_id": "u1"}).json()
    assert summary["consumed"]["calories"] == 260

    meal_id = body["meal"]["id"]
    assert client.delete(f"/api/v1/meals/{meal_id}", params={"user_id": "u1"}).status_code == 200
    assert client.delete(f"/api/v1/meals/{meal_id}", params={"user_id": "u1"}).status_code == 404


def test_meal_parse_error(client):
    client.put("/api/v1/profile", json=PROFILE)
    response = client.post("/api/v1/meals", json={"user_id": "u1", "text": "arroz"})
    assert response.status_code == 400
    assert response.json()["detail"]["error_type"] == "parse_failure"


def test_water_and_workout(client):
    client.put("/api/v1/profile", json=PROFILE)
    water = client.post("/api/v1/water", json={"user_id": "u1", "amount_ml": 300})
    assert water.json()["current_ml"] == 300
    assert client.post("/api/v1/water", json={"user_id": "u1", "amount_ml": 0}).status_code == 422

    workout = client.post("/api/v1/workouts", json={
        "user_id": "u1", "name": "Treino A", "exercises": [{"name": "Supino"}]
    })
    assert workout.status_code == 200
    assert workout.json()["progress"]["xp"] == 55


def test_trial(client):
    client.put("/api/v1/profile", json=PROFILE)
    trial = client.get("/api/v1/trial", params={"user_id": "u1"}).json()
    assert trial["days_remaining"] == 3
    assert client.get("/api/v1/trial", params={"user_id": "nobody"}).status_code == 404


def test_plans_fall_back_offline(client):
    client.put("/api/v1/profile", json=PROFILE)
    diet = client.post("/api/v1/plans/diet", json={"user_id": "u1"}).json()
    assert diet["source"] == "template"
    assert diet["goals"]["calories"] == 1972

    workouts = client.post("/api/v1/plans/workout", json={}).json()
    assert workouts["source"] == "template"


def test_chat(client):
    personas = client.get("/api/v1/chat/personas").json()["personas"]
    assert {p["id"] for p in personas} == {"nutri", "physio", "trainer", "nutri_yasmin"}

    reply = client.post("/api/v1/chat/nutri", json={"user_id": "u1", "message": "Oi"})
    assert reply.status_code == 200
    assert reply.json()["reply"] == "Olá! 🥗"

    history = client.get("/api/v1/chat/nutri", params={"user_id": "u1"}).json()
    assert len(history["messages"]) == 2

    assert client.post("/api/v1/chat/astrologer", json={"message": "Oi"}).status_code == 404


def test_chat_retry_after_failed_save(client, store, monkeypatch):
    saved_create = store.create

    def chat_table_down(table, user_id, record):
        if table == "chat_messages":
            raise PersistenceFailure("offline")
        return saved_create(table, user_id, record)

    monkeypatch.setattr(store, "create", chat_table_down)
    reply = client.post("/api/v1/chat/trainer", json={"user_id": "u1", "message": "Bora?"})
    assert [m["status"] for m in reply.json()["messages"]] == ["failed", "failed"]

    monkeypatch.setattr(store, "create", saved_create)
    history = client.get("/api/v1/chat/trainer", params={"user_id": "u1"}).json()["messages"]
    assert [m["status"] for m in history] == ["failed", "failed"]

    retried = client.post("/api/v1/chat/trainer/retry", json={"user_id": "u1"})
    assert retried.status_code == 200
    assert retried.json()["still_failed"] == 0

    history = client.get("/api/v1/chat/trainer", params={"user_id": "u1"}).json()["messages"]
    assert [m["status"] for m in history] == ["sent", "sent"]
    assert client.post("/api/v1/chat/astrologer/retry", json={}).status_code == 404
