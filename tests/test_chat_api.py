from datetime import timedelta
from uuid import uuid4

import httpx
import pytest

from lms_chat.core.database import get_db
from lms_chat.core.security import create_access_token
from lms_chat.main import create_app

from .conftest import auth_token


@pytest.fixture
def app(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def as_user(user):
    return {"Authorization": f"Bearer {auth_token(user)}"}


async def test_requires_authentication(client, people):
    response = await client.get("/api/v1/chat/chats")
    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated"}

    response = await client.get("/api/v1/chat/chats", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401

    expired = create_access_token(people.student.id, "student", expires_in=timedelta(seconds=-5))
    response = await client.get("/api/v1/chat/chats", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Session expired"


async def test_unknown_user_token_is_rejected(client, people):
    token = create_access_token(uuid4(), "student")

    response = await client.get("/api/v1/chat/chats", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


async def test_auth_cookie_is_accepted(client, people):
    client.cookies.set("token", auth_token(people.student))

    response = await client.get("/api/v1/chat/chats")

    assert response.status_code == 200
    assert response.json() == {"data": []}


async def test_send_list_and_read_flow(client, people):
    response = await client.post("/api/v1/chat/send", headers=as_user(people.student), json={
        "courseId": str(people.course.id),
        "receiverId": str(people.instructor.id),
        "content": "When is the quiz due?"
    })
    assert response.status_code == 201
    body = response.json()
    message = body["data"]
    assert message["content"] == "When is the quiz due?"
    assert message["read"] is False
    assert message["sender"]["id"] == str(people.student.id)
    assert message["receiver"]["name"] == "Irene Instructor"
    assert body["chat"]["course"]["title"] == "Intro to Python"
    chat_id = body["chat"]["id"]

    response = await client.get("/api/v1/chat/chats", headers=as_user(people.instructor))
    chats = response.json()["data"]
    assert [c["id"] for c in chats] == [chat_id]
    assert chats[0]["unreadCount"] == 1
    assert chats[0]["lastMessage"]["id"] == message["id"]
    assert chats[0]["student"]["name"] == "Asha Student"

    response = await client.get("/api/v1/chat/unread", headers=as_user(people.instructor))
    assert response.json() == {"data": {chat_id: 1}}

    response = await client.get(f"/api/v1/chat/messages/{chat_id}", headers=as_user(people.instructor))
    assert response.status_code == 200
    assert [m["read"] for m in response.json()["data"]] == [True]

    response = await client.get("/api/v1/chat/chats", headers=as_user(people.instructor))
    assert response.json()["data"][0]["unreadCount"] == 0


async def test_mark_read_endpoint(client, people):
    response = await client.post("/api/v1/chat/send", headers=as_user(people.instructor), json={
        "courseId": str(people.course.id),
        "receiverId": str(people.student.id),
        "content": "Welcome to the course"
    })
    message_id = response.json()["data"]["id"]

    payload = {"messageIds": [message_id]}
    first = await client.post("/api/v1/chat/mark-read", headers=as_user(people.student), json=payload)
    second = await client.post("/api/v1/chat/mark-read", headers=as_user(people.student), json=payload)

    assert first.json() == {"data": {"updated": 1}}
    assert second.json() == {"data": {"updated": 0}}


async def test_validation_errors_use_message_envelope(client, people):
    response = await client.post("/api/v1/chat/send", headers=as_user(people.student), json={
        "courseId": str(people.course.id),
        "receiverId": str(people.instructor.id),
        "content": "   "
    })
    assert response.status_code == 422
    assert response.json() == {"message": "Message content cannot be empty"}

    response = await client.post("/api/v1/chat/send", headers=as_user(people.student), json={
        "courseId": "not-a-uuid",
        "receiverId": str(people.instructor.id),
        "content": "hi"
    })
    assert response.status_code == 422
    assert "courseId" in response.json()["message"]


async def test_routing_errors_use_message_envelope(client, people):
    response = await client.get("/api/v1/chat/send", headers=as_user(people.student))
    assert response.status_code == 405
    assert response.json() == {"message": "Method Not Allowed"}
    assert "POST" in response.headers["allow"]

    response = await client.get("/api/v1/chat/messages/", headers=as_user(people.student))
    assert response.status_code == 404
    assert response.json() == {"message": "Not Found"}


async def test_not_found_errors(client, people):
    response = await client.get(f"/api/v1/chat/messages/{uuid4()}", headers=as_user(people.student))
    assert response.status_code == 404
    assert response.json()["message"].startswith("Chat not found")

    response = await client.post("/api/v1/chat/send", headers=as_user(people.student), json={
        "courseId": str(uuid4()),
        "receiverId": str(people.instructor.id),
        "content": "hi"
    })
    assert response.status_code == 404
    assert response.json()["message"].startswith("Course not found")


async def test_start_chat_endpoint(client, people):
    response = await client.post("/api/v1/chat/start", headers=as_user(people.student),
                                 json={"courseId": str(people.course.id)})
    assert response.status_code == 201
    body = response.json()
    assert body["data"]["content"] == "Hello, I would like to start a chat regarding the course."
    assert body["data"]["receiver"]["id"] == str(people.instructor.id)

    response = await client.post("/api/v1/chat/start", headers=as_user(people.instructor),
                                 json={"courseId": str(people.course.id)})
    assert response.status_code == 403


async def test_internal_errors_are_generic(app, client, people):
    from lms_chat.routers.chat.dependencies import get_chat_service

    class BrokenService:
        async def list_chats(self, user_id):
            raise RuntimeError("connection to db-primary:5432 refused")

    app.dependency_overrides[get_chat_service] = lambda: BrokenService()

    response = await client.get("/api/v1/chat/chats", headers=as_user(people.student))

    assert response.status_code == 500
    assert response.json() == {"message": "Internal Server Error"}


async def test_health(client):
    response = await client.get("/health/")
    assert response.json()["status"] == "healthy"
