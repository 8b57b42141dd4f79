# chat_server/tests/helpers.py
import uuid

from httpx import AsyncClient

from chat_server.domain.identity import Identity

TEST_PASSWORD = "testpassword"


class FakeConnection:
    """In-memory stand-in for a socket; records every push it receives."""

    def __init__(self, identity: Identity, fail: bool = False):
        self.id = uuid.uuid4().hex
        self.identity = identity
        self.fail = fail
        self.sent: list[tuple[str, object]] = []

    async def send(self, event, data):
        if self.fail:
            raise ConnectionError("socket is gone")
        self.sent.append((event, data))

    def events(self, name: str) -> list:
        return [data for event, data in self.sent if event == name]

    def names(self) -> list[str]:
        return [event for event, _ in self.sent]

    def clear(self) -> None:
        self.sent.clear()


def identity(user_id: int, username: str | None = None) -> Identity:
    return Identity(user_id=user_id, username=username or f"user{user_id}")


async def login(client: AsyncClient, username: str) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/login", data={"username": username, "password": TEST_PASSWORD}
    )
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
