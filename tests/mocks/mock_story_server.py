"""MockStoryServer - in-process mock of the story service REST API.

Provides:
- POST /api/User/Authentication
- POST /api/Story/Create
- PUT /api/Story/Edit/{story_id}
- GET /api/Story/All
- DELETE /api/Story/Delete/{story_id}

Story endpoints require the bearer token issued at login. Failure modes can
be switched on per test through the public attributes.
"""

from __future__ import annotations

import secrets
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.testclient import TestClient

NOT_FOUND_MESSAGE = "No spoilers..."
CANNOT_DELETE_MESSAGE = "Unable to delete this story spoiler!"


class MockStoryServer:
    """Mock story service for harness testing.

    Example:
        server = MockStoryServer()
        client = server.get_test_client()

        token = client.post(
            "/api/User/Authentication", json={"username": "tester", "password": "secret"}
        ).json()["accessToken"]
        response = client.post(
            "/api/Story/Create",
            json={"title": "t", "description": "d"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 201
    """

    def __init__(self, users: dict[str, str] | None = None):
        """Initialize MockStoryServer.

        Args:
            users: username -> password accepted by the login endpoint
        """
        self.app = FastAPI(title="Mock Story API")
        self.users = users if users is not None else {"tester": "secret"}
        self.stories: dict[str, dict[str, Any]] = {}
        self.tokens: set[str] = set()
        self.requests: list[tuple[str, str, str | None]] = []

        # Failure modes
        self.omit_token = False
        self.empty_error_bodies = False
        self.create_status: int | None = None
        self.create_omits_id = False
        self.list_override: Response | None = None

        self._setup_routes()

    def _error(self, status_code: int, message: str) -> Response:
        if self.empty_error_bodies:
            return Response(status_code=status_code)
        return JSONResponse(status_code=status_code, content={"msg": message})

    def _authorized(self, request: Request) -> bool:
        header = request.headers.get("authorization", "")
        self.requests.append((request.method, request.url.path, header or None))
        if not header.startswith("Bearer "):
            return False
        return header[len("Bearer "):] in self.tokens

    def _setup_routes(self) -> None:
        """Set up API routes."""

        @self.app.post("/api/User/Authentication")
        async def login(request: Request) -> Response:
            body = await request.json()
            username = body.get("username")
            if username not in self.users or self.users[username] != body.get("password"):
                return JSONResponse(status_code=401, content={"msg": "Invalid credentials"})
            if self.omit_token:
                return JSONResponse(content={"username": username})
            token = f"tok_{secrets.token_hex(16)}"
            self.tokens.add(token)
            return JSONResponse(content={"username": username, "accessToken": token})

        @self.app.post("/api/Story/Create")
        async def create_story(request: Request) -> Response:
            if not self._authorized(request):
                return Response(status_code=401)
            if self.create_status is not None:
                return self._error(self.create_status, "Create failed")
            body = await request.json()
            if not body.get("title") or not body.get("description"):
                return self._error(400, "Title and description are required")
            story_id = str(uuid.uuid4())
            self.stories[story_id] = {
                "id": story_id,
                "title": body["title"],
                "description": body["description"],
                "url": body.get("url", ""),
            }
            content: dict[str, Any] = {"msg": "Successfully created!"}
            if not self.create_omits_id:
                content["storyId"] = story_id
            return JSONResponse(status_code=201, content=content)

        @self.app.put("/api/Story/Edit/{story_id}")
        async def edit_story(story_id: str, request: Request) -> Response:
            if not self._authorized(request):
                return Response(status_code=401)
            if story_id not in self.stories:
                return self._error(404, NOT_FOUND_MESSAGE)
            body = await request.json()
            self.stories[story_id].update(
                {key: body[key] for key in ("title", "description", "url") if key in body}
            )
            return JSONResponse(content={"msg": "Successfully edited"})

        @self.app.get("/api/Story/All")
        async def list_stories(request: Request) -> Response:
            if not self._authorized(request):
                return Response(status_code=401)
            if self.list_override is not None:
                return self.list_override
            return JSONResponse(content=list(self.stories.values()))

        @self.app.delete("/api/Story/Delete/{story_id}")
        async def delete_story(story_id: str, request: Request) -> Response:
            if not self._authorized(request):
                return Response(status_code=401)
            if story_id not in self.stories:
                return self._error(400, CANNOT_DELETE_MESSAGE)
            del self.stories[story_id]
            return JSONResponse(content={"msg": "Deleted successfully!"})

    def get_test_client(self) -> TestClient:
        """Get a TestClient for making requests.

        Returns:
            FastAPI TestClient instance (an httpx.Client)
        """
        return TestClient(self.app)

    def add_story(self, title: str = "Seeded", description: str = "Seeded story") -> str:
        """Add a pre-existing story and return its id."""
        story_id = str(uuid.uuid4())
        self.stories[story_id] = {
            "id": story_id,
            "title": title,
            "description": description,
            "url": "",
        }
        return story_id

    def clear(self) -> None:
        """Clear stories, tokens and recorded requests."""
        self.stories.clear()
        self.tokens.clear()
        self.requests.clear()
