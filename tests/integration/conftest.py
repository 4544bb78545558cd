import secrets
from typing import Optional

import pytest
from fastapi import FastAPI, Header, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PASSWORD = "correct horse"


class LoginRequest(BaseModel):
    email: str
    password: str
    rememberMe: bool = False


class FakeBackend:
    """In-process stand-in for the Librarian REST API."""

    password = PASSWORD

    def __init__(self):
        self.access_tokens = set()
        self.refresh_tokens = set()
        self.refresh_calls = 0
        self.app = self._build_app()

    def expire_access_tokens(self):
        self.access_tokens.clear()

    def revoke_refresh_tokens(self):
        self.refresh_tokens.clear()

    def _issue(self) -> str:
        token = secrets.token_hex(8)
        self.access_tokens.add(token)
        return token

    def _authorized(self, authorization: Optional[str]) -> bool:
        if not authorization or not authorization.startswith("Bearer "):
            return False
        return authorization[len("Bearer "):] in self.access_tokens

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        unauthorized = {"success": False, "error": "Token expired"}

        @app.post("/api/v1/auth/login")
        async def login(body: LoginRequest, response: Response):
            if body.password != PASSWORD:
                return JSONResponse(status_code=401, content={"success": False, "error": "Invalid credentials"})
            refresh = secrets.token_hex(8)
            self.refresh_tokens.add(refresh)
            response.set_cookie("refreshToken", refresh, httponly=True)
            return {"success": True, "data": {
                "accessToken": self._issue(),
                "user": {"id": "u1", "name": "Ada", "email": body.email, "role": "student", "status": "active"},
            }}

        @app.post("/api/v1/auth/refresh")
        async def refresh(request: Request):
            self.refresh_calls += 1
            if request.cookies.get("refreshToken") not in self.refresh_tokens:
                return JSONResponse(status_code=401, content={"success": False, "error": "Invalid refresh token"})
            return {"success": True, "data": {"accessToken": self._issue()}}

        @app.get("/api/v1/auth/profile")
        async def profile(authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse(status_code=401, content=unauthorized)
            return {"success": True, "data": {"user": {"id": "u1", "name": "Ada", "role": "student"}}}

        @app.get("/api/v1/titles")
        async def titles(authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse(status_code=401, content=unauthorized)
            return {
                "success": True,
                "data": [{"_id": "t1", "title": "Dune", "authors": ["Frank Herbert"]}],
                "pagination": {"page": 1, "limit": 20, "total": 1, "pages": 1},
            }

        @app.post("/api/v1/libraries")
        async def create_library(authorization: Optional[str] = Header(None)):
            if not self._authorized(authorization):
                return JSONResponse(status_code=401, content=unauthorized)
            return JSONResponse(status_code=409, content={"success": False, "error": "Library code already exists"})

        return app


@pytest.fixture
def backend():
    return FakeBackend()
