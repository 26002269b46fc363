"""Dependency injection for FastAPI.

Collaborators are built once by :func:`api.main.create_app` and kept on
``app.state``; these providers just hand them to the routes, so tests can
swap any of them by passing doubles to ``create_app``.
"""
from typing import Optional

from fastapi import Depends, Request

from paperforge.auth.provider import AuthProvider
from paperforge.errors import AuthError
from paperforge.export.exporter import PaperExporter
from paperforge.generation.generator import PaperGenerator
from paperforge.knowledge_base.db import Database
from paperforge.knowledge_base.models import User
from paperforge.llm.router import LLMRouter
from paperforge.originality.checker import OriginalityChecker


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_router(request: Request) -> LLMRouter:
    return request.app.state.llm_router


def get_generator(request: Request) -> PaperGenerator:
    return request.app.state.generator


def get_checker(request: Request) -> OriginalityChecker:
    return request.app.state.checker


def get_exporter(request: Request) -> PaperExporter:
    return request.app.state.exporter


def get_auth(request: Request) -> AuthProvider:
    return request.app.state.auth


def get_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user(token=Depends(get_token), auth=Depends(get_auth)) -> Optional[User]:
    return auth.resolve(token)


def get_current_user(user=Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthError("Authentication required")
    return user
