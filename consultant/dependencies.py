from typing import Protocol

from fastapi import Request

from consultant.config import Settings
from consultant.services.avito_service import AvitoClient
from consultant.services.upload_service import KnowledgeUploader


class Responder(Protocol):
    async def get_response(self, message, item=None, cancel=None) -> str:
        """Reply to ``message``; ``item`` is a listing or an async loader for one."""
        ...


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_responder(request: Request) -> Responder:
    return request.app.state.responder


def get_avito_client(request: Request) -> AvitoClient:
    return request.app.state.avito


def get_uploader(request: Request) -> KnowledgeUploader:
    return request.app.state.uploader
