"""
FastAPI dependencies for objects built once at startup.
"""
from fastapi import Request

from midway.detours.service import DetourSearchService
from midway.providers.base import MapProviders


def get_providers(request: Request) -> MapProviders:
    return request.app.state.providers


def get_search_service(request: Request) -> DetourSearchService:
    return request.app.state.search_service
