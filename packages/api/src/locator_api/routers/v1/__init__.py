from fastapi import APIRouter

from locator_api.routers.v1 import (
    geography,
    installers,
    locator,
    profiles,
    settings,
    territories,
)

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(installers.router)
v1_router.include_router(territories.router)
v1_router.include_router(locator.router)
v1_router.include_router(geography.router)
v1_router.include_router(profiles.router)
v1_router.include_router(settings.router)
