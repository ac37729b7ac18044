# routers/docs.py — Route listing and Postman collection export
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from postman import convert

router = APIRouter(prefix="/api/docs", tags=["Documentation"])

COLLECTION_FILENAME = "Sprintboard-API.postman_collection.json"


def _dependency_names(route: APIRoute) -> list:
    names = []
    for dep in route.dependant.dependencies:
        call = dep.call
        name = getattr(call, "__name__", None) or type(call).__name__
        if name not in names:
            names.append(name)
    return names


def collect_api_routes(routers) -> list:
    """``/api`` routes of the given routers, sorted by path then methods.

    Each router's own route list already carries its prefix.
    """
    routes = []
    for route in (r for api_router in routers for r in api_router.routes):
        if not isinstance(route, APIRoute) or not route.path.startswith("/api/"):
            continue
        routes.append({
            "methods": sorted(m for m in route.methods if m != "HEAD"),
            "path": route.path,
            "name": route.name,
            "endpoint": f"{route.endpoint.__module__}.{route.endpoint.__name__}",
            "dependencies": _dependency_names(route),
        })
    routes.sort(key=lambda r: (r["path"], "|".join(r["methods"])))
    return routes


@router.get("/routes")
async def list_routes(request: Request):
    return {"routes": collect_api_routes(request.app.state.api_routers)}


@router.get("/postman")
async def postman_collection(request: Request):
    """Postman v2.1 collection generated from this app's OpenAPI schema"""
    return convert(request.app.openapi(), base_url=str(request.base_url))


@router.get("/postman/download")
async def download_postman_collection(request: Request):
    collection = convert(request.app.openapi(), base_url=str(request.base_url))
    return JSONResponse(
        content=collection,
        headers={"Content-Disposition": f'attachment; filename="{COLLECTION_FILENAME}"'},
    )
