"""FastAPI route definitions for the shortlinks REST API.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   {API_PREFIX}/links
        ├─ LinkCreate (request body)
        └─ LinkResponse (201) or 422/500

    GET    {API_PREFIX}/links
        └─ list[LinkResponse] (200)

    GET    {API_PREFIX}/links/:id
        └─ LinkResponse (200) or 404

    PUT    {API_PREFIX}/links/:id
        ├─ LinkUpdate (request body)
        └─ LinkResponse (200) or 404/422

    DELETE {API_PREFIX}/links/:id
        └─ 204 or 404

    DELETE {API_PREFIX}/links/code/:code
        └─ 204 or 404

    GET    /:code
        └─ 302 Redirect or 404/500

How to Use
===========
**Include the routers**::
    app.include_router(health_router)
    app.include_router(links_router, prefix=settings.API_PREFIX)
    app.include_router(redirect_router)  # last: /{code} matches any segment

Key Behaviours
===============
- Deleting by id and deleting by code are separate endpoints; nothing is
  inferred from what the path segment looks like.
- The redirect is returned before the click is counted; the increment runs as
  a background task and its failures never reach the client.
- Storage faults become 500 responses with a generic detail message.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse

from shortlinks.dependencies import RequestContext, get_link_service, get_request_context
from shortlinks.enums import HealthStatus
from shortlinks.exceptions import AllocationExhausted, LinkValidationError, RecordNotFound, StorageFault
from shortlinks.link_service import LinkService
from shortlinks.schemas import HealthResponse, LinkCreate, LinkResponse, LinkUpdate

__all__ = ["health_router", "links_router", "redirect_router"]

health_router = APIRouter()
links_router = APIRouter()
redirect_router = APIRouter()


@health_router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.store.ping()
        ctx.logger.debug("Database health check passed")
    except StorageFault as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status)


@links_router.post("/links", response_model=LinkResponse, status_code=201, tags=["links"])
async def create_link(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    ctx.logger.info(
        f"Link creation requested: {payload.url}",
        extra={"operation": "create_link", "target_url": payload.url},
    )
    try:
        link = await service.create_link(payload)
    except AllocationExhausted as exc:
        raise HTTPException(status_code=500, detail="Could not generate a unique short code") from exc
    except StorageFault as exc:
        raise HTTPException(status_code=500, detail="Failed to save link") from exc

    ctx.logger.info(
        f"Link created: {link.code}",
        extra={"operation": "create_link", "link_id": link.id, "duration_ms": ctx.get_duration()},
    )
    return LinkResponse.from_model(link, ctx.settings.BASE_URL)


@links_router.get("/links", response_model=list[LinkResponse], tags=["links"])
async def list_links(
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> list[LinkResponse]:
    try:
        links = await service.list_links()
    except StorageFault as exc:
        ctx.logger.error(f"Listing links failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to list links") from exc
    return [LinkResponse.from_model(link, ctx.settings.BASE_URL) for link in links]


@links_router.get("/links/{link_id}", response_model=LinkResponse, tags=["links"])
async def get_link(
    link_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    try:
        link = await service.get_link(link_id)
    except LinkValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail="Link not found") from exc
    except StorageFault as exc:
        ctx.logger.error(f"Fetching link {link_id} failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to fetch link") from exc
    return LinkResponse.from_model(link, ctx.settings.BASE_URL)


@links_router.put("/links/{link_id}", response_model=LinkResponse, tags=["links"])
async def update_link(
    link_id: int,
    payload: LinkUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    try:
        link = await service.update_link(link_id, payload)
    except LinkValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RecordNotFound as exc:
        ctx.logger.warning(f"Update failed - link not found: {link_id}")
        raise HTTPException(status_code=404, detail="Link not found") from exc
    except StorageFault as exc:
        ctx.logger.error(f"Updating link {link_id} failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to update link") from exc
    return LinkResponse.from_model(link, ctx.settings.BASE_URL)


@links_router.delete("/links/{link_id}", status_code=204, tags=["links"])
async def delete_link(
    link_id: int,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> Response:
    try:
        await service.delete_link_by_id(link_id)
    except LinkValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RecordNotFound as exc:
        ctx.logger.warning(f"Delete failed - link not found by id: {link_id}")
        raise HTTPException(status_code=404, detail="Link not found") from exc
    except StorageFault as exc:
        ctx.logger.error(f"Deleting link {link_id} failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to delete link") from exc
    return Response(status_code=204)


@links_router.delete("/links/code/{code}", status_code=204, tags=["links"])
async def delete_link_by_code(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> Response:
    try:
        await service.delete_link_by_code(code)
    except LinkValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RecordNotFound as exc:
        ctx.logger.warning(f"Delete failed - link not found by code: {code}")
        raise HTTPException(status_code=404, detail="Link not found") from exc
    except StorageFault as exc:
        ctx.logger.error(f"Deleting link {code} failed: {exc}")
        raise HTTPException(status_code=500, detail="Failed to delete link") from exc
    return Response(status_code=204)


@redirect_router.get("/{code}", tags=["redirect"])
async def redirect_to_link(
    code: str,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> RedirectResponse:
    try:
        link = await service.resolve(code)
    except RecordNotFound as exc:
        ctx.logger.warning(
            f"Redirect failed - short code not found: {code}",
            extra={"operation": "redirect", "short_code": code, "error": "not_found"},
        )
        raise HTTPException(status_code=404, detail="Short URL not found") from exc
    except StorageFault as exc:
        raise HTTPException(status_code=500, detail="Redirect failed") from exc

    background_tasks.add_task(service.record_click, link.id)

    ctx.logger.info(
        f"Redirect: {code} -> {link.target_url}",
        extra={"operation": "redirect", "short_code": code, "link_id": link.id, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=link.target_url, status_code=ctx.settings.REDIRECT_STATUS_CODE)
