"""HTTP routes for the wait-only and forward variants."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from relay.bridge import Bridge
from relay.models.envelope import RequestEnvelope

router = APIRouter()

FORWARD_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def _bridge(request: Request) -> Bridge:
    return request.app.state.bridge


@router.get("/")
async def wait_for_response(request: Request) -> JSONResponse:
    """Block until the next message arrives on the response subscription."""
    payload = await _bridge(request).wait_for_response()
    return JSONResponse(content=payload)


@router.api_route("/forward", methods=FORWARD_METHODS)
@router.api_route("/forward/{path:path}", methods=FORWARD_METHODS)
async def forward(request: Request) -> JSONResponse:
    """Publish the request to the backend topic and return the reply."""
    body = await request.body()
    envelope = RequestEnvelope(
        method=request.method,
        url=str(request.url),
        headers=dict(request.headers),
        body=body.decode("utf-8", errors="replace"),
    )
    payload = await _bridge(request).relay(envelope)
    return JSONResponse(content=payload)


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    return JSONResponse(
        {"status": "healthy", "subscription": _bridge(request).subscription_name}
    )


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    bridge = _bridge(request)
    if bridge.is_ready():
        return JSONResponse({"status": "ready", "subscription": bridge.subscription_name})
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "subscription": bridge.subscription_name},
    )
