from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from app.db.store import DocumentStoreError
from app.metrics import PrometheusExporter, metrics_registry

router = APIRouter(tags=["health"])


@router.get("/ping", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ping/ready", summary="Document store readiness probe")
async def ready(request: Request) -> dict[str, str]:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Document store is not configured")
    try:
        await store.ping()
    except DocumentStoreError as exc:
        raise HTTPException(status_code=503, detail="Document store is unreachable") from exc
    return {"status": "ready"}


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus metrics")
async def metrics() -> str:
    return PrometheusExporter(metrics_registry).build_payload()
