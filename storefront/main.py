from fastapi import FastAPI

from .routers import catalog, search, recommend, metrics
import time
from storefront.utils import slog
from storefront.utils.logging import configure_logging
from storefront.utils.metrics import record_request, record_endpoint

configure_logging()

app = FastAPI(
    title="Storefront Catalog API",
    openapi_url="/openapi.json",
)


@app.middleware("http")
async def _logging_middleware(request, call_next):
    start = time.perf_counter()
    req_id = slog.new_request_id()
    client_ip = request.client.host if request.client else None
    try:
        response = await call_next(request)
    except Exception as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        ctx = getattr(request.state, "log_context", {})
        slog.log_event(
            "request.error",
            request_id=req_id,
            path=str(request.url.path),
            method=request.method,
            latency_ms=latency_ms,
            client_ip=client_ip,
            tenant=getattr(request.state, "tenant", None),
            error=str(e),
            **(ctx or {}),
        )
        record_request(latency_ms=latency_ms, status=500)
        raise
    latency_ms = int((time.perf_counter() - start) * 1000)
    ctx = getattr(request.state, "log_context", {}) or {}
    slog.finalize_request_log(
        request_id=req_id,
        method=request.method,
        path=str(request.url.path),
        status=response.status_code,
        latency_ms=latency_ms,
        client_ip=client_ip,
        tenant=getattr(request.state, "tenant", None),
        ctx=ctx,
    )
    # --- metrics wiring ---
    route = request.scope.get("route")
    record_request(
        latency_ms=latency_ms,
        status=response.status_code,
        cache_hit=ctx.get("cache_hit"),
        tenant=getattr(request.state, "tenant", None),
    )
    record_endpoint(method=request.method, path=getattr(route, "path", str(request.url.path)), latency_ms=latency_ms)

    response.headers["X-Request-ID"] = req_id
    return response


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(catalog.router)
app.include_router(search.router)
app.include_router(recommend.router)
app.include_router(metrics.router)
