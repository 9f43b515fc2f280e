"""Assistants Gateway — FastAPI application entry point.

Resolves per-request credentials for the Azure Assistants endpoint and
exposes the assistant vector-store operations built on top of them.
"""

import json
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from assistants_gateway.clients.initialize import initialize_client
from assistants_gateway.clients.models import RequestContext, RequestUser
from assistants_gateway.errors import CredentialError, UpstreamHttpError
from assistants_gateway.logging.audit import (
    RequestTimer,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from assistants_gateway.security.auth import get_current_user

VERSION = "0.3.0"
ASSISTANTS_API_VERSION = "v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Gateway started")
    yield
    get_audit_logger().info("Gateway stopped")


app = FastAPI(
    title="Assistants Gateway",
    description="Credential resolution and client configuration for Azure Assistants",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(CredentialError)
async def credential_error_handler(request: Request, exc: CredentialError):
    get_audit_logger().warning(
        "Credential resolution failed",
        extra={"audit_data": {"error_type": exc.type.value, "endpoint": exc.endpoint}},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(UpstreamHttpError)
async def upstream_error_handler(request: Request, exc: UpstreamHttpError):
    get_audit_logger().warning(
        "Upstream call failed",
        extra={"audit_data": {
            "upstream_status": exc.status_code,
            "method": exc.method,
            "url": exc.url,
        }},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"type": "upstream_http_error", "detail": exc.body}},
    )


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


async def _json_body(request: Request) -> dict:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


async def _vector_store_call(request: Request, user: RequestUser, assistant_id: str, operation: str):
    rid = generate_request_id()
    request_id_var.set(rid)

    body = await _json_body(request)
    context = RequestContext(user=user, body=body, query=dict(request.query_params))
    resolved = await initialize_client(
        context,
        response_context=None,
        version=ASSISTANTS_API_VERSION,
    )
    client = resolved.provider_client
    try:
        with RequestTimer() as timer:
            result = await getattr(client.vector_stores, operation)(assistant_id)
    finally:
        await client.close()

    get_audit_logger().info(
        "Vector store request",
        extra={"audit_data": {
            "user_id": user.id,
            "assistant_id": assistant_id,
            "operation": operation,
            "latency_ms": timer.elapsed_ms,
        }},
    )
    return JSONResponse(content=result, headers={"X-Request-Id": rid})


@app.post("/v1/assistants/{assistant_id}/vector_store")
async def ensure_vector_store(
    assistant_id: str, request: Request, user: RequestUser = Depends(get_current_user)
):
    """Return the assistant's vector store, creating it if it does not exist."""
    return await _vector_store_call(request, user, assistant_id, "create")


@app.get("/v1/assistants/{assistant_id}/vector_store")
async def get_vector_store(
    assistant_id: str, request: Request, user: RequestUser = Depends(get_current_user)
):
    return await _vector_store_call(request, user, assistant_id, "retrieve")


@app.delete("/v1/assistants/{assistant_id}/vector_store")
async def delete_vector_store(
    assistant_id: str, request: Request, user: RequestUser = Depends(get_current_user)
):
    return await _vector_store_call(request, user, assistant_id, "delete")
