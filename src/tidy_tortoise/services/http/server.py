from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from hypercorn.asyncio import serve
from hypercorn.config import Config
from pydantic import BaseModel, Field

from ...api import ApiFunction, api_state, call_api, get_api_functions, has_api
from ...bootstrap import configure_logging
from ...domain import PlannerError

configure_logging()
logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "invariant": 400,
    "unauthenticated": 401,
    "not_found": 404,
    "conflict": 409,
    "transport": 502,
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    try:
        user_id = await api_state.auth.restore_from_settings()
    except PlannerError as exc:
        logger.warning("Could not resume the stored Supabase session (%s): %s", exc.kind, exc.message)
    else:
        if user_id:
            logger.info("Resumed stored Supabase session for %s", user_id)
    yield


app = FastAPI(title="Tidy Tortoise API", version="0.3.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiCallRequest(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict)


def _serialize_api_function(api_function: ApiFunction) -> dict:
    return {
        "name": api_function.name,
        "description": api_function.description,
        "category": api_function.category,
        "tags": list(api_function.tags),
        "parameters": api_function.parameters,
        "schema": api_function.parameter_schema,
    }


def error_response(exc: PlannerError) -> JSONResponse:
    payload = exc.to_dict()
    payload.setdefault("field", None)
    return JSONResponse(payload, status_code=STATUS_BY_KIND.get(exc.kind, 500))


@app.get("/api/functions")
async def list_api_functions() -> JSONResponse:
    functions = [_serialize_api_function(func) for func in get_api_functions()]
    return JSONResponse({"functions": functions})


@app.post("/api/functions/{function_name}")
async def invoke_api_function(function_name: str, request: ApiCallRequest) -> JSONResponse:
    if not has_api(function_name):
        logger.warning("API function not found: %s", function_name)
        raise HTTPException(status_code=404, detail=f"API function '{function_name}' is not registered.")
    try:
        result = await call_api(function_name, **request.arguments)
    except PlannerError as exc:
        logger.info("API function %s rejected (%s): %s", function_name, exc.kind, exc.message)
        return error_response(exc)
    except Exception as exc:  # noqa: BLE001
        logger.exception("API function %s failed", function_name)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    logger.debug("API function %s executed successfully", function_name)
    return JSONResponse({"name": function_name, "result": result})


async def _serve(config: Config) -> None:
    await serve(app, config)


def run_local_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    config = Config()
    config.bind = [f"{host}:{port}"]
    logger.info("Serving Tidy Tortoise API on %s:%s", host, port)
    asyncio.run(_serve(config))
