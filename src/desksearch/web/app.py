"""FastAPI application exposing search, suggestions and indexing over HTTP."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import quote, unquote

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from desksearch.config import AppConfig
from desksearch.errors import IndexIOError, QueryError
from desksearch.index.facets import parse_drilldown
from desksearch.index.handler import create_handler
from desksearch.models import QueryResult, Suggestion
from desksearch.preview import PreviewProcessor

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="desksearch", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.db_path = None


class SearchPayload(BaseModel):
    query: str
    db: Path | None = None
    rows: int = 50
    similar: bool = False
    drilldown: Dict[str, str] = Field(default_factory=dict)


class IndexPayload(BaseModel):
    paths: List[str]
    db: str | None = None
    similar: bool = False


def _resolve_db_path(db: Path | None) -> Path:
    default = app.state.db_path if app.state.db_path is not None else AppConfig().db_path
    config = AppConfig(db_path=db if db is not None else default)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _existing_db(db: Path | None) -> Path:
    resolved_db = _resolve_db_path(db)
    if not resolved_db.exists():
        raise HTTPException(
            status_code=404,
            detail=f"Database not found at {resolved_db}. Index some documents first.",
        )
    return resolved_db


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.exception_handler(QueryError)
async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
    LOGGER.error("Query failed: %s", exc, exc_info=exc.__cause__)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(IndexIOError)
async def index_error_handler(request: Request, exc: IndexIOError) -> JSONResponse:
    LOGGER.error("Index access failed: %s", exc, exc_info=exc.__cause__)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def _run_query(
    resolved_db: Path, config: AppConfig, query: str, backlink: str, drilldown: Dict[str, str]
) -> QueryResult:
    with create_handler(resolved_db, config) as handler:
        return handler.perform_query(query, backlink, backlink, config, drilldown)


@app.post("/search")
async def search_documents(payload: SearchPayload) -> QueryResult:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    resolved_db = _existing_db(payload.db)
    config = AppConfig(
        db_path=resolved_db,
        number_of_search_results=max(1, min(payload.rows, 200)),
        show_similar_documents=payload.similar,
    )
    backlink = "/search/" + quote(query, safe="")
    return await asyncio.to_thread(_run_query, resolved_db, config, query, backlink, payload.drilldown)


@app.get("/search/{query}")
@app.get("/search/{query}/{drilldown:path}")
async def drilldown_search(request: Request, query: str, drilldown: str = "") -> QueryResult:
    """Search with drilldown filters taken from the trailing path segments.

    Facet links in the response extend the current path by one segment.
    """
    raw_path = request.scope.get("raw_path", b"").decode("latin-1").split("?", 1)[0] or request.url.path
    # the decoded path params split on an encoded "/" inside the query
    query = unquote(raw_path.split("/")[2])
    segments = raw_path.rstrip("/").split("/")[3:]
    try:
        filters = parse_drilldown([unquote(segment) for segment in segments])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    resolved_db = _existing_db(None)
    config = AppConfig(db_path=resolved_db)
    return await asyncio.to_thread(_run_query, resolved_db, config, query, raw_path.rstrip("/"), filters)


@app.get("/suggest")
async def suggest_terms(term: str, db: Path | None = None) -> dict[str, List[Suggestion]]:
    resolved_db = _existing_db(db)
    config = AppConfig(db_path=resolved_db)

    def run() -> List[Suggestion]:
        with create_handler(resolved_db, config) as handler:
            return handler.find_suggestion_terms_for(term)

    return {"suggestions": await asyncio.to_thread(run)}


@app.get("/preview")
async def preview_document(path: Path) -> Response:
    processor = PreviewProcessor()
    if not processor.is_preview_available(path):
        raise HTTPException(status_code=404, detail=f"No preview available for {path}")
    try:
        image = await asyncio.to_thread(processor.render, path)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(content=image, media_type="image/png")


@app.delete("/documents")
async def delete_document(path: str, db: Path | None = None) -> dict[str, Any]:
    """Remove a document from the index by its path."""
    resolved_db = _existing_db(db)
    config = AppConfig(db_path=resolved_db)

    def run() -> None:
        with create_handler(resolved_db, config) as handler:
            handler.remove_from_index(path)

    await asyncio.to_thread(run)
    return {"status": "ok", "deleted": path}


def _run_index_job(paths: List[Path], config: AppConfig, resolved_db: Path) -> dict[str, Any]:
    with create_handler(resolved_db, config, embed=True) as handler:
        stats = handler.index(paths)

    return {
        "inserted": stats.inserted,
        "updated": stats.updated,
        "skipped": stats.skipped,
        "failed": stats.failed,
        "processed_files": [str(path) for path in stats.processed_files],
    }


@app.post("/index")
async def index_documents(payload: IndexPayload) -> dict[str, Any]:
    if not payload.paths:
        raise HTTPException(status_code=400, detail="No path provided")

    resolved_db = _resolve_db_path(Path(payload.db) if payload.db is not None else None)
    _ensure_db_parent(resolved_db)
    config = AppConfig(db_path=resolved_db, show_similar_documents=payload.similar)

    resolved_paths = []
    for p in payload.paths:
        clean_path = p.strip().replace("\r", "").replace("\n", "")
        if not clean_path:
            continue
        if "\0" in clean_path:
            raise HTTPException(status_code=400, detail="Invalid path: contains null byte")

        # realpath resolves symlinks and ".." before any filesystem access
        validated_path = Path(os.path.realpath(os.path.expanduser(clean_path)))
        if not validated_path.exists():
            raise HTTPException(status_code=404, detail="Path not found: %s" % clean_path)
        resolved_paths.append(validated_path)

    stats = await asyncio.to_thread(_run_index_job, resolved_paths, config, resolved_db)
    return {"status": "ok", "db": str(resolved_db), "stats": stats}
