"""SQL statement library endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from src.api.models import (
    FavoriteRequest,
    OperationResponse,
    SaveStatementRequest,
    SqlStatement,
)
from src.config.settings import Settings, get_settings
from src.services.errors import PersistenceError
from src.services.statements import SqlStatementService

router = APIRouter()


@router.get("/", response_model=list[SqlStatement])
async def list_statements(
    scope: str | None = None,
    settings: Settings = Depends(get_settings),
) -> list[SqlStatement]:
    """List statements in a scope, favourites first."""
    svc = SqlStatementService(settings)
    try:
        return await svc.list_statements(scope)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.get("/{statement_id}", response_model=SqlStatement)
async def get_statement(
    statement_id: str,
    settings: Settings = Depends(get_settings),
) -> SqlStatement:
    svc = SqlStatementService(settings)
    try:
        statement = await svc.get_statement(statement_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    if statement is None:
        raise HTTPException(status_code=404, detail="Statement not found")
    return statement


@router.post("/", response_model=OperationResponse, status_code=201)
async def save_statement(
    request: SaveStatementRequest,
    settings: Settings = Depends(get_settings),
) -> OperationResponse:
    svc = SqlStatementService(settings)
    try:
        statement_id = await svc.save_statement(request)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return OperationResponse(id=statement_id)


@router.put("/{statement_id}/favorite", response_model=OperationResponse)
async def set_favorite(
    statement_id: str,
    request: FavoriteRequest,
    settings: Settings = Depends(get_settings),
) -> OperationResponse:
    svc = SqlStatementService(settings)
    try:
        await svc.set_favorite(statement_id, request.is_favorite)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return OperationResponse(id=statement_id)


@router.delete("/{statement_id}", response_model=OperationResponse)
async def delete_statement(
    statement_id: str,
    settings: Settings = Depends(get_settings),
) -> OperationResponse:
    svc = SqlStatementService(settings)
    try:
        await svc.delete_statement(statement_id)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return OperationResponse(id=statement_id)
