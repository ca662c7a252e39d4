"""Expression API Routes - Library CRUD and expression commands.

Provides REST endpoints for:
- Expression library (list, create, update, delete, enable/disable)
- Validation of externally authored definitions
- Apply, reset and capture commands
- JSON import/export
"""

import json
from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel, Field

from puppet_expressions.api.auth import verify_api_key
from puppet_expressions.api.websocket.events import get_event_broadcaster
from puppet_expressions.api.websocket.parameters import get_parameter_stream
from puppet_expressions.config.settings import get_settings
from puppet_expressions.engine.engine import ExpressionEngine, create_engine
from puppet_expressions.expressions.definition import ExpressionDefinition, ValidationResult

# All expression routes require authentication
router = APIRouter(
    prefix="/expressions",
    tags=["expressions"],
    dependencies=[Depends(verify_api_key)],
)

# Global engine (initialized on first use)
_engine: ExpressionEngine | None = None


def get_engine() -> ExpressionEngine:
    """Get global expression engine."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            sink=get_event_broadcaster(),
            runtime=get_parameter_stream(),
        )
    return _engine


def reset_engine() -> None:
    """Drop the global engine so the next get_engine() builds a fresh one."""
    global _engine
    _engine = None


# Request/Response models
class ExpressionParameterModel(BaseModel):
    """One parameter line of an expression."""

    parameter_id: str = Field(..., description="Model parameter id")
    target_value: float = Field(..., description="Target value (normally 0.0-1.0)")
    weight: float = Field(1.0, description="Blend coefficient, 0.0-1.0")
    blend_mode: str = Field("overwrite", description="overwrite, add or multiply")
    parameter_name: str | None = Field(None, description="Display name (filled from the model)")


class CreateExpressionRequest(BaseModel):
    """Request to register an expression."""

    name: str = Field(..., description="Unique expression name")
    description: str | None = None
    parameters: list[ExpressionParameterModel] = Field(default_factory=list)
    fade_duration_ms: int | None = Field(None, description="Default fade for this expression")
    enabled: bool = True


class UpdateExpressionRequest(BaseModel):
    """Partial update of an expression."""

    name: str | None = None
    description: str | None = None
    parameters: list[ExpressionParameterModel] | None = None
    fade_duration_ms: int | None = None


class ExpressionResponse(BaseModel):
    """Expression as returned by the API."""

    id: str
    name: str
    description: str | None
    parameters: list[ExpressionParameterModel]
    enabled: bool
    fade_duration_ms: int | None
    created_at: str
    modified_at: str
    warnings: list[str] = Field(default_factory=list)


class ExpressionListResponse(BaseModel):
    """All registered expressions."""

    expressions: list[ExpressionResponse]
    count: int
    enabled: list[str]


class EnabledRequest(BaseModel):
    """Enable or disable an expression."""

    enabled: bool


class ValidationResponse(BaseModel):
    """Validator output."""

    is_valid: bool
    errors: list[str]
    warnings: list[str]


class ApplyRequest(BaseModel):
    """Apply a named expression."""

    name: str = Field(..., description="Expression name")
    intensity: float = Field(1.0, description="Steady-state intensity, clamped to 0.0-1.0")
    duration_ms: int | None = Field(None, ge=0, description="Fade length (default if omitted)")
    wait_ready: bool = Field(
        False,
        description="Wait (bounded) for a model to load instead of failing at once",
    )


class ApplyResponse(BaseModel):
    """Outcome of an apply command."""

    expression: str
    expression_id: str
    intensity: float
    duration_ms: int
    skipped_parameters: list[str]
    warnings: list[str]


class CaptureRequest(BaseModel):
    """Save the current pose as a named expression."""

    name: str = Field(..., description="Unique expression name")
    description: str | None = None


class ImportRequest(BaseModel):
    """Import expressions from exported JSON."""

    data: str | dict[str, Any] = Field(..., description="Export JSON text or object")
    merge: bool = Field(False, description="Add to the library instead of replacing it")


class ImportResponse(BaseModel):
    """Import outcome."""

    imported: int
    count: int


def _to_response(
    definition: ExpressionDefinition,
    result: ValidationResult | None = None,
) -> ExpressionResponse:
    data = definition.to_dict()
    return ExpressionResponse(
        **data,
        warnings=list(result.warnings) if result else [],
    )


def _parameters(models: list[ExpressionParameterModel]) -> list[dict[str, Any]]:
    return [m.model_dump(exclude={"parameter_name"}) for m in models]


# Endpoints
@router.get("", response_model=ExpressionListResponse)
async def list_expressions() -> ExpressionListResponse:
    """List every registered expression."""
    engine = get_engine()
    expressions = engine.get_expressions()
    return ExpressionListResponse(
        expressions=[_to_response(d) for d in expressions],
        count=len(expressions),
        enabled=engine.library.enabled_names(),
    )


@router.post("", response_model=ExpressionResponse, status_code=201)
async def create_expression(request: CreateExpressionRequest) -> ExpressionResponse:
    """Validate and register an expression.

    Warnings are returned alongside the created expression.
    """
    definition, result = get_engine().register_expression(
        request.name,
        _parameters(request.parameters),
        description=request.description,
        fade_duration_ms=request.fade_duration_ms,
        enabled=request.enabled,
    )
    return _to_response(definition, result)


@router.post("/validate", response_model=ValidationResponse)
async def validate_expression(
    definition: dict[str, Any] = Body(...),
) -> ValidationResponse:
    """Validate a definition without registering it.

    Checks parameter ids against the loaded model when there is one.
    """
    result = get_engine().validate_expression(definition)
    return ValidationResponse(**result.to_dict())


@router.post("/capture", response_model=ExpressionResponse, status_code=201)
async def capture_expression(request: CaptureRequest) -> ExpressionResponse:
    """Register the committed parameter values as a new expression.

    Only parameters that differ from their defaults are included.
    """
    definition, result = get_engine().capture_expression(
        request.name,
        description=request.description,
    )
    return _to_response(definition, result)


@router.post("/apply", response_model=ApplyResponse)
async def apply_expression(request: ApplyRequest) -> ApplyResponse:
    """Start a fade to a named expression."""
    engine = get_engine()
    if request.wait_ready:
        await engine.wait_until_ready(get_settings().ready_timeout_s)

    result = engine.apply_expression(
        request.name,
        intensity=request.intensity,
        duration_ms=request.duration_ms,
    )
    return ApplyResponse(**result.to_dict())


@router.post("/reset")
async def reset_expression() -> dict[str, Any]:
    """Cancel fades and overrides; restore default values."""
    engine = get_engine()
    values = engine.reset_expression()
    return {
        "status": "reset",
        "values": dict(values),
    }


@router.get("/export")
async def export_expressions() -> Response:
    """Export the library as JSON."""
    return Response(
        content=get_engine().export_expressions(),
        media_type="application/json",
    )


@router.post("/import", response_model=ImportResponse)
async def import_expressions(request: ImportRequest) -> ImportResponse:
    """Import expressions (replace or merge). Nothing changes on error."""
    engine = get_engine()
    text = request.data if isinstance(request.data, str) else json.dumps(request.data)
    imported = engine.import_expressions(text, merge=request.merge)
    return ImportResponse(imported=imported, count=len(engine.library))


@router.get("/{expression_id}", response_model=ExpressionResponse)
async def get_expression(expression_id: str) -> ExpressionResponse:
    """Get one expression by id."""
    return _to_response(get_engine().library.require(expression_id))


@router.put("/{expression_id}", response_model=ExpressionResponse)
async def update_expression(
    expression_id: str,
    request: UpdateExpressionRequest,
) -> ExpressionResponse:
    """Partially update an expression."""
    definition, result = get_engine().update_expression(
        expression_id,
        name=request.name,
        description=request.description,
        parameters=_parameters(request.parameters) if request.parameters is not None else None,
        fade_duration_ms=request.fade_duration_ms,
    )
    return _to_response(definition, result)


@router.delete("/{expression_id}")
async def delete_expression(expression_id: str) -> dict[str, str]:
    """Delete an expression, stopping it if it is playing."""
    definition = get_engine().delete_expression(expression_id)
    return {
        "status": "deleted",
        "id": definition.id,
        "name": definition.name,
    }


@router.put("/{expression_id}/enabled", response_model=ExpressionResponse)
async def set_expression_enabled(
    expression_id: str,
    request: EnabledRequest,
) -> ExpressionResponse:
    """Enable or disable an expression."""
    definition = get_engine().set_expression_enabled(expression_id, request.enabled)
    return _to_response(definition)
