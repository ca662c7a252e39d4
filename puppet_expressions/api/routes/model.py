"""Model API Routes - Catalogue loading, parameter introspection and overrides.

Provides REST endpoints for:
- Loading a model (descriptor body or file path)
- Listing, searching and grouping parameters
- Direct parameter overrides and committed values
- Engine state
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from puppet_expressions.api.auth import verify_api_key
from puppet_expressions.api.routes.expressions import get_engine
from puppet_expressions.model.catalogue import ModelParameter
from puppet_expressions.model.classifier import classify, is_expression_parameter

router = APIRouter(
    tags=["model"],
    dependencies=[Depends(verify_api_key)],
)


# Request/Response models
class LoadModelRequest(BaseModel):
    """Load a model from an inline descriptor or a file path."""

    descriptor: dict[str, Any] | None = Field(None, description="CDI3 descriptor JSON")
    model_path: str | None = Field(None, description="Model or descriptor file path")
    model_name: str | None = Field(None, description="Overrides the descriptor name")


class ModelResponse(BaseModel):
    """Loaded model summary."""

    model_name: str
    parameter_count: int
    expression_parameter_count: int
    version: str | None


class ParameterResponse(BaseModel):
    """One catalogue parameter."""

    id: str
    name: str
    index: int
    default_value: float
    min_value: float
    max_value: float
    description: str | None = None
    category: str | None = None
    group_id: str | None = None
    is_expression_parameter: bool = False


class SetParameterRequest(BaseModel):
    """Direct parameter override."""

    value: float
    weight: float = Field(1.0, description="Blend coefficient, 0.0-1.0")
    blend_mode: str = Field("overwrite", description="overwrite, add or multiply")


class ParameterValueResponse(BaseModel):
    """Committed value after an override."""

    parameter_id: str
    value: float


class StateResponse(BaseModel):
    """Engine state."""

    current_expression: str | None
    target_expression: str | None
    transition_progress: float
    intensity: float
    is_transitioning: bool
    model_name: str | None
    override_count: int
    transition: dict[str, Any] | None = None


def _parameter_response(param: ModelParameter) -> ParameterResponse:
    return ParameterResponse(
        **param.to_dict(),
        is_expression_parameter=(
            is_expression_parameter(param.id) or is_expression_parameter(param.name)
        ),
    )


# Endpoints
@router.post("/model", response_model=ModelResponse)
async def load_model(request: LoadModelRequest) -> ModelResponse:
    """Load a model. The previous model stays active if loading fails."""
    engine = get_engine()
    if request.descriptor is not None:
        catalogue = engine.load_model(request.descriptor, model_name=request.model_name)
    elif request.model_path:
        catalogue = engine.load_model_file(request.model_path, model_name=request.model_name)
    else:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Either descriptor or model_path is required",
        )

    return ModelResponse(
        model_name=catalogue.model_name,
        parameter_count=len(catalogue),
        expression_parameter_count=len(classify(catalogue).expression_parameters),
        version=str(catalogue.version) if catalogue.version is not None else None,
    )


@router.get("/model/parameters", response_model=list[ParameterResponse])
async def list_parameters(
    expression_only: bool = Query(False, description="Only expression-capable parameters"),
    q: str | None = Query(None, description="Search id, name, description and category"),
) -> list[ParameterResponse]:
    """List catalogue parameters in catalogue order."""
    engine = get_engine()
    params = engine.search_parameters(q) if q else engine.get_parameters()

    if expression_only:
        expression_ids = set(engine.classify_parameters().expression_ids)
        params = [p for p in params if p.id in expression_ids]

    return [_parameter_response(p) for p in params]


@router.get("/model/parameters/categories", response_model=dict[str, list[ParameterResponse]])
async def parameter_categories() -> dict[str, list[ParameterResponse]]:
    """Parameters grouped into Expression, descriptor categories, Movement, Pose, Other."""
    return {
        category: [_parameter_response(p) for p in params]
        for category, params in get_engine().categorize_parameters().items()
    }


@router.get("/model/statistics")
async def parameter_statistics() -> dict[str, Any]:
    """Range, type and category counts for the loaded model."""
    engine = get_engine()
    return {"model_name": engine.model_name, **engine.parameter_statistics()}


@router.put("/parameters/{parameter_id}", response_model=ParameterValueResponse)
async def set_parameter(parameter_id: str, request: SetParameterRequest) -> ParameterValueResponse:
    """Override one parameter directly, on top of any expression."""
    value = get_engine().set_parameter_value(
        parameter_id,
        request.value,
        weight=request.weight,
        blend_mode=request.blend_mode,
    )
    return ParameterValueResponse(parameter_id=parameter_id, value=value)


@router.get("/parameters/values")
async def parameter_values() -> dict[str, Any]:
    """Committed value per parameter."""
    engine = get_engine()
    return {
        "model_name": engine.model_name,
        "values": dict(engine.get_parameter_values()),
    }


@router.get("/state", response_model=StateResponse)
async def get_state() -> StateResponse:
    """Current/target expression, fade progress and intensity."""
    engine = get_engine()
    transition = engine.scheduler.state
    return StateResponse(
        **engine.get_state().to_dict(),
        transition=transition.to_dict() if transition else None,
    )
