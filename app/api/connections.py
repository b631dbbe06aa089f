"""Connection formatting API routes.

Reads and saves the custom placeholders and external properties of a feed
connection, validates pending edits and previews articles against them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_definition_store, get_preview_coordinator, get_projection_engine
from app.api.schemas import (
    CustomPlaceholdersUpdate,
    ErrorResponse,
    ExternalPropertiesUpdate,
    PreviewRequest,
    PreviewResponse,
    ValidateRequest,
    ValidationResponse,
)
from app.core.exceptions import DefinitionValidationError, PreviewSupersededError
from app.services.definition_store import DefinitionStore
from app.services.preview import PreviewCoordinator
from app.strategies.placeholder_engine.engine import ProjectionEngine
from app.strategies.placeholder_engine.formatter import render_placeholders
from app.strategies.placeholder_engine.models import ConnectionDefinitions, ProjectionResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/feeds/{feed_id}/connections/{connection_id}",
    tags=["connections"],
)


@router.get("/definitions", response_model=ConnectionDefinitions)
async def get_definitions(
    feed_id: str,
    connection_id: str,
    store: DefinitionStore = Depends(get_definition_store),
) -> ConnectionDefinitions:
    """Return the saved definitions of a connection.

    Connections without saved definitions return empty lists.
    """
    try:
        return await store.get(feed_id, connection_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error loading definitions for {feed_id}/{connection_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error loading definitions",
        ) from e


@router.put(
    "/custom-placeholders",
    response_model=ConnectionDefinitions,
    responses={422: {"model": ErrorResponse}},
)
async def save_custom_placeholders(
    feed_id: str,
    connection_id: str,
    body: CustomPlaceholdersUpdate,
    store: DefinitionStore = Depends(get_definition_store),
) -> ConnectionDefinitions:
    """Validate, normalize and save custom placeholders.

    Args:
        feed_id: Feed owning the connection.
        connection_id: Connection being formatted.
        body: The complete list of custom placeholders.
        store: Definition store.

    Returns:
        The definitions as saved.

    Raises:
        DefinitionValidationError: If any placeholder is invalid; nothing is saved.
    """
    try:
        logger.info(
            f"Saving {len(body.custom_placeholders)} custom placeholder(s) "
            f"for {feed_id}/{connection_id}"
        )
        return await store.save_custom_placeholders(feed_id, connection_id, body.custom_placeholders)
    except (HTTPException, DefinitionValidationError):
        raise
    except Exception as e:
        logger.error(f"Error saving custom placeholders: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving custom placeholders",
        ) from e


@router.put(
    "/external-properties",
    response_model=ConnectionDefinitions,
    responses={422: {"model": ErrorResponse}},
)
async def save_external_properties(
    feed_id: str,
    connection_id: str,
    body: ExternalPropertiesUpdate,
    store: DefinitionStore = Depends(get_definition_store),
) -> ConnectionDefinitions:
    """Validate and save external properties."""
    try:
        logger.info(
            f"Saving {len(body.external_properties)} external propert(ies) "
            f"for {feed_id}/{connection_id}"
        )
        return await store.save_external_properties(feed_id, connection_id, body.external_properties)
    except (HTTPException, DefinitionValidationError):
        raise
    except Exception as e:
        logger.error(f"Error saving external properties: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving external properties",
        ) from e


@router.post("/validate", response_model=ValidationResponse)
async def validate_definitions(
    feed_id: str,
    connection_id: str,
    body: ValidateRequest,
    store: DefinitionStore = Depends(get_definition_store),
) -> ValidationResponse:
    """Dry-run validation of pending definitions. Never persists."""
    pending = ConnectionDefinitions(
        custom_placeholders=body.custom_placeholders or [],
        external_properties=body.external_properties or [],
    )
    result = store.validate(pending)
    if not result.ok:
        logger.debug(f"Pending definitions for {feed_id}/{connection_id} have {len(result.issues)} issue(s)")
    return ValidationResponse(ok=result.ok, issues=result.issues)


@router.post(
    "/preview",
    response_model=PreviewResponse,
    responses={409: {"model": ErrorResponse}},
)
async def preview_article(
    feed_id: str,
    connection_id: str,
    body: PreviewRequest,
    store: DefinitionStore = Depends(get_definition_store),
    engine: ProjectionEngine = Depends(get_projection_engine),
    coordinator: PreviewCoordinator = Depends(get_preview_coordinator),
) -> PreviewResponse:
    """Project an article and optionally render a message template.

    Pending definitions in the request take precedence over saved ones, so
    unsaved edits can be previewed.

    Raises:
        PreviewSupersededError: If a newer preview was issued for the session.
    """
    try:
        placeholders = body.custom_placeholders
        properties = body.external_properties
        if placeholders is None or properties is None:
            saved = await store.get(feed_id, connection_id)
            placeholders = saved.custom_placeholders if placeholders is None else placeholders
            properties = saved.external_properties if properties is None else properties

        async def run_preview() -> tuple[ProjectionResult, str | None]:
            result = await engine.project(body.article, placeholders, properties)
            rendered = (
                render_placeholders(body.content, result.article)
                if body.content is not None
                else None
            )
            return result, rendered

        session_key = f"{feed_id}:{connection_id}:{body.session_id}"
        request_id, (result, rendered) = await coordinator.run(
            session_key, run_preview, body.request_id
        )

        return PreviewResponse(
            request_id=request_id,
            article=result.article,
            failures=result.failures,
            rendered_content=rendered,
        )

    except (HTTPException, PreviewSupersededError):
        raise
    except Exception as e:
        logger.error(f"Error previewing article for {feed_id}/{connection_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating preview",
        ) from e
