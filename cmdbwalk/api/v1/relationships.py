"""Relationship traversal endpoint: impact analysis and dependency mapping."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from cmdbwalk.api.dependencies import get_traversal_service
from cmdbwalk.api.v1.schemas.relationships import RelationshipsRequest, RelationshipsResponse
from cmdbwalk.services.traversal_service import TraversalService
from cmdbwalk.utils.exceptions import NotFoundError, RemoteQueryError, ValidationError
from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/relationships", tags=["relationships"])


@router.post("", response_model=RelationshipsResponse)
async def traverse_relationships(
    body: RelationshipsRequest,
    service: TraversalService = Depends(get_traversal_service),
) -> RelationshipsResponse:
    """Walk CMDB relationships upstream, downstream or both from one CI."""
    try:
        result = await service.traverse(body.to_traversal_request())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RemoteQueryError as exc:
        logger.error("root_resolution_failed", error=str(exc), status=exc.status)
        raise HTTPException(status_code=502, detail=str(exc))

    return RelationshipsResponse.model_validate(result.to_record())
