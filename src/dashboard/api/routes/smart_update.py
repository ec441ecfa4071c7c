"""Smart update endpoint: free-text instruction in, applied diff out."""

import logging

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from src.dashboard.api.dependencies import SmartUpdateDep
from src.dashboard.models.imports import SmartUpdateRequest, SmartUpdateResponse
from src.domain.ports import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["smart-update"])


@router.post("/smart-update", response_model=SmartUpdateResponse)
async def smart_update(request: SmartUpdateRequest, service: SmartUpdateDep) -> SmartUpdateResponse:
    """Translate an instruction into a reconciliation diff and apply it.

    Only meals, activities, guidelines and house rules are supported; other
    targets are answered with 400 and the store is left untouched.
    """
    target = request.target()
    if not target or not (request.prompt or "").strip():
        raise ValidationError("actionId and prompt are required")

    outcome = await run_in_threadpool(service.run, target, request.prompt.strip())
    logger.info(f"Smart update on {target}: {outcome.summary}")
    return SmartUpdateResponse(action=outcome.action_name, count=outcome.count, summary=outcome.summary)
