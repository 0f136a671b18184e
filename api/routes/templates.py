"""Per-shop invoice template endpoints."""

import logging

from fastapi import APIRouter, Depends, Request, status

from api.schemas import (
    ProblemDetail,
    TemplateCreateRequest,
    TemplateDeleteResponse,
    TemplateListResponse,
    TemplateResponse,
)
from core.dependencies import get_session_context, get_templates
from core.logging_utils import sanitize_shop
from gst.core.exceptions import ResourceNotFoundError
from gst.documents.templates import TemplateRegistry
from gst.models.session import SessionContext

router = APIRouter(prefix="/v1/templates", tags=["templates"])
logger = logging.getLogger(__name__)

ERRORS = {
    401: {"description": "Unauthorized", "model": ProblemDetail},
    404: {"description": "Template not found", "model": ProblemDetail},
    422: {"description": "Invalid template or business info", "model": ProblemDetail},
}


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_template(
    request: Request,
    body: TemplateCreateRequest,
    session: SessionContext = Depends(get_session_context),
    templates: TemplateRegistry = Depends(get_templates),
):
    template = templates.register(session.shop, body.to_template())
    logger.info(
        f"Template '{template.name}' registered",
        extra={
            "trace_id": getattr(request.state, "trace_id", None),
            "shop": sanitize_shop(session.shop),
        },
    )
    return TemplateResponse(template=template)


@router.get("", response_model=TemplateListResponse, responses=ERRORS)
async def list_templates(
    session: SessionContext = Depends(get_session_context),
    templates: TemplateRegistry = Depends(get_templates),
):
    owned = templates.list(session.shop)
    return TemplateListResponse(templates=owned, count=len(owned))


@router.get("/default", response_model=TemplateResponse, responses=ERRORS)
async def get_default_template(
    session: SessionContext = Depends(get_session_context),
    templates: TemplateRegistry = Depends(get_templates),
):
    return TemplateResponse(template=templates.default)


@router.get("/{template_id}", response_model=TemplateResponse, responses=ERRORS)
async def get_template(
    template_id: str,
    session: SessionContext = Depends(get_session_context),
    templates: TemplateRegistry = Depends(get_templates),
):
    template = templates.find(template_id, session.shop)
    if template is None:
        raise ResourceNotFoundError("Template", template_id)
    return TemplateResponse(template=template)


@router.delete("/{template_id}", response_model=TemplateDeleteResponse, responses=ERRORS)
async def delete_template(
    template_id: str,
    session: SessionContext = Depends(get_session_context),
    templates: TemplateRegistry = Depends(get_templates),
):
    if not templates.delete(template_id, session.shop):
        raise ResourceNotFoundError("Template", template_id)
    return TemplateDeleteResponse()
