"""Artifact download endpoint."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response

from api.schemas import ProblemDetail
from core.dependencies import get_session_context, get_storage
from gst.models.session import SessionContext
from gst.storage.service import ArtifactStorageService

router = APIRouter(tags=["downloads"])
logger = logging.getLogger(__name__)


def attachment_headers(filename: str, size: int) -> dict[str, str]:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    return {
        "Content-Disposition": (
            f'attachment; filename="{ascii_name}"; '
            f"filename*=UTF-8''{quote(filename)}"
        ),
        "Content-Length": str(size),
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
    }


@router.get(
    "/v1/downloads/{key}",
    responses={
        200: {"description": "Stored file"},
        404: {"description": "Unknown key", "model": ProblemDetail},
        410: {"description": "File has expired", "model": ProblemDetail},
    },
)
async def download_artifact(
    key: str,
    request: Request,
    session: SessionContext = Depends(get_session_context),
    storage: ArtifactStorageService = Depends(get_storage),
):
    artifact = await storage.retrieve(key, owner=session.shop)
    logger.info(
        f"Serving {artifact.filename} ({artifact.size} bytes)",
        extra={
            "trace_id": getattr(request.state, "trace_id", None),
            "artifact_key": key,
        },
    )
    return Response(
        content=artifact.payload,
        media_type=artifact.content_type,
        headers=attachment_headers(artifact.filename, artifact.size),
    )
