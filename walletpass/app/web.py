# walletpass/app/web.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from walletpass.app.settings import settings
from walletpass.core.errors import (
    DescriptorValidationFailed,
    MissingRequiredInput,
    ProjectNotFound,
    UninitializedProject,
    WalletPassError,
)
from walletpass.core.logging import logContext
from walletpass.core.time import nowMs
from walletpass.bundle.project import Project
from walletpass.bundle.writer import BUNDLE_MEDIA_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()

_MODEL_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_STATUS_BY_ERROR: tuple[tuple[type[WalletPassError], int], ...] = (
    (ProjectNotFound, 404),
    (UninitializedProject, 422),
    (DescriptorValidationFailed, 422),
    (MissingRequiredInput, 422),
)



class PassRequest(BaseModel):
    """Body of POST /passes/{modelName}."""
    model_config = ConfigDict(extra="forbid")

    overrides: dict[str, Any] = Field(default_factory=dict)
    localizations: dict[str, dict[str, str]] = Field(default_factory=dict)
    barcode: str | dict[str, Any] | list[dict[str, Any]] | None = None
    legacyBarcodeFormat: str | None = None
    expiration: str | None = None
    voided: bool = False
    shouldOverwrite: bool = True



def statusForError(err: WalletPassError) -> int:
    for errorType, status in _STATUS_BY_ERROR:
        if isinstance(err, errorType):
            return status
    return 500



def _projectFor(modelName: str, body: PassRequest) -> Project:
    if not _MODEL_NAME_RE.match(modelName):
        raise ProjectNotFound(f"Invalid model name '{modelName}'")

    modelsDir = Path(str(settings("server.modelsDir", "models")))
    project = Project({
        "model": str(modelsDir / modelName),
        "certificates": settings("certificates", {}),
        "overrides": body.overrides,
        "shouldOverwrite": body.shouldOverwrite,
    })
    for language, translations in body.localizations.items():
        project.addLocalization(language, translations)
    if body.barcode is not None:
        project.setScanCode(body.barcode)
        if body.legacyBarcodeFormat:
            project.selectLegacyScanCode(body.legacyBarcodeFormat)
    if body.expiration:
        project.setExpiration(body.expiration)
    if body.voided:
        project.markVoided()
    return project



@router.post("/passes/{modelName}")
async def createPass(modelName: str, body: PassRequest):
    try:
        with logContext(route="passes.create", model=modelName):
            project = _projectFor(modelName, body)
            stream = await project.assemble()
    except WalletPassError as err:
        status = statusForError(err)
        if status >= 500:
            logger.exception("Pass assembly failed for model '%s'", modelName)
        else:
            logger.info("Pass request rejected for model '%s': %s", modelName, err)
        return JSONResponse({"error": type(err).__name__, "message": str(err)}, status_code=status)

    return StreamingResponse(
        stream.aiterChunks(),
        media_type=BUNDLE_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{modelName}.pkpass"'},
    )



@router.get("/health")
async def health():
    return {"ok": True, "ts": nowMs()}
