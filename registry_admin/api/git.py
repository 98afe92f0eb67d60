"""
Git source helpers for the registry creation form: format validation,
branch suggestions and best-effort logo discovery. None of these call a
git hosting API.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from registry_admin.api.deps import get_content_probe, get_source_validator
from registry_admin.schemas.validation import (
    GitBranchesRequest,
    GitBranchInfo,
    GitFileValidateRequest,
    GitLogoResponse,
    GitValidateRequest,
    ValidationResult,
)
from registry_admin.services.content_probe import ContentProbe
from registry_admin.services.source_validator import (
    SourceValidator,
    get_branch_suggestions,
    validate_file_path,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/validate", response_model=ValidationResult)
async def validate_git_source(
    request: GitValidateRequest,
    validator: SourceValidator = Depends(get_source_validator),
):
    logger.info(f"Validating Git repository: {request.repository}, branch: {request.branch}, path: {request.path}")
    return validator.validate_git_source(request.repository, request.branch, request.path)


@router.post("/branches", response_model=List[GitBranchInfo])
async def suggest_branches(request: GitBranchesRequest):
    """Common branch names filtered by ``search``; no repository lookup."""
    logger.debug(f"Suggesting branches for {request.repository}, search: {request.search or 'none'}")
    return get_branch_suggestions(request.search)


@router.post("/validate-file", response_model=ValidationResult)
async def validate_git_file(
    request: GitFileValidateRequest,
    validator: SourceValidator = Depends(get_source_validator),
):
    url_result = validator.validate_git_url(request.repository)
    if not url_result.valid:
        return url_result
    return validate_file_path(request.path)


@router.post("/logo", response_model=GitLogoResponse)
async def discover_logo(
    request: GitValidateRequest,
    probe: ContentProbe = Depends(get_content_probe),
):
    logo_url = await probe.discover_logo(request.repository, request.branch or "main")
    return GitLogoResponse(logo_url=logo_url)
