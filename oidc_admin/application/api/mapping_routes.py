"""API routes for OIDC group to role mapping management."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from oidc_admin.application.di import get_container
from oidc_admin.domain.errors import (
    DuplicateIdError,
    LocalValidationError,
    MappingAdminError,
    NotFoundError,
    WorkflowBusyError,
)
from oidc_admin.domain.models.mapping_models import (
    ActionKind,
    MappingForm,
    MappingRecord,
    PendingAction,
)
from oidc_admin.domain.services import ActionWorkflow
from oidc_admin.domain.services.snapshot_export import build_snapshot_download

logger = logging.getLogger(__name__)
router = APIRouter()

PERMISSION_DENIED = (
    "You do not have the appropriate permissions to edit the OIDC configuration. "
    "Please contact your Looker administrator for assistance."
)


# ============================================
# PYDANTIC MODELS
# ============================================

class MappingFormRequest(BaseModel):
    """Request model for the single mapping form."""
    name: str = Field("", description="Mapping name (required for additions)")
    looker_group_name: Optional[str] = Field(None, description="Looker group name, defaults to name")
    looker_group_id: Optional[str] = Field(None, description="Looker group ID (ignored on update)")
    role_ids: str = Field("", description="Comma-separated role IDs")

    def to_form(self) -> MappingForm:
        return MappingForm(
            name=self.name,
            external_group_name=self.looker_group_name or "",
            external_group_ref=self.looker_group_id or "",
            role_ids=self.role_ids,
        )


class BulkMappingRequest(BaseModel):
    """Request model for bulk additions."""
    text: str = Field(..., description="One mapping per line: group_id,group_name,name,role_ids...")


class MappingResponse(BaseModel):
    """Response model for a mapping."""
    id: str
    looker_group_id: Optional[str] = None
    looker_group_name: str
    name: str
    role_ids: List[str]


class RejectedLineResponse(BaseModel):
    """Bulk line that was skipped."""
    line_number: int
    text: str
    reason: str


class PendingActionResponse(BaseModel):
    """Response model for the action awaiting confirmation."""
    kind: Optional[str] = None
    title: str = ""
    message: str = ""
    count: int = 0
    target_id: Optional[str] = None
    candidates: List[MappingResponse] = []
    rejected_lines: List[RejectedLineResponse] = []


class CommitStatusResponse(BaseModel):
    """Response model for commit progress."""
    status: Optional[str] = None
    in_flight: bool
    error: Optional[str] = None
    error_type: Optional[str] = None


class ConfirmResponse(BaseModel):
    """Result of confirming a pending action."""
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    mappings: List[MappingResponse]


class OidcConfigDetailsResponse(BaseModel):
    """Selected OIDC configuration details."""
    enabled: bool
    audience: Optional[str] = None
    issuer: Optional[str] = None
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    userinfo_endpoint: Optional[str] = None
    scopes: List[str] = []
    groups_attribute: Optional[str] = None
    set_roles_from_groups: bool


# ============================================
# HELPERS
# ============================================

async def get_admin_workflow() -> ActionWorkflow:
    """Resolve the workflow, rejecting sessions without OIDC admin access."""
    container = get_container()
    workflow = await container.init_workflow()
    if not workflow.store.admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=PERMISSION_DENIED)
    return workflow


def _mapping_response(mapping: MappingRecord) -> MappingResponse:
    return MappingResponse(**mapping.to_dict())


def _error_to_http(error: MappingAdminError) -> HTTPException:
    if isinstance(error, LocalValidationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (DuplicateIdError, WorkflowBusyError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


def _pending_response(workflow: ActionWorkflow, action: Optional[PendingAction]) -> PendingActionResponse:
    if action is None:
        return PendingActionResponse()

    if action.kind is ActionKind.ADD:
        count = len(action.candidates)
        return PendingActionResponse(
            kind=action.kind.value,
            title="Confirm New Mappings",
            message=f"You are about to add {count} new mapping(s).",
            count=count,
            candidates=[_mapping_response(m) for m in action.candidates],
            rejected_lines=[
                RejectedLineResponse(line_number=r.line_number, text=r.text, reason=r.reason)
                for r in action.rejected_lines
            ],
        )

    target = workflow.store.find(action.target_id)
    target_name = target.name if target else action.target_id
    if action.kind is ActionKind.UPDATE:
        return PendingActionResponse(
            kind=action.kind.value,
            title="Confirm Update",
            message=f'You are about to update the mapping for "{target_name}".',
            count=1,
            target_id=action.target_id,
        )
    return PendingActionResponse(
        kind=action.kind.value,
        title="Confirm Deletion",
        message=(
            f'Are you sure you want to delete the mapping for "{target_name}"? '
            f"This action cannot be undone."
        ),
        count=1,
        target_id=action.target_id,
    )


# ============================================
# CONFIGURATION ENDPOINTS
# ============================================

@router.get("/oidc/config", response_model=OidcConfigDetailsResponse)
async def get_oidc_config_details(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Current OIDC configuration details.

    Returns:
        Enabled flag, audience, issuer, endpoints, scopes and group settings
    """
    config = workflow.store.snapshot or {}
    return OidcConfigDetailsResponse(
        enabled=bool(config.get("enabled")),
        audience=config.get("audience") or None,
        issuer=config.get("issuer") or None,
        authorization_endpoint=config.get("authorization_endpoint") or None,
        token_endpoint=config.get("token_endpoint") or None,
        userinfo_endpoint=config.get("userinfo_endpoint") or None,
        scopes=config.get("scopes") or [],
        groups_attribute=config.get("groups_attribute") or None,
        set_roles_from_groups=bool(config.get("set_roles_from_groups")),
    )


@router.get("/oidc/config/download")
async def download_oidc_config(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Download the OIDC configuration with the current mappings as JSON.
    """
    try:
        download = build_snapshot_download(workflow.store.snapshot, workflow.store.mappings)
    except LocalValidationError as e:
        logger.error(str(e))
        raise _error_to_http(e)

    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


# ============================================
# MAPPING ENDPOINTS
# ============================================

@router.get("/oidc/mappings", response_model=List[MappingResponse])
async def list_mappings(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    List the committed group to role mappings, in order.
    """
    return [_mapping_response(m) for m in workflow.store.mappings]


@router.post("/oidc/mappings", response_model=PendingActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def stage_add_mapping(
    request_body: MappingFormRequest,
    workflow: ActionWorkflow = Depends(get_admin_workflow)
):
    """
    Stage a single mapping for addition. Nothing is saved until confirmed.
    """
    try:
        action = workflow.request_add(request_body.to_form())
    except MappingAdminError as e:
        raise _error_to_http(e)
    return _pending_response(workflow, action)


@router.post("/oidc/mappings/bulk", response_model=PendingActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def stage_bulk_add_mappings(
    request_body: BulkMappingRequest,
    workflow: ActionWorkflow = Depends(get_admin_workflow)
):
    """
    Stage several mappings parsed from bulk text.

    Malformed lines are skipped and listed in ``rejected_lines``.
    """
    try:
        action = workflow.request_add(request_body.text)
    except MappingAdminError as e:
        raise _error_to_http(e)
    return _pending_response(workflow, action)


@router.put("/oidc/mappings/{mapping_id}", response_model=PendingActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def stage_update_mapping(
    mapping_id: str,
    request_body: MappingFormRequest,
    workflow: ActionWorkflow = Depends(get_admin_workflow)
):
    """
    Stage an update of an existing mapping.
    """
    try:
        action = workflow.request_update(mapping_id, request_body.to_form())
    except MappingAdminError as e:
        raise _error_to_http(e)
    return _pending_response(workflow, action)


@router.delete("/oidc/mappings/{mapping_id}", response_model=PendingActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def stage_delete_mapping(
    mapping_id: str,
    workflow: ActionWorkflow = Depends(get_admin_workflow)
):
    """
    Stage removal of an existing mapping.
    """
    try:
        action = workflow.request_delete(mapping_id)
    except MappingAdminError as e:
        raise _error_to_http(e)
    return _pending_response(workflow, action)


# ============================================
# CONFIRMATION ENDPOINTS
# ============================================

@router.get("/oidc/pending", response_model=PendingActionResponse)
async def get_pending_action(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    The action awaiting confirmation, if any.
    """
    return _pending_response(workflow, workflow.state)


@router.post("/oidc/pending/confirm", response_model=ConfirmResponse)
async def confirm_pending_action(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Test the pending change against Looker, then save it.

    A failed test or update leaves the mappings unchanged; the error is
    returned and kept until dismissed.
    """
    if workflow.is_idle:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="There is no pending action to confirm"
        )

    try:
        success = await workflow.confirm()
    except WorkflowBusyError as e:
        raise _error_to_http(e)

    error = workflow.last_error
    return ConfirmResponse(
        success=success,
        error=str(error) if error else None,
        error_type=type(error).__name__ if error else None,
        mappings=[_mapping_response(m) for m in workflow.store.mappings],
    )


@router.post("/oidc/pending/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_pending_action(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Discard the pending action without contacting Looker.
    """
    workflow.cancel()
    return None


@router.get("/oidc/status", response_model=CommitStatusResponse)
async def get_commit_status(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Progress of the current commit and the last error, if any.
    """
    error = workflow.last_error
    return CommitStatusResponse(
        status=workflow.status.value if workflow.status else None,
        in_flight=workflow.in_flight,
        error=str(error) if error else None,
        error_type=type(error).__name__ if error else None,
    )


@router.delete("/oidc/error", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_error(workflow: ActionWorkflow = Depends(get_admin_workflow)):
    """
    Dismiss the last error.
    """
    workflow.dismiss_error()
    return None
