"""Document request endpoints - request, approve, index, list."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from ntask.api.deps import get_document_indexer, get_request_workflow
from ntask.errors import ValidationError
from ntask.models.documents import DocumentRequest, RequestStatus
from ntask.workflow.indexing import DocumentIndexer
from ntask.workflow.requests import DocumentRequestWorkflow, SubmitResult

router = APIRouter(prefix="/documents", tags=["documents"])


class CreateDocumentRequestBody(BaseModel):
    """Request body for POST /documents/request.

    Fields are optional here so that missing values are reported by the
    workflow with the standard error body.
    """

    requester_email: str | None = None
    requester_department: str | None = None
    keyword: str | None = None
    approver_email: str | None = None
    urgency: str | None = None


class ApprovalBody(BaseModel):
    """Request body for POST /documents/approve."""

    request_id: str | None = None
    action: str | None = None
    document_id: str | None = None
    sharing_link: str | None = None
    rejection_reason: str | None = None


class ApprovalResponse(BaseModel):
    """Response for POST /documents/approve."""

    success: bool = True
    message: str
    request: DocumentRequest


class RequestListResponse(BaseModel):
    """Response for GET /documents/requests."""

    success: bool = True
    requests: list[DocumentRequest]


@router.post("/request", response_model=SubmitResult)
async def create_request(
    body: CreateDocumentRequestBody,
    workflow: Annotated[DocumentRequestWorkflow, Depends(get_request_workflow)],
) -> SubmitResult:
    """Search for matching documents and route the request to the approver.

    Returns success=false with empty results (still 200) when nothing matched.
    """
    return await workflow.submit(
        requester_email=body.requester_email,
        keyword=body.keyword,
        approver_email=body.approver_email,
        requester_department=body.requester_department,
        urgency=body.urgency,
    )


@router.get("/approve")
async def check_approval_link(
    workflow: Annotated[DocumentRequestWorkflow, Depends(get_request_workflow)],
    request_id: str | None = None,
    action: str | None = None,
) -> RedirectResponse:
    """Landing point for the approve/reject links in the approver email."""
    form_url = await workflow.check_action(request_id, action)
    return RedirectResponse(form_url)


@router.post("/approve", response_model=ApprovalResponse)
async def process_approval(
    body: ApprovalBody,
    workflow: Annotated[DocumentRequestWorkflow, Depends(get_request_workflow)],
) -> ApprovalResponse:
    """Complete an approval (document + sharing link) or a rejection (reason)."""
    request = await workflow.process(
        body.request_id,
        body.action,
        document_id=body.document_id,
        sharing_link=body.sharing_link,
        rejection_reason=body.rejection_reason,
    )
    verb = "approved" if request.status == RequestStatus.approved else "rejected"
    return ApprovalResponse(message=f"Request {verb} successfully", request=request)


@router.post("/index")
async def index_document(
    indexer: Annotated[DocumentIndexer, Depends(get_document_indexer)],
    file: Annotated[UploadFile | None, File()] = None,
    file_name: Annotated[str | None, Form(alias="fileName")] = None,
    file_path: Annotated[str | None, Form(alias="filePath")] = None,
    access_level: Annotated[str | None, Form(alias="accessLevel")] = None,
    allowed_departments: Annotated[str | None, Form(alias="allowedDepartments")] = None,
) -> dict[str, Any]:
    """Parse an uploaded file and store it for search."""
    content = await file.read() if file is not None else None
    result = await indexer.index_document(
        content,
        file_name or (file.filename if file is not None else None),
        file_path,
        access_level,
        allowed_departments,
    )
    return {
        "success": True,
        "document": {
            "id": result.document.id,
            "fileName": result.document.file_name,
            "filePath": result.document.file_path,
            "parsedTextLength": result.parsed_text_length,
            "metadata": result.metadata,
        },
    }


@router.get("/requests", response_model=RequestListResponse)
async def list_requests(
    workflow: Annotated[DocumentRequestWorkflow, Depends(get_request_workflow)],
    approver_email: Annotated[str | None, Query()] = None,
    requester_email: Annotated[str | None, Query()] = None,
    status: Annotated[str | None, Query()] = None,
) -> RequestListResponse:
    """Requests for an approver (optionally by status) or by a requester."""
    if approver_email:
        requests = await workflow.list_for_approver(approver_email, status)
    elif requester_email:
        requests = await workflow.list_for_requester(requester_email)
    else:
        raise ValidationError("approver_email or requester_email is required")
    return RequestListResponse(requests=requests)
