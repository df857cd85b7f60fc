"""Document request approval workflow.

A requester asks a question (``keyword``); matching documents are found and an
approver is emailed approve/reject links. The approver either approves with a
chosen document and sharing link, or rejects with a reason. Each transition
out of ``pending`` happens at most once per request.
"""

import logging
from typing import Protocol
from urllib.parse import urlencode

from pydantic import BaseModel, Field

from ntask.adapters.email import EmailSender
from ntask.adapters.email_templates import (
    APPROVAL_CONFIRMED_SUBJECT,
    APPROVAL_NEEDED_SUBJECT,
    DEFAULT_REJECTION_REASON,
    NOT_FOUND_SUBJECT,
    REJECTION_SUBJECT,
    approval_confirmed_email,
    approval_needed_email,
    not_found_email,
    rejection_email,
)
from ntask.adapters.webhook import WebhookNotifier
from ntask.db.repositories import DocumentRepository, DocumentRequestRepository
from ntask.errors import NotFoundError, PersistenceError, StateConflictError, ValidationError
from ntask.models.documents import (
    ApprovalAction,
    DocumentRequest,
    DocumentSearchResult,
    RequestStatus,
    Urgency,
)
from ntask.models.notifications import Notification
from ntask.models.webhooks import WebhookEvent, WebhookEventType
from ntask.utils.logging import StructuredDeliveryLogger
from ntask.utils.metrics import PrometheusDeliveryMetrics

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Request has already been processed"
NO_DOCUMENTS_MESSAGE = "No documents found matching your request"
REQUEST_SENT_MESSAGE = "Your request has been sent to the approver"


class RequestInbox(Protocol):
    """In-app notification sink for new requests (the task board)."""

    def push_document_request_notification(
        self, user_id: str, request: DocumentRequest
    ) -> Notification: ...


class SubmitResult(BaseModel):
    """Outcome of a request submission."""

    success: bool
    message: str
    request: DocumentRequest | None = None
    results: list[DocumentSearchResult] = Field(default_factory=list)
    match_count: int = 0


def _parse_urgency(urgency: Urgency | str | None) -> Urgency:
    if urgency is None or urgency == "":
        return Urgency.normal
    try:
        return Urgency(urgency)
    except ValueError as e:
        raise ValidationError("urgency must be one of: low, normal, high") from e


def _parse_action(action: ApprovalAction | str | None) -> ApprovalAction:
    try:
        return ApprovalAction(action)
    except ValueError as e:
        raise ValidationError('action must be "approve" or "reject"') from e


class DocumentRequestWorkflow:
    """Submit, approve and reject document requests.

    State changes are committed through the repositories before any email,
    in-app notification or webhook is attempted; those side effects are best
    effort and never change the outcome of the call.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        requests: DocumentRequestRepository,
        email_sender: EmailSender | None,
        notifier: WebhookNotifier,
        *,
        base_url: str,
        search_limit: int = 10,
        inbox: RequestInbox | None = None,
    ) -> None:
        """Initialize workflow.

        Args:
            documents: Document repository (search and lookup)
            requests: Document request repository
            email_sender: SMTP sender, or None when email is disabled
            notifier: Webhook notifier
            base_url: Public URL used to build approval and form links
            search_limit: Maximum number of documents matched per request
            inbox: Optional in-app notification sink for approvers
        """
        self._documents = documents
        self._requests = requests
        self._email_sender = email_sender
        self._notifier = notifier
        self._base_url = base_url.rstrip("/")
        self._search_limit = search_limit
        self._inbox = inbox
        self._delivery_log = StructuredDeliveryLogger()
        self._metrics = PrometheusDeliveryMetrics()

    # Links

    def action_url(self, request_id: str, action: ApprovalAction) -> str:
        """Link embedded in the approver email."""
        query = urlencode({"request_id": request_id, "action": action.value})
        return f"{self._base_url}/documents/approve?{query}"

    def form_url(self, request_id: str, action: ApprovalAction) -> str:
        """Web form that completes ``action``."""
        query = urlencode({"request_id": request_id})
        return f"{self._base_url}/{action.value}-form?{query}"

    # Operations

    async def submit(
        self,
        *,
        requester_email: str | None,
        keyword: str | None,
        approver_email: str | None,
        requester_department: str | None = None,
        urgency: Urgency | str | None = None,
    ) -> SubmitResult:
        """Search for documents and, if any match, open a pending request.

        Raises:
            ValidationError: If a required field is missing or urgency is invalid
            PersistenceError: If the request cannot be stored
        """
        if not requester_email or not keyword or not approver_email:
            raise ValidationError("requester_email, keyword, and approver_email are required")
        level = _parse_urgency(urgency)
        department = requester_department or None

        results = await self._documents.search_documents(
            keyword, department=department, limit=self._search_limit
        )

        if not results:
            logger.info(
                "No documents matched request",
                extra={"structured": {"requester": requester_email, "keyword": keyword}},
            )
            await self._send_email(
                requester_email,
                NOT_FOUND_SUBJECT,
                not_found_email(keyword),
                template="not_found",
            )
            return SubmitResult(success=False, message=NO_DOCUMENTS_MESSAGE)

        request = await self._requests.create_request(
            requester_email=requester_email,
            keyword=keyword,
            approver_email=approver_email,
            requester_department=department,
            urgency=level,
        )
        self._metrics.record_transition(RequestStatus.pending.value)
        logger.info(
            "Document request created",
            extra={"structured": {"request_id": request.id, "match_count": len(results)}},
        )

        html = approval_needed_email(
            requester_email,
            keyword,
            [result.document for result in results],
            request.id,
            self.action_url(request.id, ApprovalAction.approve),
            self.action_url(request.id, ApprovalAction.reject),
        )
        await self._send_email(
            approver_email,
            APPROVAL_NEEDED_SUBJECT.format(keyword=keyword),
            html,
            template="approval_needed",
        )
        self._push_inbox(approver_email, request)
        await self._notifier.notify(
            WebhookEvent(
                event=WebhookEventType.request_created,
                data={
                    "requestId": request.id,
                    "requesterEmail": request.requester_email,
                    "approverEmail": request.approver_email,
                    "keyword": request.keyword,
                    "urgency": request.urgency.value,
                    "matchCount": len(results),
                },
            )
        )

        return SubmitResult(
            success=True,
            message=REQUEST_SENT_MESSAGE,
            request=request,
            results=results,
            match_count=len(results),
        )

    async def check_action(
        self, request_id: str | None, action: ApprovalAction | str | None
    ) -> str:
        """Validate an emailed approve/reject link and return the form to redirect to.

        Raises:
            ValidationError: If parameters are missing or the action is unknown
            NotFoundError: If the request does not exist
            StateConflictError: If the request is no longer pending
        """
        if not request_id or not action:
            raise ValidationError("request_id and action are required")
        parsed = _parse_action(action)
        await self._require_pending(request_id)
        return self.form_url(request_id, parsed)

    async def process(
        self,
        request_id: str | None,
        action: ApprovalAction | str | None,
        *,
        document_id: str | None = None,
        sharing_link: str | None = None,
        rejection_reason: str | None = None,
    ) -> DocumentRequest:
        """Dispatch a submitted approve/reject form."""
        if not request_id or not action:
            raise ValidationError("request_id and action are required")
        parsed = _parse_action(action)
        if parsed is ApprovalAction.approve:
            return await self.approve(request_id, document_id, sharing_link)
        return await self.reject(request_id, rejection_reason)

    async def approve(
        self, request_id: str, document_id: str | None, sharing_link: str | None
    ) -> DocumentRequest:
        """Approve a pending request with a chosen document and sharing link.

        Raises:
            NotFoundError: If the request or document does not exist
            StateConflictError: If the request is not pending, including a lost race
            ValidationError: If document_id or sharing_link is missing
        """
        request = await self._require_pending(request_id)
        if not document_id or not sharing_link:
            raise ValidationError("document_id and sharing_link are required for approval")

        document = await self._documents.get_document(document_id)
        if document is None:
            raise NotFoundError("Document not found")

        updated = await self._requests.transition(
            request_id,
            RequestStatus.approved,
            approved_document_id=document_id,
            sharing_link=sharing_link,
        )
        if updated is None:
            raise StateConflictError(ALREADY_PROCESSED)
        self._metrics.record_transition(RequestStatus.approved.value)
        logger.info(
            "Document request approved",
            extra={"structured": {"request_id": request_id, "document_id": document_id}},
        )

        await self._send_email(
            request.requester_email,
            APPROVAL_CONFIRMED_SUBJECT,
            approval_confirmed_email(request.keyword, document.file_name, sharing_link),
            template="approval_confirmed",
        )
        await self._notifier.notify(
            WebhookEvent(
                event=WebhookEventType.request_approved,
                data={
                    "requestId": request_id,
                    "requesterEmail": request.requester_email,
                    "documentId": document_id,
                    "sharingLink": sharing_link,
                },
            )
        )
        return updated

    async def reject(self, request_id: str, rejection_reason: str | None = None) -> DocumentRequest:
        """Reject a pending request.

        Raises:
            NotFoundError: If the request does not exist
            StateConflictError: If the request is not pending, including a lost race
        """
        request = await self._require_pending(request_id)
        reason = (rejection_reason or "").strip() or DEFAULT_REJECTION_REASON

        updated = await self._requests.transition(
            request_id, RequestStatus.rejected, rejection_reason=reason
        )
        if updated is None:
            raise StateConflictError(ALREADY_PROCESSED)
        self._metrics.record_transition(RequestStatus.rejected.value)
        logger.info(
            "Document request rejected",
            extra={"structured": {"request_id": request_id}},
        )

        await self._send_email(
            request.requester_email,
            REJECTION_SUBJECT,
            rejection_email(request.keyword, reason),
            template="rejection",
        )
        await self._notifier.notify(
            WebhookEvent(
                event=WebhookEventType.request_rejected,
                data={
                    "requestId": request_id,
                    "requesterEmail": request.requester_email,
                    "rejectionReason": reason,
                },
            )
        )
        return updated

    async def list_for_approver(
        self, approver_email: str, status: RequestStatus | str | None = None
    ) -> list[DocumentRequest]:
        """Requests addressed to ``approver_email``, newest first."""
        if not approver_email:
            raise ValidationError("approver_email is required")
        parsed: RequestStatus | None = None
        if status:
            try:
                parsed = RequestStatus(status)
            except ValueError as e:
                raise ValidationError("status must be one of: pending, approved, rejected") from e
        return await self._requests.list_by_approver(approver_email, parsed)

    async def list_for_requester(self, requester_email: str) -> list[DocumentRequest]:
        """Requests submitted by ``requester_email``, newest first."""
        if not requester_email:
            raise ValidationError("requester_email is required")
        return await self._requests.list_by_requester(requester_email)

    # Internals

    async def _require_pending(self, request_id: str) -> DocumentRequest:
        request = await self._requests.get_request(request_id)
        if request is None:
            raise NotFoundError("Request not found")
        if request.status != RequestStatus.pending:
            raise StateConflictError(ALREADY_PROCESSED)
        return request

    async def _send_email(self, to: str, subject: str, html: str, *, template: str) -> None:
        if self._email_sender is None:
            self._delivery_log.log_delivery("email", template, "disabled", recipient=to)
            self._metrics.record_email(template, "disabled")
            return
        await self._email_sender.send(to, subject, html, template=template)

    def _push_inbox(self, user_id: str, request: DocumentRequest) -> None:
        if self._inbox is None:
            return
        try:
            self._inbox.push_document_request_notification(user_id, request)
        except PersistenceError as e:
            logger.warning(
                "In-app notification not saved",
                extra={"structured": {"request_id": request.id, "error": e.message}},
            )
