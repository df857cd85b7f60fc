"""HTML bodies for document request emails.

All interpolated values are HTML-escaped.
"""

from collections.abc import Sequence
from html import escape
from string import Template

from ntask.models.documents import Document

APPROVAL_NEEDED_SUBJECT = "Document Request: {keyword}"
APPROVAL_CONFIRMED_SUBJECT = "Document Request Approved"
REJECTION_SUBJECT = "Document Request Rejected"
NOT_FOUND_SUBJECT = "No Documents Found"

DEFAULT_REJECTION_REASON = "No reason provided"

_LAYOUT = Template("""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: $accent; color: white; padding: 20px; border-radius: 8px 8px 0 0; }
    .content { background: #f9fafb; padding: 30px; border: 1px solid #e5e7eb; }
    .summary { background: white; padding: 15px; border-left: 4px solid $accent; margin: 20px 0; }
    .button { display: inline-block; padding: 12px 24px; margin: 10px 5px; text-decoration: none; border-radius: 6px; font-weight: 600; color: white; }
    .approve { background: #10b981; }
    .reject { background: #ef4444; }
    .access { background: #3b82f6; }
    .footer { text-align: center; color: #6b7280; font-size: 12px; margin-top: 20px; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h2 style="margin: 0;">$title</h2>
    </div>
    <div class="content">
$body
      <div class="footer">
        <p>Document Request Automation System</p>
      </div>
    </div>
  </div>
</body>
</html>
""")


def _page(title: str, accent: str, body: str) -> str:
    return _LAYOUT.substitute(title=escape(title), accent=accent, body=body)


def approval_needed_email(
    requester_email: str,
    keyword: str,
    documents: Sequence[Document],
    request_id: str,
    approve_url: str,
    reject_url: str,
) -> str:
    """Email to the approver listing candidate documents and the action links."""
    items = "\n".join(
        f"          <li><strong>{index}. {escape(doc.file_name)}</strong><br/>"
        f'<small style="color: #666;">Path: {escape(doc.file_path)}</small></li>'
        for index, doc in enumerate(documents, start=1)
    )
    body = f"""      <p>A document request has been submitted and requires your approval.</p>
      <div class="summary">
        <p><strong>Requester:</strong> {escape(requester_email)}</p>
        <p><strong>Question:</strong> "{escape(keyword)}"</p>
        <p><strong>Request ID:</strong> {escape(request_id)}</p>
      </div>
      <h3>Matching Documents:</h3>
      <ul>
{items}
      </ul>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{escape(approve_url)}" class="button approve">Approve Request</a>
        <a href="{escape(reject_url)}" class="button reject">Reject Request</a>
      </div>
"""
    return _page("Document Request Notification", "#667eea", body)


def approval_confirmed_email(keyword: str, document_name: str, sharing_link: str) -> str:
    """Email to the requester with the approved document and its link."""
    body = f"""      <p>Good news! Your document request has been approved.</p>
      <div class="summary">
        <p><strong>Question:</strong> "{escape(keyword)}"</p>
        <p><strong>Document:</strong> {escape(document_name)}</p>
      </div>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{escape(sharing_link)}" class="button access">Access Document</a>
      </div>
      <p>This link may expire based on your organization's security policies.</p>
"""
    return _page("Document Request Approved", "#10b981", body)


def rejection_email(keyword: str, rejection_reason: str | None) -> str:
    """Email to the requester explaining the rejection."""
    reason = rejection_reason or DEFAULT_REJECTION_REASON
    body = f"""      <p>Your document request has been reviewed and rejected.</p>
      <div class="summary">
        <p><strong>Question:</strong> "{escape(keyword)}"</p>
        <p><strong>Reason:</strong> {escape(reason)}</p>
      </div>
      <p>If you believe this is an error, please contact the approver directly.</p>
"""
    return _page("Document Request Rejected", "#ef4444", body)


def not_found_email(keyword: str) -> str:
    """Email to the requester when the search matched nothing."""
    body = f"""      <p>We were unable to find any documents matching your request.</p>
      <div class="summary">
        <p><strong>Question:</strong> "{escape(keyword)}"</p>
      </div>
      <p>Please try the following:</p>
      <ul>
        <li>Check your search keyword for typos</li>
        <li>Use more general search terms</li>
        <li>Contact the document owner directly</li>
      </ul>
"""
    return _page("No Documents Found", "#f59e0b", body)
