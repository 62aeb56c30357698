# controllers/manager/review.py
import logging
from typing import Literal, Optional

from flask import request, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from ...addons.auth import role_required, current_user
from ...addons.errors import AppError, ValidationError
from ...addons.functions import jsonifyFormat, parse_body
from ...addons.review_workflow import past_tense
from ...addons.services import get_services
from ...models import REVIEWER_ROLES

logger = logging.getLogger(__name__)

review_tag = Tag(name="Review", description="Manager review of reports and payment proofs")
review_bp = APIBlueprint(
    'review', __name__, url_prefix='/api/manager', abp_tags=[review_tag],
    abp_security=[{"jwt": []}, {"cookie": []}],
)


# ---------------------- SCHEMAS ---------------------- #
class ReviewReportSchema(BaseModel):
    reportId: int = Field(..., description="Report ID")
    action: Literal['approve', 'reject'] = Field(..., description="approve or reject")
    comments: Optional[str] = Field(None, description="Optional reviewer comment / rejection reason")


class QuickActionSchema(BaseModel):
    reportId: int = Field(..., description="Report ID")
    action: Literal['approve', 'reject'] = Field(..., description="approve or reject")


class AddCommentSchema(BaseModel):
    reportId: int = Field(..., description="Report ID")
    comment: str = Field(..., min_length=1, description="Comment text")
    action: Optional[Literal['approve', 'reject']] = Field(None, description="Optionally decide the report")


class ReviewPaymentProofSchema(BaseModel):
    paymentProofId: int = Field(..., description="Payment proof ID")
    action: Literal['approve', 'reject'] = Field(..., description="approve or reject")
    comments: Optional[str] = Field(None, description="Optional reviewer comment / rejection reason")


# ---------------------- APPROVE REPORT ---------------------- #
@review_bp.post('/approve-report')
@role_required(*REVIEWER_ROLES)
def approve_report():
    """Approve or reject a report"""
    body = parse_body(ReviewReportSchema)
    result = get_services().workflow.review_report(
        body.reportId, body.action, current_user(), comments=body.comments
    )
    return jsonifyFormat({
        'success': True,
        'message': f"Report {past_tense(body.action)} successfully",
        'data': result,
    }, 200)


# ---------------------- QUICK ACTION ---------------------- #
@review_bp.post('/quick-action')
@role_required(*REVIEWER_ROLES)
def quick_action():
    """Approve or reject a pending report from the dashboard"""
    body = parse_body(QuickActionSchema)
    result = get_services().workflow.quick_action(body.reportId, body.action, current_user())
    return jsonifyFormat({
        'success': True,
        'message': f"Report {past_tense(body.action)} successfully",
        'data': result,
    }, 200)


# ---------------------- ADD COMMENT ---------------------- #
@review_bp.post('/add-comment')
@role_required(*REVIEWER_ROLES)
def add_comment():
    """Comment on a report, optionally approving or rejecting it"""
    body = parse_body(AddCommentSchema)
    result = get_services().workflow.add_comment(
        body.reportId, body.comment, current_user(), action=body.action
    )
    message = f"Comment and {body.action} action added successfully" if body.action else "Comment added successfully"
    return jsonifyFormat({'success': True, 'message': message, 'data': result}, 200)


# ---------------------- APPROVE PAYMENT PROOF ---------------------- #
@review_bp.post('/approve-payment-proof')
@role_required(*REVIEWER_ROLES)
def approve_payment_proof():
    """Approve or reject a payment proof and update its report"""
    body = parse_body(ReviewPaymentProofSchema)
    try:
        result = get_services().workflow.review_payment_proof(
            body.paymentProofId, body.action, current_user(), comments=body.comments
        )
        return jsonifyFormat({
            'success': True,
            'message': f"Payment proof {past_tense(body.action)} successfully",
            'data': result,
        }, 200)

    except AppError as e:
        if e.status_code != 500:
            raise
        payload = e.to_dict()
        if current_app.config["ENVIRONMENT"] == "Development":
            payload['error'] = str(e)
        return jsonifyFormat(payload, 500)

    except Exception as e:
        logger.exception("Payment proof approval error")
        payload = {'success': False, 'message': 'Payment proof approval failed'}
        if current_app.config["ENVIRONMENT"] == "Development":
            payload['error'] = str(e)
        return jsonifyFormat(payload, 500)


# ---------------------- REPORT HISTORY ---------------------- #
@review_bp.get('/report-history')
@role_required(*REVIEWER_ROLES)
def report_history():
    """Audit trail of a report, newest first"""
    report_id = request.args.get('reportId', type=int)
    if not report_id:
        raise ValidationError('Report ID is required')
    history = get_services().workflow.history(report_id)
    return jsonifyFormat({'success': True, 'history': history}, 200)
