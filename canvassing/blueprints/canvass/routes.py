"""
canvassing/blueprints/canvass/routes.py

Canvass form routes (multipart/form-data).

Includes:
- Create a canvass form (canvass sheet + 1..MAX_QUOTATIONS quotations)
- Edit the latest canvass form (revision / reviewer edit)
- Canvass details
- Drafts: save (upsert), get, delete

File fields: canvass_sheet, quotation_1 .. quotation_N.
Files missing from a create request fall back to the caller's draft attachments.

IMPORTANT:
- Files are uploaded before the commit. On any failure the transaction is
  rolled back and the files uploaded during the request are removed.
- Replaced objects are removed only after a successful commit.
"""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from loguru import logger

from ... import storage, workflow
from ...audit import log_action, serialize_model
from ...errors import CanvassingError, PermissionDenied, ValidationError
from ...extensions import db
from ...models import (
    ATTACHMENT_CANVASS_SHEET,
    CanvassAttachment,
    CanvassDraft,
    CanvassForm,
    STATUS_FOR_REVIEW,
    STATUS_FOR_REVISION,
    STATUS_WORK_IN_PROGRESS,
    Ticket,
)
from ...security import ticket_access_required
from ...utils import clean_str, parse_datetime, parse_decimal, parse_optional_int

canvass_bp = Blueprint("canvass", __name__, url_prefix="/canvass")

CANVASS_FIELDS = (
    "rf_date_received",
    "recommended_supplier",
    "lead_time_day",
    "total_amount",
    "payment_terms",
)
OPTIONAL_FIELDS = {"payment_terms"}

REQUIRED_MESSAGES = {
    "rf_date_received": "RF date received is required",
    "recommended_supplier": "Recommended supplier is required",
    "lead_time_day": "Lead time is required",
    "total_amount": "Total amount is required",
}


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _load_ticket(ticket_id: int, **_: object) -> Ticket:
    """Loader for decorator factories."""
    return db.get_or_404(Ticket, ticket_id, description="Ticket not found.")


def _quotation_types() -> list[str]:
    return [f"QUOTATION_{n}" for n in range(1, current_app.config["MAX_QUOTATIONS"] + 1)]


def _attachment_types() -> list[str]:
    return [ATTACHMENT_CANVASS_SHEET] + _quotation_types()


def _uploaded_files() -> dict:
    """Non-empty uploads keyed by attachment type."""
    files = {}
    for attachment_type in _attachment_types():
        file = request.files.get(attachment_type.lower())
        if file and file.filename:
            files[attachment_type] = file
    return files


def _parse_canvass_fields(data: dict, *, partial: bool = False, draft: bool = False):
    """
    Validate canvass form fields.

    partial: only keys present in `data` are validated/returned.
    draft: empty values are allowed and total_amount may be 0.
    """
    values, errors = {}, {}
    for key in CANVASS_FIELDS:
        if partial and key not in data:
            continue

        raw = clean_str(data.get(key))
        if raw is None:
            if draft or key in OPTIONAL_FIELDS:
                values[key] = None
            else:
                errors[key] = REQUIRED_MESSAGES[key]
            continue

        if key == "rf_date_received":
            parsed = parse_datetime(raw)
            if parsed is None:
                errors[key] = "Invalid date"
            else:
                values[key] = parsed
        elif key == "lead_time_day":
            parsed = parse_optional_int(raw)
            if parsed is None or parsed < 0:
                errors[key] = "Lead time must be 0 or more days"
            else:
                values[key] = parsed
        elif key == "total_amount":
            parsed = parse_decimal(raw)
            minimum_ok = parsed is not None and (parsed >= 0 if draft else parsed > 0)
            if not minimum_ok:
                errors[key] = "Total amount cannot be negative" if draft else "Total amount must be greater than 0"
            else:
                values[key] = parsed
        else:
            values[key] = raw

    return values, errors


def _can_submit(ticket: Ticket) -> bool:
    """Creator, shared user or admin."""
    return bool(
        current_user.is_admin
        or ticket.created_by_id == current_user.id
        or current_user.id in ticket.shared_user_ids
    )


def _find_draft(ticket_id: int, user_id: int) -> CanvassDraft | None:
    return CanvassDraft.query.filter_by(ticket_id=ticket_id, user_id=user_id).first()


def _attachment_from_stored(stored: storage.StoredObject, attachment_type: str, *, is_draft: bool = False):
    return CanvassAttachment(
        type=attachment_type,
        path=stored.path,
        url=stored.public_url,
        file_type=stored.file_type,
        file_size=stored.file_size,
        is_draft=is_draft,
    )


def _replace_attachments(owner, ticket_id: int, files: dict, batch: storage.UploadBatch, *, is_draft: bool) -> list[str]:
    """Upload `files` onto a form/draft, replacing same-typed attachments. Returns replaced paths."""
    replaced = []
    for attachment_type, file in files.items():
        stored = batch.attachment(ticket_id, file, attachment_type.lower())
        old = owner.attachment_of_type(attachment_type)
        if old is not None:
            replaced.append(old.path)
            owner.attachments.remove(old)
        owner.attachments.append(_attachment_from_stored(stored, attachment_type, is_draft=is_draft))
    return replaced


def _bucket() -> str:
    return current_app.config["CANVASS_BUCKET"]


# ---------------------------------------------------------------------
# Canvass forms
# ---------------------------------------------------------------------
@canvass_bp.route("/<int:ticket_id>", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def canvass_details(ticket_id: int):
    ticket = _load_ticket(ticket_id)
    return jsonify([form.to_dict() for form in ticket.canvass_forms])


@canvass_bp.route("/<int:ticket_id>", methods=["POST"])
@login_required
@ticket_access_required(_load_ticket)
def create_canvass(ticket_id: int):
    """Submit the canvass form; the ticket moves to FOR REVIEW OF SUBMISSIONS."""
    ticket = workflow.lock_ticket(ticket_id)
    if not _can_submit(ticket):
        raise PermissionDenied("Only the ticket creator or shared users can submit a canvass.")
    workflow.require_status(ticket, STATUS_WORK_IN_PROGRESS)

    values, errors = _parse_canvass_fields(request.form.to_dict())
    draft = _find_draft(ticket.id, current_user.id)
    files = _uploaded_files()

    def _available(attachment_type: str) -> bool:
        if attachment_type in files:
            return True
        return bool(draft is not None and draft.attachment_of_type(attachment_type))

    if not _available(ATTACHMENT_CANVASS_SHEET):
        errors["canvass_sheet"] = "Canvass sheet is required"
    quotation_types = [t for t in _quotation_types() if _available(t)]
    if not quotation_types:
        errors["quotations"] = "At least one quotation is required"
    if errors:
        raise ValidationError("Please check all required fields", fields=errors)

    form = CanvassForm(ticket=ticket, submitted_by_id=current_user.id, **values)
    db.session.add(form)

    batch = storage.UploadBatch()
    stale_paths: list[str] = []
    try:
        for attachment_type in [ATTACHMENT_CANVASS_SHEET] + quotation_types:
            file = files.get(attachment_type)
            if file is not None:
                stored = batch.attachment(ticket.id, file, attachment_type.lower())
                form.attachments.append(_attachment_from_stored(stored, attachment_type))
                continue

            saved = draft.attachment_of_type(attachment_type)
            form.attachments.append(
                CanvassAttachment(
                    type=attachment_type,
                    path=saved.path,
                    url=saved.url,
                    file_type=saved.file_type,
                    file_size=saved.file_size,
                    is_draft=False,
                )
            )

        if draft is not None:
            reused = {a.path for a in form.attachments}
            stale_paths = [a.path for a in draft.attachments if a.path not in reused]
            db.session.delete(draft)

        workflow.submit_for_review(ticket, current_user)

        db.session.flush()
        log_action(form, "CREATE", after=serialize_model(form))
        db.session.commit()
    except Exception:
        db.session.rollback()
        batch.discard()
        raise

    storage.remove(_bucket(), stale_paths)
    logger.info("Canvass submitted for ticket {ticket}", ticket=ticket.name)
    return (
        jsonify(
            {
                "success": True,
                "message": "Canvass created successfully",
                "ticket_status": ticket.status,
                "canvass_form": form.to_dict(),
            }
        ),
        201,
    )


@canvass_bp.route("/<int:ticket_id>", methods=["PUT"])
@login_required
@ticket_access_required(_load_ticket)
def update_canvass(ticket_id: int):
    """
    Edit the latest canvass form.

    FOR REVISION: creator / shared user (admin) resubmits for review.
    FOR REVIEW OF SUBMISSIONS: a reviewer edits; the edit counts as their approval.
    Only provided fields and files change.
    """
    ticket = workflow.lock_ticket(ticket_id)
    form = ticket.latest_canvass
    if form is None:
        raise CanvassingError("No canvass form found for this ticket.", status_code=404)

    workflow.require_status(ticket, STATUS_FOR_REVISION, STATUS_FOR_REVIEW)
    if ticket.status == STATUS_FOR_REVISION:
        if not _can_submit(ticket):
            raise PermissionDenied("Only the ticket creator or shared users can revise the canvass.")
    elif current_user.is_manager or ticket.approval_for(current_user.id) is None:
        raise PermissionDenied("Only reviewers on this ticket can edit a canvass under review.")

    values, errors = _parse_canvass_fields(request.form.to_dict(), partial=True)
    if errors:
        raise ValidationError("Please check all required fields", fields=errors)
    files = _uploaded_files()

    before = serialize_model(form)
    for key, value in values.items():
        setattr(form, key, value)

    batch = storage.UploadBatch()
    try:
        replaced = _replace_attachments(form, ticket.id, files, batch, is_draft=False)
        form.revised_by_id = current_user.id
        form.updated_at = datetime.utcnow()

        workflow.record_canvass_revision(ticket, current_user)

        db.session.flush()
        log_action(form, "UPDATE", before=before, after=serialize_model(form))
        db.session.commit()
    except Exception:
        db.session.rollback()
        batch.discard()
        raise

    storage.remove(_bucket(), replaced)
    return jsonify(
        {
            "success": True,
            "message": "Form submitted successfully",
            "ticket_status": ticket.status,
            "canvass_form": form.to_dict(),
        }
    )


# ---------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------
@canvass_bp.route("/<int:ticket_id>/draft", methods=["GET"])
@login_required
@ticket_access_required(_load_ticket)
def get_draft(ticket_id: int):
    draft = _find_draft(ticket_id, current_user.id)
    return jsonify({"data": draft.to_dict() if draft else None})


@canvass_bp.route("/<int:ticket_id>/draft", methods=["PUT"])
@login_required
@ticket_access_required(_load_ticket)
def save_draft(ticket_id: int):
    """Upsert the caller's draft; uploaded files replace same-typed draft files."""
    ticket = _load_ticket(ticket_id)
    if not _can_submit(ticket):
        raise PermissionDenied("Only the ticket creator or shared users can save a canvass draft.")
    workflow.require_status(ticket, STATUS_WORK_IN_PROGRESS)

    values, errors = _parse_canvass_fields(request.form.to_dict(), partial=True, draft=True)
    if errors:
        raise ValidationError("Please check the draft fields", fields=errors)
    files = _uploaded_files()

    draft = _find_draft(ticket.id, current_user.id)
    created = draft is None
    if created:
        draft = CanvassDraft(ticket_id=ticket.id, user_id=current_user.id)
        db.session.add(draft)

    for key, value in values.items():
        setattr(draft, key, value)
    draft.updated_at = datetime.utcnow()

    batch = storage.UploadBatch()
    try:
        replaced = _replace_attachments(draft, ticket.id, files, batch, is_draft=True)
        db.session.flush()
        log_action(draft, "CREATE" if created else "UPDATE", after=serialize_model(draft))
        db.session.commit()
    except Exception:
        db.session.rollback()
        batch.discard()
        raise

    storage.remove(_bucket(), replaced)
    return jsonify({"success": True, "message": "Your draft has been saved", "data": draft.to_dict()})


@canvass_bp.route("/<int:ticket_id>/draft", methods=["DELETE"])
@login_required
@ticket_access_required(_load_ticket)
def delete_draft(ticket_id: int):
    """Remove the caller's draft: attachment objects first, then rows."""
    draft = _find_draft(ticket_id, current_user.id)
    if draft is None:
        return jsonify({"success": True, "deleted": False})

    paths = [a.path for a in draft.attachments]
    storage.remove(_bucket(), paths)

    log_action(draft, "DELETE", before=serialize_model(draft))
    db.session.delete(draft)
    db.session.commit()
    return jsonify({"success": True, "deleted": True})
