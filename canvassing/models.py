"""
CanvassingApp – Domain Models

Procurement tickets routed through canvass, review and approval:
- User (role based: ADMIN / MANAGER / REVIEWER / PURCHASER)
- Ticket + TicketSharedUser + TicketStatusHistory
- Approval (per ticket/reviewer sign-off)
- CanvassForm + CanvassDraft + CanvassAttachment (supplier quotes and their files)
- Comment, Notification
- AuditLog

IMPORTANT:
- Uniqueness rules (email, approval per reviewer, share per user, draft per user)
  are enforced by table constraints, not only in routes.
- Serialization helpers (to_dict) produce the JSON shape returned by the API.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .utils import convert_file_size, file_name_from_url, get_name_initials, role_color, status_color


# ---------------------------------------------------------------------
# Enumerations (stored as plain strings)
# ---------------------------------------------------------------------
ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_REVIEWER = "REVIEWER"
ROLE_PURCHASER = "PURCHASER"
USER_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_REVIEWER, ROLE_PURCHASER)

STATUS_FOR_CANVASS = "FOR CANVASS"
STATUS_WORK_IN_PROGRESS = "WORK IN PROGRESS"
STATUS_FOR_REVIEW = "FOR REVIEW OF SUBMISSIONS"
STATUS_FOR_APPROVAL = "FOR APPROVAL"
STATUS_DONE = "DONE"
STATUS_FOR_REVISION = "FOR REVISION"
STATUS_CANCELED = "CANCELED"
STATUS_DECLINED = "DECLINED"
STATUS_REJECTED = "REJECTED"
TICKET_STATUSES = (
    STATUS_FOR_CANVASS,
    STATUS_WORK_IN_PROGRESS,
    STATUS_FOR_REVIEW,
    STATUS_FOR_APPROVAL,
    STATUS_DONE,
    STATUS_FOR_REVISION,
    STATUS_CANCELED,
    STATUS_DECLINED,
    STATUS_REJECTED,
)
# Derived bucket for tickets whose canvass has been revised (not a status)
REVISED_BUCKET = "REVISED"

APPROVAL_PENDING = "PENDING"
APPROVAL_AWAITING_ACTION = "AWAITING ACTION"
APPROVAL_APPROVED = "APPROVED"
APPROVAL_REJECTED = "REJECTED"
APPROVAL_STATUSES = (APPROVAL_PENDING, APPROVAL_AWAITING_ACTION, APPROVAL_APPROVED, APPROVAL_REJECTED)

ATTACHMENT_CANVASS_SHEET = "CANVASS_SHEET"
COMMENT_TYPE_COMMENT = "COMMENT"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _money(x) -> Decimal | None:
    if x is None:
        return None
    return Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_PURCHASER, index=True)
    avatar_url = db.Column(db.String(512), nullable=True)

    # Nullable: accounts provisioned without a local password
    password_hash = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @property
    def is_reviewer(self) -> bool:
        return self.role == ROLE_REVIEWER

    @property
    def is_purchaser(self) -> bool:
        return self.role == ROLE_PURCHASER

    def can_create_tickets(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_PURCHASER)

    def can_view_users(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_MANAGER)

    def to_dict(self) -> dict:
        return {
            "user_id": self.id,
            "user_role": self.role,
            "user_full_name": self.full_name,
            "user_email": self.email,
            "user_avatar": self.avatar_url,
            "user_initials": get_name_initials(self.full_name or ""),
            "user_role_color": role_color(self.role),
            "user_created_at": _iso(self.created_at),
            "user_updated_at": _iso(self.updated_at),
        }

    def to_option(self) -> dict:
        """Dropdown shape: {value, label}."""
        return {"value": self.id, "label": self.full_name}

    def __repr__(self):
        return f"<User {self.email}>"


# ---------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------
class Ticket(db.Model):
    """Procurement request routed through canvass, review and approval."""

    __tablename__ = "tickets"

    id = db.Column(db.Integer, primary_key=True)

    # "{id:05d}-{YYMMDD}" code, assigned after the insert
    name = db.Column(db.String(50), nullable=True, unique=True, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    item_description = db.Column(db.Text, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    specifications = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    rf_date_received = db.Column(db.DateTime, nullable=True)

    status = db.Column(db.String(40), nullable=False, default=STATUS_FOR_CANVASS, index=True)

    created_by_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    is_revised = db.Column(db.Boolean, default=False, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = db.relationship(
        "User",
        foreign_keys=[created_by_id],
        backref=db.backref("tickets", lazy=True, cascade="all, delete-orphan"),
    )

    approvals = db.relationship(
        "Approval",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="Approval.id",
    )
    shared_links = db.relationship(
        "TicketSharedUser",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketSharedUser.id",
    )
    canvass_forms = db.relationship(
        "CanvassForm",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="CanvassForm.id",
    )
    drafts = db.relationship("CanvassDraft", back_populates="ticket", cascade="all, delete-orphan")
    comments = db.relationship(
        "Comment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    notifications = db.relationship("Notification", back_populates="ticket", cascade="all, delete-orphan")
    status_history = db.relationship(
        "TicketStatusHistory",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketStatusHistory.id",
    )

    def assign_name(self):
        """Sequence + date code. Requires an id (call after flush)."""
        created = self.created_at or datetime.utcnow()
        self.name = f"{self.id:05d}-{created:%y%m%d}"

    # -----------------------------
    # Participants
    # -----------------------------
    @property
    def shared_user_ids(self) -> set[int]:
        return {link.user_id for link in self.shared_links}

    @property
    def reviewer_ids(self) -> set[int]:
        return {a.reviewer_id for a in self.approvals}

    def approval_for(self, user_id: int) -> "Approval | None":
        for approval in self.approvals:
            if approval.reviewer_id == user_id:
                return approval
        return None

    def manager_approvals(self) -> list["Approval"]:
        return [a for a in self.approvals if a.reviewer and a.reviewer.role == ROLE_MANAGER]

    def reviewer_approvals(self) -> list["Approval"]:
        """Approvals of non-manager reviewers."""
        return [a for a in self.approvals if a.reviewer and a.reviewer.role != ROLE_MANAGER]

    def participant_ids(self) -> set[int]:
        return {self.created_by_id} | self.shared_user_ids | self.reviewer_ids

    def is_participant(self, user) -> bool:
        return user.id in self.participant_ids()

    @property
    def latest_canvass(self) -> "CanvassForm | None":
        return self.canvass_forms[-1] if self.canvass_forms else None

    # -----------------------------
    # Serialization
    # -----------------------------
    def to_summary(self) -> dict:
        """Dashboard/list row shape."""
        latest = self.latest_canvass
        return {
            "ticket_id": self.id,
            "ticket_name": self.name,
            "ticket_status": self.status,
            "ticket_status_color": status_color(self.status),
            "ticket_item_name": self.item_name,
            "ticket_item_description": self.item_description,
            "ticket_revised_by": latest.revised_by_id if latest else None,
            "ticket_is_revised": self.is_revised,
            "ticket_date_created": _iso(self.created_at),
            "ticket_last_updated": _iso(self.updated_at),
        }

    def to_dict(self, viewer=None) -> dict:
        data = self.to_summary()
        creator = self.created_by
        data.update(
            {
                "ticket_quantity": self.quantity,
                "ticket_specifications": self.specifications,
                "ticket_notes": self.notes,
                "ticket_rf_date_received": _iso(self.rf_date_received),
                "ticket_created_by": self.created_by_id,
                "ticket_created_by_name": creator.full_name if creator else None,
                "ticket_created_by_avatar": creator.avatar_url if creator else None,
                "reviewers": [a.to_reviewer_dict() for a in self.approvals],
                "shared_users": [link.to_dict() for link in self.shared_links],
            }
        )
        if viewer is not None:
            approval = self.approval_for(viewer.id)
            data["approval_status"] = approval.status if approval else None
        return data

    def __repr__(self):
        return f"<Ticket {self.name or self.id} [{self.status}]>"


class TicketSharedUser(db.Model):
    __tablename__ = "ticket_shared_users"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    ticket = db.relationship("Ticket", back_populates="shared_links")
    user = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("shared_ticket_links", lazy=True, cascade="all, delete-orphan"),
    )
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_id])

    __table_args__ = (db.UniqueConstraint("ticket_id", "user_id", name="uq_ticket_shared_user"),)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "user_full_name": self.user.full_name if self.user else None,
            "user_email": self.user.email if self.user else None,
            "user_avatar": self.user.avatar_url if self.user else None,
        }


class TicketStatusHistory(db.Model):
    __tablename__ = "ticket_status_history"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_status = db.Column(db.String(40), nullable=True)
    new_status = db.Column(db.String(40), nullable=False)
    changed_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    changed_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    ticket = db.relationship("Ticket", back_populates="status_history")
    changed_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "ticket_status_history_id": self.id,
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by_id,
            "changed_by_name": self.changed_by.full_name if self.changed_by else None,
            "change_date": _iso(self.changed_at),
        }


class Approval(db.Model):
    """Per (ticket, reviewer) sign-off record."""

    __tablename__ = "approvals"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = db.Column(db.String(20), nullable=False, default=APPROVAL_PENDING, index=True)
    review_date = db.Column(db.DateTime, default=datetime.utcnow)

    ticket = db.relationship("Ticket", back_populates="approvals")
    reviewer = db.relationship("User", backref=db.backref("approvals", lazy=True, cascade="all, delete-orphan"))

    __table_args__ = (db.UniqueConstraint("ticket_id", "reviewer_id", name="uq_approval_ticket_reviewer"),)

    def to_reviewer_dict(self) -> dict:
        reviewer = self.reviewer
        return {
            "reviewer_id": self.reviewer_id,
            "reviewer_name": reviewer.full_name if reviewer else None,
            "reviewer_role": reviewer.role if reviewer else None,
            "reviewer_avatar": reviewer.avatar_url if reviewer else None,
            "approval_status": self.status,
            "approval_review_date": _iso(self.review_date),
        }


# ---------------------------------------------------------------------
# Canvass
# ---------------------------------------------------------------------
class CanvassForm(db.Model):
    """Supplier price-comparison submission."""

    __tablename__ = "canvass_forms"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rf_date_received = db.Column(db.DateTime, nullable=False)
    recommended_supplier = db.Column(db.String(255), nullable=False)
    lead_time_day = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    payment_terms = db.Column(db.String(255), nullable=True)

    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    revised_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    date_submitted = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    ticket = db.relationship("Ticket", back_populates="canvass_forms")
    submitted_by = db.relationship("User", foreign_keys=[submitted_by_id])
    revised_by = db.relationship("User", foreign_keys=[revised_by_id])

    attachments = db.relationship(
        "CanvassAttachment",
        back_populates="canvass_form",
        cascade="all, delete-orphan",
        order_by="CanvassAttachment.id",
    )

    def attachment_of_type(self, attachment_type: str) -> "CanvassAttachment | None":
        for attachment in self.attachments:
            if attachment.type == attachment_type:
                return attachment
        return None

    def to_dict(self) -> dict:
        submitter = self.submitted_by
        reviser = self.revised_by
        return {
            "canvass_form_id": self.id,
            "canvass_form_ticket_id": self.ticket_id,
            "canvass_form_rf_date_received": _iso(self.rf_date_received),
            "canvass_form_recommended_supplier": self.recommended_supplier,
            "canvass_form_lead_time_day": self.lead_time_day,
            "canvass_form_total_amount": str(_money(self.total_amount)),
            "canvass_form_payment_terms": self.payment_terms,
            "canvass_form_submitted_by": self.submitted_by_id,
            "canvass_form_date_submitted": _iso(self.date_submitted),
            "canvass_form_updated_at": _iso(self.updated_at),
            "canvass_form_revised_by": self.revised_by_id,
            "submitted_by_name": submitter.full_name if submitter else None,
            "submitted_by_avatar": submitter.avatar_url if submitter else None,
            "revised_by_name": reviser.full_name if reviser else None,
            "revised_by_avatar": reviser.avatar_url if reviser else None,
            "attachments": [a.to_dict() for a in self.attachments],
        }


class CanvassDraft(db.Model):
    """Autosaved, unsubmitted canvass form state (one per ticket/user)."""

    __tablename__ = "canvass_drafts"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    rf_date_received = db.Column(db.DateTime, nullable=True)
    recommended_supplier = db.Column(db.String(255), nullable=True)
    lead_time_day = db.Column(db.Integer, nullable=True)
    total_amount = db.Column(db.Numeric(14, 2), nullable=True)
    payment_terms = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    ticket = db.relationship("Ticket", back_populates="drafts")
    user = db.relationship("User", backref=db.backref("canvass_drafts", lazy=True, cascade="all, delete-orphan"))

    attachments = db.relationship(
        "CanvassAttachment",
        back_populates="draft",
        cascade="all, delete-orphan",
        order_by="CanvassAttachment.id",
    )

    __table_args__ = (db.UniqueConstraint("ticket_id", "user_id", name="uq_canvass_draft_ticket_user"),)

    def attachment_of_type(self, attachment_type: str) -> "CanvassAttachment | None":
        for attachment in self.attachments:
            if attachment.type == attachment_type:
                return attachment
        return None

    def to_dict(self) -> dict:
        total = _money(self.total_amount)
        return {
            "canvass_draft_id": self.id,
            "canvass_draft_ticket_id": self.ticket_id,
            "canvass_draft_user_id": self.user_id,
            "canvass_draft_rf_date_received": _iso(self.rf_date_received),
            "canvass_draft_recommended_supplier": self.recommended_supplier,
            "canvass_draft_lead_time_day": self.lead_time_day,
            "canvass_draft_total_amount": str(total) if total is not None else None,
            "canvass_draft_payment_terms": self.payment_terms,
            "canvass_draft_updated_at": _iso(self.updated_at),
            "attachments": [a.to_dict() for a in self.attachments],
        }


class CanvassAttachment(db.Model):
    """File attached to a canvass form or to a draft."""

    __tablename__ = "canvass_attachments"

    id = db.Column(db.Integer, primary_key=True)

    canvass_form_id = db.Column(
        db.Integer,
        db.ForeignKey("canvass_forms.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    draft_id = db.Column(
        db.Integer,
        db.ForeignKey("canvass_drafts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_draft = db.Column(db.Boolean, default=False, nullable=False, index=True)

    # CANVASS_SHEET / QUOTATION_1..N
    type = db.Column(db.String(40), nullable=False)
    path = db.Column(db.String(512), nullable=False)
    url = db.Column(db.String(1024), nullable=False)
    file_type = db.Column(db.String(120), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    canvass_form = db.relationship("CanvassForm", back_populates="attachments")
    draft = db.relationship("CanvassDraft", back_populates="attachments")

    def to_dict(self) -> dict:
        return {
            "canvass_attachment_id": self.id,
            "canvass_attachment_type": self.type,
            "canvass_attachment_url": self.url,
            "canvass_attachment_file_name": file_name_from_url(self.url),
            "canvass_attachment_file_type": self.file_type,
            "canvass_attachment_file_size": self.file_size,
            "canvass_attachment_file_size_display": (
                convert_file_size(self.file_size) if self.file_size is not None else None
            ),
            "canvass_attachment_is_draft": self.is_draft,
            "canvass_attachment_created_at": _iso(self.created_at),
        }


# ---------------------------------------------------------------------
# Comments & notifications
# ---------------------------------------------------------------------
class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)

    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default=COMMENT_TYPE_COMMENT)
    is_edited = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    ticket = db.relationship("Ticket", back_populates="comments")
    user = db.relationship("User", backref=db.backref("comments", lazy=True, cascade="all, delete-orphan"))

    def to_dict(self) -> dict:
        author = self.user
        return {
            "comment_id": self.id,
            "comment_ticket_id": self.ticket_id,
            "comment_content": self.content,
            "comment_date_created": _iso(self.created_at),
            "comment_is_edited": self.is_edited,
            "comment_type": self.type,
            "comment_last_updated": _iso(self.updated_at),
            "comment_user_id": self.user_id,
            "comment_user_full_name": author.full_name if author else None,
            "comment_user_avatar": author.avatar_url if author else None,
            "replies": [],
        }


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ticket_id = db.Column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    message = db.Column(db.Text, nullable=False)
    url = db.Column(db.String(255), nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship("User", backref=db.backref("notifications", lazy=True, cascade="all, delete-orphan"))
    ticket = db.relationship("Ticket", back_populates="notifications")

    def to_dict(self) -> dict:
        return {
            "notification_id": self.id,
            "notification_user_id": self.user_id,
            "notification_message": self.message,
            "notification_read": self.is_read,
            "notification_ticket_id": self.ticket_id,
            "notification_url": self.url,
            "notification_created_at": _iso(self.created_at),
        }


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Who did what to which entity, with before/after snapshots."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    email_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
