"""
Status service: the request status graph and the actions that move requests through it.

The graph is declared once in ``TRANSITIONS``. Every status write goes
through ``apply_transition``, which refuses targets the table does not list
for the action and sources the action is not legal from.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, FrozenSet, Optional
from sqlalchemy.orm import Session
from app.core.errors import InvalidTransitionError, NotFoundError, UnauthorizedError
from app.db.session import transaction
from app.models.travel_request import TravelRequest, Route, RouteRequest, RequestStatus
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    """Named actions that change a request's status."""
    SAVE_DRAFT = "save_draft"
    CREATE = "create"
    CONFIRM_DRAFT = "confirm_draft"
    AUTHORIZE = "authorize"
    DECLINE = "decline"
    ATTEND_ACCOUNTS_PAYABLE = "attend_accounts_payable"
    ATTEND_TRAVEL_AGENCY = "attend_travel_agency"
    CANCEL = "cancel"
    SEND_FOR_VALIDATION = "send_for_validation"
    RETURN_TO_PROOF = "return_to_proof"
    FINALIZE = "finalize"


@dataclass(frozen=True)
class Transition:
    """Statuses an action may start from and land on. No sources means the action creates the request."""
    sources: FrozenSet[RequestStatus]
    targets: FrozenSet[RequestStatus]

    @property
    def creates(self) -> bool:
        return not self.sources


ANY_STATUS = frozenset(RequestStatus)

CANCELLABLE = frozenset({
    RequestStatus.DRAFT,
    RequestStatus.FIRST_REVIEW,
    RequestStatus.SECOND_REVIEW,
    RequestStatus.TRIP_QUOTE,
    RequestStatus.TRAVEL_AGENCY,
})

SUBMITTED = frozenset({
    RequestStatus.FIRST_REVIEW,
    RequestStatus.SECOND_REVIEW,
    RequestStatus.TRIP_QUOTE,
})

TRANSITIONS: Dict[Action, Transition] = {
    Action.SAVE_DRAFT: Transition(frozenset(), frozenset({RequestStatus.DRAFT})),
    Action.CREATE: Transition(frozenset(), SUBMITTED),
    Action.CONFIRM_DRAFT: Transition(frozenset({RequestStatus.DRAFT}), SUBMITTED),
    Action.AUTHORIZE: Transition(
        ANY_STATUS, frozenset({RequestStatus.SECOND_REVIEW, RequestStatus.TRIP_QUOTE})
    ),
    Action.DECLINE: Transition(ANY_STATUS, frozenset({RequestStatus.DECLINED})),
    Action.ATTEND_ACCOUNTS_PAYABLE: Transition(
        frozenset({RequestStatus.TRIP_QUOTE}),
        frozenset({RequestStatus.TRAVEL_AGENCY, RequestStatus.EXPENSE_PROOF}),
    ),
    Action.ATTEND_TRAVEL_AGENCY: Transition(ANY_STATUS, frozenset({RequestStatus.EXPENSE_PROOF})),
    Action.CANCEL: Transition(CANCELLABLE, frozenset({RequestStatus.CANCELLED})),
    Action.SEND_FOR_VALIDATION: Transition(
        frozenset({RequestStatus.EXPENSE_PROOF}), frozenset({RequestStatus.RECEIPT_VALIDATION})
    ),
    Action.RETURN_TO_PROOF: Transition(ANY_STATUS, frozenset({RequestStatus.EXPENSE_PROOF})),
    Action.FINALIZE: Transition(ANY_STATUS, frozenset({RequestStatus.FINALIZED})),
}

# Status a submitted request starts in, by role of the submitting user
INITIAL_STATUS_BY_ROLE: Dict[UserRole, RequestStatus] = {
    UserRole.REQUESTER: RequestStatus.FIRST_REVIEW,
    UserRole.AUTHORIZER_N1: RequestStatus.SECOND_REVIEW,
    UserRole.AUTHORIZER_N2: RequestStatus.TRIP_QUOTE,
}

# Status an authorization moves a request to, by role of the authorizer
AUTHORIZE_STATUS_BY_ROLE: Dict[UserRole, RequestStatus] = {
    UserRole.AUTHORIZER_N1: RequestStatus.SECOND_REVIEW,
    UserRole.AUTHORIZER_N2: RequestStatus.TRIP_QUOTE,
}


def validate_transition_table(table: Dict[Action, Transition] = TRANSITIONS) -> None:
    """Raise ValueError if any action is missing or points outside the status set."""
    missing = [action.value for action in Action if action not in table]
    if missing:
        raise ValueError(f"No transition declared for: {', '.join(missing)}")
    for action, transition in table.items():
        if not transition.targets:
            raise ValueError(f"Action {action.value} has no target status")
        unknown = (transition.targets | transition.sources) - ANY_STATUS
        if unknown:
            raise ValueError(f"Action {action.value} references undefined statuses: {unknown}")
    for mapping in (INITIAL_STATUS_BY_ROLE, AUTHORIZE_STATUS_BY_ROLE):
        for status in mapping.values():
            if status not in ANY_STATUS:
                raise ValueError(f"Role mapping references undefined status: {status}")


validate_transition_table()


@dataclass
class TransitionResult:
    """Outcome of a status-changing action."""
    request_id: int
    status: Optional[RequestStatus]
    message: str


def check_transition(
    action: Action,
    current: Optional[RequestStatus],
    target: RequestStatus
) -> RequestStatus:
    """Return ``target`` if ``action`` may move a request from ``current`` to it."""
    transition = TRANSITIONS[action]
    if target not in transition.targets:
        raise InvalidTransitionError(
            f"Action '{action.value}' cannot set status '{target.label}'",
            current_status=current.value if current is not None else None,
        )
    if current is None:
        if not transition.creates:
            raise InvalidTransitionError(f"Action '{action.value}' requires an existing request")
    elif current not in transition.sources:
        raise InvalidTransitionError(
            f"Action '{action.value}' is not allowed while request is in '{current.label}'",
            current_status=current.value,
        )
    return target


def apply_transition(
    request: TravelRequest,
    action: Action,
    target: RequestStatus,
    **fields
) -> RequestStatus:
    """
    Write a new status (and any auxiliary columns) onto a loaded request.

    Does not commit; callers run this inside ``transaction``.
    """
    previous = request.status
    check_transition(action, previous, target)
    for name, value in fields.items():
        setattr(request, name, value)
    request.status_id = target.value
    logger.info("Request %s: %s -> %s (%s)", request.id, previous.name, target.name, action.value)
    return target


def get_user_role(user_id: int, db: Session) -> UserRole:
    """Look up a user's role from the store."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    try:
        return user.role
    except ValueError:
        raise UnauthorizedError("User role is not recognized", role=user.role_id) from None


def get_request_or_404(request_id: int, db: Session) -> TravelRequest:
    """Load a request or raise NotFoundError."""
    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).first()
    if not request:
        raise NotFoundError("Travel request not found")
    return request


def initial_status_for_role(role: UserRole) -> RequestStatus:
    """Status a request submitted by ``role`` starts in."""
    try:
        return INITIAL_STATUS_BY_ROLE[role]
    except KeyError:
        raise UnauthorizedError(
            "User role is not allowed to create a travel request", role=int(role)
        ) from None


def confirm_draft(user_id: int, request_id: int, db: Session) -> TransitionResult:
    """Submit a draft, choosing the next status from the confirming user's role."""
    with transaction(db):
        role = get_user_role(user_id, db)
        target = initial_status_for_role(role)
        request = get_request_or_404(request_id, db)
        apply_transition(request, Action.CONFIRM_DRAFT, target)

    return TransitionResult(request_id, target, "Draft travel request successfully confirmed")


def authorize_request(request_id: int, user_id: int, db: Session) -> TransitionResult:
    """Approve a request as a level-1 or level-2 authorizer."""
    with transaction(db):
        role = get_user_role(user_id, db)
        target = AUTHORIZE_STATUS_BY_ROLE.get(role)
        if target is None:
            raise UnauthorizedError("User role not authorized to approve request", role=int(role))
        request = get_request_or_404(request_id, db)
        apply_transition(request, Action.AUTHORIZE, target)

    return TransitionResult(request_id, target, "Request status updated successfully")


def decline_request(request_id: int, user_id: int, db: Session) -> TransitionResult:
    """Decline a request as a level-1 or level-2 authorizer."""
    with transaction(db):
        role = get_user_role(user_id, db)
        if role not in AUTHORIZE_STATUS_BY_ROLE:
            raise UnauthorizedError("User role not authorized to decline request", role=int(role))
        request = get_request_or_404(request_id, db)
        apply_transition(request, Action.DECLINE, RequestStatus.DECLINED)

    return TransitionResult(request_id, RequestStatus.DECLINED, "Request declined successfully")


def request_needs_travel_agency(request_id: int, db: Session) -> bool:
    """True if any route of the request needs a flight or a hotel."""
    needing = db.query(Route.id).join(
        RouteRequest, RouteRequest.route_id == Route.id
    ).filter(
        RouteRequest.request_id == request_id,
        (Route.plane_needed.is_(True)) | (Route.hotel_needed.is_(True))
    ).first()
    return needing is not None


def attend_accounts_payable(request_id: int, imposed_fee: Decimal, db: Session) -> TransitionResult:
    """
    Set the imposed fee on a quoted request and route it onward.

    Requests needing a flight or hotel go to the travel agency; the rest
    skip straight to expense proof.
    """
    with transaction(db):
        request = get_request_or_404(request_id, db)
        if request.status != RequestStatus.TRIP_QUOTE:
            raise InvalidTransitionError(
                "This request cannot be attended by accounts payable",
                current_status=request.status_id,
            )
        if request_needs_travel_agency(request_id, db):
            target = RequestStatus.TRAVEL_AGENCY
        else:
            target = RequestStatus.EXPENSE_PROOF
        apply_transition(request, Action.ATTEND_ACCOUNTS_PAYABLE, target, imposed_fee=imposed_fee)

    return TransitionResult(request_id, target, "Travel request status updated successfully")


def attend_travel_agency(request_id: int, db: Session) -> TransitionResult:
    """Mark travel arrangements done; the request moves to expense proof."""
    with transaction(db):
        request = get_request_or_404(request_id, db)
        apply_transition(request, Action.ATTEND_TRAVEL_AGENCY, RequestStatus.EXPENSE_PROOF)

    return TransitionResult(request_id, RequestStatus.EXPENSE_PROOF, "Travel request status updated successfully")


def cancel_request(request_id: int, db: Session) -> TransitionResult:
    """Cancel a request that has not yet reached expense proof."""
    with transaction(db):
        request = get_request_or_404(request_id, db)
        current = request.status
        if current == RequestStatus.CANCELLED:
            raise InvalidTransitionError("Request has already been cancelled.", current_status=current.value)
        if current not in CANCELLABLE:
            raise InvalidTransitionError(
                "Request cannot be cancelled after reaching 'Expense Proof'",
                current_status=current.value,
            )
        apply_transition(request, Action.CANCEL, RequestStatus.CANCELLED)

    return TransitionResult(request_id, RequestStatus.CANCELLED, "Travel request cancelled successfully")


def send_receipts_for_validation(request_id: int, db: Session) -> TransitionResult:
    """Hand the request's receipts to accounts payable for validation."""
    with transaction(db):
        request = get_request_or_404(request_id, db)
        if request.status != RequestStatus.EXPENSE_PROOF:
            raise InvalidTransitionError(
                "Request must be in status 'Expense Proof' to send for validation",
                current_status=request.status_id,
            )
        apply_transition(request, Action.SEND_FOR_VALIDATION, RequestStatus.RECEIPT_VALIDATION)

    return TransitionResult(
        request_id,
        RequestStatus.RECEIPT_VALIDATION,
        "Request status updated to 'Receipt Validation'"
    )
