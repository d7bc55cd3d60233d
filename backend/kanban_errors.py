# kanban_errors.py: Domain error taxonomy with KB-DOMAIN-NUMBER codes
from typing import Optional

# ============================================================
# ERROR CODE CATALOGUE
# KB-{DOMAIN}-{NUMBER}
# Domains: AUTH, REQ, ORDER, INV, MEMBER
# ============================================================

ERROR_CATALOGUE = {
    # Authorisation
    "KB-AUTH-001": {"message": "Access denied", "severity": "warning", "http_status": 403},
    "KB-AUTH-002": {"message": "Not authorized", "severity": "warning", "http_status": 403},

    # Request
    "KB-REQ-001": {"message": "Resource not found", "severity": "info", "http_status": 404},
    "KB-REQ-002": {"message": "Invalid input", "severity": "info", "http_status": 400},

    # Ordering engine
    "KB-ORDER-001": {"message": "Limit exceeded", "severity": "info", "http_status": 400},
    "KB-ORDER-002": {"message": "Default columns are protected", "severity": "info", "http_status": 400},
    "KB-ORDER-003": {"message": "Invalid order position", "severity": "info", "http_status": 400},
    "KB-ORDER-004": {"message": "Limit is below the current task count", "severity": "info", "http_status": 400},

    # Invitations
    "KB-INV-001": {"message": "An invitation is already pending for this user", "severity": "info", "http_status": 400},
    "KB-INV-002": {"message": "You cannot invite yourself", "severity": "info", "http_status": 400},
    "KB-INV-003": {"message": "User is already a member of this board", "severity": "info", "http_status": 400},

    # Membership
    "KB-MEMBER-001": {"message": "Board owner cannot leave the board", "severity": "info", "http_status": 400},
    "KB-MEMBER-002": {"message": "You are not a member of this board", "severity": "info", "http_status": 400},
}


class KanbanError(Exception):
    """Base for every domain failure; translated 1:1 to an HTTP response in main.py"""

    code = "KB-REQ-002"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        if code:
            self.code = code
        entry = ERROR_CATALOGUE[self.code]
        self.message = message or entry["message"]
        self.http_status = entry["http_status"]
        super().__init__(self.message)

    def to_dict(self):
        return {"message": self.message, "code": self.code}


class NotFound(KanbanError):
    code = "KB-REQ-001"


class InvalidInput(KanbanError):
    code = "KB-REQ-002"


class Forbidden(KanbanError):
    code = "KB-AUTH-001"


class NotAuthorized(KanbanError):
    code = "KB-AUTH-002"


class LimitExceeded(KanbanError):
    code = "KB-ORDER-001"


class Protected(KanbanError):
    code = "KB-ORDER-002"


class InvalidRange(KanbanError):
    code = "KB-ORDER-003"


class InvalidLimit(KanbanError):
    code = "KB-ORDER-004"


class DuplicateInvitation(KanbanError):
    code = "KB-INV-001"


class SelfInvite(KanbanError):
    code = "KB-INV-002"


class AlreadyMember(KanbanError):
    code = "KB-INV-003"


class OwnerCannotLeave(KanbanError):
    code = "KB-MEMBER-001"


class NotAMember(KanbanError):
    code = "KB-MEMBER-002"
