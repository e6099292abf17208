"""Domain error types."""
from typing import Any, Optional


class DomainError(Exception):
    """Base domain error."""
    code = "domain_error"

    def extra(self) -> dict[str, Any]:
        """Extra fields included in the API error body."""
        return {}


class NotFoundError(DomainError):
    """Resource not found."""
    code = "not_found"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ValidationError(DomainError):
    """Validation error."""
    code = "validation_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthorizationError(DomainError):
    """Authorization error."""
    code = "forbidden"

    def __init__(self, message: str = "Not authorized"):
        self.message = message
        super().__init__(message)


class ConflictError(DomainError):
    """Resource conflict error."""
    code = "conflict"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Exchange / ledger errors

class InvalidProposalError(ValidationError):
    """Malformed proposal: missing skill reference or non-positive rate."""
    code = "invalid_proposal"


class InvalidRecipientError(NotFoundError):
    """Referenced recipient does not exist (or is the sender)."""
    code = "invalid_recipient"

    def __init__(self, identifier: str, message: Optional[str] = None):
        self.resource = "User"
        self.identifier = identifier
        DomainError.__init__(self, message or f"User with id {identifier} not found")


class AlreadyResolvedError(ConflictError):
    """Proposal is no longer pending."""
    code = "already_resolved"

    def __init__(self, message_id: str, status: str):
        self.message_id = message_id
        self.status = status
        super().__init__(f"Proposal {message_id} is already {status}")


class InsufficientCreditsError(ConflictError):
    """A party cannot cover its side of a settlement."""
    code = "insufficient_credits"

    def __init__(self, party: str, required: int, available: int):
        self.party = party
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits for user {party}. Required: {required}, Available: {available}"
        )

    @property
    def shortfall(self) -> int:
        return max(self.required - self.available, 0)

    def extra(self) -> dict[str, Any]:
        return {
            "party": self.party,
            "required": self.required,
            "available": self.available,
            "shortfall": self.shortfall,
        }


class LedgerTransferFailedError(ConflictError):
    """A debit leg failed after an earlier leg was applied; applied legs were reverted."""
    code = "settlement_failed"

    def __init__(self, party: str, amount: int, reverted_parties: Optional[list[str]] = None):
        self.party = party
        self.amount = amount
        self.reverted_parties = reverted_parties or []
        super().__init__(f"Credit transfer failed for user {party} (amount {amount}); transfer reverted")

    def extra(self) -> dict[str, Any]:
        return {"party": self.party, "amount": self.amount}


class SettlementFailedError(ConflictError):
    """Settlement could not be completed for a reason other than a ledger leg."""
    code = "settlement_failed"
