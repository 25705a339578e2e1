"""
Scoring error taxonomy shared by rule modules, repositories and the API layer
"""

from typing import Any, Dict, Optional


class ScoringError(Exception):
    """Base class for all scoring errors"""

    code = "scoring_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": str(self)}


class ValidationError(ScoringError):
    """Malformed request: unknown sport, same team twice, missing fields"""

    code = "validation_error"


class NotFoundError(ScoringError):
    """Referenced match does not exist"""

    code = "not_found"

    def __init__(self, match_id: str):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class StateViolation(ScoringError):
    """
    Action is illegal for the match's current status or sub-state.

    Carries the rejected action, the status it was rejected in and the
    rule that was violated so the admin UI can show a specific reason.
    """

    code = "state_violation"

    def __init__(self, action: str, status: str, reason: str):
        super().__init__(f"Cannot apply '{action}' while {status}: {reason}")
        self.action = action
        self.status = status
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "action": self.action,
            "status": self.status,
            "reason": self.reason,
        }


class ConcurrentModificationError(ScoringError):
    """Another update committed first; caller must reload and resubmit"""

    code = "concurrent_modification"

    def __init__(self, match_id: str, expected_version: int, current_version: Optional[int] = None):
        super().__init__(
            f"Match {match_id} was modified concurrently (expected version {expected_version})"
        )
        self.match_id = match_id
        self.expected_version = expected_version
        self.current_version = current_version

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "matchId": self.match_id,
            "expectedVersion": self.expected_version,
            "currentVersion": self.current_version,
        }


class PersistenceError(ScoringError):
    """Underlying store unavailable; the update was not applied"""

    code = "persistence_error"
