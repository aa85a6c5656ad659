"""
Typed failures raised by the engine services.

Each error carries the HTTP status the API layer answers with; the app
registers a single exception handler (see socialgraph.main) that turns any
EngineError into a JSON response, so services never build HTTP responses.
"""


class EngineError(Exception):
    status_code = 400
    kind = "engine_error"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.__class__.__doc__ or self.kind
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "error": self.kind}


class NotFound(EngineError):
    """Referenced entity not found"""
    status_code = 404
    kind = "not_found"


class Forbidden(EngineError):
    """Actor lacks the required relationship or role"""
    status_code = 403
    kind = "forbidden"


class AlreadyExists(EngineError):
    """Entity already exists"""
    status_code = 409
    kind = "already_exists"


class DuplicatePending(AlreadyExists):
    """A pending request already exists for this subject"""
    kind = "duplicate_pending"


class AlreadyMember(AlreadyExists):
    """Already a member of this collective"""
    kind = "already_member"


class AlreadyDecided(EngineError):
    """Request already processed"""
    status_code = 409
    kind = "already_decided"


class Full(EngineError):
    """Collective is full"""
    status_code = 409
    kind = "full"


class InvalidActor(EngineError):
    """Requester and owner must be different users"""
    status_code = 400
    kind = "invalid_actor"


class InvalidArgument(EngineError):
    """Invalid argument"""
    status_code = 400
    kind = "invalid_argument"
