"""Map core errors to HTTP responses."""

from fastapi import HTTPException

from choicecraft.errors import (
    InsufficientResource,
    NotYourTurn,
    ProposalRejected,
    StoryError,
    StoryNotFound,
    TurnInProgress,
    ValidationError,
)


def to_http(e: StoryError) -> HTTPException:
    if isinstance(e, StoryNotFound):
        return HTTPException(404, "Story not found")
    if isinstance(e, ValidationError):
        return HTTPException(400, str(e))
    if isinstance(e, (NotYourTurn, TurnInProgress)):
        return HTTPException(409, str(e))
    if isinstance(e, InsufficientResource):
        return HTTPException(402, str(e))
    if isinstance(e, ProposalRejected):
        if e.retry_after is not None:
            return HTTPException(503, str(e), headers={"Retry-After": f"{int(e.retry_after)}"})
        return HTTPException(502, str(e))
    return HTTPException(500, str(e))
