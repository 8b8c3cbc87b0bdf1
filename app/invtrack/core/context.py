from dataclasses import dataclass

from starlette.requests import Request


@dataclass(frozen=True)
class RequestTags:
    """Caller identity as seen by logging, before any authorization."""

    trace_id: str
    tenant_id: str | None = None
    user_id: str | None = None
    role: str | None = None


def tag_request(request: Request, *, tenant_id: str | None, user_id: str | None, role: str | None) -> None:
    request.state.tenant_id = tenant_id
    request.state.user_id = user_id
    request.state.role = role


def tags_of(request: Request) -> RequestTags:
    return RequestTags(
        trace_id=trace_id_of(request),
        tenant_id=getattr(request.state, "tenant_id", None),
        user_id=getattr(request.state, "user_id", None),
        role=getattr(request.state, "role", None),
    )


def trace_id_of(request: Request) -> str:
    return getattr(request.state, "trace_id", "")
