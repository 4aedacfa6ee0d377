"""Request inspection helpers."""

from starlette.requests import Request


def get_client_ip(request: Request) -> str | None:
    """Extract client IP from request.

    Args:
        request: Incoming request

    Returns:
        Client IP address or None
    """
    # Check for forwarded header (when behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain (original client)
        return forwarded.split(",")[0].strip()

    # Fall back to direct client
    if request.client:
        return request.client.host

    return None
