"""
Custom exceptions for the esdump store client.

Provides structured error handling over the elasticsearch transport errors.
"""


class ESOperationalError(Exception):
    """Base operational error for the store client."""

    pass


class RetryableError(ESOperationalError):
    """Temporary errors (connection resets, timeouts, 429/5xx)."""

    pass


class CursorExpired(ESOperationalError):
    """Scroll cursor is unknown to the cluster (expired or already cleared)."""

    pass


class IndexNotFound(ESOperationalError):
    """Target index does not exist."""

    pass


class RequestRejected(ESOperationalError):
    """Cluster rejected the request (mapping conflict, bad document, ...)."""

    pass


class AuthenticationFailed(ESOperationalError):
    """Credentials missing, wrong, or not allowed to perform the call."""

    pass


def map_es_error(e: Exception) -> ESOperationalError:
    import elasticsearch

    if isinstance(e, ESOperationalError):
        return e
    if isinstance(e, (elasticsearch.ConnectionError, elasticsearch.ConnectionTimeout)):
        return RetryableError(str(e))
    if isinstance(e, (elasticsearch.AuthenticationException, elasticsearch.AuthorizationException)):
        return AuthenticationFailed(str(e))
    if isinstance(e, elasticsearch.NotFoundError):
        if "search_context_missing" in str(e) or "No search context" in str(e):
            return CursorExpired(str(e))
        return IndexNotFound(str(e))
    if isinstance(e, elasticsearch.ApiError):
        status = getattr(e, "status_code", None)
        if status == 429 or (status is not None and status >= 500):
            return RetryableError(str(e))
        return RequestRejected(str(e))
    return ESOperationalError(str(e))
