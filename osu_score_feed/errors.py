"""Exception types raised by the feed and search components."""


class FeedError(Exception):
    """Base class for all score feed errors."""


class CredentialError(FeedError):
    """The client-credentials exchange failed."""


class MalformedResponse(FeedError):
    """The upstream API returned a payload of an unexpected shape."""


class UserNotFound(FeedError):
    """A username could not be resolved to a user id."""


class SearchError(FeedError):
    """A search request failed; ``status`` mirrors the HTTP status to report."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}
