# domain errors raised by the service layer
# rendered as json by the handler registered in main.py


class CommonGroundError(Exception):
    """base error for discussion service failures"""

    status_code = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)

    @property
    def extra(self) -> dict:
        """additional fields merged into the error body"""
        return {}


class NotFoundError(CommonGroundError):
    status_code = 404


class InvalidRequestError(CommonGroundError):
    status_code = 400


class PermissionDeniedError(CommonGroundError):
    status_code = 403


class ThreadDepthExceededError(InvalidRequestError):
    """reply would nest deeper than the configured maximum"""

    def __init__(self, depth: int, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(f"Thread depth limit exceeded (maximum {max_depth} levels)")


class CitationBlockedError(InvalidRequestError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Citation URL blocked: {reason}")


class VersionConflictError(CommonGroundError):
    """optimistic lock failure: the stored version moved on"""

    status_code = 409

    def __init__(self, current_version: int, provided_version: int):
        self.current_version = current_version
        self.provided_version = provided_version
        super().__init__(
            f"Version conflict: expected {provided_version}, current is {current_version}. "
            "Please refresh and try again."
        )

    @property
    def extra(self) -> dict:
        return {
            "currentVersion": self.current_version,
            "providedVersion": self.provided_version,
        }
