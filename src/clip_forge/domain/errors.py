from __future__ import annotations


class ClipForgeError(RuntimeError):
    pass


class InvalidRequest(ClipForgeError):
    pass


class ProbeError(ClipForgeError):
    pass


class RenderError(ClipForgeError):
    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message if not diagnostic else f"{message}\n{diagnostic}")
        self.diagnostic = diagnostic


class ExtractError(ClipForgeError):
    pass


class ExternalServiceError(ClipForgeError):
    pass


class OperationCancelled(Exception):
    """Raised when a caller-supplied cancel event stops a stage.

    Not a ClipForgeError: a human-initiated cancel is not a failure.
    """

    def __init__(self, stage: str) -> None:
        super().__init__(f"{stage} cancelled")
        self.stage = stage


class RenderCancelled(OperationCancelled):
    def __init__(self) -> None:
        super().__init__("render")
