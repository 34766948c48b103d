"""Exceptions raised by the upstream service clients."""


class UpstreamServiceError(Exception):
    """A call to an external managed service failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class EmbeddingError(UpstreamServiceError):
    def __init__(self, message: str):
        super().__init__("embedding", message)


class CompletionError(UpstreamServiceError):
    def __init__(self, message: str):
        super().__init__("completion", message)


class VectorIndexError(UpstreamServiceError):
    def __init__(self, message: str):
        super().__init__("vector-index", message)
