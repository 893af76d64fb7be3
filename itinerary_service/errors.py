from __future__ import annotations


class ItineraryServiceError(Exception):
    pass


class ConfigurationError(ItineraryServiceError):
    pass


class ValidationError(ItineraryServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CredentialError(ItineraryServiceError):
    pass


class DocumentStoreError(ItineraryServiceError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DocumentNotFoundError(DocumentStoreError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}", status_code=404)
        self.path = path


class ContentGenerationError(ItineraryServiceError):
    pass
