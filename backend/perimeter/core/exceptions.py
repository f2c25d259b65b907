"""Custom exception classes."""

from typing import Optional

from fastapi import HTTPException, status


class PerimeterException(HTTPException):
    """Base exception for application errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        code: str = "PERIMETER_ERROR",
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


class StructureDetectionError(PerimeterException):
    def __init__(self, confidence: Optional[float] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Unable to detect structure. Please draw manually.",
            code="STRUCTURE_DETECTION_FAILED",
        )
        self.confidence = confidence


class InvalidDetectionGeometryError(PerimeterException):
    def __init__(self, vertex_count: int):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Detected outline has {vertex_count} vertices; at least 3 are required",
            code="INVALID_DETECTION_GEOMETRY",
        )


class CollaboratorUnavailableError(PerimeterException):
    def __init__(self, collaborator: str):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{collaborator} is not configured",
            code="COLLABORATOR_UNAVAILABLE",
        )
