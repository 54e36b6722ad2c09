from __future__ import annotations


class CollageError(Exception):
    pass


class DecodeError(CollageError):
    def __init__(self, message: str, index: int | None = None) -> None:
        if index is not None:
            message = f"image {index}: {message}"
        super().__init__(message)
        self.index = index


class DegenerateTreeError(CollageError):
    pass


class BlueprintError(CollageError):
    pass


class EncodeError(CollageError):
    pass
