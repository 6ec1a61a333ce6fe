from __future__ import annotations

from pathlib import Path


class BundleTypesError(RuntimeError):
    def __init__(self, *, code: str, path: Path | str, message: str) -> None:
        super().__init__(message)
        self.code = str(code)
        self.path = Path(path)
        self.message = str(message)


class BundleParseError(BundleTypesError):
    def __init__(self, *, path: Path | str, detail: str | None = None) -> None:
        message = f"Failed to parse bundle: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(code="BUNDLE_JSON_PARSE", path=path, message=message)


class BundleShapeError(BundleTypesError):
    """Raised when a bundle parses as JSON but is missing version/metadata/data or has ill-typed fields."""

    def __init__(self, *, path: Path | str, locations: list[str] | None = None) -> None:
        self.locations = list(locations or [])
        message = f"Invalid bundle structure: {path}"
        if self.locations:
            message = f"{message} ({', '.join(self.locations)})"
        super().__init__(code="BUNDLE_SHAPE_INVALID", path=path, message=message)


class BundleWriteError(BundleTypesError):
    def __init__(self, *, path: Path | str, output_path: Path | str, detail: str | None = None) -> None:
        self.output_path = Path(output_path)
        message = f"Failed to write declarations for {path} to {output_path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(code="BUNDLE_WRITE_FAILED", path=path, message=message)
