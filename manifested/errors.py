"""Exception types raised by the manifest engine."""


class ManifestedError(Exception):
    """Base class for all manifest engine errors."""


class DirectoryNotFoundError(ManifestedError, FileNotFoundError):
    """Raised when a directory to scan does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Directory not found: {self.path}")


class ManifestNotFoundError(ManifestedError, FileNotFoundError):
    """Raised when a managed directory has no manifest file."""

    def __init__(self, path, role: str = "Directory"):
        self.path = str(path)
        self.role = role
        super().__init__(f"{role} is missing its manifest: {self.path}")


class BrokenSymlinkError(ManifestedError, OSError):
    """Raised when a symbolic link's target cannot be read."""

    def __init__(self, path, reason: str = "Failed to read symlink target"):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")


class MalformedManifestLineError(ManifestedError, ValueError):
    """Raised when a manifest line cannot be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)


class InvalidPathError(ManifestedError, ValueError):
    """Raised when a manifest entry path is absolute or escapes the root."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"{reason}: {path}")


class SyncError(ManifestedError, OSError):
    """Raised when a file operation fails while applying a diff."""

    def __init__(self, state: str, relative_path: str, error: str):
        self.state = state
        self.relative_path = relative_path
        self.error = error
        super().__init__(f"Failed to apply {state} for {relative_path}: {error}")
