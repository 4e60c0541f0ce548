"""Exceptions raised while bootstrapping a bundle."""


class BootstrapError(RuntimeError):
    """Base class for failures that abort the bootstrap before launch."""


class MissingResourceError(BootstrapError):
    """Raised when a required embedded resource does not exist.

    :ivar resource: Resource name relative to the bundle root.
    """

    def __init__(self, resource: str) -> None:
        super().__init__(f"Resource {resource!r} not found in bundle")
        self.resource: str = resource


class MalformedEntryError(BootstrapError):
    """Raised when a manifest line cannot be parsed.

    :ivar line: The offending line text.
    """

    def __init__(self, message: str, *, line: str) -> None:
        super().__init__(message)
        self.line: str = line


class MissingArtifactError(BootstrapError):
    """Raised when a manifest entry has no embedded artifact bytes.

    :ivar category: Artifact category (e.g. ``libraries``).
    :ivar entry_id: Logical id of the entry.
    :ivar path: Relative artifact path.
    """

    def __init__(self, *, category: str, entry_id: str, path: str) -> None:
        super().__init__(f"Declared artifact {category}/{path} ({category}:{entry_id}) not found in bundle")
        self.category: str = category
        self.entry_id: str = entry_id
        self.path: str = path


class ArtifactIOError(BootstrapError):
    """Raised when reading, hashing or copying an artifact fails."""


class LaunchError(BootstrapError):
    """Base class for entry-point resolution failures."""


class EntryPointNotFoundError(LaunchError):
    """Raised when the entry-point module or attribute does not exist."""


class EntryPointSignatureError(LaunchError):
    """Raised when the entry point cannot be called as ``entry(args)``."""
