"""Exception hierarchy shared by the GUI session controller and the daemon."""


class GalleryError(Exception):
    """Base class for every error raised by this project."""


class BackendError(GalleryError):
    """The daemon could not be reached or answered with an error response."""


class ScanFailure(GalleryError):
    """A folder scan did not produce a usable image list."""


class TagGenerationFailure(GalleryError):
    """The inference service did not return tags for an image."""
