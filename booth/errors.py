"""Error taxonomy shared by the camera pipeline and the composite engine."""


class BoothError(Exception):
    """Base class for every error raised by the booth core."""


class DeviceUnavailable(BoothError, RuntimeError):
    """No camera could be opened, or it never delivered a first frame."""


class DetectionUnavailable(BoothError, RuntimeError):
    """The face detection capability could not be loaded."""


class FilterFailure(BoothError, RuntimeError):
    """A pixel filter raised while processing a frame."""


class InvalidPhotoCount(BoothError, ValueError):
    """The number of photos does not match the grid's cell count."""


class InvalidGridSpec(BoothError, ValueError):
    """The grid declares no usable cols/rows and is not a strip grid."""


class AssetLoadFailure(BoothError, RuntimeError):
    """An image asset (photo, composite or frame) could not be decoded."""


class ConfigError(BoothError, ValueError):
    """The configuration file is malformed."""


class InvalidTransition(BoothError, RuntimeError):
    """A pipeline trigger was fired from a state that does not allow it."""
