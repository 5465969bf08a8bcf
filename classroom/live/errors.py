"""Exception taxonomy for live sessions."""


class LiveSessionError(Exception):
    """Base class for live-session failures."""


class StoreUnavailable(LiveSessionError):
    """The session store could not be reached or rejected the request."""


class MediaCaptureError(LiveSessionError):
    """Local media capture failed."""


class MediaAccessDenied(MediaCaptureError):
    """The user or the platform refused access to the microphone/camera."""


class MediaDeviceError(MediaCaptureError):
    """No usable capture device, or the device failed while opening."""


class BroadcastNotAllowed(LiveSessionError):
    """The current participant's role may not perform this action."""
