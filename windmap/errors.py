class InsufficientDataError(ValueError):
    """Too few usable samples to build a field."""

    def __init__(self, count: int, required: int):
        super().__init__(f"Insufficient data: {count} usable samples, need at least {required}")
        self.count = count
        self.required = required


class NoDataError(InsufficientDataError):
    """No usable samples at all."""

    def __init__(self, required: int = 1):
        super().__init__(0, required)
        self.args = ("No Data",)


class SampleSourceError(RuntimeError):
    """
    A sample resource could not be loaded.
    status is the HTTP status code, or -1 when no response was received.
    """

    def __init__(self, status: int, message: str, resource: str):
        super().__init__(f"{status} {message}: {resource}")
        self.status = status
        self.message = message
        self.resource = resource


class EmptyFieldError(RuntimeError):
    """The field mask covers no pixel of the display bounds."""

    def __init__(self, width: int = 0, height: int = 0):
        super().__init__(f"Field mask covers no pixels in {width}x{height} bounds")
        self.width = width
        self.height = height


def describe(e: BaseException) -> str:
    """Short user-facing status text for a failed pipeline."""
    if isinstance(e, NoDataError):
        return "No Data"
    if isinstance(e, SampleSourceError):
        return "No Data" if e.status == 404 else f"{e.status} {e.message}"
    if isinstance(e, InsufficientDataError):
        return f"Insufficient Data ({e.count} of {e.required} stations)"
    if isinstance(e, EmptyFieldError):
        return "No Field (mask covers no pixels)"
    return str(e) or type(e).__name__
