from __future__ import annotations


class ReportError(Exception):
    """Base class for failures raised while building a report."""


class MissingDependency(ReportError):
    def __init__(self, name: str):
        super().__init__(f'Required collaborator is not configured: {name}')
        self.name = name


class ElementNotFound(ReportError):
    def __init__(self, message: str, *, selector: str | None = None):
        super().__init__(message)
        self.selector = selector


class NoValidPanels(ReportError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or 'No report content available. The dashboard contains only empty or unsupported visualizations.'
        )


class CaptureFailure(ReportError):
    def __init__(self, message: str, *, element_id: str | None = None):
        super().__init__(message)
        self.element_id = element_id


class MergeFailure(ReportError):
    pass


class AssetUnavailable(ReportError):
    pass
