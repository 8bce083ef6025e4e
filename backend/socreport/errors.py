class ReportError(Exception):
    """Base class for report pipeline failures."""


# Report level: surfaced to the caller, nothing is rendered.

class TemplateNotFoundError(ReportError):
    def __init__(self, template_id):
        self.template_id = template_id
        super().__init__(f"Template not found: {template_id}")


class EmptyTemplateError(ReportError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Template '{name}' has no widgets")


class InvalidTimeRangeError(ReportError):
    def __init__(self, label):
        self.label = label
        super().__init__(f"Unknown time range: {label!r}")


# Widget level: masked by placeholder data.

class DataSourceError(ReportError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class UnsupportedDataSourceError(DataSourceError):
    def __init__(self, source: str):
        super().__init__(source, "unsupported data source")


# Template management.

class TemplateAccessError(ReportError):
    pass


class TemplateConflictError(ReportError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Template version mismatch: expected {expected}, current is {actual}")
