class PageOrganizerError(Exception):
    pass


class ValidationError(PageOrganizerError):
    pass


class InvalidSelectionError(ValidationError):
    pass


class ParsingError(PageOrganizerError):
    pass


class SourceOpenError(ParsingError):
    pass


class RenderError(ParsingError):
    pass


class FileIOError(PageOrganizerError):
    pass


class ExportError(PageOrganizerError):
    pass
