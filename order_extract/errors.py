"""
Exceptions raised by order extraction
"""


class UnsupportedFormatError(ValueError):
    """Raised before any parsing when a document's extension is not supported"""

    def __init__(self, filename: str, extension: str):
        self.filename = filename
        self.extension = extension
        super().__init__(f"Unsupported file format '{extension or '(none)'}' for {filename}")
