"""
htmlcheck: verificación estructural (anidamiento) de documentos HTML.
"""
from .stack import TagStack, EmptyStackError
from .verdict import Verdict, REASONS, line_col
from .validator import validate_structure, is_valid_html, TagOccurrence
from .sources import (
    SourceError,
    UnsupportedFileError,
    ContentReadError,
    check_path,
    read_content,
    load_and_validate,
    validate_file,
)

__version__ = "1.0.0"
